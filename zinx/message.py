"""The message unit exchanged between client and server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Message:
    """A message: identifier, payload and declared payload length.

    When ``data_len`` is not given it is taken from the payload.
    """

    msg_id: int
    data: bytes = b""
    data_len: Optional[int] = None

    def __post_init__(self) -> None:
        if self.data_len is None:
            self.data_len = len(self.data)