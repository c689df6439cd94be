"""Length-prefixed framing: 4-byte length, 4-byte id, then the payload."""

from __future__ import annotations

import struct
from typing import BinaryIO

from zinx.config import DEFAULT_MAX_PACKAGE_SIZE
from zinx.message import Message

_HEADER = struct.Struct("<II")
HEAD_LEN = _HEADER.size


class PackError(ValueError):
    """A message could not be packed or a header could not be unpacked."""


class MessageTooLargeError(PackError):
    """A header declares a payload bigger than the allowed maximum."""


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            raise EOFError(f"stream ended after {len(buffer)} of {size} bytes")
        buffer.extend(chunk)
    return bytes(buffer)


class DataPack:
    """Packs messages into frames and unpacks frame headers.

    A ``max_package_size`` of 0 disables the payload size limit.
    """

    def __init__(self, max_package_size: int = DEFAULT_MAX_PACKAGE_SIZE) -> None:
        self.max_package_size = max_package_size

    @property
    def head_len(self) -> int:
        """Size of a frame header in bytes."""
        return HEAD_LEN

    def pack(self, message: Message) -> bytes:
        """Return the frame for ``message``: header followed by payload."""
        try:
            header = _HEADER.pack(message.data_len, message.msg_id)
            payload = bytes(message.data)
        except (struct.error, TypeError) as exc:
            raise PackError(f"cannot pack message: {exc}") from exc
        return header + payload

    def unpack(self, head: bytes) -> Message:
        """Decode a frame header into a message with an empty payload."""
        if len(head) < HEAD_LEN:
            raise PackError(f"header needs {HEAD_LEN} bytes, got {len(head)}")
        data_len, msg_id = _HEADER.unpack_from(head)
        if self.max_package_size > 0 and data_len > self.max_package_size:
            raise MessageTooLargeError(
                f"message too large: {data_len} > {self.max_package_size}"
            )
        return Message(msg_id, b"", data_len)

    def read_message(self, stream: BinaryIO) -> Message:
        """Read one whole frame from a binary stream.

        Raises EOFError if the stream ends before the frame is complete.
        """
        message = self.unpack(_read_exact(stream, HEAD_LEN))
        if message.data_len > 0:
            message.data = _read_exact(stream, message.data_len)
        return message