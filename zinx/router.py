"""Requests delivered to routers, and the base router to extend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from zinx.message import Message


@dataclass
class Request:
    """A message received on a connection."""

    connection: Any
    message: Message

    @property
    def data(self) -> bytes:
        return self.message.data

    @property
    def msg_id(self) -> int:
        return self.message.msg_id

    @property
    def data_len(self) -> int:
        return self.message.data_len


class BaseRouter:
    """Router whose hooks leave the request untouched; subclasses override what they need."""

    def pre_handle(self, request: Request) -> Request:
        """Hook run before the main handler; returns the request unchanged."""
        return request

    def handle(self, request: Request) -> None:
        """Main handler for a request."""

    def post_handle(self, request: Request) -> Request:
        """Hook run after the main handler; returns the request unchanged."""
        return request