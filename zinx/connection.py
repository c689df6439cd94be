"""A client connection: a reader thread, a writer thread and properties."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import Any, BinaryIO, Dict, Optional

from zinx.datapack import DataPack, PackError
from zinx.message import Message
from zinx.router import Request

logger = logging.getLogger(__name__)

_OUTBOX_SIZE = 10
_POLL_INTERVAL = 0.1


class ConnectionClosedError(ConnectionError):
    """A message was sent on a connection that is already closed."""


class PropertyNotFoundError(LookupError):
    """No property is set under the requested key."""


class Connection:
    """One accepted socket bound to a server and its message handler.

    Creating a connection registers it with the server's connection
    manager. ``start`` launches the reader and writer threads; the reader
    turns incoming frames into requests for the message handler, the
    writer sends the frames queued by ``send_msg``.
    """

    def __init__(
        self,
        server: Any,
        sock: socket.socket,
        conn_id: int,
        msg_handler: Any,
        datapack: Optional[DataPack] = None,
    ) -> None:
        self.server = server
        self.sock = sock
        self.conn_id = conn_id
        self.msg_handler = msg_handler
        self.datapack = datapack if datapack is not None else DataPack()
        self.is_closed = False
        self._outbox: "queue.Queue[bytes]" = queue.Queue(maxsize=_OUTBOX_SIZE)
        self._exit = threading.Event()
        self._state_lock = threading.Lock()
        self._properties: Dict[str, Any] = {}
        self._property_lock = threading.Lock()
        try:
            self._remote_addr: Any = sock.getpeername()
        except OSError:
            self._remote_addr = None
        server.conn_manager.add(self)
        logger.info("create new connection success, conn_id = %d", conn_id)

    @property
    def remote_addr(self) -> Any:
        """Address of the remote peer, as reported when the connection was made."""
        return self._remote_addr

    def start(self) -> None:
        """Start reading and writing, then run the server's start hook."""
        logger.info("conn start... conn_id = %d", self.conn_id)
        threading.Thread(
            target=self._read_loop, name=f"zinx-reader-{self.conn_id}", daemon=True
        ).start()
        threading.Thread(
            target=self._write_loop, name=f"zinx-writer-{self.conn_id}", daemon=True
        ).start()
        self.server.call_on_conn_start(self)

    def stop(self) -> None:
        """Close the connection once: run the stop hook, close, unregister."""
        with self._state_lock:
            if self.is_closed:
                return
            self.is_closed = True
        logger.info("conn stop... conn_id = %d", self.conn_id)
        self.server.call_on_conn_stop(self)
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()
        self._exit.set()
        self.server.conn_manager.remove(self)

    def send_msg(self, msg_id: int, data: bytes) -> None:
        """Queue a message for the remote peer."""
        if self.is_closed:
            raise ConnectionClosedError("conn is closed")
        frame = self.datapack.pack(Message(msg_id, bytes(data)))
        self._outbox.put(frame)

    def set_property(self, key: str, value: Any) -> None:
        with self._property_lock:
            self._properties[key] = value

    def get_property(self, key: str) -> Any:
        with self._property_lock:
            try:
                return self._properties[key]
            except KeyError:
                raise PropertyNotFoundError("property not found") from None

    def remove_property(self, key: str) -> None:
        """Forget a property; removing an unknown key does nothing."""
        with self._property_lock:
            self._properties.pop(key, None)

    def _read_exact(self, stream: BinaryIO, size: int) -> Optional[bytes]:
        try:
            data = stream.read(size)
        except (OSError, ValueError) as exc:
            logger.debug("conn %d read failed: %s", self.conn_id, exc)
            return None
        if data is None or len(data) < size:
            return None
        return data

    def _read_loop(self) -> None:
        logger.debug("conn %d reader is started", self.conn_id)
        stream: Optional[BinaryIO] = None
        try:
            stream = self.sock.makefile("rb")
            while True:
                head = self._read_exact(stream, self.datapack.head_len)
                if head is None:
                    logger.info("conn %d: read head data failed", self.conn_id)
                    break
                try:
                    message = self.datapack.unpack(head)
                except PackError as exc:
                    logger.warning("conn %d: unpack error: %s", self.conn_id, exc)
                    continue
                if message.data_len > 0:
                    data = self._read_exact(stream, message.data_len)
                    if data is None:
                        logger.warning("conn %d: read payload failed", self.conn_id)
                        continue
                    message.data = data
                self._dispatch(Request(self, message))
        except OSError as exc:
            logger.debug("conn %d reader failed: %s", self.conn_id, exc)
        finally:
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
            self.stop()
            logger.info("conn_id = %d reader is stopped, remote addr is %s",
                        self.conn_id, self._remote_addr)

    def _dispatch(self, request: Request) -> None:
        logger.debug("received msg, conn_id = %d msg_id = %d", self.conn_id, request.msg_id)
        if self.msg_handler.running:
            self.msg_handler.send_to_task_queue(request)
        else:
            threading.Thread(
                target=self.msg_handler.do_msg_handler, args=(request,), daemon=True
            ).start()

    def _write_loop(self) -> None:
        logger.debug("conn %d writer is started", self.conn_id)
        while not self._exit.is_set():
            try:
                frame = self._outbox.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue
            try:
                self.sock.sendall(frame)
            except OSError as exc:
                logger.warning("conn %d: write data error: %s", self.conn_id, exc)
        logger.info("conn_id = %d writer is exited, remote addr is %s",
                    self.conn_id, self._remote_addr)