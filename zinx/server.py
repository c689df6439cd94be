"""The TCP server: accepts connections and routes their messages."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Callable, Optional

from zinx.config import GlobalConfig
from zinx.connection import Connection
from zinx.connmanager import ConnManager
from zinx.datapack import DataPack
from zinx.msghandler import MsgHandler
from zinx.router import BaseRouter

logger = logging.getLogger(__name__)

TOO_MANY_CONNECTIONS = b"Error: Server has reached maximum connection limit\n"
_ACCEPT_POLL = 0.2

ConnHook = Callable[[Connection], Any]


class Server:
    """A TCP server configured by a :class:`GlobalConfig`.

    ``on_conn_start`` and ``on_conn_stop`` are optional hooks run when a
    connection starts and when it stops.
    """

    def __init__(
        self,
        config: Optional[GlobalConfig] = None,
        *,
        on_conn_start: Optional[ConnHook] = None,
        on_conn_stop: Optional[ConnHook] = None,
    ) -> None:
        self.config = config if config is not None else GlobalConfig()
        self.name = self.config.name
        self.host = self.config.host
        self.port = self.config.tcp_port
        self.msg_handler = MsgHandler(
            self.config.worker_pool_size, self.config.max_worker_task_len
        )
        self.conn_manager = ConnManager()
        self.datapack = DataPack(self.config.max_package_size)
        self.on_conn_start = on_conn_start
        self.on_conn_stop = on_conn_stop
        self._listener: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()
        self._next_conn_id = 0
        self._address: Optional[tuple] = None

    @property
    def address(self) -> Optional[tuple]:
        """The bound (host, port) while the server is running, else None."""
        return self._address

    def start(self) -> None:
        """Start the worker pool, listen, and accept connections in the background."""
        if self._listener is not None:
            raise RuntimeError("server is already running")
        logger.info("[zinx] server name: %s, ip: %s, port: %d",
                    self.name, self.host, self.port)
        self._stopped.clear()
        self.msg_handler.start_worker_pool()
        try:
            listener = socket.create_server((self.host, self.port), family=socket.AF_INET)
        except OSError:
            self.msg_handler.stop_worker_pool()
            raise
        listener.settimeout(_ACCEPT_POLL)
        self._listener = listener
        self._address = listener.getsockname()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, args=(listener,), name="zinx-acceptor", daemon=True
        )
        self._accept_thread.start()
        logger.info("start zinx success, %s now is listening on %s", self.name, self._address)

    def stop(self) -> None:
        """Stop accepting, stop every connection and the worker pool."""
        logger.info("zinx server stop")
        self._stopped.set()
        listener, self._listener = self._listener, None
        thread, self._accept_thread = self._accept_thread, None
        if thread is not None:
            thread.join()
        if listener is not None:
            listener.close()
        self._address = None
        self.conn_manager.clear()
        self.msg_handler.stop_worker_pool()
        logger.info("zinx server stop success")

    def serve(self) -> None:
        """Start the server and block until it is stopped."""
        self.start()
        self._stopped.wait()

    def add_router(self, msg_id: int, router: BaseRouter) -> None:
        self.msg_handler.add_router(msg_id, router)

    def call_on_conn_start(self, conn: Connection) -> None:
        if self.on_conn_start is not None:
            self.on_conn_start(conn)

    def call_on_conn_stop(self, conn: Connection) -> None:
        if self.on_conn_stop is not None:
            self.on_conn_stop(conn)

    def _accept_loop(self, listener: socket.socket) -> None:
        while not self._stopped.is_set():
            try:
                sock, addr = listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stopped.is_set():
                    break
                logger.warning("accept failed: %s", exc)
                continue
            logger.info("new connection accepted, remote addr = %s", addr)
            if len(self.conn_manager) > self.config.max_conn:
                logger.warning("too many connections, max conn is %d", self.config.max_conn)
                try:
                    sock.sendall(TOO_MANY_CONNECTIONS)
                except OSError:
                    pass
                sock.close()
                continue
            conn = Connection(self, sock, self._next_conn_id, self.msg_handler, self.datapack)
            self._next_conn_id += 1
            threading.Thread(
                target=conn.start, name=f"zinx-conn-{conn.conn_id}", daemon=True
            ).start()