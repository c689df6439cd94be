"""Demo application: routers for message ids 0 and 1 plus connection hooks."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Optional, Sequence

from zinx.config import GlobalConfig
from zinx.connection import ConnectionClosedError, PropertyNotFoundError
from zinx.router import BaseRouter, Request
from zinx.server import Server

logger = logging.getLogger(__name__)

PING_REPLY = b"ping...ping...ping..."
BEGIN_TEXT = b"DoConnectionBegin"
AFTER_TEXT = b"DoConnectionAfter"


def _send(conn: Any, msg_id: int, data: bytes) -> None:
    try:
        conn.send_msg(msg_id, data)
    except ConnectionClosedError as exc:
        logger.warning("send msg failed: %s", exc)
    else:
        logger.info("send msg success")


def _log_request(request: Request) -> None:
    logger.info(
        "recv from client: msg_id = %d, data = %s",
        request.msg_id,
        request.data.decode("utf-8", errors="replace"),
    )


class PingRouter(BaseRouter):
    """Answers every request with a ping under message id 0."""

    def handle(self, request: Request) -> None:
        _log_request(request)
        _send(request.connection, 0, PING_REPLY)


class HelloRouter(BaseRouter):
    """Answers every request with a ping under message id 1."""

    def handle(self, request: Request) -> None:
        _log_request(request)
        _send(request.connection, 1, PING_REPLY)


def on_connection_begin(conn: Any) -> None:
    """Greet a new connection and give it a name and an age property."""
    logger.info("DoConnectionBegin")
    _send(conn, 0, BEGIN_TEXT)
    conn.set_property("name", "zinx")
    conn.set_property("age", 18)


def on_connection_after(conn: Any) -> None:
    """Say goodbye to a closing connection and log its properties."""
    logger.info("DoConnectionAfter")
    _send(conn, 1, AFTER_TEXT)
    for key in ("name", "age"):
        try:
            value = conn.get_property(key)
        except PropertyNotFoundError as exc:
            logger.warning("get %s failed: %s", key, exc)
        else:
            logger.info("%s = %s", key, value)


def build_server(config: Optional[GlobalConfig] = None) -> Server:
    """Create a server with the demo routers and connection hooks."""
    server = Server(
        config,
        on_conn_start=on_connection_begin,
        on_conn_stop=on_connection_after,
    )
    server.add_router(0, PingRouter())
    server.add_router(1, HelloRouter())
    return server


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the demo server.")
    parser.add_argument("--config", help="JSON file with server settings")
    parser.add_argument("--host", help="address to listen on")
    parser.add_argument("--port", type=int, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s")

    config = GlobalConfig()
    if args.config:
        try:
            config.reload(args.config)
        except (OSError, ValueError, TypeError) as exc:
            logger.error("cannot load configuration: %s", exc)
            return 1
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.tcp_port = args.port

    server = build_server(config)
    try:
        server.serve()
    except OSError as exc:
        logger.error("tcp listen failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        server.stop()
    return 0