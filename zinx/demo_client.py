"""Demo client: sends a message, reads the reply, repeats."""

from __future__ import annotations

import argparse
import logging
import socket
import time
from typing import Iterator, Optional, Sequence

from zinx.datapack import DataPack, PackError
from zinx.message import Message

logger = logging.getLogger(__name__)

READ_TIMEOUT = 5.0
SEND_INTERVAL = 1.0


def run_client(
    host: str = "127.0.0.1",
    port: int = 8999,
    msg_id: int = 0,
    text: str = "zinx client0 test message",
    count: Optional[int] = None,
) -> Iterator[Message]:
    """Send ``text`` under ``msg_id`` and yield each reply read back.

    Sends ``count`` times, or forever when ``count`` is None, waiting a
    second between sends. Socket errors, timeouts, framing errors and an
    early end of stream are raised to the caller.
    """
    datapack = DataPack()
    payload = text.encode("utf-8")
    with socket.create_connection((host, port), timeout=READ_TIMEOUT) as sock:
        with sock.makefile("rb") as stream:
            sent = 0
            while count is None or sent < count:
                if sent:
                    time.sleep(SEND_INTERVAL)
                sock.sendall(datapack.pack(Message(msg_id, payload)))
                sent += 1
                logger.debug("client send data success")
                yield datapack.read_message(stream)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the demo client.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8999)
    parser.add_argument("--msg-id", type=int, default=0)
    parser.add_argument("--text", help="message text to send")
    parser.add_argument("--count", type=int, help="number of messages (default: forever)")
    parser.add_argument("--delay", type=float, default=0.0,
                        help="seconds to wait before connecting")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s")
    text = args.text if args.text is not None else f"zinx client{args.msg_id} test message"

    if args.delay > 0:
        time.sleep(args.delay)
    try:
        for reply in run_client(args.host, args.port, args.msg_id, text, args.count):
            print(f"recv msg id = {reply.msg_id}, "
                  f"data = {reply.data.decode('utf-8', errors='replace')}")
    except (OSError, EOFError, PackError) as exc:
        logger.error("client error: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0