import socket
import threading
import time

import pytest

from zinx.config import GlobalConfig
from zinx.connection import Connection, ConnectionClosedError, PropertyNotFoundError
from zinx.datapack import DataPack
from zinx.message import Message
from zinx.router import BaseRouter
from zinx.server import Server


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class RecordingRouter(BaseRouter):
    def __init__(self):
        self.requests = []
        self.event = threading.Event()

    def handle(self, request):
        self.requests.append(request)
        self.event.set()


@pytest.fixture
def pair():
    server = Server(GlobalConfig(worker_pool_size=0))
    local, peer = socket.socketpair()
    peer.settimeout(5)
    conn = Connection(server, local, 3, server.msg_handler)
    yield server, conn, peer
    conn.stop()
    peer.close()


def test_new_connection_is_registered(pair):
    server, conn, _ = pair
    assert server.conn_manager.get(3) is conn
    assert len(server.conn_manager) == 1


def test_properties_round_trip(pair):
    _, conn, _ = pair
    conn.set_property("name", "zinx")
    conn.set_property("age", 18)
    assert conn.get_property("name") == "zinx"
    assert conn.get_property("age") == 18
    conn.remove_property("name")
    with pytest.raises(PropertyNotFoundError):
        conn.get_property("name")
    assert conn.get_property("age") == 18


def test_get_missing_property_raises(pair):
    _, conn, _ = pair
    with pytest.raises(PropertyNotFoundError):
        conn.get_property("missing")


def test_remove_unknown_property_keeps_others(pair):
    _, conn, _ = pair
    conn.set_property("kept", 1)
    conn.remove_property("unknown")
    assert conn.get_property("kept") == 1


def test_stop_unregisters_and_runs_hook_once(pair):
    server, conn, _ = pair
    stopped = []
    server.on_conn_stop = stopped.append
    conn.stop()
    conn.stop()
    assert conn.is_closed
    assert stopped == [conn]
    assert len(server.conn_manager) == 0


def test_send_after_stop_raises(pair):
    _, conn, _ = pair
    conn.stop()
    with pytest.raises(ConnectionClosedError):
        conn.send_msg(1, b"late")


def test_start_runs_start_hook(pair):
    server, conn, _ = pair
    started = []
    server.on_conn_start = started.append
    conn.start()
    assert started == [conn]


def test_send_msg_writes_frame(pair):
    _, conn, peer = pair
    conn.start()
    conn.send_msg(1, b"hello")
    received = b""
    while len(received) < 13:
        received += peer.recv(64)
    assert received == b"\x05\x00\x00\x00\x01\x00\x00\x00hello"


def test_send_msg_round_trips_through_datapack(pair):
    _, conn, peer = pair
    conn.start()
    conn.send_msg(9, b"ping...ping...ping...")
    message = DataPack().read_message(peer.makefile("rb"))
    assert message == Message(9, b"ping...ping...ping...")


def test_reader_dispatches_requests(pair):
    server, conn, peer = pair
    router = RecordingRouter()
    server.add_router(2, router)
    conn.start()
    peer.sendall(DataPack().pack(Message(2, b"world")))
    assert router.event.wait(5)
    request = router.requests[0]
    assert request.connection is conn
    assert request.msg_id == 2
    assert request.data == b"world"


def test_reader_skips_oversized_header():
    server = Server(GlobalConfig(worker_pool_size=0))
    local, peer = socket.socketpair()
    conn = Connection(server, local, 0, server.msg_handler, DataPack(max_package_size=16))
    router = RecordingRouter()
    server.add_router(1, router)
    try:
        conn.start()
        oversized = DataPack(max_package_size=0).pack(Message(1, b"", 100))
        peer.sendall(oversized + DataPack().pack(Message(1, b"ok")))
        assert router.event.wait(5)
        assert [r.data for r in router.requests] == [b"ok"]
    finally:
        conn.stop()
        peer.close()


def test_reader_uses_worker_pool_when_running():
    server = Server(GlobalConfig(worker_pool_size=2))
    local, peer = socket.socketpair()
    conn = Connection(server, local, 5, server.msg_handler)
    router = RecordingRouter()
    server.add_router(4, router)
    server.msg_handler.start_worker_pool()
    try:
        conn.start()
        peer.sendall(DataPack().pack(Message(4, b"queued")))
        assert router.event.wait(5)
        assert router.requests[0].data == b"queued"
    finally:
        conn.stop()
        server.msg_handler.stop_worker_pool()
        peer.close()


def test_peer_close_stops_connection(pair):
    server, conn, peer = pair
    stopped = []
    server.on_conn_stop = stopped.append
    conn.start()
    peer.close()
    assert wait_for(lambda: conn.is_closed)
    assert wait_for(lambda: len(server.conn_manager) == 0)
    assert stopped == [conn]