# zinx

A small TCP server framework built on threads. Clients and server exchange
messages framed with an 8-byte little-endian header: a 4-byte data length
followed by a 4-byte message ID, then the message body. Incoming messages
are routed by ID to router objects, through a pool of worker threads.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Writing a server

```python
from zinx.config import GlobalConfig
from zinx.router import BaseRouter
from zinx.server import Server


class Echo(BaseRouter):
    def handle(self, request):
        request.connection.send_msg(request.msg_id, request.data)


server = Server(GlobalConfig())
server.add_router(0, Echo())
server.serve()
```

`Server.serve()` starts the server and blocks until `Server.stop()` is
called; `Server.start()` starts it in the background. While running,
`Server.address` holds the bound `(host, port)`. `Server` also takes the
keyword arguments `on_conn_start` and `on_conn_stop`, functions called with
the connection when it starts and when it stops.

A router (`zinx.router.BaseRouter`) has three hooks, `pre_handle`, `handle`
and `post_handle`, called in that order for every message whose ID it is
registered under. Each receives a `Request` with `connection`, `message`,
`msg_id`, `data` and `data_len`. Registering two routers under the same ID
raises `zinx.msghandler.DuplicateRouteError`; messages with no registered
router are logged and dropped.

Requests from one connection always go to the same worker
(connection ID modulo the pool size), so they are handled in order. With a
pool size of 0 each request is handled on a thread of its own.

Connections (`zinx.connection.Connection`) carry a property store
(`set_property`, `get_property`, `remove_property`); asking for a missing
property raises `PropertyNotFoundError`, and sending on a closed connection
raises `ConnectionClosedError`. The server keeps live connections in a
`zinx.connmanager.ConnManager`; `ConnManager.get` raises
`ConnectionNotFoundError` for an unknown ID.

## Configuration

`zinx.config.GlobalConfig` holds the defaults: server name `ZinxServerApp`,
version `v0.4`, host `127.0.0.1`, port `8999`, at most 1000 connections,
packages of at most 4096 bytes, 10 workers with queues of 1024 tasks.
`GlobalConfig.reload(path)` reads overrides from a JSON file (by default
`conf/zinx.json`); keys such as `Name`, `Host`, `TcpPort`, `MaxConn`,
`MaxPackageSize`, `MaxWorkerTaskLen` and `WorkerPoolSize` are matched
case-insensitively, unknown keys and nulls are ignored, and values of the
wrong type or out of range raise `TypeError` or `ValueError`. The server
does not read this file on its own: call `reload` before creating it.

## Framing by hand

```python
from zinx.datapack import DataPack
from zinx.message import Message

pack = DataPack()
frame = pack.pack(Message(1, b"hello"))
```

`DataPack.unpack` decodes an 8-byte header into a `Message` with an empty
payload; a declared length above `max_package_size` raises
`MessageTooLargeError` (a `max_package_size` of 0 turns the limit off).
`DataPack.read_message` reads one whole message from a binary stream and
raises `EOFError` if the stream ends early.

## Demo

Start the demo server:

```
zinx-demo-server
```

It greets each new connection with `DoConnectionBegin` under message ID 0
and answers messages with ID 0 and 1 with `ping...ping...ping...` under the
same ID. Options: `--config FILE`, `--host`, `--port`.

In another terminal, run a client that sends a test message once a second
and prints each reply:

```
zinx-demo-client
```

Options: `--host`, `--port`, `--msg-id`, `--text`, `--count` (default:
forever) and `--delay` (seconds to wait before connecting). The same loop is
available from Python as `zinx.demo_client.run_client`, a generator of the
replies.

## What it does not do

There is no encryption, authentication or heartbeat; connections are plain
TCP over IPv4, and a dropped client is noticed only when a read fails.