"""
Servers the tests talk to: a raw socket thread for canned responses and a
tornado IOLoop thread for the ``TestingApp``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import socket
import sys
import threading
import typing
from collections.abc import Generator

import tornado.httpserver
import tornado.ioloop
import tornado.netutil
import tornado.web


class SocketServerThread(threading.Thread):
    """
    :param socket_handler: Callable which receives the listening socket and
        serves as many connections as the test needs.
    :param ready_event: Event which gets set once the socket is listening.
    """

    def __init__(
        self,
        socket_handler: typing.Callable[[socket.socket], None],
        host: str = "127.0.0.1",
        ready_event: threading.Event | None = None,
    ) -> None:
        super().__init__(daemon=True)
        self.socket_handler = socket_handler
        self.host = host
        self.ready_event = ready_event

    def run(self) -> None:
        with socket.socket(socket.AF_INET) as listener:
            if sys.platform != "win32":
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.host, 0))
            self.port = listener.getsockname()[1]
            listener.listen(1)

            if self.ready_event:
                self.ready_event.set()
            self.socket_handler(listener)


def run_tornado_app(
    app: tornado.web.Application, host: str
) -> tuple[tornado.httpserver.HTTPServer, int]:
    """Serve ``app`` on a free port of ``host``. Must run on the IOLoop."""
    server = tornado.httpserver.HTTPServer(app)
    sockets = tornado.netutil.bind_sockets(0, address=host)
    server.add_sockets(sockets)
    return server, sockets[0].getsockname()[1]


def get_closed_port(host: str = "127.0.0.1") -> int:
    """A port on ``host`` nobody listens on, so connecting is refused."""
    with socket.socket(socket.AF_INET) as sock:
        sock.bind((host, 0))
        return typing.cast(int, sock.getsockname()[1])


def _serve_until_stopped(
    started: concurrent.futures.Future[tuple[tornado.ioloop.IOLoop, asyncio.Event]],
) -> None:
    io_loop: tornado.ioloop.IOLoop | None = None

    async def serve() -> None:
        nonlocal io_loop
        io_loop = tornado.ioloop.IOLoop.current()
        stop = asyncio.Event()
        started.set_result((io_loop, stop))
        await stop.wait()

    try:
        asyncio.run(serve())
    finally:
        if io_loop is not None:
            io_loop.close(all_fds=True)


@contextlib.contextmanager
def run_loop_in_thread() -> Generator[tornado.ioloop.IOLoop, None, None]:
    """Run a tornado IOLoop on its own thread for the duration of the block."""
    started: concurrent.futures.Future[
        tuple[tornado.ioloop.IOLoop, asyncio.Event]
    ] = concurrent.futures.Future()
    with concurrent.futures.ThreadPoolExecutor(
        1, thread_name_prefix="test IOLoop"
    ) as pool:
        ran = pool.submit(_serve_until_stopped, started)
        # Either the loop comes up, or the thread dies trying.
        concurrent.futures.wait(
            (started, ran), return_when=concurrent.futures.FIRST_COMPLETED
        )
        if not started.done():
            ran.result()
            raise RuntimeError("IOLoop thread exited before starting")

        io_loop, stop = started.result()
        try:
            yield io_loop
        finally:
            io_loop.add_callback(stop.set)
    # Raise anything that went wrong while the loop was shutting down.
    ran.result()
