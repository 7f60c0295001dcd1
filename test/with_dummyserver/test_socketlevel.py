from __future__ import annotations

import socket
import threading
from concurrent.futures import ThreadPoolExecutor

from dummyserver.server import get_closed_port
from dummyserver.testcase import SocketDummyServerTestCase, consume_socket
from httpagent import http_agent, response
from httpagent.exceptions import (
    NewConnectionError,
    ProtocolError,
    ReadTimeoutError,
    TransportError,
)
from httpagent.request import Lifecycle

from .. import LONG_TIMEOUT


class TestCannedResponses(SocketDummyServerTestCase):
    def test_status_line_and_duplicate_headers(
        self, executor: ThreadPoolExecutor
    ) -> None:
        self.start_response_handler(
            b"HTTP/1.1 404 Nope\r\n"
            b"X-A: 1\r\n"
            b"x-a: 2\r\n"
            b"X-B: 3\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
            b"not found"
        )
        agent = http_agent(self.base_url + "/", executor=executor)
        assert agent.wait(LONG_TIMEOUT)

        assert response.response_status(agent) == 404
        assert response.response_message(agent) == "Nope"
        assert response.response_body_str(agent) == "not found"
        assert response.response_headers(agent) == {
            "x-a": "2",
            "x-b": "3",
            "content-length": "9",
        }
        seq = response.response_headers_seq(agent)
        assert seq is not None
        assert list(seq) == [
            (None, "HTTP/1.1 404 Nope"),
            ("X-A", "1"),
            ("x-a", "2"),
            ("X-B", "3"),
            ("Content-Length", "9"),
        ]

    def test_http_10_response(self, executor: ThreadPoolExecutor) -> None:
        self.start_response_handler(b"HTTP/1.0 200 OK\r\n\r\nold school")
        agent = http_agent(self.base_url + "/", executor=executor)
        assert agent.wait(LONG_TIMEOUT)
        assert response.response_body_bytes(agent) == b"old school"
        seq = response.response_headers_seq(agent)
        assert seq is not None
        assert next(seq) == (None, "HTTP/1.0 200 OK")

    def test_request_line_and_headers(self, executor: ThreadPoolExecutor) -> None:
        received = []
        done = threading.Event()

        def socket_handler(listener: socket.socket) -> None:
            sock = listener.accept()[0]
            received.append(bytes(consume_socket(sock)))
            sock.send(b"HTTP/1.1 204 No Content\r\n\r\n")
            sock.close()
            done.set()

        self._start_server(socket_handler)
        agent = http_agent(
            self.base_url + "/path?q=1",
            executor=executor,
            method="OPTIONS",
            headers=[("X-Dup", "a"), ("X-Dup", "b")],
        )
        assert agent.wait(LONG_TIMEOUT)
        assert done.wait(LONG_TIMEOUT)

        lines = received[0].split(b"\r\n")
        assert lines[0] == b"OPTIONS /path?q=1 HTTP/1.1"
        assert b"X-Dup: a" in lines
        assert b"X-Dup: b" in lines
        assert response.response_status(agent) == 204
        assert response.response_body_bytes(agent) == b""


class TestTransportFailures(SocketDummyServerTestCase):
    def test_connection_refused(self, executor: ThreadPoolExecutor) -> None:
        port = get_closed_port(self.host)
        agent = http_agent(f"http://{self.host}:{port}/", executor=executor)
        assert agent.wait(LONG_TIMEOUT)

        assert response.failed(agent)
        assert isinstance(response.error(agent), NewConnectionError)
        assert agent.state.lifecycle is Lifecycle.CREATED
        assert response.response_status(agent) is None
        assert agent.state.connection.closed

    def test_read_timeout(self, executor: ThreadPoolExecutor) -> None:
        block_send = threading.Event()
        self.start_basic_handler(block_send=block_send)
        on_success = []
        try:
            agent = http_agent(
                self.base_url + "/",
                executor=executor,
                read_timeout=100,
                on_success=on_success.append,
            )
            assert agent.wait(LONG_TIMEOUT)
        finally:
            block_send.set()

        error = response.error(agent)
        assert isinstance(error, ReadTimeoutError)
        assert isinstance(error, TransportError)
        assert error.url is not None
        assert on_success == []
        assert response.agent_errors(agent) == (error,)

    def test_incomplete_body(self, executor: ThreadPoolExecutor) -> None:
        self.start_response_handler(
            b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\nshort"
        )
        agent = http_agent(self.base_url + "/", executor=executor)
        assert agent.wait(LONG_TIMEOUT)

        assert isinstance(response.error(agent), ProtocolError)
        assert response.response_body_bytes(agent) is None
        assert not response.is_success(agent)

    def test_garbage_response(self, executor: ThreadPoolExecutor) -> None:
        self.start_response_handler(b"this is not http\r\n\r\n")
        agent = http_agent(self.base_url + "/", executor=executor)
        assert agent.wait(LONG_TIMEOUT)
        assert isinstance(response.error(agent), ProtocolError)
