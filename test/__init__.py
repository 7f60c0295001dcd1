from __future__ import annotations

import logging
import threading
import typing

from httpagent.options import RequestOptions

#: Seconds a test waits for an agent before giving up.
LONG_TIMEOUT = 5.0
SHORT_TIMEOUT = 0.1


class FakeConnection:
    """
    Stands in for :class:`httpagent.connection.HTTPConnection` without any
    network access. Build configured subclasses with :func:`fake_connection`.
    """

    status_code: int = 200
    reason_phrase: str = "OK"
    fields: typing.Sequence[tuple[str, str]] = ()
    charset: str | None = None
    body: bytes = b""
    send_error: Exception | None = None
    read_error: Exception | None = None
    release: threading.Event | None = None

    def __init__(self, url: str) -> None:
        self.url = url
        self.method = "GET"
        self.options: RequestOptions | None = None
        self.sent: list[object] = []
        self.close_count = 0
        self._status: int | None = None

    def configure(self, options: RequestOptions) -> None:
        self.options = options
        self.method = options.method

    def send(self, body: object = None) -> None:
        if self.release is not None:
            self.release.wait(LONG_TIMEOUT)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(body)
        self._status = self.status_code

    def is_success(self) -> bool:
        return self._status is not None and self._status // 100 == 2

    def read_body(self) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.body

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def reason(self) -> str | None:
        return self.reason_phrase if self._status is not None else None

    def header_fields(self) -> list[tuple[str | None, str]]:
        if self._status is None:
            return []
        fields: list[tuple[str | None, str]] = [
            (None, f"HTTP/1.1 {self.status_code} {self.reason_phrase}")
        ]
        fields.extend(self.fields)
        return fields

    def content_charset(self) -> str | None:
        return self.charset

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def close(self) -> None:
        self.close_count += 1


def fake_connection(**attrs: typing.Any) -> typing.Any:
    """Return a :class:`FakeConnection` subclass with ``attrs`` set on it."""
    return type("ConfiguredFakeConnection", (FakeConnection,), attrs)


class LogRecorder:
    def __init__(self, target: logging.Logger = logging.root) -> None:
        super().__init__()
        self._target = target
        self._handler = _ListHandler()

    @property
    def records(self) -> list[logging.LogRecord]:
        return self._handler.records

    def install(self) -> None:
        self._target.addHandler(self._handler)

    def uninstall(self) -> None:
        self._target.removeHandler(self._handler)

    def __enter__(self) -> list[logging.LogRecord]:
        self.install()
        return self.records

    def __exit__(self, exc_type: object, exc_value: object, traceback: object) -> None:
        self.uninstall()


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)
