from __future__ import annotations

import http.client
import logging
import socket
import ssl
import typing
from socket import timeout as SocketTimeout
from urllib.parse import SplitResult, urljoin, urlsplit

from ._collections import HTTPHeaderDict
from .exceptions import (
    ConnectTimeoutError,
    LocationValueError,
    NameResolutionError,
    NewConnectionError,
    ProtocolError,
    ReadTimeoutError,
    TooManyRedirectsError,
    URLSchemeUnknown,
)
from .util.util import is_replayable, to_bytes

if typing.TYPE_CHECKING:
    from .options import RequestOptions, _TYPE_BODY

log = logging.getLogger(__name__)

port_by_scheme = {"http": 80, "https": 443}

REDIRECT_STATUSES = frozenset([301, 302, 303, 307, 308])

#: Headers which are not forwarded when a redirect points at another host.
REMOVE_HEADERS_ON_REDIRECT = frozenset(["authorization", "cookie", "proxy-authorization"])

_HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1"}


def _parse_url(url: str) -> SplitResult:
    try:
        parsed = urlsplit(url)
        # Accessing the port validates it.
        parsed.port
    except ValueError as e:
        raise LocationValueError(f"Failed to parse: {url}") from e
    if parsed.scheme not in port_by_scheme:
        raise URLSchemeUnknown(parsed.scheme)
    if not parsed.hostname:
        raise LocationValueError(f"No host specified: {url}")
    return parsed


def _request_target(parsed: SplitResult) -> str:
    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query
    return target


def _ms_to_seconds(value: int) -> float | None:
    return value / 1000.0 if value else None


class HTTPConnection:
    """
    One HTTP exchange with the server named by ``url``.

    Wraps :class:`http.client.HTTPConnection` (or its HTTPS variant) behind
    the small surface used by :func:`~httpagent.request.http_agent`::

        conn = HTTPConnection("http://localhost:8080/")
        conn.configure(options)
        conn.send(options.body)
        body = conn.read_body()
        conn.close()

    Nothing touches the network before :meth:`send`. Redirects are
    followed inside :meth:`send` when the configured options ask for it, so
    the status, reason and headers always describe the final response.
    Those stay readable after :meth:`close`.
    """

    #: Maximum number of redirect hops followed by :meth:`send`.
    max_redirects: int = 20

    def __init__(self, url: str) -> None:
        self._parsed = _parse_url(url)
        self.url = url

        self.method = "GET"
        self.headers = HTTPHeaderDict()
        self.follow_redirects = True
        self.connect_timeout = 0
        self.read_timeout = 0

        self._conn: http.client.HTTPConnection | None = None
        self._response: http.client.HTTPResponse | None = None
        self._status: int | None = None
        self._reason: str | None = None
        self._version: int | None = None
        self._header_fields: list[tuple[str, str]] = []
        self._content_type_charset: str | None = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.method} {self.url}>"

    @property
    def host(self) -> str:
        return typing.cast(str, self._parsed.hostname)

    @property
    def port(self) -> int:
        return self._parsed.port or port_by_scheme[self._parsed.scheme]

    @property
    def closed(self) -> bool:
        return self._closed

    def configure(self, options: RequestOptions) -> None:
        """Set the method, redirect policy, headers and timeouts."""
        self.method = options.method
        self.follow_redirects = options.follow_redirects
        self.headers = HTTPHeaderDict(options.headers)
        self.connect_timeout = options.connect_timeout
        self.read_timeout = options.read_timeout

    def _new_conn(self, parsed: SplitResult) -> http.client.HTTPConnection:
        """Establish a connection to the host of ``parsed``.

        :return: New connection with its socket already open.
        """
        host = typing.cast(str, parsed.hostname)
        port = parsed.port or port_by_scheme[parsed.scheme]
        timeout = _ms_to_seconds(self.connect_timeout)
        conn: http.client.HTTPConnection
        if parsed.scheme == "https":
            conn = http.client.HTTPSConnection(
                host, port, timeout=timeout, context=ssl.create_default_context()
            )
        else:
            conn = http.client.HTTPConnection(host, port, timeout=timeout)

        try:
            conn.connect()
        except socket.gaierror as e:
            raise NameResolutionError(parsed.geturl(), host, e) from e
        except SocketTimeout as e:
            raise ConnectTimeoutError(
                parsed.geturl(),
                f"Connection to {host} timed out. (connect timeout={self.connect_timeout}ms)",
            ) from e
        except ssl.SSLError as e:
            raise NewConnectionError(parsed.geturl(), f"TLS handshake failed: {e}") from e
        except OSError as e:
            raise NewConnectionError(
                parsed.geturl(), f"Failed to establish a new connection: {e}"
            ) from e

        # The connect timeout is over, the socket now waits for reads.
        assert conn.sock is not None
        conn.sock.settimeout(_ms_to_seconds(self.read_timeout))
        log.debug("Starting new connection (%d): %s:%s", id(self), host, port)
        return conn

    def _request(
        self,
        parsed: SplitResult,
        method: str,
        headers: HTTPHeaderDict,
        body: _TYPE_BODY,
    ) -> http.client.HTTPResponse:
        url = parsed.geturl()
        conn = self._new_conn(parsed)
        self._conn = conn
        try:
            conn.putrequest(method, _request_target(parsed), skip_accept_encoding=True)
            if "accept-encoding" not in headers:
                conn.putheader("Accept-Encoding", "identity")
            for name, value in headers.iteritems():
                conn.putheader(name, value)
            if isinstance(body, str):
                body = to_bytes(body, "utf-8")
            chunked = False
            if body is not None and "content-length" not in headers:
                if isinstance(body, bytes):
                    conn.putheader("Content-Length", str(len(body)))
                else:
                    chunked = True
                    if "transfer-encoding" not in headers:
                        conn.putheader("Transfer-Encoding", "chunked")
            elif body is None and method in ("POST", "PUT", "PATCH"):
                conn.putheader("Content-Length", "0")
            conn.endheaders(
                typing.cast(typing.Any, body), encode_chunked=chunked
            )
            response = conn.getresponse()
        except SocketTimeout as e:
            raise ReadTimeoutError(
                url, f"Read timed out. (read timeout={self.read_timeout}ms)"
            ) from e
        except (http.client.HTTPException, OSError) as e:
            raise ProtocolError(url, f"Connection aborted: {e!r}") from e
        log.debug(
            '%s://%s:%s "%s %s %s" %s',
            parsed.scheme,
            parsed.hostname,
            parsed.port or port_by_scheme[parsed.scheme],
            method,
            _request_target(parsed),
            _HTTP_VERSIONS.get(response.version, "HTTP/?"),
            response.status,
        )
        return response

    def _redirect_location(self, response: http.client.HTTPResponse) -> str | None:
        if response.status in REDIRECT_STATUSES:
            return response.getheader("Location")
        return None

    def _drain(self) -> None:
        if self._response is not None:
            try:
                self._response.read()
            except (http.client.HTTPException, OSError):
                pass
            self._response.close()
        if self._conn is not None:
            self._conn.close()

    def send(self, body: _TYPE_BODY = None) -> None:
        """
        Send the request and read the status line and headers of the final
        response.

        :raises TransportError: if the exchange fails at the network level.
        """
        parsed = self._parsed
        method = self.method
        headers = self.headers
        redirects = 0

        while True:
            response = self._request(parsed, method, headers, body)
            self._response = response

            location = self.follow_redirects and self._redirect_location(response)
            if not location:
                break
            redirects += 1
            redirect_url = urljoin(parsed.geturl(), location)
            if redirects > self.max_redirects:
                self._drain()
                raise TooManyRedirectsError(redirect_url, self.max_redirects)
            try:
                new_parsed = _parse_url(redirect_url)
            except LocationValueError:
                # Not something we can follow, hand the 3xx to the caller.
                log.debug("Not following redirect to %r", redirect_url)
                break

            next_method, next_body = method, body
            # RFC 7231, Section 6.4.4
            if response.status == 303 and method != "HEAD":
                next_method, next_body = "GET", None
            elif response.status in (301, 302) and method == "POST":
                next_method, next_body = "GET", None
            if not is_replayable(next_body):
                log.debug(
                    "Not following %s redirect, the request body cannot be resent",
                    response.status,
                )
                break
            method, body = next_method, next_body

            if new_parsed.hostname != parsed.hostname or new_parsed.port != parsed.port:
                headers = headers.copy()
                for header in list(headers):
                    if header.lower() in REMOVE_HEADERS_ON_REDIRECT:
                        headers.discard(header)
            if body is None:
                headers = headers.copy()
                headers.discard("Content-Length")
                headers.discard("Content-Type")

            log.info("Redirecting %s -> %s", parsed.geturl(), redirect_url)
            self._drain()
            parsed = new_parsed

        self.url = parsed.geturl()
        self._status = response.status
        self._reason = response.reason
        self._version = response.version
        self._header_fields = list(response.msg.items())
        self._content_type_charset = response.msg.get_content_charset()

    def is_success(self) -> bool:
        """Is the response in the 2xx range?"""
        return self._status is not None and self._status // 100 == 2

    def read_body(self) -> bytes:
        """Read the whole response body into memory.

        :raises TransportError: if the body cannot be read.
        """
        if self._response is None:
            raise ProtocolError(self.url, "No response to read, send() was not called")
        try:
            data = self._response.read()
        except SocketTimeout as e:
            raise ReadTimeoutError(
                self.url, f"Read timed out. (read timeout={self.read_timeout}ms)"
            ) from e
        except (http.client.HTTPException, OSError) as e:
            raise ProtocolError(self.url, f"Connection broken: {e!r}") from e
        return data

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def status_line(self) -> str | None:
        if self._status is None:
            return None
        version = _HTTP_VERSIONS.get(self._version or 11, "HTTP/1.1")
        return f"{version} {self._status} {self._reason or ''}".rstrip()

    def header_fields(self) -> list[tuple[str | None, str]]:
        """
        Response headers in wire order. The first entry carries no name and
        holds the status line.
        """
        if self._status is None:
            return []
        fields: list[tuple[str | None, str]] = [(None, typing.cast(str, self.status_line))]
        fields.extend(self._header_fields)
        return fields

    def content_charset(self) -> str | None:
        """The ``charset`` parameter of the response ``Content-Type``, if any."""
        return self._content_type_charset

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            self._response.close()
        if self._conn is not None:
            self._conn.close()
        log.debug("Closed connection (%d): %s", id(self), self.url)
