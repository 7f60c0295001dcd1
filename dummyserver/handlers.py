from __future__ import annotations

import gzip
import json
import logging
import typing
from http.client import responses
from urllib.parse import urlsplit

from tornado import httputil
from tornado.web import RequestHandler

log = logging.getLogger(__name__)


class Response:
    def __init__(
        self,
        body: str | bytes = "",
        status: str = "200 OK",
        headers: typing.Sequence[tuple[str, str]] | None = None,
    ) -> None:
        self.body = body
        self.status = status
        self.headers = headers or [("Content-type", "text/plain")]

    def __call__(self, request_handler: RequestHandler) -> None:
        status, reason = self.status.split(" ", 1)
        request_handler.set_status(int(status), reason)
        # Drop tornado's default so a given Content-Type is the only one.
        request_handler.clear_header("Content-Type")
        for header, value in self.headers:
            request_handler.add_header(header, value)

        if isinstance(self.body, str):
            request_handler.write(self.body.encode())
        else:
            request_handler.write(self.body)


def request_params(request: httputil.HTTPServerRequest) -> dict[str, bytes]:
    params = {}
    for k, v in request.arguments.items():
        params[k] = next(iter(v))
    return params


class TestingApp(RequestHandler):
    """
    Simple app that performs various operations, useful for testing an HTTP
    library.

    Given any path, it will attempt to load a corresponding local method if
    it exists. Status code 200 indicates success, 400 indicates failure. Each
    method has its own conditions for success/failure.
    """

    def get(self) -> None:
        """Handle GET requests"""
        self._call_method()

    def post(self) -> None:
        """Handle POST requests"""
        self._call_method()

    def put(self) -> None:
        """Handle PUT requests"""
        self._call_method()

    def delete(self) -> None:
        """Handle DELETE requests"""
        self._call_method()

    def head(self) -> None:
        """Handle HEAD requests"""
        self._call_method()

    def _call_method(self) -> None:
        """Call the correct method in this class based on the incoming URI"""
        req = self.request

        path = req.path[:]
        if not path.startswith("/"):
            path = urlsplit(path).path

        target = path[1:].split("/", 1)[0]
        method = getattr(self, target, self.index)

        resp = method(req)
        resp(self)

    def index(self, _request: httputil.HTTPServerRequest) -> Response:
        "Render simple message"
        return Response("Dummy server!")

    def status(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with ``status`` and an optional ``body``"
        params = request_params(request)
        status = params.get("status", b"200 OK").decode("latin-1")
        body = params.get("body", b"")
        return Response(body, status=status)

    def not_found(self, request: httputil.HTTPServerRequest) -> Response:
        return Response("not found", status="404 Not Found")

    def redirect(self, request: httputil.HTTPServerRequest) -> Response:  # type: ignore[override]
        "Perform a redirect to ``target``"
        params = request_params(request)
        target = params.get("target", b"/").decode("latin-1")
        status = params.get("status", b"303 See Other").decode("latin-1")
        if len(status) == 3:
            status = f"{status} Redirect"

        headers = [("Location", target)]
        return Response(status=status, headers=headers)

    def multi_redirect(self, request: httputil.HTTPServerRequest) -> Response:
        "Performs a redirect chain based on ``redirect_codes``"
        params = request_params(request)
        codes = params.get("redirect_codes", b"200").decode("utf-8")
        head, tail = codes.split(",", 1) if "," in codes else (codes, None)
        status = f"{head} {responses[int(head)]}"
        if not tail:
            return Response("Done redirecting", status=status)

        headers = [("Location", f"/multi_redirect?redirect_codes={tail}")]
        return Response(status=status, headers=headers)

    def echo(self, request: httputil.HTTPServerRequest) -> Response:
        "Echo back the params"
        if request.method == "GET":
            return Response(request.query)

        return Response(request.body)

    def echo_method(self, request: httputil.HTTPServerRequest) -> Response:
        "Echo back the request method"
        return Response(typing.cast(str, request.method))

    def headers(self, request: httputil.HTTPServerRequest) -> Response:
        return Response(json.dumps(dict(request.headers)))

    def multi_headers(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with the same header name more than once"
        return Response(
            "multi",
            headers=[
                ("Content-type", "text/plain"),
                ("X-A", "1"),
                ("X-A", "2"),
                ("X-B", "3"),
            ],
        )

    def charset(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with a latin-1 encoded body and say so in Content-Type"
        return Response(
            "caf\xe9".encode("latin-1"),
            headers=[("Content-Type", "text/plain; charset=ISO-8859-1")],
        )

    def encodingrequest(self, request: httputil.HTTPServerRequest) -> Response:
        "Gzip the body if the client accepts it"
        data = b"hello, world!"
        headers = None
        if request.headers.get("Accept-Encoding", "") == "gzip":
            headers = [("Content-Encoding", "gzip")]
            data = gzip.compress(data)
        return Response(data, headers=headers)
