"""
Read-only views of an HTTP agent.

Every function here takes the agent returned by
:func:`~httpagent.request.http_agent`. Response accessors return ``None``
while the agent has not completed; they never block and never raise for a
pending or failed agent. Use :meth:`~httpagent.agent.Agent.wait` to block
until the request is done.
"""

from __future__ import annotations

import enum
import typing

from ._collections import HTTPHeaderDict
from .request import AgentState, HTTPAgent

__all__ = [
    "DEFAULT_ENCODING",
    "StatusClass",
    "agent_errors",
    "classify",
    "done",
    "error",
    "failed",
    "is_client_error",
    "is_error",
    "is_redirect",
    "is_server_error",
    "is_success",
    "request_body",
    "request_headers",
    "request_method",
    "request_url",
    "response_body_bytes",
    "response_body_str",
    "response_headers",
    "response_headers_seq",
    "response_message",
    "response_status",
    "status_class",
]

#: Used to decode a body whose Content-Type names no charset.
DEFAULT_ENCODING = "utf-8"


class StatusClass(enum.Enum):
    SUCCESS = "success"
    REDIRECT = "redirect"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    OTHER = "other"


_STATUS_CLASSES = {
    2: StatusClass.SUCCESS,
    3: StatusClass.REDIRECT,
    4: StatusClass.CLIENT_ERROR,
    5: StatusClass.SERVER_ERROR,
}


def status_class(status: int) -> StatusClass:
    """Classify a status code by its hundreds digit."""
    return _STATUS_CLASSES.get(status // 100, StatusClass.OTHER)


def _completed(agent: HTTPAgent) -> AgentState | None:
    # Read the snapshot once so every field comes from the same value.
    state = agent.state
    if state.completed:
        return state
    return None


# Agent status


def done(agent: HTTPAgent) -> bool:
    """Whether the request completed or failed."""
    return agent.state.completed or agent.failed


def failed(agent: HTTPAgent) -> bool:
    """Whether the request stopped on a transport error and will never complete."""
    return agent.failed


def error(agent: HTTPAgent) -> BaseException | None:
    """The transport error which stopped the request, if any."""
    return agent.failure


def agent_errors(agent: HTTPAgent) -> tuple[BaseException, ...]:
    """Everything recorded on the agent, including callback exceptions."""
    return agent.errors


# Request


def request_url(agent: HTTPAgent) -> str:
    return agent.state.url


def request_method(agent: HTTPAgent) -> str:
    return agent.state.options.method


def request_headers(agent: HTTPAgent) -> HTTPHeaderDict:
    return agent.state.options.headers.copy()


def request_body(agent: HTTPAgent) -> typing.Any:
    return agent.state.options.body


# Response


def response_body_bytes(agent: HTTPAgent) -> bytes | None:
    """The content returned by the server."""
    state = _completed(agent)
    if state is None:
        return None
    return state.response_body


def response_body_str(agent: HTTPAgent, encoding: str | None = None) -> str | None:
    """
    The response body decoded with ``encoding``.

    If no encoding is given, uses the charset of the response Content-Type,
    or :data:`DEFAULT_ENCODING` if it names none. Bytes which are not valid
    in that encoding are replaced with U+FFFD.
    """
    state = _completed(agent)
    if state is None:
        return None
    if encoding is None:
        encoding = state.connection.content_charset() or DEFAULT_ENCODING
    return typing.cast(bytes, state.response_body).decode(encoding, errors="replace")


def response_status(agent: HTTPAgent) -> int | None:
    """The HTTP status code, e.g. ``200``."""
    state = _completed(agent)
    if state is None:
        return None
    return state.connection.status


def response_message(agent: HTTPAgent) -> str | None:
    """The HTTP reason phrase, e.g. ``'Not Found'``."""
    state = _completed(agent)
    if state is None:
        return None
    return state.connection.reason


def response_headers(agent: HTTPAgent) -> dict[str, str] | None:
    """
    Response headers as a ``dict``. Names are lower-cased; if a header
    appears more than once, only its last value is kept.
    """
    state = _completed(agent)
    if state is None:
        return None
    return {
        name.lower(): value
        for name, value in state.connection.header_fields()
        if name is not None
    }


def response_headers_seq(
    agent: HTTPAgent,
) -> typing.Iterator[tuple[str | None, str]] | None:
    """
    Response headers in wire order as ``(name, value)`` pairs.

    The first pair has no name and carries the status line. Each call
    returns a new iterator over the same headers.
    """
    state = _completed(agent)
    if state is None:
        return None
    fields = state.connection.header_fields()

    def iter_fields() -> typing.Iterator[tuple[str | None, str]]:
        yield from fields

    return iter_fields()


# Classification


def classify(agent: HTTPAgent) -> StatusClass | None:
    status = response_status(agent)
    if status is None:
        return None
    return status_class(status)


def is_success(agent: HTTPAgent) -> bool:
    """True if the response status is in the 200-299 range."""
    return classify(agent) is StatusClass.SUCCESS


def is_redirect(agent: HTTPAgent) -> bool:
    """
    True if the response status is in the 300-399 range.

    When ``follow_redirects`` is true (the default) redirects are followed
    by the connection, so this only happens with redirects turned off.
    """
    return classify(agent) is StatusClass.REDIRECT


def is_client_error(agent: HTTPAgent) -> bool:
    """True if the response status is in the 400-499 range."""
    return classify(agent) is StatusClass.CLIENT_ERROR


def is_server_error(agent: HTTPAgent) -> bool:
    """True if the response status is in the 500-599 range."""
    return classify(agent) is StatusClass.SERVER_ERROR


def is_error(agent: HTTPAgent) -> bool:
    """True for a client error or a server error."""
    return classify(agent) in (StatusClass.CLIENT_ERROR, StatusClass.SERVER_ERROR)
