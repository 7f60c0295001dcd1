from __future__ import annotations

import typing

# Base Exceptions


class HTTPError(Exception):
    """Base exception used by this module."""


_TYPE_REDUCE_RESULT = typing.Tuple[
    typing.Callable[..., object], typing.Tuple[object, ...]
]


class TransportError(HTTPError):
    """Base exception for I/O failures while performing a request.

    A transport error is fatal to the background task that raised it: the
    agent never reaches its completed state and keeps the error as its
    :attr:`~httpagent.agent.Agent.failure`.
    """

    def __init__(self, url: str | None, message: str) -> None:
        self.url = url
        super().__init__(message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.url, str(self))


class ProtocolError(TransportError):
    """Raised when something unexpected happens mid-request/response."""


class TimeoutError(TransportError):
    """Raised when a socket timeout error occurs.

    Catching this error will catch both :exc:`ReadTimeoutErrors
    <ReadTimeoutError>` and :exc:`ConnectTimeoutErrors <ConnectTimeoutError>`.
    """


class ReadTimeoutError(TimeoutError):
    """Raised when a socket timeout occurs while receiving data from a server"""


class ConnectTimeoutError(TimeoutError):
    """Raised when a socket timeout occurs while connecting to a server"""


class NewConnectionError(TransportError):
    """Raised when we fail to establish a new connection. Usually ECONNREFUSED."""


class NameResolutionError(NewConnectionError):
    """Raised when host name resolution fails."""

    def __init__(self, url: str | None, host: str, reason: OSError) -> None:
        self.host = host
        super().__init__(url, f"Failed to resolve '{host}' ({reason})")

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        return self.__class__, (self.url, self.host, None)


class TooManyRedirectsError(TransportError):
    """Raised when a server keeps redirecting past the allowed number of hops."""

    def __init__(self, url: str | None, max_redirects: int) -> None:
        self.max_redirects = max_redirects
        super().__init__(
            url, f"Exceeded {max_redirects} redirects, last location was {url}"
        )

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        return self.__class__, (self.url, self.max_redirects)


# Leaf Exceptions


class LocationValueError(ValueError, HTTPError):
    """Raised when there is something wrong with a given URL input."""


class URLSchemeUnknown(LocationValueError):
    """Raised when a URL input has an unsupported scheme."""

    def __init__(self, scheme: str) -> None:
        message = f"Not supported URL scheme {scheme}"
        super().__init__(message)

        self.scheme = scheme


class InvalidOptionError(TypeError, HTTPError):
    """Raised when a request option is unknown or holds an invalid value."""


class AgentError(HTTPError):
    """Raised when an action is sent to an agent that has already failed."""

    def __init__(self, failure: BaseException) -> None:
        self.failure = failure
        super().__init__(f"Agent is failed, cannot accept new actions: {failure!r}")
