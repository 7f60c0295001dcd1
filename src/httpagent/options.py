from __future__ import annotations

import typing

from ._collections import HTTPHeaderDict, ValidHTTPHeaderSource
from .exceptions import InvalidOptionError

if typing.TYPE_CHECKING:
    from .agent import Agent

__all__ = ["DEFAULT_OPTIONS", "RequestOptions", "merge_options"]


_TYPE_BODY = typing.Union[
    bytes, str, typing.IO[typing.Any], typing.Iterable[bytes], None
]
_TYPE_CALLBACK = typing.Optional[typing.Callable[["Agent[typing.Any]"], object]]


class RequestOptions(typing.NamedTuple):
    """
    Fully populated, immutable configuration of one request.

    :param method:
        The HTTP method name.

    :param headers:
        Request headers, kept in the order they were given. Duplicate names
        are sent as separate header lines.

    :param body:
        Request entity body: ``None``, ``str`` (sent UTF-8 encoded), ``bytes``,
        a binary file-like object, or an iterable of ``bytes`` chunks.

    :param connect_timeout:
        Milliseconds to wait while opening the connection. ``0`` means no
        timeout.

    :param read_timeout:
        Milliseconds to wait for data on the connection. ``0`` means no
        timeout.

    :param follow_redirects:
        If true, 3xx redirects are followed by the connection and the agent
        never completes with a 3xx status.

    :param on_success:
        Called with the agent when the request completes with a 2xx status.

    :param on_failure:
        Called with the agent when the request completes with any other
        status.
    """

    method: str = "GET"
    headers: HTTPHeaderDict = HTTPHeaderDict()
    body: _TYPE_BODY = None
    connect_timeout: int = 0
    read_timeout: int = 0
    follow_redirects: bool = True
    on_success: _TYPE_CALLBACK = None
    on_failure: _TYPE_CALLBACK = None

    @property
    def has_callbacks(self) -> bool:
        return self.on_success is not None or self.on_failure is not None


DEFAULT_OPTIONS = RequestOptions()


def _validate_timeout(name: str, value: object) -> int:
    # bool is an int subclass but never a sensible timeout.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidOptionError(
            f"{name} must be an integer number of milliseconds, not {value!r}"
        )
    if value < 0:
        raise InvalidOptionError(f"{name} must be >= 0, not {value!r}")
    return value


def _validate_callback(name: str, value: object) -> typing.Any:
    if value is not None and not callable(value):
        raise InvalidOptionError(f"{name} must be callable or None, not {value!r}")
    return value


def _validate_headers(value: object) -> HTTPHeaderDict:
    if value is None:
        return HTTPHeaderDict()
    try:
        headers = HTTPHeaderDict(typing.cast(ValidHTTPHeaderSource, value))
    except (AttributeError, TypeError, ValueError) as e:
        raise InvalidOptionError(
            f"headers must be a mapping or a sequence of (name, value) pairs: {e}"
        ) from e
    for name, val in headers.iteritems():
        if not isinstance(name, str) or not isinstance(val, str):
            raise InvalidOptionError(
                f"header names and values must be str, got {name!r}: {val!r}"
            )
    return headers


def merge_options(
    defaults: RequestOptions = DEFAULT_OPTIONS, **kwargs: typing.Any
) -> RequestOptions:
    """
    Merge caller supplied options over ``defaults``.

    Keys that are not given keep their default. Unknown keys are rejected
    rather than ignored, and every given value is validated.

    :raises InvalidOptionError: on an unknown key or an invalid value.
    """
    unknown = sorted(set(kwargs) - set(RequestOptions._fields))
    if unknown:
        raise InvalidOptionError(f"Unknown request option(s): {', '.join(unknown)}")

    if "method" in kwargs:
        method = kwargs["method"]
        if not isinstance(method, str) or not method or not method.isascii():
            raise InvalidOptionError(f"method must be a non-empty str, not {method!r}")
        if any(c.isspace() for c in method):
            raise InvalidOptionError(f"method must not contain whitespace: {method!r}")
    # Each record gets its own headers, never the ones held by ``defaults``.
    kwargs["headers"] = _validate_headers(kwargs.get("headers", defaults.headers))
    for name in ("connect_timeout", "read_timeout"):
        if name in kwargs:
            kwargs[name] = _validate_timeout(name, kwargs[name])
    if "follow_redirects" in kwargs and not isinstance(kwargs["follow_redirects"], bool):
        raise InvalidOptionError(
            f"follow_redirects must be a bool, not {kwargs['follow_redirects']!r}"
        )
    for name in ("on_success", "on_failure"):
        if name in kwargs:
            kwargs[name] = _validate_callback(name, kwargs[name])

    return defaults._replace(**kwargs)
