from __future__ import annotations

import typing


def to_bytes(
    x: str | bytes, encoding: str | None = None, errors: str | None = None
) -> bytes:
    if isinstance(x, bytes):
        return x
    elif not isinstance(x, str):
        raise TypeError(f"not expecting type {type(x).__name__}")
    if encoding or errors:
        return x.encode(encoding or "utf-8", errors=errors or "strict")
    return x.encode()


def is_replayable(body: typing.Any) -> bool:
    """Whether a request body can be sent a second time unchanged."""
    return body is None or isinstance(body, (bytes, str))
