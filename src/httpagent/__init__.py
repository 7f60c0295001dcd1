"""
Agent-based asynchronous HTTP client: start a request, get a handle back at
once, and look at the response whenever it is ready.
"""

from __future__ import annotations

# Set default logging handler to avoid "No handler found" warnings.
import logging
import typing
from logging import NullHandler

from . import exceptions
from ._collections import HTTPHeaderDict
from ._version import __version__
from .agent import Agent
from .connection import HTTPConnection
from .options import DEFAULT_OPTIONS, RequestOptions, merge_options
from .request import AgentState, CompletedWatch, HTTPAgent, Lifecycle, http_agent
from .response import (
    StatusClass,
    agent_errors,
    classify,
    done,
    error,
    failed,
    is_client_error,
    is_error,
    is_redirect,
    is_server_error,
    is_success,
    request_body,
    request_headers,
    request_method,
    request_url,
    response_body_bytes,
    response_body_str,
    response_headers,
    response_headers_seq,
    response_message,
    response_status,
)

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "Agent",
    "AgentState",
    "CompletedWatch",
    "DEFAULT_OPTIONS",
    "HTTPAgent",
    "HTTPConnection",
    "HTTPHeaderDict",
    "Lifecycle",
    "RequestOptions",
    "StatusClass",
    "add_stderr_logger",
    "agent_errors",
    "classify",
    "done",
    "error",
    "exceptions",
    "failed",
    "http_agent",
    "is_client_error",
    "is_error",
    "is_redirect",
    "is_server_error",
    "is_success",
    "merge_options",
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
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(
    level: int = logging.DEBUG,
) -> logging.StreamHandler[typing.TextIO]:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if httpagent is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler
