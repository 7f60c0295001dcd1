from __future__ import annotations

import enum
import logging
import typing
from concurrent.futures import Executor

from .agent import Agent
from .connection import HTTPConnection
from .options import DEFAULT_OPTIONS, RequestOptions, merge_options

__all__ = ["AgentState", "CompletedWatch", "HTTPAgent", "Lifecycle", "http_agent"]

log = logging.getLogger(__name__)


class Lifecycle(enum.Enum):
    CREATED = "created"
    COMPLETED = "completed"


class AgentState(typing.NamedTuple):
    """
    Snapshot held by an HTTP agent.

    ``response_body`` is ``None`` until ``lifecycle`` is
    :attr:`Lifecycle.COMPLETED`; both change together in one new snapshot.
    """

    connection: HTTPConnection
    lifecycle: Lifecycle
    url: str
    options: RequestOptions
    response_body: bytes | None = None

    @property
    def completed(self) -> bool:
        return self.lifecycle is Lifecycle.COMPLETED


HTTPAgent = Agent[AgentState]

#: Key of the watch installed by :func:`http_agent` for ``on_success`` and
#: ``on_failure``.
COMPLETED_WATCH_KEY = "httpagent.completed-watch"


def _do_request(state: AgentState) -> AgentState:
    conn = state.connection
    try:
        conn.send(state.options.body)
        # Success and error responses share one stream in http.client,
        # read it fully either way.
        body = conn.read_body()
    finally:
        conn.close()
    log.debug("Completed %s %s with status %s", conn.method, state.url, conn.status)
    return state._replace(lifecycle=Lifecycle.COMPLETED, response_body=body)


class CompletedWatch:
    """
    Watch firing ``on_success`` or ``on_failure`` once, when an agent moves
    from created to completed.

    Exceptions raised by the callback are recorded on the agent instead of
    being raised on the worker thread.
    """

    def __init__(
        self,
        on_success: typing.Callable[[HTTPAgent], object] | None = None,
        on_failure: typing.Callable[[HTTPAgent], object] | None = None,
    ) -> None:
        self.on_success = on_success
        self.on_failure = on_failure

    def __call__(
        self,
        key: typing.Hashable,
        agent: HTTPAgent,
        old_state: AgentState,
        new_state: AgentState,
    ) -> None:
        if not new_state.completed or old_state.completed:
            return

        if new_state.connection.is_success():
            callback = self.on_success
        else:
            callback = self.on_failure
        if callback is None:
            return

        try:
            callback(agent)
        except Exception as e:
            log.warning("Callback %r for %s raised %r", callback, new_state.url, e)
            agent.record_error(e)


def http_agent(
    url: str,
    executor: Executor | None = None,
    defaults: RequestOptions = DEFAULT_OPTIONS,
    connection_cls: type[HTTPConnection] = HTTPConnection,
    **options: typing.Any,
) -> HTTPAgent:
    """
    Start an HTTP request in the background and immediately return the
    agent representing it.

    :param url:
        Absolute ``http`` or ``https`` URL.

    :param options:
        Any field of :class:`~httpagent.options.RequestOptions`:
        ``method``, ``headers``, ``body``, ``connect_timeout``,
        ``read_timeout``, ``follow_redirects``,
        ``on_success`` and ``on_failure``.

    :param executor:
        Worker pool to run the request on instead of the shared one.

    :param defaults:
        Options used for every key not given in ``options``.

    :param connection_cls:
        Class opening the connection for ``url``.

    :raises InvalidOptionError: on unknown or invalid options.
    :raises LocationValueError: if ``url`` cannot be requested.
    """
    opts = merge_options(defaults, **options)

    conn = connection_cls(url)
    conn.configure(opts)

    agent: HTTPAgent = Agent(
        AgentState(
            connection=conn, lifecycle=Lifecycle.CREATED, url=url, options=opts
        ),
        executor=executor,
    )
    # The watch must be in place before the request can possibly finish.
    if opts.has_callbacks:
        agent.add_watch(
            COMPLETED_WATCH_KEY, CompletedWatch(opts.on_success, opts.on_failure)
        )
    return agent.send_off(_do_request)
