from __future__ import annotations

import logging
import threading
import typing
from concurrent.futures import Executor, ThreadPoolExecutor

from ._collections import ErrorQueue
from .exceptions import AgentError

__all__ = ["Agent", "DEFAULT_MAX_WORKERS", "get_executor"]

log = logging.getLogger(__name__)

T = typing.TypeVar("T")

#: Size of the shared pool running agent actions. Actions block on network
#: I/O, so the pool is much larger than the number of CPUs.
DEFAULT_MAX_WORKERS = 64

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def get_executor() -> ThreadPoolExecutor:
    """Return the shared worker pool, creating it on first use."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=DEFAULT_MAX_WORKERS, thread_name_prefix="httpagent"
            )
        return _executor


class Agent(typing.Generic[T]):
    """
    A single-writer cell holding an immutable snapshot of type ``T``.

    The value is only ever changed by actions given to :meth:`send_off`.
    Actions run one at a time on a worker pool; each one receives the
    current value and returns the next one, which replaces the old value
    wholesale. Readers use :attr:`state` and never block.

    Watches added with :meth:`add_watch` are called on the worker thread,
    right after the new value became visible, as
    ``watch(key, agent, old_state, new_state)``. A watch that raises has its
    exception recorded in :attr:`errors`; the remaining watches still run.

    If an action raises, the value is left untouched, the exception is kept
    as :attr:`failure` and also recorded in :attr:`errors`. A failed agent
    refuses further actions.

    :param state:
        The initial value.

    :param executor:
        Where actions run. Defaults to the pool returned by
        :func:`get_executor`.
    """

    def __init__(self, state: T, executor: Executor | None = None) -> None:
        self._state = state
        self._executor = executor
        self._watches: dict[typing.Hashable, typing.Callable[..., object]] = {}
        self._errors = ErrorQueue()
        self._failure: BaseException | None = None

        # Held for the whole of an action, so at most one action runs at a time.
        self._action_lock = threading.Lock()
        # Guards the bookkeeping below and the watch table.
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._pending = 0

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._state!r}>"

    @property
    def state(self) -> T:
        """The current snapshot."""
        return self._state

    def deref(self) -> T:
        return self._state

    @property
    def errors(self) -> tuple[BaseException, ...]:
        """Exceptions recorded so far, oldest first. Never cleared."""
        return self._errors.snapshot()

    def record_error(self, error: BaseException) -> None:
        """Append ``error`` to :attr:`errors`."""
        self._errors.append(error)

    @property
    def failure(self) -> BaseException | None:
        """The exception which stopped an action, if any."""
        return self._failure

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def pending(self) -> bool:
        """Whether an action has been sent and has not finished yet."""
        with self._lock:
            return self._pending > 0

    def add_watch(
        self,
        key: typing.Hashable,
        fn: typing.Callable[[typing.Hashable, Agent[T], T, T], object],
    ) -> Agent[T]:
        """Register ``fn`` under ``key``, replacing any watch with that key."""
        with self._lock:
            self._watches[key] = fn
        return self

    def remove_watch(self, key: typing.Hashable) -> Agent[T]:
        with self._lock:
            self._watches.pop(key, None)
        return self

    def send_off(
        self, fn: typing.Callable[..., T], *args: typing.Any
    ) -> Agent[T]:
        """
        Schedule ``fn(state, *args)`` on the worker pool and return at once.

        :raises AgentError: if an earlier action failed.
        """
        with self._lock:
            if self._failure is not None:
                raise AgentError(self._failure)
            self._pending += 1
        executor = self._executor or get_executor()
        try:
            executor.submit(self._run, fn, args)
        except BaseException:
            with self._lock:
                self._pending -= 1
                self._idle.notify_all()
            raise
        log.debug("Sent off %r to %r", fn, self)
        return self

    def _run(self, fn: typing.Callable[..., T], args: tuple[typing.Any, ...]) -> None:
        try:
            with self._action_lock:
                if self._failure is not None:
                    log.debug("Skipping %r, %r has failed", fn, self)
                    return
                old_state = self._state
                try:
                    new_state = fn(old_state, *args)
                except Exception as e:
                    log.warning("Action %r failed on %r: %r", fn, self, e)
                    with self._lock:
                        self._failure = e
                    self._errors.append(e)
                    return
                self._state = new_state
                self._notify_watches(old_state, new_state)
        finally:
            with self._lock:
                self._pending -= 1
                self._idle.notify_all()

    def _notify_watches(self, old_state: T, new_state: T) -> None:
        with self._lock:
            watches = list(self._watches.items())
        for key, watch in watches:
            try:
                watch(key, self, old_state, new_state)
            except Exception as e:
                log.warning("Watch %r on %r raised %r", key, self, e)
                self._errors.append(e)

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until every action sent so far has finished.

        :param timeout: Seconds to wait, ``None`` waits forever.
        :return: ``True`` if no action is pending anymore.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)
