# a11y_query/core/wait.py
from __future__ import annotations

"""Bounded retry
----------------
`wait_for()` turns an "eventually true" async condition into a pass/fail
outcome. With a timeout, a polling task races a loop timer; both report to a
single settlement gate so exactly one of them decides the result. After the
gate closes the timer is cancelled, a sleeping poller is cancelled, and an
attempt that was already running is allowed to finish with its result
discarded.
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Optional, Set, TypeVar, Union

from a11y_query.core.errors import QueryTimeoutError
from a11y_query.core.stack import StackAttributor
from a11y_query.utils.config import Configuration, get_config
from a11y_query.utils.logger import get_logger
from a11y_query.utils.timing import async_sleep_ms

T = TypeVar("T")

Timeout = Union[int, float, Literal[False], None]
Attempt = Callable[[], Awaitable[T]]
TimeoutErrorFactory = Callable[[Union[int, float]], BaseException]
Discard = Callable[[Any], Any]

log = get_logger(__name__)

# Pollers that outlive their wait (finishing an in-flight attempt) are kept
# referenced here until they are done.
_lingering: Set[asyncio.Task] = set()


class WaitState(str, Enum):
    POLLING = "polling"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_FAILURE = "settled_failure"


def _timeout_error(timeout: Union[int, float]) -> BaseException:
    return QueryTimeoutError(f"Condition was not met within {timeout}ms.")


class _Waiter:
    """One wait_for() call: poller task, optional timer, settlement gate."""

    def __init__(
        self,
        attempt: Attempt,
        *,
        timeout: Union[int, float, Literal[False]],
        interval: int,
        timeout_error: Optional[TimeoutErrorFactory],
        discard: Optional[Discard],
    ) -> None:
        self.attempt = attempt
        self.timeout = timeout
        self.interval = interval
        self.timeout_error = timeout_error or _timeout_error
        self.discard = discard

        self.loop = asyncio.get_running_loop()
        self.outcome: asyncio.Future = self.loop.create_future()
        self.state = WaitState.POLLING
        self.attempts = 0
        self.in_attempt = False
        self.last_error: Optional[BaseException] = None
        self.timer: Optional[asyncio.TimerHandle] = None
        self.poller: Optional[asyncio.Task] = None

    @property
    def settled(self) -> bool:
        return self.state is not WaitState.POLLING

    # ---------- Settlement gate ----------

    def _settle(self, state: WaitState, *, value: Any = None, error: Optional[BaseException] = None) -> bool:
        """First caller wins; later calls return False and change nothing."""
        if self.settled:
            return False
        self.state = state
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        if not self.outcome.done():
            if error is not None:
                self.outcome.set_exception(error)
            else:
                self.outcome.set_result(value)
        self._stop_poller()
        return True

    def _stop_poller(self) -> None:
        poller = self.poller
        if poller is None or poller.done() or poller is asyncio.current_task():
            return
        if self.in_attempt:
            # cannot abort a remote evaluation; let it finish and drop the result
            _lingering.add(poller)
            poller.add_done_callback(_lingering.discard)
        else:
            poller.cancel()

    # ---------- Racers ----------

    async def _poll(self) -> None:
        while not self.settled:
            self.attempts += 1
            self.in_attempt = True
            try:
                result = await self.attempt()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if self.settled:
                    log.debug(f"Ignoring failure after settlement: {exc!r}")
                    return
                self.last_error = exc
                log.debug(f"Attempt {self.attempts} failed: {exc!r}")
            else:
                if not self._settle(WaitState.SETTLED_SUCCESS, value=result):
                    await self._discard(result)
                return
            finally:
                self.in_attempt = False

            if self.settled:
                return
            await async_sleep_ms(self.interval)

    async def _discard(self, result: Any) -> None:
        log.debug("Discarding result that arrived after the wait settled")
        if self.discard is None:
            return
        out = self.discard(result)
        if inspect.isawaitable(out):
            await out

    def _on_timeout(self) -> None:
        self.timer = None
        error = self.last_error
        if error is None:
            error = self.timeout_error(self.timeout)
        log.debug(f"Timed out after {self.timeout}ms ({self.attempts} attempt(s))")
        self._settle(WaitState.SETTLED_FAILURE, error=error)

    def _on_poller_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._settle(WaitState.SETTLED_FAILURE, error=exc)

    # ---------- Entry ----------

    async def run(self) -> Any:
        if self.timeout is not False:
            self.timer = self.loop.call_later(self.timeout / 1000.0, self._on_timeout)
        self.poller = self.loop.create_task(self._poll())
        self.poller.add_done_callback(self._on_poller_done)
        try:
            return await self.outcome
        finally:
            if not self.settled:
                # the caller was cancelled while we were still polling
                self._settle(WaitState.SETTLED_FAILURE, error=asyncio.CancelledError())


async def wait_for(
    attempt: Attempt,
    *,
    timeout: Timeout = None,
    interval: Optional[int] = None,
    config: Optional[Configuration] = None,
    timeout_error: Optional[TimeoutErrorFactory] = None,
    discard: Optional[Discard] = None,
) -> Any:
    """
    Call `attempt()` until it returns without raising, and return its result.

    timeout:
      * None  -> configured default
      * 0     -> a single attempt; its result or error propagates as is
      * False -> retry forever, no timer
      * N > 0 -> give up after N ms and raise the last attempt's error
                 (or `timeout_error(N)` if no attempt has failed yet)

    `discard(result)` receives a result that arrived after the wait had
    already settled, so resources it holds can be released.
    """
    attributor = StackAttributor()
    caller = attributor.capture()
    cfg = config or get_config()
    if timeout is None:
        timeout = cfg.timeout
    if timeout is True:
        raise TypeError("timeout must be a number of milliseconds or False")
    poll_every = cfg.interval if interval is None else interval

    try:
        if timeout is not False and timeout <= 0:
            return await attempt()
        waiter = _Waiter(
            attempt,
            timeout=timeout,
            interval=poll_every,
            timeout_error=timeout_error,
            discard=discard,
        )
        return await waiter.run()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise attributor.attribute(exc, caller)
