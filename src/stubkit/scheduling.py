"""Deferred execution on the running asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from stubkit.errors import SchedulingError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class EventLoopScheduler:
    """Schedules callables on the currently running event loop.

    Nothing here can be cancelled once scheduled. Exceptions raised by the
    scheduled callables are left to the loop's exception handler.
    """

    def _loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SchedulingError("deferred callback dispatch requires a running event loop") from exc

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn`` on the next loop turn."""
        self._loop().call_soon(fn, *args)

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn`` after ``delay`` seconds."""
        logger.debug("Scheduling %r in %.3fs", fn, delay)
        self._loop().call_later(delay, fn, *args)

    def when_settled(
        self,
        awaitable: Awaitable[Any],
        fn: Callable[[asyncio.Future[Any]], Any],
    ) -> None:
        """Call ``fn`` with the wrapping future once ``awaitable`` settles."""
        future = asyncio.ensure_future(awaitable, loop=self._loop())
        future.add_done_callback(fn)


default_scheduler = EventLoopScheduler()
