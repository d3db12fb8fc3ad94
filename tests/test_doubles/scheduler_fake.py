"""Test double: scheduler that queues deferred work until told to run it."""

from __future__ import annotations

from typing import Any

from stubkit.scheduling import EventLoopScheduler


class SchedulerFake(EventLoopScheduler):
    """Captures scheduled callables instead of handing them to an event loop."""

    def __init__(self) -> None:
        self.soon: list[tuple[Any, tuple[Any, ...]]] = []
        self.later: list[tuple[float, Any, tuple[Any, ...]]] = []
        self.watched: list[tuple[Any, Any]] = []

    def call_soon(self, fn: Any, *args: Any) -> None:
        self.soon.append((fn, args))

    def call_later(self, delay: float, fn: Any, *args: Any) -> None:
        self.later.append((delay, fn, args))

    def when_settled(self, awaitable: Any, fn: Any) -> None:
        self.watched.append((awaitable, fn))

    def run_pending(self) -> None:
        """Run everything queued with ``call_soon`` and ``call_later``, in that order."""
        soon, later = self.soon, self.later
        self.soon, self.later = [], []
        for fn, args in soon:
            fn(*args)
        for _delay, fn, args in later:
            fn(*args)
