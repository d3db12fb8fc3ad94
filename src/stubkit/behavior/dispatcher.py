"""Callback dispatch, including the before-callback hook pipeline."""

from __future__ import annotations

import inspect
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from stubkit.behavior.locator import callback_error_message, get_callback
from stubkit.behavior.types import InjectionReport, Injector
from stubkit.config import get_config
from stubkit.errors import CallbackDispatchError, SchedulingError
from stubkit.printing import function_name
from stubkit.scheduling import EventLoopScheduler, default_scheduler

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Sequence

    from stubkit.behavior.record import Behavior
    from stubkit.behavior.types import HookProps

logger = logging.getLogger(__name__)

_call_context: ContextVar[Any] = ContextVar("stubkit_call_context", default=None)


def call_context() -> Any:
    """Return the context the running callback or hook was dispatched with."""
    return _call_context.get()


def _apply(func: Callable[..., Any], context: Any, args: Sequence[Any]) -> Any:
    token = _call_context.set(context)
    try:
        return func(*args)
    finally:
        _call_context.reset(token)


def apply_injectors(
    arguments: list[Any],
    interceptors: Any,
    *,
    strict: bool = False,
) -> InjectionReport:
    """Overwrite ``arguments`` in place from a hook's injector list.

    Anything that is not a list or tuple is ignored. Malformed entries are
    skipped, or raise when ``strict`` is set.
    """
    report = InjectionReport()
    if not isinstance(interceptors, (list, tuple)):
        return report

    for entry in interceptors:
        injector = Injector.coerce(entry)
        if injector is None:
            if strict:
                raise CallbackDispatchError(f"malformed injector: {entry!r}")
            logger.debug("Skipping malformed injector %r", entry)
            report.skipped.append(entry)
            continue

        if injector.pos >= len(arguments):
            arguments.extend([None] * (injector.pos + 1 - len(arguments)))
        arguments[injector.pos] = injector.value
        report.applied.append(injector)

    return report


class CallbackDispatcher:
    """Invokes a behavior's callback inline, deferred, or through its hook.

    Order of precedence:
    - ``callback_async``: next loop turn, hook bypassed
    - armed hook: hook first, then the callback (after ``timeout`` if set)
    - otherwise: inline
    """

    def __init__(
        self,
        scheduler: EventLoopScheduler | None = None,
        strict_injectors: bool | None = None,
    ) -> None:
        self.scheduler = scheduler or default_scheduler
        self._strict_injectors = strict_injectors

    @property
    def strict_injectors(self) -> bool:
        if self._strict_injectors is None:
            return get_config().strict_injectors
        return self._strict_injectors

    def dispatch(self, behavior: Behavior, args: Sequence[Any]) -> None:
        """Run the dispatch step of an invocation; a no-op without a callback policy."""
        if behavior.call_arg_at is None:
            return

        func = get_callback(behavior, args)
        if not callable(func):
            raise CallbackDispatchError(callback_error_message(behavior, func, args))

        props = behavior.hook_props
        if behavior.callback_async:
            logger.debug("Deferring callback of %s to the next loop turn", function_name(behavior.stub))
            self.scheduler.call_soon(
                _apply, func, behavior.callback_context, list(behavior.callback_arguments)
            )
        elif behavior.hook is not None and props is not None and props.armed:
            if props.options.promisified:
                self._run_promisified_hook(behavior, func, props)
            else:
                self._run_hook(behavior, func, props)
        else:
            _apply(func, behavior.callback_context, behavior.callback_arguments)

    def _run_hook(self, behavior: Behavior, func: Callable[..., Any], props: HookProps) -> None:
        result = _apply(behavior.hook, props.context, props.args)
        if inspect.isawaitable(result):
            logger.warning(
                "Before-callback hook %s returned an awaitable but was not registered "
                "with promisified=True; its result is ignored",
                function_name(behavior.hook),
            )
            if inspect.iscoroutine(result):
                result.close()
            result = None

        self._inject(behavior, result)
        self._fire(behavior, func, props.options.timeout)

    def _run_promisified_hook(
        self,
        behavior: Behavior,
        func: Callable[..., Any],
        props: HookProps,
    ) -> None:
        result = _apply(behavior.hook, props.context, props.args)
        if not inspect.isawaitable(result):
            raise CallbackDispatchError("result of before-callback hook is not awaitable")

        timeout = props.options.timeout

        def on_settled(future: asyncio.Future[Any]) -> None:
            # A failed hook re-raises here and reaches the loop's exception handler
            interceptors = future.result()
            self._inject(behavior, interceptors)
            self._fire(behavior, func, timeout)

        try:
            self.scheduler.when_settled(result, on_settled)
        except SchedulingError:
            if inspect.iscoroutine(result):
                result.close()
            raise

    def _inject(self, behavior: Behavior, interceptors: Any) -> None:
        report = apply_injectors(
            behavior.callback_arguments, interceptors, strict=self.strict_injectors
        )
        if report.applied:
            logger.debug(
                "Hook rewrote callback arguments at %s",
                [injector.pos for injector in report.applied],
            )

    def _fire(self, behavior: Behavior, func: Callable[..., Any], timeout: float | None) -> None:
        if timeout:
            self.scheduler.call_later(
                timeout, _apply, func, behavior.callback_context, list(behavior.callback_arguments)
            )
        else:
            _apply(func, behavior.callback_context, behavior.callback_arguments)


default_dispatcher = CallbackDispatcher()
