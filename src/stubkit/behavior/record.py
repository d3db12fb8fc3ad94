"""The behavior record: what one invocation of a test double does.

A record is configured through chained builder calls and resolved by
``invoke``, which first dispatches the configured callback (if any) and then
raises or returns.

Example:
    behavior = Behavior.create(stub).yields(None, "data").returns(42)
    behavior.invoke(None, [on_done])  # calls on_done(None, "data"), returns 42
"""

from __future__ import annotations

import functools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from stubkit.behavior.dispatcher import default_dispatcher
from stubkit.behavior.types import CallbackPolicy, CallbackSearch, HookOptions, HookProps
from stubkit.config import get_config
from stubkit.errors import BehaviorConfigurationError, StubError, UnsupportedChainError

if TYPE_CHECKING:
    from collections.abc import Callable

    from stubkit.behavior.dispatcher import CallbackDispatcher


@functools.cache
def _named_error(name: str) -> type[Exception]:
    """Exception class called ``name``; one class per name."""
    return type(name, (Exception,), {"__module__": __name__})


def _check_index(index: Any) -> int:
    if not isinstance(index, int) or isinstance(index, bool):
        raise BehaviorConfigurationError("argument index is not an integer")
    if index < 0:
        raise BehaviorConfigurationError("argument index must not be negative")
    return index


def _async_variant(sync: Callable[..., Behavior]) -> Callable[..., Behavior]:
    """Build ``<name>_async``: same configuration, dispatched on the next loop turn."""

    @functools.wraps(sync)
    def variant(self: Behavior, *args: Any) -> Behavior:
        sync(self, *args)
        self.callback_async = True
        return self

    variant.__name__ = f"{sync.__name__}_async"
    variant.__qualname__ = f"Behavior.{variant.__name__}"
    variant.__doc__ = f"Like ``{sync.__name__}``, but the callback runs on the next loop turn."
    return variant


@dataclass(slots=True, eq=False)
class Behavior:
    """Configured outcome for a stub, or for one of its call-index/argument slots."""

    stub: Any = None
    exception: BaseException | None = None
    return_value: Any = None
    return_value_defined: bool = False
    return_arg_at: int | None = None
    return_this: bool = False
    call_arg_at: CallbackPolicy | None = None
    call_arg_prop: str | None = None
    callback_arguments: list[Any] = field(default_factory=list)
    callback_context: Any = None
    callback_async: bool = False
    hook: Callable[..., Any] | None = None
    hook_props: HookProps | None = None
    dispatcher: CallbackDispatcher | None = field(default=None, repr=False)

    @classmethod
    def create(cls, stub: Any = None) -> Behavior:
        """Create an empty record bound to ``stub``."""
        return cls(stub=stub)

    def is_present(self) -> bool:
        """Whether anything has been configured on this record."""
        return (
            self.call_arg_at is not None
            or self.exception is not None
            or self.return_arg_at is not None
            or self.return_this
            or self.return_value_defined
        )

    def invoke(self, context: Any, args: Sequence[Any]) -> Any:
        """Dispatch the callback, then raise or return.

        Args:
            context: The invocation's call context (returned by ``returns_this``)
            args: The invocation's positional arguments

        Returns:
            The configured return value, argument or context
        """
        (self.dispatcher or default_dispatcher).dispatch(self, args)

        if self.exception is not None:
            raise self.exception
        if self.return_arg_at is not None:
            index = self.return_arg_at
            return args[index] if index < len(args) else None
        if self.return_this:
            return context

        return self.return_value

    # --- Sequencing (delegated to the owning stub) ---

    def _owner(self) -> Any:
        if self.stub is None:
            raise StubError("behavior is not bound to a stub")
        return self.stub

    def on_call(self, index: int) -> Behavior:
        return self._owner().on_call(index)

    def on_first_call(self) -> Behavior:
        return self._owner().on_first_call()

    def on_second_call(self) -> Behavior:
        return self._owner().on_second_call()

    def on_third_call(self) -> Behavior:
        return self._owner().on_third_call()

    def with_args(self, *args: Any) -> Behavior:
        raise UnsupportedChainError(
            'Defining a stub by invoking "stub.on_call(...).with_args(...)" is not supported. '
            'Use "stub.with_args(...).on_call(...)" to define sequential behavior '
            "for calls with certain arguments."
        )

    # --- Raise / return ---

    def throws(self, error: Any = None, message: str | None = None) -> Behavior:
        """Raise on invocation.

        Args:
            error: Exception instance or class, a name for a new exception
                class, or nothing for a generic ``Exception("Error")``
            message: Message for a named or class-given exception
        """
        if isinstance(error, str):
            self.exception = _named_error(error)(message or "")
        elif not error:
            self.exception = Exception("Error")
        elif isinstance(error, type) and issubclass(error, BaseException):
            self.exception = error(message) if message is not None else error()
        elif isinstance(error, BaseException):
            self.exception = error
        else:
            raise BehaviorConfigurationError(f"cannot raise {error!r}: not an exception")

        return self

    throws_exception = throws

    def returns(self, value: Any) -> Behavior:
        self.return_value = value
        self.return_value_defined = True
        self.exception = None
        return self

    def returns_arg(self, index: int) -> Behavior:
        self.return_arg_at = _check_index(index)
        self.exception = None
        return self

    def returns_this(self) -> Behavior:
        self.return_this = True
        self.exception = None
        return self

    # --- Callbacks ---

    def _set_callback(
        self,
        policy: CallbackPolicy,
        context: Any,
        args: Sequence[Any],
        prop: str | None = None,
    ) -> Behavior:
        self.call_arg_at = policy
        self.callback_arguments = list(args)
        self.callback_context = context
        self.call_arg_prop = prop
        self.callback_async = False
        return self

    def calls_arg(self, index: int) -> Behavior:
        return self._set_callback(_check_index(index), None, ())

    def calls_arg_on(self, index: int, context: Any) -> Behavior:
        return self._set_callback(_check_index(index), context, ())

    def calls_arg_with(self, index: int, *args: Any) -> Behavior:
        return self._set_callback(_check_index(index), None, args)

    def calls_arg_on_with(self, index: int, context: Any, *args: Any) -> Behavior:
        return self._set_callback(_check_index(index), context, args)

    def yields(self, *args: Any) -> Behavior:
        return self._set_callback(CallbackSearch.LEFTMOST, None, args)

    def yields_right(self, *args: Any) -> Behavior:
        return self._set_callback(CallbackSearch.RIGHTMOST, None, args)

    def yields_on(self, context: Any, *args: Any) -> Behavior:
        return self._set_callback(CallbackSearch.LEFTMOST, context, args)

    def yields_to(self, prop: str, *args: Any) -> Behavior:
        return self._set_callback(CallbackSearch.LEFTMOST, None, args, prop)

    def yields_to_on(self, prop: str, context: Any, *args: Any) -> Behavior:
        return self._set_callback(CallbackSearch.LEFTMOST, context, args, prop)

    calls_arg_async = _async_variant(calls_arg)
    calls_arg_on_async = _async_variant(calls_arg_on)
    calls_arg_with_async = _async_variant(calls_arg_with)
    calls_arg_on_with_async = _async_variant(calls_arg_on_with)
    yields_async = _async_variant(yields)
    yields_right_async = _async_variant(yields_right)
    yields_on_async = _async_variant(yields_on)
    yields_to_async = _async_variant(yields_to)
    yields_to_on_async = _async_variant(yields_to_on)

    # --- Before-callback hook ---

    def set_before_callback_hook(
        self,
        hook: Callable[..., Any],
        options: Mapping[str, Any] | HookOptions | None = None,
    ) -> Behavior:
        """Register a hook that runs before the callback is dispatched.

        The hook may return a list of injectors (``{"pos": i, "value": v}``)
        that overwrite callback arguments. With ``promisified=True`` it must
        return an awaitable resolving to such a list. With ``timeout`` the
        callback fires that many seconds after the hook finished.

        Args:
            hook: Callable run with the arguments given to
                ``yields_before_callback_hook``
            options: ``promisified``, ``timeout`` and any extra keys
        """
        if not callable(hook):
            raise BehaviorConfigurationError("hook must be callable")

        config = get_config()
        merged: dict[str, Any] = {
            "promisified": config.hook_promisified,
            "timeout": config.hook_timeout,
        }
        if isinstance(options, HookOptions):
            merged.update(options.model_dump())
        elif isinstance(options, Mapping):
            merged.update(options)
        elif options is not None:
            raise BehaviorConfigurationError("hook options must be a mapping")

        try:
            hook_options = HookOptions.model_validate(merged)
        except ValidationError as exc:
            raise BehaviorConfigurationError(f"invalid hook options: {exc}") from exc

        self.hook = hook
        self.hook_props = HookProps(options=hook_options)
        return self

    def yields_before_callback_hook(self, context: Any = None, *args: Any) -> Behavior:
        """Arm the registered hook with its call context and arguments."""
        if self.hook is None or self.hook_props is None:
            raise BehaviorConfigurationError("cannot arm a before-callback hook without registering it")

        self.hook_props.args = list(args)
        self.hook_props.context = context if context is not None else self
        return self


# Synchronous callback builders; each has exactly one ``<name>_async`` twin
CALLBACK_BUILDERS: tuple[str, ...] = (
    "calls_arg",
    "calls_arg_on",
    "calls_arg_with",
    "calls_arg_on_with",
    "yields",
    "yields_right",
    "yields_on",
    "yields_to",
    "yields_to_on",
)

ASYNC_CALLBACK_BUILDERS: tuple[str, ...] = tuple(f"{name}_async" for name in CALLBACK_BUILDERS)

# Everything a stub forwards to its default behavior
BUILDER_METHODS: tuple[str, ...] = (
    "throws",
    "throws_exception",
    "returns",
    "returns_arg",
    "returns_this",
    *CALLBACK_BUILDERS,
    *ASYNC_CALLBACK_BUILDERS,
    "set_before_callback_hook",
    "yields_before_callback_hook",
)
