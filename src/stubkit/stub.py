"""The stub test double: call history, behavior sequencing and argument filters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from stubkit.behavior.record import BUILDER_METHODS, Behavior
from stubkit.errors import BehaviorConfigurationError, StubError
from stubkit.printing import function_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StubCall:
    """One recorded invocation."""

    args: tuple[Any, ...]
    context: Any = None
    return_value: Any = None
    exception: BaseException | None = None


class Stub:
    """A callable whose behavior is configured up front.

    Builder methods (``returns``, ``yields``, ``throws``...) configure the
    default behavior and return the stub. ``on_call(i)`` returns the behavior
    for one call index; ``with_args(...)`` returns a child stub used for calls
    whose leading arguments match.

    Example:
        stub = Stub().returns(3)
        stub.on_first_call().returns(1)
        stub(), stub()  # (1, 3)
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        context: Any = None,
        parent: Stub | None = None,
        matching_args: tuple[Any, ...] | None = None,
    ) -> None:
        if name:
            self.__name__ = name
        self.parent = parent
        self.matching_args = matching_args
        self.default_behavior: Behavior | None = None
        self.behaviors: list[Behavior | None] = []
        self.fakes: list[Stub] = []
        self.call_count = 0
        self.calls: list[StubCall] = []
        self._context = context
        self._restorer: Any = None

    def __repr__(self) -> str:
        return f"<Stub {function_name(self)} calls={self.call_count}>"

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return _BoundStub(self, instance)

    # --- Invocation ---

    def __call__(self, *args: Any) -> Any:
        return self._invoke(self._context, args)

    def call_on(self, context: Any, *args: Any) -> Any:
        """Invoke with an explicit call context."""
        return self._invoke(context, args)

    def _invoke(self, context: Any, args: tuple[Any, ...]) -> Any:
        call = StubCall(args=args, context=context)
        matchings = self.matching_fakes(args)

        self._record(call)
        for fake in matchings:
            fake._record(call)

        # The most specific filter wins
        double = sorted(matchings, key=lambda fake: len(fake.matching_args or ()))[-1] if matchings else self
        behavior = double._current_behavior()
        logger.debug(
            "%s call #%d resolved via %s",
            function_name(self),
            self.call_count,
            "argument filter" if double is not self else "stub",
        )

        try:
            result = behavior.invoke(context, list(args))
        except Exception as exc:
            call.exception = exc
            raise

        call.return_value = result
        return result

    def _record(self, call: StubCall) -> None:
        self.call_count += 1
        self.calls.append(call)

    def _current_behavior(self) -> Behavior:
        index = self.call_count - 1
        behavior = self.behaviors[index] if 0 <= index < len(self.behaviors) else None
        if behavior is not None and behavior.is_present():
            return behavior
        if self.default_behavior is not None:
            return self.default_behavior
        if self.parent is not None:
            return self.parent._current_behavior()
        return Behavior.create(self)

    def _default(self) -> Behavior:
        if self.default_behavior is None:
            self.default_behavior = Behavior.create(self)
        return self.default_behavior

    # --- Call history ---

    @property
    def called(self) -> bool:
        return self.call_count > 0

    def get_call(self, index: int) -> StubCall | None:
        """Return the recorded call at ``index``, or ``None``."""
        if 0 <= index < len(self.calls):
            return self.calls[index]
        return None

    # --- Sequencing ---

    def on_call(self, index: int) -> Behavior:
        """Return the behavior for the call at ``index`` (0-based)."""
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise BehaviorConfigurationError("call index must be a non-negative integer")

        while len(self.behaviors) <= index:
            self.behaviors.append(None)
        behavior = self.behaviors[index]
        if behavior is None:
            behavior = self.behaviors[index] = Behavior.create(self)
        return behavior

    def on_first_call(self) -> Behavior:
        return self.on_call(0)

    def on_second_call(self) -> Behavior:
        return self.on_call(1)

    def on_third_call(self) -> Behavior:
        return self.on_call(2)

    # --- Argument filters ---

    def with_args(self, *args: Any) -> Stub:
        """Return the child stub used for calls starting with ``args``.

        Calls already recorded that match are replayed into its history.
        """
        if self.parent is not None:
            return self.parent.with_args(*args)

        for fake in self.fakes:
            if fake.matching_args == args:
                return fake

        fake = Stub(
            getattr(self, "__name__", None),
            context=self._context,
            parent=self,
            matching_args=args,
        )
        for call in self.calls:
            if fake.matches(call.args):
                fake._record(call)
        self.fakes.append(fake)
        return fake

    def matches(self, args: tuple[Any, ...]) -> bool:
        """Whether a call with ``args`` is covered by this stub's filter."""
        margs = self.matching_args or ()
        return len(margs) <= len(args) and list(args[: len(margs)]) == list(margs)

    def matching_fakes(self, args: tuple[Any, ...]) -> list[Stub]:
        return [fake for fake in self.fakes if fake.matches(args)]

    # --- Reset ---

    def reset_history(self) -> None:
        self.call_count = 0
        self.calls = []
        for fake in self.fakes:
            fake.reset_history()

    def reset_behavior(self) -> None:
        self.default_behavior = None
        self.behaviors = []
        for fake in self.fakes:
            fake.reset_behavior()

    def reset(self) -> None:
        self.reset_history()
        self.reset_behavior()

    # --- Method replacement ---

    def restore(self) -> None:
        """Put back the attribute this stub replaced."""
        if self._restorer is None:
            raise StubError(f"{function_name(self)} did not replace an attribute")
        restorer, self._restorer = self._restorer, None
        restorer()


def _delegate(name: str) -> Any:
    def configure(self: Stub, *args: Any, **kwargs: Any) -> Stub:
        getattr(self._default(), name)(*args, **kwargs)
        return self

    configure.__name__ = name
    configure.__qualname__ = f"Stub.{name}"
    configure.__doc__ = f"Configure the default behavior with ``Behavior.{name}``."
    return configure


for _name in BUILDER_METHODS:
    setattr(Stub, _name, _delegate(_name))


class _BoundStub:
    """A stub accessed through an instance; the instance is the call context."""

    __slots__ = ("_stub", "_instance")

    def __init__(self, stub: Stub, instance: Any) -> None:
        self._stub = stub
        self._instance = instance

    def __call__(self, *args: Any) -> Any:
        return self._stub.call_on(self._instance, *args)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stub, name)

    def __repr__(self) -> str:
        return f"<bound {self._stub!r} of {self._instance!r}>"


def create_stub(obj: Any = None, attr: str | None = None) -> Stub:
    """Create a standalone stub, or replace ``obj.attr`` with one.

    Args:
        obj: Object (or class) owning the attribute to replace
        attr: Name of an existing callable attribute

    Returns:
        The stub; call ``restore()`` to put the original back
    """
    if obj is None and attr is None:
        return Stub()
    if attr is None:
        raise BehaviorConfigurationError("create_stub() needs an attribute name when given an object")
    if not hasattr(obj, attr):
        raise AttributeError(f"cannot stub non-existent attribute {attr!r}")
    if not callable(getattr(obj, attr)):
        raise TypeError(f"attribute {attr!r} is not callable")

    own_attrs = getattr(obj, "__dict__", {})
    had_own = attr in own_attrs
    original = own_attrs.get(attr)

    stub = Stub(attr, context=obj)
    setattr(obj, attr, stub)

    def restorer() -> None:
        if had_own:
            setattr(obj, attr, original)
        else:
            delattr(obj, attr)

    stub._restorer = restorer
    logger.debug("Replaced %r.%s with a stub", obj, attr)
    return stub
