"""Finding the callback among an invocation's arguments."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from stubkit.behavior.types import CallbackSearch
from stubkit.printing import function_name, value_to_string

if TYPE_CHECKING:
    from stubkit.behavior.record import Behavior


def _member(candidate: Any, prop: str) -> Any:
    """Look up ``prop`` as a key on mappings, as an attribute otherwise."""
    if isinstance(candidate, Mapping):
        return candidate.get(prop)
    return getattr(candidate, prop, None)


def get_callback(behavior: Behavior, args: Sequence[Any]) -> Any:
    """Return the callback selected by ``behavior`` from ``args``.

    An exact index returns whatever sits there (``None`` when out of range);
    callability is checked by the dispatcher. A search returns the first
    callable candidate, or ``None``.
    """
    policy = behavior.call_arg_at

    if not isinstance(policy, CallbackSearch):
        return args[policy] if policy < len(args) else None

    candidates = list(args)
    if policy is CallbackSearch.RIGHTMOST:
        candidates.reverse()

    prop = behavior.call_arg_prop
    for candidate in candidates:
        if prop is None:
            if callable(candidate):
                return candidate
        elif candidate is not None:
            member = _member(candidate, prop)
            if callable(member):
                return member

    return None


def callback_error_message(behavior: Behavior, func: Any, args: Sequence[Any]) -> str:
    """Explain why no callable callback was found for this call."""
    policy = behavior.call_arg_at

    if isinstance(policy, CallbackSearch):
        name = function_name(behavior.stub)
        if behavior.call_arg_prop is not None:
            msg = (
                f"{name} expected to yield to '{value_to_string(behavior.call_arg_prop)}', "
                "but no object with such a property was passed."
            )
        else:
            msg = f"{name} expected to yield, but no callback was passed."

        if args:
            msg += " Received [" + ", ".join(value_to_string(arg) for arg in args) + "]"

        return msg

    return f"argument at index {policy} is not callable: {value_to_string(func)}"
