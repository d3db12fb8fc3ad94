"""Behavior records and the callback dispatch engine.

A behavior decides what one invocation of a test double does:
- Dispatch a callback found among the call's arguments
- Run a before-callback hook that can rewrite the callback's arguments
- Raise an exception, or return a value, an argument or the call context
"""

from stubkit.behavior.dispatcher import CallbackDispatcher, apply_injectors, call_context
from stubkit.behavior.locator import callback_error_message, get_callback
from stubkit.behavior.record import (
    ASYNC_CALLBACK_BUILDERS,
    BUILDER_METHODS,
    CALLBACK_BUILDERS,
    Behavior,
)
from stubkit.behavior.types import CallbackSearch, HookOptions, HookProps, Injector

__all__ = [
    "ASYNC_CALLBACK_BUILDERS",
    "BUILDER_METHODS",
    "CALLBACK_BUILDERS",
    "Behavior",
    "CallbackDispatcher",
    "CallbackSearch",
    "HookOptions",
    "HookProps",
    "Injector",
    "apply_injectors",
    "call_context",
    "callback_error_message",
    "get_callback",
]
