"""stubkit - configurable test doubles with callback and hook dispatch."""

__version__ = "0.1.0"

from stubkit.behavior import Behavior, CallbackSearch, HookOptions, Injector, call_context
from stubkit.config import StubkitConfig, get_config, set_config
from stubkit.errors import (
    BehaviorConfigurationError,
    CallbackDispatchError,
    SchedulingError,
    StubError,
    UnsupportedChainError,
)
from stubkit.stub import Stub, StubCall, create_stub

__all__ = [
    "Behavior",
    "BehaviorConfigurationError",
    "CallbackDispatchError",
    "CallbackSearch",
    "HookOptions",
    "Injector",
    "SchedulingError",
    "Stub",
    "StubCall",
    "StubError",
    "StubkitConfig",
    "UnsupportedChainError",
    "call_context",
    "create_stub",
    "get_config",
    "set_config",
]
