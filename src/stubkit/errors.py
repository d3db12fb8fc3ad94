"""Exception types raised by stubkit itself.

User errors (configured exceptions, exceptions raised by callbacks, failed hook
awaitables) are never wrapped in these; they propagate as-is.
"""


class StubError(Exception):
    """Base class for errors raised by stubkit."""


class BehaviorConfigurationError(StubError, TypeError):
    """Raised when a behavior builder receives malformed input."""


class CallbackDispatchError(StubError, TypeError):
    """Raised when a configured callback cannot be dispatched."""


class UnsupportedChainError(StubError):
    """Raised for builder chains that cannot express a valid behavior."""


class SchedulingError(StubError, RuntimeError):
    """Raised when a deferred dispatch has no event loop to run on."""
