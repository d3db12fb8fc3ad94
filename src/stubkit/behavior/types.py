"""Value types shared by the behavior record, locator and dispatcher."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Callback selection ---


class CallbackSearch(StrEnum):
    """Which callable argument a yielding behavior picks."""

    LEFTMOST = "leftmost"
    RIGHTMOST = "rightmost"


# An exact argument index, or a search direction
CallbackPolicy = int | CallbackSearch


# --- Before-callback hook ---


class HookOptions(BaseModel):
    """Options given to ``set_before_callback_hook``.

    Unknown keys are kept so hooks can carry their own settings.
    """

    model_config = ConfigDict(extra="allow")

    promisified: bool = False
    timeout: float | None = Field(default=None, ge=0)


@dataclass(slots=True)
class HookProps:
    """A registered hook's options and, once armed, its call arguments."""

    options: HookOptions
    args: list[Any] | None = None
    context: Any = None

    @property
    def armed(self) -> bool:
        return self.args is not None


@dataclass(slots=True)
class Injector:
    """Overwrite one callback argument before the callback fires."""

    pos: int
    value: Any = None

    @classmethod
    def coerce(cls, entry: Any) -> Injector | None:
        """Read an injector from a hook result entry, or ``None`` if malformed."""
        if entry is None:
            return None
        if isinstance(entry, Injector):
            candidate = entry
        elif isinstance(entry, Mapping):
            if "pos" not in entry or "value" not in entry:
                return None
            candidate = cls(pos=entry["pos"], value=entry["value"])
        elif hasattr(entry, "pos") and hasattr(entry, "value"):
            candidate = cls(pos=entry.pos, value=entry.value)
        else:
            return None

        pos = candidate.pos
        if not isinstance(pos, int) or isinstance(pos, bool) or pos < 0:
            return None
        return candidate


@dataclass(slots=True)
class InjectionReport:
    """What an injector pass did to the callback arguments."""

    applied: list[Injector] = field(default_factory=list)
    skipped: list[Any] = field(default_factory=list)
