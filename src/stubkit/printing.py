"""Human-readable names and values for failure messages."""

from __future__ import annotations

import functools
from typing import Any

from stubkit.config import get_config


def function_name(func: Any, default: str | None = None) -> str:
    """Best-effort name of a callable, falling back to the configured default."""
    while isinstance(func, functools.partial):
        func = func.func
    name = getattr(func, "__name__", None)
    if isinstance(name, str) and name and name != "<lambda>":
        return name
    return default if default is not None else get_config().default_name


def value_to_string(value: Any) -> str:
    """Render a value the way it should read inside a message."""
    if isinstance(value, str):
        return value
    return repr(value)
