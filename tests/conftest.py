"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from stubkit.config import StubkitConfig, set_config


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory for filesystem-based tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def default_config():
    """Pin the engine config to defaults so local config files never leak in."""
    set_config(StubkitConfig())
    yield
    set_config(None)
