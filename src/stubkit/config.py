"""Configuration loading from files and environment variables."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class StubkitConfig:
    """Engine-wide defaults."""

    default_name: str = "stub"
    hook_timeout: float | None = None
    hook_promisified: bool = False
    strict_injectors: bool = False

    @classmethod
    def load(cls) -> StubkitConfig:
        """Load config from files and environment variables.

        Priority (highest to lowest):
        1. Environment variables (STUBKIT_*)
        2. Project config (.stubkit/config.toml or .stubkit/config.yaml)
        3. Global config (~/.stubkit/config.toml or ~/.stubkit/config.yaml)
        4. Defaults
        """
        config_data: dict[str, Any] = {}

        global_config_dir = Path.home() / ".stubkit"
        config_data = cls._merge_config(config_data, cls._load_config_file(global_config_dir))

        project_config_dir = Path.cwd() / ".stubkit"
        config_data = cls._merge_config(config_data, cls._load_config_file(project_config_dir))

        config_data = cls._apply_env_vars(config_data)
        return cls._from_dict(config_data)

    @classmethod
    def _load_config_file(cls, config_dir: Path) -> dict[str, Any]:
        """Load config from a directory (TOML or YAML)."""
        toml_path = config_dir / "config.toml"
        yaml_path = config_dir / "config.yaml"
        yml_path = config_dir / "config.yml"

        if toml_path.exists():
            with open(toml_path, "rb") as f:
                return tomllib.load(f)
        elif yaml_path.exists():
            with open(yaml_path) as f:
                return yaml.safe_load(f) or {}
        elif yml_path.exists():
            with open(yml_path) as f:
                return yaml.safe_load(f) or {}

        return {}

    @classmethod
    def _merge_config(cls, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Shallow merge; every option is a scalar."""
        result = base.copy()
        result.update(override)
        return result

    @classmethod
    def _apply_env_vars(cls, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply STUBKIT_* environment variables."""
        env_mappings = {
            "STUBKIT_DEFAULT_NAME": "default_name",
            "STUBKIT_HOOK_TIMEOUT": "hook_timeout",
            "STUBKIT_HOOK_PROMISIFIED": "hook_promisified",
            "STUBKIT_STRICT_INJECTORS": "strict_injectors",
        }

        for env_var, config_key in env_mappings.items():
            if value := os.environ.get(env_var):
                if config_key == "hook_timeout":
                    config_data[config_key] = float(value)
                elif config_key in ("hook_promisified", "strict_injectors"):
                    config_data[config_key] = value.strip().lower() in _TRUE_VALUES
                else:
                    config_data[config_key] = value

        return config_data

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> StubkitConfig:
        """Create config from dictionary."""
        hook_timeout = data.get("hook_timeout")
        if hook_timeout is not None:
            hook_timeout = float(hook_timeout)

        return cls(
            default_name=str(data.get("default_name", "stub")),
            hook_timeout=hook_timeout,
            hook_promisified=bool(data.get("hook_promisified", False)),
            strict_injectors=bool(data.get("strict_injectors", False)),
        )


_config: StubkitConfig | None = None


def get_config() -> StubkitConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = StubkitConfig.load()
    return _config


def set_config(config: StubkitConfig | None) -> None:
    """Replace the process-wide config; ``None`` reloads it on next access."""
    global _config
    _config = config
