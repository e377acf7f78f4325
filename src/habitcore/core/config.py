"""
Layered settings for the progress engine.

Sources, lowest to highest priority:
    1. Built-in defaults (plus any ``defaults=`` the host passes)
    2. A YAML or JSON settings file
    3. ``HABITCORE_<SECTION>__<KEY>`` environment variables

Usage:
    config = Config(config_file="habitcore.yaml")

    config.get("app.timezone")          # dot-path lookup
    config.get("cache.day_color_ttl")   # seconds
    config.validated().queue.timeout_seconds
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from habitcore.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from habitcore.core.config_schema import HabitCoreConfig

ENV_PREFIX = "HABITCORE_"
DATA_DIR = os.path.join("~", ".habitcore-data")


def default_settings(data_dir: str) -> dict[str, Any]:
    """Settings used when neither a file nor the environment says otherwise."""
    root = os.path.expanduser(data_dir)
    return {
        "paths": {
            "data_dir": root,
            "storage_dir": os.path.join(root, "storage"),
            "log_dir": os.path.join(root, "logs"),
        },
        "app": {"timezone": "UTC", "user_id": "", "plan_tier": "free"},
        "cache": {"routine_items_ttl": 300, "day_color_ttl": 300, "streaks_ttl": 120},
        "queue": {
            "storage_key": "offline_queue.json",
            "timeout_seconds": 10.0,
            "failure_threshold": 3,
            "cooldown_seconds": 30.0,
        },
        "streaks": {"lookback_days": 90, "rest_days": []},
        "milestones": {"horizon": 30},
    }


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge *overlay* into *base* in place; nested dicts merge, anything else replaces."""
    for key, value in overlay.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = value
    return base


def read_settings_file(path: str | Path) -> dict[str, Any]:
    """Parse a ``.yaml``/``.yml`` or ``.json`` settings file. Other suffixes yield ``{}``."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        return {}
    text = path.read_text()
    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def env_settings(prefix: str, environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Nested settings from ``<prefix>SECTION__KEY`` variables.

    Values are read as YAML scalars, so ``HABITCORE_STREAKS__REST_DAYS=[6, 7]``
    becomes a list and ``HABITCORE_QUEUE__TIMEOUT_SECONDS=5`` an int.
    """
    if not prefix:
        return {}
    found: dict[str, Any] = {}
    for name, raw in (os.environ if environ is None else environ).items():
        if not name.startswith(prefix):
            continue
        *sections, leaf = name[len(prefix) :].lower().split("__")
        node = found
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = _parse_env_value(raw)
    return found


def _parse_env_value(raw: str) -> Any:
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return raw if value is None else value


class Config:
    """Merged settings with dot-path access.

    ``HABITCORE_APP__TIMEZONE=Europe/Berlin`` ends up at ``config.get("app.timezone")``.

    Args:
        config_file: YAML or JSON settings file. A missing file is ignored.
        env_prefix: Prefix of environment overrides; empty disables them.
        data_dir: Root for durable local state (storage, logs).
        defaults: Host-specific defaults layered over the built-in ones.
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or DATA_DIR

        settings = deep_merge(default_settings(self._data_dir), defaults or {})
        if config_file and os.path.exists(config_file):
            deep_merge(settings, read_settings_file(config_file))
        self.config_data: dict[str, Any] = deep_merge(settings, env_settings(self.env_prefix))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Value at a dot path such as ``"queue.timeout_seconds"``, or *default*."""
        node: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        *sections, leaf = key_path.split(".")
        node = self.config_data
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value

    def get_data_dir(self) -> str:
        return os.path.expanduser(self.get("paths.data_dir") or self._data_dir)

    def validated(self) -> HabitCoreConfig:
        """Typed, validated view of the current settings.

        Raises ConfigurationError when a value fails validation.
        """
        from pydantic import ValidationError as PydanticValidationError

        from habitcore.core.config_schema import HabitCoreConfig

        try:
            return HabitCoreConfig.model_validate(self.config_data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_shared: Config | None = None


def get_config(config_file: str | None = None, env_prefix: str = ENV_PREFIX, data_dir: str | None = None) -> Config:
    """Process-wide Config, created on first use. Later arguments are ignored."""
    global _shared
    if _shared is None:
        _shared = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _shared


def reset_config() -> None:
    """Forget the process-wide Config (tests)."""
    global _shared
    _shared = None
