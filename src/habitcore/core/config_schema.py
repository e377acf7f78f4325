"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``. Call
``Config.validated()`` to obtain a typed, validated ``HabitCoreConfig``
instance. Dict-based access keeps working unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitcore.core.exceptions import ConfigurationError
from habitcore.core.utils.dates import resolve_timezone


class PathsConfig(BaseModel):
    """File-system paths for durable local state."""

    data_dir: Path
    storage_dir: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", "storage_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class AppConfig(BaseModel):
    timezone: str = "UTC"
    user_id: str = ""
    plan_tier: Literal["free", "premium"] = "free"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        try:
            resolve_timezone(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class CacheConfig(BaseModel):
    """TTLs in seconds for cached reads and derived views."""

    routine_items_ttl: float = Field(default=300, ge=0)
    day_color_ttl: float = Field(default=300, ge=0)
    streaks_ttl: float = Field(default=120, ge=0)


class QueueConfig(BaseModel):
    """Offline mutation queue tuning."""

    storage_key: str = "offline_queue.json"
    timeout_seconds: float = Field(default=10.0, gt=0)
    failure_threshold: int = Field(default=3, ge=1)
    cooldown_seconds: float = Field(default=30.0, ge=0)


class StreaksConfig(BaseModel):
    lookback_days: int = Field(default=90, ge=1)
    rest_days: list[int] = []

    @field_validator("rest_days")
    @classmethod
    def _iso_weekdays(cls, v: list[int]) -> list[int]:
        bad = [d for d in v if not 1 <= d <= 7]
        if bad:
            raise ValueError(f"rest days must be ISO weekdays 1-7, got {bad}")
        return sorted(set(v))


class MilestonesConfig(BaseModel):
    horizon: int = Field(default=30, ge=0)


class HabitCoreConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so host applications can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.habitcore-data"))
    app: AppConfig = AppConfig()
    cache: CacheConfig = CacheConfig()
    queue: QueueConfig = QueueConfig()
    streaks: StreaksConfig = StreaksConfig()
    milestones: MilestonesConfig = MilestonesConfig()
