"""Configuration loading.

Settings come from an optional YAML file (``${VAR}`` references are expanded)
with environment overrides for paths and log level. A ``.env`` file, when
present, is loaded first.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Type, TypeVar

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_events.constants import (
    DAILY_INTERVAL_S,
    DEFAULT_FEED_LIMIT,
    DEFAULT_INITIAL_DELAY_S,
    PERFORMANCE_INTERVAL_S,
    PUBLISHED_PROJECT_MILESTONES,
    TOTAL_VIEW_MILESTONES,
    VIEW_MILESTONES,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_CONFIG_PATH = Path("~/.portfolio-events/config.yml")


class SchedulerSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    initial_delay_s: float = Field(default=DEFAULT_INITIAL_DELAY_S, ge=0)
    daily_interval_s: float = Field(default=DAILY_INTERVAL_S, gt=0)
    performance_interval_s: float = Field(default=PERFORMANCE_INTERVAL_S, gt=0)


class MilestoneSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    views: list[int] = list(VIEW_MILESTONES)
    total_views: list[int] = list(TOTAL_VIEW_MILESTONES)
    published_projects: list[int] = list(PUBLISHED_PROJECT_MILESTONES)

    @field_validator("views", "total_views", "published_projects")
    @classmethod
    def sort_ascending(cls, v: list[int]) -> list[int]:
        if any(m <= 0 for m in v):
            raise ValueError("Milestones must be positive")
        return sorted(set(v))


class EmailSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    recipient: Optional[str] = None
    categories: list[str] = []
    min_type: Optional[str] = None


class EventsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    db_path: str = "~/.portfolio-events/records.db"
    checkpoint_path: str = "~/.portfolio-events/checkpoints.json"
    log_level: str = "INFO"
    feed_limit: int = Field(default=DEFAULT_FEED_LIMIT, ge=1)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    milestones: MilestoneSettings = Field(default_factory=MilestoneSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)


def expand_env_vars(config: object) -> object:
    """Recursively replace ${VAR} patterns with environment variable values."""
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown config keys", section=path, config_path=str(config_path), keys=list(model.model_extra))
    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def _load_model(path: Path, model_class: Type[T]) -> T:
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file", config_path=str(path), error=str(e))
        return model_class()

    model = model_class.model_validate(expand_env_vars(raw))
    _warn_unknown_keys(model, "root", path)
    return model


def load_config(path: Optional[Path] = None, *, dotenv_path: Optional[Path] = None) -> EventsConfig:
    """Load configuration from YAML and apply environment overrides.

    Args:
        path: YAML file; defaults to ``$PORTFOLIO_EVENTS_CONFIG`` or ``~/.portfolio-events/config.yml``.
        dotenv_path: Optional ``.env`` file to load before reading the environment.

    Raises:
        pydantic.ValidationError: If the file contains invalid values.
    """
    load_dotenv(dotenv_path)
    if path is None:
        env_path = os.getenv("PORTFOLIO_EVENTS_CONFIG")
        path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH
    config = _load_model(Path(path).expanduser(), EventsConfig)

    overrides = {
        "db_path": os.getenv("PORTFOLIO_EVENTS_DB_PATH"),
        "checkpoint_path": os.getenv("PORTFOLIO_EVENTS_CHECKPOINT_PATH"),
        "log_level": os.getenv("PORTFOLIO_EVENTS_LOG_LEVEL"),
    }
    applied = {k: v for k, v in overrides.items() if v}
    if applied:
        config = config.model_copy(update=applied)
    return config
