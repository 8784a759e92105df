from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .infrastructure.database.sample_store import default_data_dir
from .infrastructure.database.schema import DATABASE_FILE_NAME


class StoreConfig(BaseModel):
    data_dir: Path | None = Field(None)  # None = platform default
    file_name: str = Field(DATABASE_FILE_NAME)
    timeout: float = Field(30.0, gt=0, le=600)

    @field_validator("data_dir")
    @classmethod
    def _expand_data_dir(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @field_validator("file_name")
    @classmethod
    def _validate_file_name(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("file_name must be a bare file name")
        return value

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir if self.data_dir is not None else default_data_dir()

    @property
    def db_path(self) -> Path:
        return self.resolved_data_dir / self.file_name


class RetentionConfig(BaseModel):
    enabled: bool = Field(False)
    max_age_days: int = Field(30, ge=1, le=3650)


class LoggingConfig(BaseModel):
    level: str = Field("INFO")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


class WardriveConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path) -> WardriveConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    try:
        return WardriveConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


def resolve_config_path(cli_path: Path | None) -> Path:
    """Resolve config path by priority: CLI, env, user config dir, repo configs."""
    candidates: list[Path] = []
    if cli_path:
        p = Path(cli_path).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    env = os.environ.get("MESHWARDRIVE_CONFIG")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    for p in [Path("~/.config/meshwardrive/meshwardrive.yml").expanduser(), Path("configs/meshwardrive.yml")]:
        if p.exists():
            return p.resolve()
        candidates.append(p)
    return candidates[0]


def load_config_or_default(cli_path: Path | None) -> WardriveConfig:
    """Load the resolved config, falling back to defaults when no file exists."""
    resolved = resolve_config_path(cli_path)
    if not resolved.exists():
        return WardriveConfig()
    return load_config(resolved)
