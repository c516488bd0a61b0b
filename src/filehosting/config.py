from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    files_dir: Path = Path("files")
    db_path: Path = Path("files.db")

    @field_validator("files_dir", "db_path", mode="before")
    @classmethod
    def validate_path_fields(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip()
            if not normalized:
                raise ValueError("storage paths must not be empty")
            return normalized
        return value


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown logging level: {value}")
        return normalized


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def with_overrides(
        self,
        *,
        files_dir: Path | None = None,
        db_path: Path | None = None,
    ) -> AppConfig:
        update: dict[str, Path] = {}
        if files_dir is not None:
            update["files_dir"] = files_dir
        if db_path is not None:
            update["db_path"] = db_path
        if not update:
            return self
        return self.model_copy(update={"storage": self.storage.model_copy(update=update)})


def load_config(path: str | Path) -> AppConfig:
    raw = Path(path).read_text(encoding="utf-8")
    payload = _parse_yaml_or_json(raw)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def _parse_yaml_or_json(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        try:
            parsed = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ValueError(f"Configuration is neither JSON nor YAML: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed
