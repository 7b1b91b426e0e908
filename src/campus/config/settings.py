"""Runtime settings for the campus request pipeline."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .layering import apply_env_overrides, deep_merge, read_yaml_mapping
from .policies import Policies, load_policies

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"
SETTINGS_ENV_PREFIX = "CAMPUS_SETTINGS__"

Environment = Literal["development", "testing", "production"]
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _file_layers(config_dir: Path, environment: str) -> Dict[str, Any]:
    """``default.yaml`` overlaid with ``<environment>.yaml`` and ``CAMPUS_SETTINGS__`` vars."""

    layered = deep_merge(
        read_yaml_mapping(config_dir / "default.yaml"),
        read_yaml_mapping(config_dir / f"{environment}.yaml"),
    )
    return dict(apply_env_overrides(layered, SETTINGS_ENV_PREFIX))


class PathsConfig(BaseModel):
    """Directories for the document store, logs and run reports.

    Relative paths resolve against the project root.
    """

    data_dir: Path = Field(default=PROJECT_ROOT / "data")
    logs_dir: Path = Field(default=PROJECT_ROOT / "logs")
    metadata_dir: Path = Field(default=PROJECT_ROOT / "metadata")

    @model_validator(mode="after")
    def _anchor_relative(self) -> "PathsConfig":
        for name in type(self).model_fields:
            path = Path(getattr(self, name)).expanduser()
            if not path.is_absolute():
                path = PROJECT_ROOT / path
            object.__setattr__(self, name, path)
        return self

    def create(self) -> None:
        for name in type(self).model_fields:
            Path(getattr(self, name)).mkdir(parents=True, exist_ok=True)


class Settings(BaseSettings):
    """Top-level configuration.

    Highest precedence first: keyword arguments, ``CAMPUS_*`` variables for
    top-level fields, ``CAMPUS_SETTINGS__`` nested variables,
    ``<config_dir>/<environment>.yaml``, ``<config_dir>/default.yaml`` and
    field defaults. Policies additionally honour ``CAMPUS_POLICY__`` variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAMPUS_",
        validate_assignment=True,
        extra="allow",
    )

    environment: Environment = Field(default="development")
    config_dir: Path = Field(default=DEFAULT_CONFIG_DIR)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    create_dirs: bool = Field(default=True, description="Create the `paths` directories on load.")
    store_path: Path | None = Field(
        default=None,
        description="JSON document store file; defaults to <data_dir>/store.json.",
    )
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False, description="Write the log file as JSON lines.")
    policies: Policies

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="before")
    @classmethod
    def _layer_sources(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        explicit = {key: value for key, value in values.items() if value is not None}
        config_dir = Path(explicit.get("config_dir") or DEFAULT_CONFIG_DIR)
        environment = explicit.get("environment") or os.getenv("CAMPUS_ENV", "development")

        combined = deep_merge(_file_layers(config_dir, environment), explicit)
        policies = combined.get("policies")
        if not isinstance(policies, Policies):
            combined["policies"] = load_policies(policies or {})
        return combined

    @model_validator(mode="after")
    def _create_paths(self) -> "Settings":
        if self.create_dirs:
            self.paths.create()
        return self

    @property
    def policy_version(self) -> str:
        return self.policies.policy_version

    @property
    def log_file(self) -> Path:
        return self.paths.logs_dir / "campus.log"

    @property
    def resolved_store_path(self) -> Path:
        if self.store_path is not None:
            return Path(self.store_path).expanduser()
        return self.paths.data_dir / "store.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, built on first use."""

    return Settings()


__all__ = ["Settings", "get_settings", "PathsConfig", "PROJECT_ROOT", "SETTINGS_ENV_PREFIX"]
