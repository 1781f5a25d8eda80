"""TOML configuration loading for listedit."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .executor import DEFAULT_STAGING_PREFIX
from .ids import DEFAULT_IDENTITY_LENGTH, DEFAULT_MAX_ATTEMPTS

DEFAULT_CONFIG_FILENAME = "listedit.toml"


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity_length: int = Field(default=DEFAULT_IDENTITY_LENGTH, ge=1, le=16)
    max_identity_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    staging_root: Path | None = None
    staging_prefix: str = DEFAULT_STAGING_PREFIX
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, base_dir: Path) -> "Settings":
        data = dict(raw)
        if data.get("staging_root") is not None:
            data["staging_root"] = _expand_path(data["staging_root"], base_dir=base_dir)
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid [settings] table: {exc}") from exc


class Config(BaseModel):
    """Fully parsed configuration file."""

    model_config = ConfigDict(frozen=True)

    config_path: Path | None = None
    settings: Settings = Field(default_factory=Settings)


def load_config(path: Path | None = None) -> Config:
    """Load and validate a configuration file.

    Args:
        path: Optional path to the TOML file or to the directory holding it.
            Defaults to ``listedit.toml`` in the current working directory; when
            that file does not exist the built-in defaults are used.
    """

    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            return Config()
        path = candidate

    config_path = _resolve_config_path(path)
    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Configuration file '{config_path}' is not valid TOML: {exc}") from exc

    settings = Settings.from_raw(data.get("settings") or {}, base_dir=config_path.parent)
    return Config(config_path=config_path, settings=settings)


def write_default_config(path: Path) -> None:
    """Write a configuration file holding the default settings."""

    defaults = Settings()
    payload = {
        "settings": {
            "identity_length": defaults.identity_length,
            "max_identity_attempts": defaults.max_identity_attempts,
            "staging_prefix": defaults.staging_prefix,
            "log_level": defaults.log_level,
        }
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        handle.write(b"# listedit configuration\n\n")
        tomli_w.dump(payload, handle)


def _resolve_config_path(path: Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
