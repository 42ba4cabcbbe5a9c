"""Configuration loading for backup runs.

Settings come from a YAML file (``~/.git-backup.yaml`` or ``./.git-backup.yaml``
unless a path is given) with environment variables prefixed ``GB_`` filling in
anything the file leaves out, e.g. ``GB_BACKUP__ENABLED=false``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from engine.compression import SUPPORTED_FORMATS
from models.repository import RepositoryDefinition

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (".git-backup.yaml", ".git-backup.yml")
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be read or validated."""


class BackupSettings(BaseModel):
    """Settings for persistent working copies."""

    enabled: bool = True
    folder: Path = Path("./backup")
    scratch_folder: Optional[Path] = None
    clone_attempts: int = Field(default=3, ge=1)


class ArchiveSettings(BaseModel):
    """Settings for compressed snapshots."""

    enabled: bool = True
    folder: Path = Path("./archive")
    format: str = "zip"

    @field_validator("format")
    @classmethod
    def _validate_format(cls, value: str) -> str:
        normalized = value.strip().lower().lstrip(".")
        if normalized not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Archive format must be one of {', '.join(SUPPORTED_FORMATS)}"
            )
        return normalized


class Configuration(BaseSettings):
    """Validated configuration for one backup run."""

    model_config = SettingsConfigDict(
        env_prefix="GB_", env_nested_delimiter="__", extra="ignore"
    )

    backup: BackupSettings = Field(default_factory=BackupSettings)
    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    repositories: List[RepositoryDefinition] = Field(default_factory=list)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(
                "log_level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized


def find_config_file(search_dirs: Optional[List[Path]] = None) -> Optional[Path]:
    """Return the first config file found in the search directories.

    Args:
        search_dirs: Directories to search, defaults to the home directory
            followed by the current directory

    Returns:
        Path to the config file, or None if there is none
    """
    if search_dirs is None:
        search_dirs = [Path.home(), Path.cwd()]

    for directory in search_dirs:
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_config(path: Optional[Union[str, Path]] = None) -> Configuration:
    """Load and validate the configuration.

    Args:
        path: Explicit config file. When omitted the default locations are
            searched and, failing that, defaults are used.

    Returns:
        The validated configuration

    Raises:
        ConfigError: If the file is missing, is not valid YAML or fails validation
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file()

    document = {}
    if config_path is not None:
        logger.debug(f"Reading configuration from {config_path}")
        try:
            document = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e
        if not isinstance(document, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
    else:
        logger.debug("No config file found, using defaults")

    try:
        config = Configuration(**document)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug(
        "Configuration read",
        extra={
            "config_file": str(config_path) if config_path else None,
            "repositories": len(config.repositories),
        },
    )
    return config
