"""Configuration package for backup runs."""
from __future__ import annotations

from config.settings import (
    ArchiveSettings,
    BackupSettings,
    ConfigError,
    Configuration,
    find_config_file,
    load_config,
)

__all__ = [
    "ArchiveSettings",
    "BackupSettings",
    "ConfigError",
    "Configuration",
    "find_config_file",
    "load_config",
]
