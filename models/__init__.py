"""Data models for repository definitions and backup results."""
from __future__ import annotations

from models.repository import ArchiveRef, RefKind, Reference, RepositoryDefinition
from models.result import BackupResult, BackupResults, JobType, ResultType

__all__ = [
    "ArchiveRef",
    "BackupResult",
    "BackupResults",
    "JobType",
    "RefKind",
    "Reference",
    "RepositoryDefinition",
    "ResultType",
]
