"""Models for the outcomes of a backup run."""
from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Dict, Iterable, Iterator, List

from pydantic import BaseModel, ConfigDict, Field


class ResultType(str, Enum):
    """Outcome of a single backup or archive action."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class JobType(str, Enum):
    """Action a result was recorded for."""

    INIT = "init"
    BACKUP = "backup"
    ARCHIVE = "archive"


class BackupResult(BaseModel):
    """Outcome of one action on one repository.

    Attributes:
        name: Repository label
        ref: Reference name, empty for init and skipped backup actions
        job_type: Action the result belongs to
        outcome: Success, failure or skip
        message: Error detail on failure, empty otherwise
    """

    model_config = ConfigDict(frozen=True)

    name: str
    ref: str = ""
    job_type: JobType
    outcome: ResultType
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome is ResultType.FAILED


class BackupResults(BaseModel):
    """Ordered results of a whole run."""

    results: List[BackupResult] = Field(default_factory=list)

    def append(self, result: BackupResult) -> None:
        self.results.append(result)

    def extend(self, results: Iterable[BackupResult]) -> None:
        self.results.extend(results)

    def __iter__(self) -> Iterator[BackupResult]:  # type: ignore[override]
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def failed(self) -> List[BackupResult]:
        return [r for r in self.results if r.failed]

    def counts(self) -> Dict[ResultType, int]:
        counter = Counter(r.outcome for r in self.results)
        return {outcome: counter.get(outcome, 0) for outcome in ResultType}

    @property
    def has_failures(self) -> bool:
        return any(r.failed for r in self.results)
