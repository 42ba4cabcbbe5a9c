"""Repository definition and reference models for backup runs."""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RefKind(str, Enum):
    """Kind of a git reference."""

    BRANCH = "branch"
    TAG = "tag"


class Reference(BaseModel):
    """A named pointer into repository history.

    Attributes:
        name: Short name of the reference (e.g. ``main`` or ``v1.0``)
        kind: Whether the reference is a branch or a tag
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: RefKind

    @classmethod
    def branch(cls, name: str) -> Reference:
        return cls(name=name, kind=RefKind.BRANCH)

    @classmethod
    def tag(cls, name: str) -> Reference:
        return cls(name=name, kind=RefKind.TAG)

    @property
    def is_tag(self) -> bool:
        return self.kind is RefKind.TAG

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"


class ArchiveRef(BaseModel):
    """A reference configured for snapshotting.

    The kind is optional in configuration files. When it is missing, the
    repository job resolves it against the opened working copy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    kind: Optional[RefKind] = Field(default=None, alias="type")

    def as_reference(self, kind: RefKind) -> Reference:
        return Reference(name=self.name, kind=self.kind or kind)


class RepositoryDefinition(BaseModel):
    """A repository to back up and archive.

    Attributes:
        name: Label used in logs and results
        path: Remote location, used as clone/fetch source and as identity
        branch: Branch persisted on disk when backups are enabled. Defaults to
            the branch checked out by the clone.
        archive_only: Force a disposable working copy even when backups are enabled
        archive_refs: References (branches or tags) to snapshot
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    path: str = Field(min_length=1)
    branch: Optional[str] = None
    archive_only: bool = False
    archive_refs: List[ArchiveRef] = Field(default_factory=list)

    @field_validator("archive_refs", mode="before")
    @classmethod
    def _parse_archive_refs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value
