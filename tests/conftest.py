"""Shared fixtures: an origin repository to clone from and run configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pygit2
import pytest
from pygit2.enums import FileMode, ObjectType

from config.settings import ArchiveSettings, BackupSettings, Configuration
from engine.archive_store import ArchiveStore
from models.repository import RepositoryDefinition

SIGNATURE = pygit2.Signature("Test User", "test@example.com")


def _commit_files(
    repo: pygit2.Repository,
    ref: Optional[str],
    files: Dict[str, str],
    parents: List[pygit2.Oid],
    message: str,
) -> pygit2.Oid:
    """Commit a flat set of files directly to a reference.

    Args:
        repo: Repository to commit to
        ref: Reference to create or advance
        files: Mapping of file name to content
        parents: Parent commit ids
        message: Commit message

    Returns:
        Id of the new commit
    """
    builder = repo.TreeBuilder()
    for name, content in files.items():
        builder.insert(name, repo.create_blob(content.encode()), FileMode.BLOB)
    return repo.create_commit(ref, SIGNATURE, SIGNATURE, message, builder.write(), parents)


@pytest.fixture
def origin_repo(tmp_path: Path) -> Path:
    """Create a bare origin repository.

    Layout:
        main: two commits, README.md and main.txt
        develop: branches off the first commit, adds dev.txt
        v1.0: annotated tag on the first commit
        v0.9: lightweight tag on the first commit
    """
    path = tmp_path / "remote" / "origin.git"
    repo = pygit2.init_repository(str(path), bare=True, initial_head="main")

    first = _commit_files(repo, "refs/heads/main", {"README.md": "hello\n"}, [], "Initial commit")
    repo.create_tag("v1.0", first, ObjectType.COMMIT, SIGNATURE, "Release 1.0")
    repo.references.create("refs/tags/v0.9", first)
    _commit_files(
        repo,
        "refs/heads/develop",
        {"README.md": "hello\n", "dev.txt": "dev\n"},
        [first],
        "Develop work",
    )
    _commit_files(
        repo,
        "refs/heads/main",
        {"README.md": "hello again\n", "main.txt": "main\n"},
        [first],
        "Second commit",
    )
    return path


@pytest.fixture
def origin(origin_repo: Path) -> pygit2.Repository:
    return pygit2.Repository(str(origin_repo))


@pytest.fixture
def backup_settings(tmp_path: Path) -> BackupSettings:
    return BackupSettings(
        enabled=True,
        folder=tmp_path / "backup",
        scratch_folder=tmp_path / "scratch",
        clone_attempts=1,
    )


@pytest.fixture
def archive_settings(tmp_path: Path) -> ArchiveSettings:
    return ArchiveSettings(enabled=True, folder=tmp_path / "archive", format="zip")


@pytest.fixture
def store(archive_settings: ArchiveSettings) -> ArchiveStore:
    return ArchiveStore(archive_settings)


@pytest.fixture
def definition(origin_repo: Path) -> RepositoryDefinition:
    return RepositoryDefinition(
        name="origin",
        path=str(origin_repo),
        branch="main",
        archive_refs=["v1.0", "develop"],
    )


@pytest.fixture
def make_config(backup_settings: BackupSettings, archive_settings: ArchiveSettings):
    """Build a configuration from the test settings and some repositories."""

    def _make(repositories: List[RepositoryDefinition], **overrides) -> Configuration:
        return Configuration(
            backup=overrides.get("backup", backup_settings),
            archive=overrides.get("archive", archive_settings),
            repositories=repositories,
        )

    return _make


@pytest.fixture
def commit_files():
    """Expose the commit helper to tests that grow the origin repository."""
    return _commit_files
