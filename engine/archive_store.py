"""Storage of compressed repository snapshots.

Snapshots live at ``<archive root>/<repository sub-path>/<ref>.<format>``. A
snapshot is always written whole, replacing any older file of the same name.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from config.settings import ArchiveSettings
from engine.compression import CompressionError, create_archive
from engine.paths import get_top_level_contents, join_subpath

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Raised when a snapshot cannot be written."""

    pass


class ArchiveStore:
    """Tracks and writes snapshots below the configured archive root."""

    def __init__(self, settings: ArchiveSettings) -> None:
        """Initialize the store.

        Args:
            settings: Archive root, format and enabled flag
        """
        self.settings = settings
        self.root = Path(settings.folder)

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    @property
    def format(self) -> str:
        return self.settings.format

    def archive_path(self, repo_subpath: str, ref: str) -> Path:
        """Return where the snapshot for a repository and reference lives."""
        return join_subpath(self.root, repo_subpath) / f"{ref}.{self.format}"

    def exists(self, repo_subpath: str, ref: str) -> bool:
        """Check whether a snapshot already exists.

        Args:
            repo_subpath: Normalized repository path
            ref: Reference name

        Returns:
            True if the snapshot file exists
        """
        return self.archive_path(repo_subpath, ref).is_file()

    def write(self, repo_subpath: str, ref: str, source_dir: Union[str, Path]) -> Path:
        """Write a snapshot of a directory's top-level contents.

        Args:
            repo_subpath: Normalized repository path
            ref: Reference name
            source_dir: Directory whose immediate children are archived

        Returns:
            Path to the written snapshot

        Raises:
            ArchiveError: If any step fails
        """
        archive_file = self.archive_path(repo_subpath, ref)

        try:
            archive_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveError(f"Failed to create archive folder {archive_file.parent}: {e}") from e

        if archive_file.exists():
            try:
                archive_file.unlink()
            except OSError as e:
                raise ArchiveError(f"Failed to remove existing archive {archive_file}: {e}") from e

        try:
            entries = get_top_level_contents(source_dir)
        except OSError as e:
            logger.error(
                "Failed to get directory contents",
                extra={"dir": str(source_dir), "error": str(e)},
            )
            raise ArchiveError(f"Failed to list {source_dir}: {e}") from e

        try:
            create_archive(entries, archive_file, self.format)
        except (CompressionError, ValueError) as e:
            logger.error(
                "Failed to archive repository",
                extra={"repo": repo_subpath, "ref": ref, "error": str(e)},
            )
            raise ArchiveError(str(e)) from e

        logger.info(f"Archived {repo_subpath}:{ref}", extra={"archive": str(archive_file)})
        return archive_file
