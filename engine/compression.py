"""
Archive writers for repository snapshots.

Supported formats:
- zip: Deflate compressed zip
- tar: Uncompressed tar
- tar.gz: Gzip compressed tar
- tar.bz2: Bzip2 compressed tar
- tar.xz: LZMA compressed tar
"""
from __future__ import annotations

import logging
import os
import stat
import tarfile
import time
import zipfile
from pathlib import Path
from typing import Sequence, Union

logger = logging.getLogger(__name__)

TAR_MODES = {
    "tar": "w",
    "tar.gz": "w:gz",
    "tar.bz2": "w:bz2",
    "tar.xz": "w:xz",
}
SUPPORTED_FORMATS = ("zip",) + tuple(TAR_MODES)


class CompressionError(Exception):
    """Raised when archive creation fails."""

    pass


def create_archive(
    entries: Sequence[Union[str, Path]],
    archive_path: Union[str, Path],
    fmt: str = "zip",
) -> Path:
    """
    Write file-system entries into a single archive.

    Each entry is stored under its base name. Directories are added
    recursively. Symlinks are stored as links, never followed.

    Args:
        entries: Files and directories to include
        archive_path: Full path of the archive to create
        fmt: One of SUPPORTED_FORMATS

    Returns:
        Path to the created archive

    Raises:
        CompressionError: If the archive cannot be written
        ValueError: If fmt is not supported
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(
            f"Invalid archive format: {fmt}. Valid options: {list(SUPPORTED_FORMATS)}"
        )

    archive_path = Path(archive_path)
    try:
        if fmt == "zip":
            _create_zip(entries, archive_path)
        else:
            _create_tar(entries, archive_path, TAR_MODES[fmt])
    except (OSError, tarfile.TarError, zipfile.BadZipFile, CompressionError) as e:
        # Remove the partial archive
        archive_path.unlink(missing_ok=True)
        raise CompressionError(f"Failed to create archive {archive_path}: {e}") from e

    logger.debug(f"Wrote {len(entries)} entries to {archive_path}")
    return archive_path


def _create_zip(entries: Sequence[Union[str, Path]], archive_path: Path) -> None:
    with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zipf:
        for entry in entries:
            source = Path(entry)
            if source.is_symlink():
                _write_zip_symlink(zipf, source, source.name)
            elif source.is_dir():
                zipf.write(source, source.name)
                for item in sorted(source.rglob("*")):
                    arcname = item.relative_to(source.parent)
                    if item.is_symlink():
                        _write_zip_symlink(zipf, item, arcname)
                    elif item.is_file() or item.is_dir():
                        zipf.write(item, arcname)
            elif source.is_file():
                zipf.write(source, source.name)
            else:
                raise CompressionError(f"Invalid path type: {source}")


def _write_zip_symlink(zipf: zipfile.ZipFile, link: Path, arcname: Union[str, Path]) -> None:
    """Store a symlink as a link entry holding its target, like tar does."""
    info = zipfile.ZipInfo(str(arcname), date_time=time.localtime(link.lstat().st_mtime)[:6])
    info.create_system = 3  # unix, so external_attr carries the mode
    info.external_attr = (stat.S_IFLNK | 0o777) << 16
    zipf.writestr(info, os.readlink(link))


def _create_tar(entries: Sequence[Union[str, Path]], archive_path: Path, mode: str) -> None:
    with tarfile.open(archive_path, mode) as tar:
        for entry in entries:
            source = Path(entry)
            if not source.exists() and not source.is_symlink():
                raise CompressionError(f"Path does not exist: {source}")
            tar.add(source, arcname=source.name, recursive=True)
