"""Path helpers shared by repository jobs and the archive store."""
from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import List, Union

REPO_SUFFIX = ".git"
SCHEME_PREFIXES = ("https://", "http://", "ssh://", "git://", "ftp://", "ftps://")


def trim_repo_path(location: str) -> str:
    """Derive a canonical sub-path from a repository's remote location.

    Removes a trailing ``.git`` and one known scheme prefix. Both trims are
    anchored, so text in the middle of the location is left alone.

    Args:
        location: Remote location of the repository

    Returns:
        The trimmed location, possibly unchanged
    """
    trimmed = location
    if trimmed.endswith(REPO_SUFFIX):
        trimmed = trimmed[: -len(REPO_SUFFIX)]
    for prefix in SCHEME_PREFIXES:
        if trimmed.startswith(prefix):
            trimmed = trimmed[len(prefix):]
            break
    return trimmed


def join_subpath(root: Union[str, Path], subpath: str) -> Path:
    """Join a trimmed repository path below a root directory.

    Leading separators and ``.``/``..`` components are dropped so the result
    always stays below ``root``.
    """
    parts = [part for part in PurePosixPath(subpath).parts if part not in ("/", ".", "..")]
    return Path(root).joinpath(*parts)


def get_top_level_contents(directory: Union[str, Path]) -> List[Path]:
    """List the immediate children of a directory.

    Raises:
        OSError: If the directory cannot be listed
    """
    directory = Path(directory)
    return sorted(directory.iterdir())


def safe_name(name: str) -> str:
    """Reduce a label to characters that are safe in a file name."""
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in name)
