"""Tests for the path helpers."""
from __future__ import annotations

from pathlib import Path

import pytest

from engine.paths import get_top_level_contents, join_subpath, safe_name, trim_repo_path

PRUNED = "github.com/jordan-thirus/git-backup"


@pytest.mark.parametrize(
    "location, expected",
    [
        ("http://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("https://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("ssh://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("git://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("ftp://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("ftps://github.com/jordan-thirus/git-backup.git", PRUNED),
        ("http://github.com/jordan-thirus/git-backup", PRUNED),
        ("github.com/jordan-thirus/git-backup.git", PRUNED),
        (
            "bad://http://github.com/jordan-thirus/git-backup.git.bak",
            "bad://http://github.com/jordan-thirus/git-backup.git.bak",
        ),
    ],
    ids=[
        "http / .git",
        "https / .git",
        "ssh / .git",
        "git / .git",
        "ftp / .git",
        "ftps / .git",
        "no suffix",
        "no prefix",
        "nested suffix/prefix",
    ],
)
def test_trim_repo_path(location: str, expected: str) -> None:
    assert trim_repo_path(location) == expected


def test_trim_repo_path_strips_one_prefix_only() -> None:
    """Only the leading scheme is removed."""
    assert trim_repo_path("https://http://host/repo.git") == "http://host/repo"


def test_trim_repo_path_keeps_embedded_suffix() -> None:
    assert trim_repo_path("host/repo.git/sub") == "host/repo.git/sub"


def test_join_subpath_stays_below_root(tmp_path: Path) -> None:
    assert join_subpath(tmp_path, "host/repo") == tmp_path / "host" / "repo"
    assert join_subpath(tmp_path, "/abs/repo") == tmp_path / "abs" / "repo"
    assert join_subpath(tmp_path, "../../etc/repo") == tmp_path / "etc" / "repo"


def test_get_top_level_contents(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "nested.txt").write_text("n")

    assert get_top_level_contents(tmp_path) == [tmp_path / "a.txt", tmp_path / "sub"]


def test_get_top_level_contents_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        get_top_level_contents(tmp_path / "missing")


def test_safe_name() -> None:
    assert safe_name("my repo/v2") == "my_repo_v2"
    assert safe_name("ok-name_1") == "ok-name_1"
