"""Git operations helper for working copies, built on pygit2."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

import pygit2
from pygit2.enums import CheckoutStrategy, MergeAnalysis
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"

# pygit2 maps libgit2 error codes onto these builtins as well as GitError
GIT_ERRORS = (pygit2.GitError, KeyError, ValueError, OSError)


class GitOpsError(Exception):
    """Raised when a git operation on a working copy fails."""

    pass


class GitOps:
    """Helper class for git operations on one working copy."""

    def __init__(self, repo: pygit2.Repository, remote_name: str = REMOTE_NAME) -> None:
        """Wrap an opened repository.

        Args:
            repo: Opened pygit2 repository
            remote_name: Remote used for fetch and pull
        """
        self.repo = repo
        self.remote_name = remote_name

    @staticmethod
    def exists(path: str | Path) -> bool:
        """Return True if a working copy is present at ``path``."""
        return (Path(path) / ".git").exists()

    @classmethod
    def open(cls, path: str | Path) -> GitOps:
        """Open an existing working copy.

        Raises:
            GitOpsError: If the repository cannot be opened
        """
        try:
            repo = pygit2.Repository(str(path))
        except GIT_ERRORS as e:
            raise GitOpsError(f"Open failed: {e}") from e
        logger.debug(f"Opened repository at {path}")
        return cls(repo)

    @classmethod
    def clone(cls, url: str, path: str | Path, attempts: int = 1) -> GitOps:
        """Clone ``url`` into ``path``, retrying with exponential backoff.

        Args:
            url: Remote location to clone
            path: Empty or missing directory to clone into
            attempts: Maximum number of clone attempts

        Raises:
            GitOpsError: If every attempt fails
        """
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(pygit2.GitError),
            reraise=True,
        )
        logger.info(f"Cloning {url} to {path}")
        try:
            repo = retrying(pygit2.clone_repository, url, str(path))
        except GIT_ERRORS as e:
            logger.error("Clone failed", extra={"url": url, "error": str(e)})
            raise GitOpsError(f"Clone failed: {e}") from e
        return cls(repo)

    @property
    def workdir(self) -> Path:
        return Path(self.repo.workdir)

    def fetch(self, refspecs: Optional[List[str]] = None) -> None:
        """Fetch from the remote, optionally restricted to ``refspecs``.

        Raises:
            GitOpsError: If the remote is missing or the fetch fails
        """
        try:
            remote = self.repo.remotes[self.remote_name]
        except KeyError as e:
            raise GitOpsError(f"Remote {self.remote_name} not found") from e

        try:
            remote.fetch(refspecs)
        except GIT_ERRORS as e:
            raise GitOpsError(f"fetch {self.remote_name} failed: {e}") from e
        logger.debug(f"Fetched {self.remote_name}", extra={"refspecs": refspecs})

    def local_branch(self, name: str) -> Optional[pygit2.Branch]:
        """Return the local branch ``name``, or None if it doesn't exist.

        Raises:
            GitOpsError: If ``name`` is not a valid branch name
        """
        try:
            return self.repo.branches.local.get(name)
        except GIT_ERRORS as e:
            raise GitOpsError(f"Invalid branch name {name!r}: {e}") from e

    def has_tag(self, name: str) -> bool:
        """Return True if ``refs/tags/<name>`` exists locally.

        Raises:
            GitOpsError: If ``name`` is not a valid tag name
        """
        try:
            return f"refs/tags/{name}" in self.repo.references
        except GIT_ERRORS as e:
            raise GitOpsError(f"Invalid tag name {name!r}: {e}") from e

    def default_branch(self) -> str:
        """Return the remote's default branch, or the branch HEAD points at.

        Raises:
            GitOpsError: If neither can be determined
        """
        remote_head = self.repo.references.get(f"refs/remotes/{self.remote_name}/HEAD")
        prefix = f"refs/remotes/{self.remote_name}/"
        if remote_head is not None and isinstance(remote_head.target, str):
            if remote_head.target.startswith(prefix):
                return remote_head.target[len(prefix):]

        if self.repo.head_is_detached or self.repo.head_is_unborn:
            raise GitOpsError("HEAD does not point at a branch")
        return self.repo.head.shorthand

    def checkout_branch(self, name: str) -> pygit2.Branch:
        """Force checkout of a local branch.

        Raises:
            GitOpsError: If the branch doesn't exist locally or checkout fails
        """
        branch = self.local_branch(name)
        if branch is None:
            raise GitOpsError(f"Branch {name} not found")
        try:
            self.repo.checkout(branch.name, strategy=CheckoutStrategy.FORCE)
        except GIT_ERRORS as e:
            raise GitOpsError(f"Failed to checkout branch {name}: {e}") from e
        logger.debug(f"Checked out branch {name}")
        return branch

    def resolve_commit(self, revision: str) -> pygit2.Commit:
        """Resolve a tag name or revision string to a commit.

        Raises:
            GitOpsError: If the revision cannot be resolved to a commit
        """
        try:
            tag_ref = self.repo.references.get(f"refs/tags/{revision}")
            if tag_ref is not None:
                return tag_ref.peel(pygit2.Commit)
            return self.repo.revparse_single(revision).peel(pygit2.Commit)
        except GIT_ERRORS as e:
            raise GitOpsError(f"Failed to resolve {revision}: {e}") from e

    def ensure_branch(self, name: str, commit: pygit2.Commit) -> pygit2.Branch:
        """Create a local branch at ``commit``, or move an existing one there."""
        branch = self.local_branch(name)
        try:
            if branch is None:
                branch = self.repo.branches.local.create(name, commit)
                logger.debug(f"Created branch {name} at {commit.id}")
            elif branch.target != commit.id:
                branch.set_target(commit.id)
                logger.debug(f"Moved branch {name} to {commit.id}")
        except GIT_ERRORS as e:
            raise GitOpsError(f"Failed to create branch {name}: {e}") from e
        return branch

    def pull(self, name: str) -> bool:
        """Fetch and fast-forward a checked-out local branch.

        Returns:
            True if the branch moved, False if it was already up to date

        Raises:
            GitOpsError: If the fetch fails, the remote branch is missing or
                the update is not a fast-forward
        """
        self.fetch()

        try:
            remote_ref = self.repo.references.get(f"refs/remotes/{self.remote_name}/{name}")
            local_ref = self.repo.references.get(f"refs/heads/{name}")
        except GIT_ERRORS as e:
            raise GitOpsError(f"Invalid branch name {name!r}: {e}") from e
        if remote_ref is None:
            raise GitOpsError(f"Remote branch {self.remote_name}/{name} not found")
        if local_ref is None:
            raise GitOpsError(f"Branch {name} not found")

        remote_id = remote_ref.target
        try:
            analysis, _ = self.repo.merge_analysis(remote_id, local_ref.name)
            if analysis & MergeAnalysis.UP_TO_DATE:
                return False
            if not analysis & MergeAnalysis.FASTFORWARD:
                raise GitOpsError(f"Pull of {name} is not a fast-forward")
            self.repo.checkout_tree(self.repo.get(remote_id), strategy=CheckoutStrategy.FORCE)
            local_ref.set_target(remote_id)
        except GIT_ERRORS as e:
            raise GitOpsError(f"Pull of {name} failed: {e}") from e

        logger.debug(f"Fast-forwarded {name} to {remote_id}")
        return True

    def head_name(self) -> str:
        try:
            return self.repo.head.name
        except GIT_ERRORS as e:
            raise GitOpsError(f"Failed to read HEAD: {e}") from e

    def head_target(self) -> pygit2.Oid:
        try:
            return self.repo.head.target
        except GIT_ERRORS as e:
            raise GitOpsError(f"Failed to read HEAD: {e}") from e

    def prune(self) -> None:
        """Remove unreachable loose objects from the working copy.

        Raises:
            GitOpsError: If git prune fails
        """
        try:
            result = subprocess.run(
                ["git", "prune"],
                cwd=self.workdir,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise GitOpsError(f"Prune failed: {e}") from e
        if result.returncode != 0:
            raise GitOpsError(f"Prune failed: {result.stderr.strip()}")
        logger.debug(f"Pruned {self.workdir}")
