"""Per-repository backup and archive job.

A job owns one repository's working copy for the duration of a run:

1. Acquire a working copy directory (temporary or persistent)
2. Clone or open it, then fetch origin
3. Check out the backup branch
4. Check out and snapshot each configured reference
5. Clean up: delete a temporary copy, prune a persistent one
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import List, Optional

from config.settings import BackupSettings
from engine.archive_store import ArchiveError, ArchiveStore
from engine.git_ops import GitOps, GitOpsError
from engine.paths import join_subpath, safe_name, trim_repo_path
from models.repository import ArchiveRef, RefKind, Reference, RepositoryDefinition
from models.result import BackupResult, JobType, ResultType

logger = logging.getLogger(__name__)


class JobError(Exception):
    """Raised when a job step fails for one repository or reference."""

    pass


class JobState(str, Enum):
    """Lifecycle state of a repository job."""

    CREATED = "created"
    OPENED = "opened"
    CLEANED = "cleaned"


class RepositoryJob:
    """Owns one repository's working copy for a single run."""

    def __init__(
        self,
        definition: RepositoryDefinition,
        backup: BackupSettings,
        store: ArchiveStore,
    ) -> None:
        """Acquire the working copy directory.

        The copy is temporary when backups are disabled or the repository is
        archive-only, and persistent under the backup root otherwise.

        Args:
            definition: Repository to process
            backup: Backup settings for the run
            store: Archive store snapshots are written to

        Raises:
            JobError: If the working copy directory cannot be created
        """
        self.definition = definition
        self.store = store
        self.clone_attempts = backup.clone_attempts
        self.trimmed_path = trim_repo_path(definition.path)
        self.temporary = not backup.enabled or definition.archive_only
        self.git: Optional[GitOps] = None
        self.state = JobState.CREATED

        try:
            if self.temporary:
                scratch = backup.scratch_folder
                if scratch is not None:
                    Path(scratch).mkdir(parents=True, exist_ok=True)
                self.path = Path(
                    tempfile.mkdtemp(
                        prefix=f"{safe_name(definition.name)}-",
                        dir=str(scratch) if scratch is not None else None,
                    )
                )
            else:
                self.path = join_subpath(backup.folder, self.trimmed_path)
                self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise JobError(f"Failed to create working copy directory: {e}") from e

        logger.debug(
            f"Working copy for {definition.name} at {self.path}",
            extra={"temporary": self.temporary},
        )

    @property
    def name(self) -> str:
        return self.definition.name

    def __enter__(self) -> RepositoryJob:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clean()

    def open(self) -> GitOps:
        """Clone or open the working copy and fetch origin.

        A failed fetch is logged and otherwise ignored; the job carries on with
        whatever history is already present.

        Raises:
            JobError: If the clone or open fails
        """
        self._require_state(JobState.CREATED)
        try:
            if GitOps.exists(self.path):
                git = GitOps.open(self.path)
            else:
                git = GitOps.clone(self.definition.path, self.path, self.clone_attempts)
        except GitOpsError as e:
            logger.error(f"Failed to open {self.name}", extra={"error": str(e)})
            raise JobError(str(e)) from e

        self.git = git
        self.state = JobState.OPENED

        try:
            git.fetch()
        except GitOpsError as e:
            logger.warning(f"Fetch failed for {self.name}, using local refs", extra={"error": str(e)})

        return git

    def resolve_reference(self, archive_ref: ArchiveRef) -> Reference:
        """Turn a configured reference into a branch or tag reference."""
        git = self._require_git()
        if archive_ref.kind is not None:
            return archive_ref.as_reference(archive_ref.kind)
        kind = RefKind.TAG if git.has_tag(archive_ref.name) else RefKind.BRANCH
        return archive_ref.as_reference(kind)

    def checkout(self, reference: Reference) -> str:
        """Check out a branch or tag.

        Tags are checked out through a local ``<tag>-branch`` branch so HEAD is
        never detached.

        Returns:
            The name HEAD points at after checkout

        Raises:
            JobError: If the reference cannot be resolved or checked out, or
                HEAD does not match it afterwards
        """
        git = self._require_git()
        try:
            if reference.kind is RefKind.TAG:
                expected = self._checkout_tag(git, reference.name)
            else:
                expected = self._checkout_branch(git, reference.name)
            head = git.head_name()
        except GitOpsError as e:
            logger.error(f"Checkout of {reference} failed", extra={"error": str(e)})
            raise JobError(str(e)) from e

        if head != expected:
            raise JobError(f"HEAD is {head} after checkout, expected {expected}")
        return head

    def _checkout_tag(self, git: GitOps, tag: str) -> str:
        if not git.has_tag(tag):
            try:
                git.fetch([f"refs/tags/{tag}:refs/tags/{tag}"])
            except GitOpsError as e:
                logger.debug(f"Fetch of tag {tag} failed: {e}")
        commit = git.resolve_commit(tag)

        branch_name = f"{tag}-branch"
        logger.debug(f"Checking out tag {tag} to branch {branch_name}")
        git.ensure_branch(branch_name, commit)
        git.checkout_branch(branch_name)
        if git.head_target() != commit.id:
            raise GitOpsError(f"HEAD does not point at tag {tag}")
        return f"refs/heads/{branch_name}"

    def _checkout_branch(self, git: GitOps, branch: str) -> str:
        logger.debug(f"Checking out branch {branch}")
        try:
            git.checkout_branch(branch)
        except GitOpsError:
            git.fetch([f"refs/heads/{branch}:refs/heads/{branch}"])
            git.checkout_branch(branch)

        git.pull(branch)

        local = git.local_branch(branch)
        if local is None or git.head_target() != local.target:
            raise GitOpsError(f"Branch {branch} moved during checkout")
        return f"refs/heads/{branch}"

    def backup(self) -> BackupResult:
        """Check out the configured branch in a persistent working copy.

        Temporary working copies do not persist anything, so the backup is
        skipped for them.
        """
        if self.temporary:
            return self._result(ResultType.SKIPPED, JobType.BACKUP, "")

        branch = self.definition.branch
        try:
            if branch is None:
                branch = self._require_git().default_branch()
            self.checkout(Reference.branch(branch))
        except (JobError, GitOpsError) as e:
            logger.error(f"Failed to back up {self.name}", extra={"error": str(e)})
            return self._error_result(e, JobType.BACKUP, branch or "")

        logger.info(f"Backed up {self.name}:{branch}")
        return self._result(ResultType.SUCCESS, JobType.BACKUP, branch)

    def archive(self) -> List[BackupResult]:
        """Snapshot every configured reference.

        Each reference gets its own result; a failure does not stop the
        remaining references. Existing tag snapshots are kept since tags do
        not move, branch snapshots are always rewritten.
        """
        results = []
        for archive_ref in self.definition.archive_refs:
            results.append(self._archive_ref(archive_ref))
        return results

    def _archive_ref(self, archive_ref: ArchiveRef) -> BackupResult:
        name = archive_ref.name
        logger.debug(f"Attempting to archive {name}")

        if not self.store.enabled:
            return self._result(ResultType.SKIPPED, JobType.ARCHIVE, name, "archiving disabled")

        try:
            reference = self.resolve_reference(archive_ref)
            if reference.is_tag and self.store.exists(self.trimmed_path, name):
                logger.info(f"Skipping archive of existing ref {self.trimmed_path}:{name}")
                return self._result(ResultType.SKIPPED, JobType.ARCHIVE, name, "archive exists")

            self.checkout(reference)
            self.store.write(self.trimmed_path, name, self.path)
        except (JobError, GitOpsError, ArchiveError) as e:
            logger.error(
                f"Failed to archive {self.trimmed_path}:{name}",
                extra={"error": str(e)},
            )
            return self._error_result(e, JobType.ARCHIVE, name)

        return self._result(ResultType.SUCCESS, JobType.ARCHIVE, name)

    def clean(self) -> None:
        """Delete a temporary working copy or prune a persistent one.

        Safe to call more than once; only the first call does anything.
        Failures are logged, not raised.
        """
        if self.state is JobState.CLEANED:
            return
        self.state = JobState.CLEANED

        if self.temporary:
            if not self.path.exists():
                return
            try:
                shutil.rmtree(self.path)
                logger.debug(f"Removed temporary working copy {self.path}")
            except OSError as e:
                logger.warning(f"Failed to remove {self.path}: {e}")
        elif self.git is not None:
            try:
                self.git.prune()
            except GitOpsError as e:
                logger.warning(f"Failed to prune {self.path}: {e}")

    def _require_state(self, state: JobState) -> None:
        if self.state is not state:
            raise RuntimeError(f"Job for {self.name} is {self.state.value}, expected {state.value}")

    def _require_git(self) -> GitOps:
        self._require_state(JobState.OPENED)
        if self.git is None:
            raise RuntimeError(f"Repository for {self.name} is not open")
        return self.git

    def _result(
        self, outcome: ResultType, job_type: JobType, ref: str, message: str = ""
    ) -> BackupResult:
        return BackupResult(
            name=self.name, ref=ref, job_type=job_type, outcome=outcome, message=message
        )

    def _error_result(self, err: Exception, job_type: JobType, ref: str) -> BackupResult:
        return self._result(ResultType.FAILED, job_type, ref, str(err))
