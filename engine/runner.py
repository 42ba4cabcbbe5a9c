"""Backup runner driving one full pass over the configured repositories."""
from __future__ import annotations

import logging
from typing import Optional

from config.settings import Configuration
from engine.archive_store import ArchiveStore
from engine.job import JobError, RepositoryJob
from models.repository import RepositoryDefinition
from models.result import BackupResult, BackupResults, JobType, ResultType

logger = logging.getLogger(__name__)


def _init_failure(definition: RepositoryDefinition, err: Exception) -> BackupResult:
    return BackupResult(
        name=definition.name,
        ref="",
        job_type=JobType.INIT,
        outcome=ResultType.FAILED,
        message=str(err),
    )


def run_backups(config: Configuration, store: Optional[ArchiveStore] = None) -> BackupResults:
    """Back up and archive every configured repository, one at a time.

    A repository that cannot be set up or opened gets a single failed
    ``init`` result and the run moves on to the next one. Each job's working
    copy is cleaned up before the next repository starts.

    Args:
        config: Validated configuration
        store: Archive store to write snapshots to, built from
            ``config.archive`` when omitted

    Returns:
        Results for every repository, in configuration order
    """
    if store is None:
        store = ArchiveStore(config.archive)

    results = BackupResults()
    for definition in config.repositories:
        logger.info(f"Processing {definition.name}")

        try:
            job = RepositoryJob(definition, config.backup, store)
        except JobError as e:
            logger.error(f"Failed to set up {definition.name}", extra={"error": str(e)})
            results.append(_init_failure(definition, e))
            continue

        with job:
            try:
                job.open()
            except JobError as e:
                results.append(_init_failure(definition, e))
                continue

            results.append(job.backup())
            results.extend(job.archive())

    counts = results.counts()
    logger.info(
        f"Processed {len(config.repositories)} repositories: "
        f"{counts[ResultType.SUCCESS]} succeeded, {counts[ResultType.FAILED]} failed, "
        f"{counts[ResultType.SKIPPED]} skipped"
    )
    return results
