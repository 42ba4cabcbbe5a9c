#!/usr/bin/env python
"""Example of running a one-off archive pass from Python."""
from __future__ import annotations

import logging
from pathlib import Path

from config.settings import ArchiveSettings, BackupSettings, Configuration
from engine.runner import run_backups
from models.repository import RepositoryDefinition

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def main() -> None:
    """Snapshot the main branch of a public repository without keeping a mirror."""
    config = Configuration(
        backup=BackupSettings(enabled=False),
        archive=ArchiveSettings(folder=Path("./archive"), format="tar.gz"),
        repositories=[
            RepositoryDefinition(
                name="git-backup",
                path="https://github.com/jordan-thirus/git-backup.git",
                archive_refs=["main"],
            ),
        ],
    )

    results = run_backups(config)

    for result in results:
        print(f"{result.name} {result.job_type.value} {result.ref or '-'}: {result.outcome.value}")
        if result.message:
            print(f"  {result.message}")


if __name__ == "__main__":
    main()
