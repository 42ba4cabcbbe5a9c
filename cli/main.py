#!/usr/bin/env python3
"""Command-line entry point for backing up and archiving git repositories."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tabulate import tabulate

from config.settings import ConfigError, LOG_LEVELS, load_config
from engine.runner import run_backups
from models.result import BackupResults

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging for a command-line run."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def render_results(results: BackupResults) -> str:
    """Render results as a table."""
    headers = ["Repository", "Ref", "Job", "Outcome", "Message"]
    rows = [
        [r.name, r.ref, r.job_type.value, r.outcome.value, r.message]
        for r in results
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-backup",
        description="Backup and archive git repositories",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file (default is $HOME/.git-backup.yaml or ./.git-backup.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Run a one-time backup and archive")
    run_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON instead of a table",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        0 when every action succeeded or was skipped, 1 when any failed, 2 on
        configuration errors
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level or config.log_level)
    logger.debug("Run called")

    results = run_backups(config)

    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    else:
        print(render_results(results))

    logger.info("Run complete")
    return 1 if results.has_failures else 0


if __name__ == "__main__":
    sys.exit(main())
