#!/usr/bin/env python3
"""
Release Playlists - command line runner

Usage:
    release-playlists run              # Scheduled sync (what cron calls)
    release-playlists preview          # Show what a run would add, change nothing
    release-playlists status           # Show registered playlists and progress

Cron (every 15 minutes):
    */15 * * * * cd /path/to/release-playlists && .venv/bin/release-playlists run
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from . import config
from .db import Store
from .env import EnvStore
from .errors import ReleasePlaylistsError
from .http import HttpClient
from .logging_utils import setup_logging
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-playlists",
        description="Sync the monthly release wiki into Spotify playlists.",
    )
    parser.add_argument("--env-file", default=config.ENV_PATH, help="Path to the .env config file")
    parser.add_argument("--db", default=config.DB_PATH, help="Path to the SQLite database")
    parser.add_argument("--log-dir", default=config.LOG_DIR, help="Directory for log files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")

    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("run", "Run one scheduled sync"),
        ("preview", "List unseen releases without changing anything"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--now",
            type=datetime.fromisoformat,
            default=None,
            help="Pretend the run starts at this local time (YYYY-MM-DDTHH:MM)",
        )

    subparsers.add_parser("status", help="Show registered playlists and progress")
    return parser


def print_run_summary(summary: dict) -> None:
    if summary["cleared_current"]:
        print("Cleared the Current playlist for the new month")
    for scope in summary["scopes"]:
        print(
            f"  {scope['month']} {scope['year']}: {scope['releases']} releases, "
            f"{scope['added']} added, {scope['skipped']} already processed"
        )
        for url in scope["malformed"]:
            print(f"    [!] Malformed release URL: {url}")


def print_preview(preview: dict) -> None:
    if preview["would_clear_current"]:
        print("Would clear the Current playlist")
    for scope in preview["scopes"]:
        target = "month + year + Current" if scope["include_current"] else "month + year"
        print(f"  {scope['month']} {scope['year']} ({target}): {len(scope['pending'])} pending")
        for url in scope["pending"]:
            print(f"    - {url}")


def print_status(status: dict) -> None:
    print(f"Processed releases: {status['processed_releases']:,}")
    print(f"Playlists: {len(status['playlists'])}")
    for playlist in status["playlists"]:
        print(f"  - {playlist['name']} [{playlist['label']}/{playlist['year']}] {playlist['spotify_id']}")


def main(argv: Optional[list] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    command = args.command or "run"

    setup_logging(args.log_dir, "DEBUG" if args.verbose else "INFO")

    env = EnvStore(args.env_file)
    with Store(args.db) as store:
        store.init_db()

        try:
            if command == "status":
                print_status(Orchestrator(env, store, HttpClient()).status())
                return 0

            orchestrator = Orchestrator(env, store)
            now = getattr(args, "now", None) or datetime.now()

            if command == "preview":
                print_preview(orchestrator.preview(now))
                return 0

            summary = orchestrator.run_once(now)
        except ReleasePlaylistsError:
            logger.exception("Run aborted")
            return 1

    print_run_summary(summary)
    return 1 if summary["malformed"] else 0


if __name__ == "__main__":
    sys.exit(main())
