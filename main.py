"""CLI entrypoint for the CAP profile sync."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from config import Settings, configure_logging, create_store, load_settings
from profile_store import ProfileStore
from sync import build_pipeline


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Synchronize CAP researcher profiles into the local store")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("sync", help="Run a full refresh from the CAP API (default)")
    show = subparsers.add_parser("show", help="Print one stored profile as JSON")
    show.add_argument("profile_id", type=int)
    show.add_argument(
        "--part",
        choices=["profile", "presentations", "publications", "processing"],
        default="profile",
        help="Which part of the stored profile to print",
    )
    subparsers.add_parser("ids", help="List stored profile ids")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "sync"
    return args


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the requested command."""
    load_dotenv()
    settings = load_settings()
    configure_logging(settings)
    args = parse_args(argv)

    store = create_store(settings)
    try:
        return _run_command(args, settings, store)
    finally:
        store.close()


def _run_command(args: argparse.Namespace, settings: Settings, store: ProfileStore) -> int:
    if args.command == "ids":
        for profile_id in store.profile_ids():
            print(profile_id)
        return 0

    if args.command == "show":
        readers = {
            "profile": store.read,
            "presentations": store.presentations,
            "publications": store.publications,
            "processing": store.processing,
        }
        data = readers[args.part](args.profile_id)
        if data is None:
            logging.error("No %s stored for profile %s", args.part, args.profile_id)
            return 1
        print(json.dumps(data, indent=2, default=str))
        return 0

    report = build_pipeline(settings, store).run()
    logging.info(
        "Sync %s: pages_fetched=%s total_pages=%s stored=%s total=%s failed_records=%s",
        report.status.value,
        report.pages_fetched,
        report.total_pages,
        report.stored,
        report.total_count,
        report.failed_records,
    )
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
