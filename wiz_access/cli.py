"""CLI entry point: sync, validate, scheduler."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from wiz_access import resource_types
from wiz_access.config import load_config
from wiz_access.connector import WizConnector
from wiz_access.errors import ConnectorError
from wiz_access.logging_config import configure_logging
from wiz_access.runner import LocalSyncRunner, json_lines_sink

logger = logging.getLogger("wiz_access.cli")

RESOURCE_TYPE_CHOICES = ["all"] + [rt.id for rt in resource_types.ALL]


def _selected(resource_type: str) -> list[str] | None:
    return None if resource_type == "all" else [resource_type]


def cmd_sync(args: argparse.Namespace) -> None:
    """Run one full sync and print every record as a JSON line."""
    config = load_config()
    connector = WizConnector.from_config(config.wiz)
    runner = LocalSyncRunner(connector, sink=json_lines_sink())
    results = runner.run(_selected(args.resource_type))
    logger.info("Sync results: %s", results)


def cmd_validate(args: argparse.Namespace) -> None:
    """Check that the configured credentials can reach the API."""
    config = load_config()
    connector = WizConnector.from_config(config.wiz)
    connector.validate()
    print("Wiz credentials OK")


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the APScheduler-based scheduling loop."""
    from wiz_access.scheduler import start_scheduler

    start_scheduler(load_config())


def main() -> None:
    """Main CLI entry point."""
    configure_logging(
        os.environ.get("LOG_LEVEL", "INFO"),
        os.environ.get("LOG_FORMAT", "json"),
    )

    parser = argparse.ArgumentParser(
        prog="wiz-access",
        description="Wiz identity and access data connector",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Run one-shot sync")
    sync_parser.add_argument(
        "--resource-type", "-r",
        choices=RESOURCE_TYPE_CHOICES,
        default="all",
        help="Resource type to sync (default: all)",
    )
    sync_parser.set_defaults(func=cmd_sync)

    validate_parser = subparsers.add_parser("validate", help="Validate API credentials")
    validate_parser.set_defaults(func=cmd_validate)

    sched_parser = subparsers.add_parser("scheduler", help="Start scheduled sync loop")
    sched_parser.set_defaults(func=cmd_scheduler)

    args = parser.parse_args()
    try:
        args.func(args)
    except ConnectorError as exc:
        logger.error("%s failed: %s", args.command, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
