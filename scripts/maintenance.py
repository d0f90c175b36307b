"""Operational commands for the DynamoDB-backed entity stores.

The tool supports two commands:

1. ``init`` creates every table and secondary index the stores rely on, or
   adds the indexes missing from existing tables.
2. ``prune`` deletes tokens that can no longer be used and were created
   before a threshold, given either as an age in days or an ISO timestamp.

Example usages::

    # Provision tables before the first deployment (or after an upgrade).
    python -m scripts.maintenance init

    # Run daily from cron/systemd to drop tokens older than two weeks.
    python -m scripts.maintenance prune --days 14
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.config import AppSettings
from oidc_dynamodb.core.errors import SchemaSetupError
from oidc_dynamodb.core.logging import configure_logging
from oidc_dynamodb.dependencies import initialize_stores
from oidc_dynamodb.models.base import to_utc
from oidc_dynamodb.stores import TokenStore

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_SETUP_ERROR = 3
EXIT_RUNTIME_ERROR = 5

logger = logging.getLogger("scripts.maintenance")


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are read as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value!r}") from exc
    return to_utc(parsed)


def _positive_days(value: str) -> int:
    days = int(value)
    if days < 0:
        raise argparse.ArgumentTypeError("--days must not be negative.")
    return days


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision and maintain the DynamoDB entity stores.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create missing tables and secondary indexes.")

    prune_parser = subparsers.add_parser(
        "prune",
        help="Delete unusable tokens created before a threshold.",
    )
    threshold = prune_parser.add_mutually_exclusive_group(required=True)
    threshold.add_argument(
        "--days",
        type=_positive_days,
        help="Prune tokens created more than this many days ago.",
    )
    threshold.add_argument(
        "--before",
        type=_parse_timestamp,
        help="Prune tokens created before this ISO 8601 timestamp.",
    )
    return parser


def _threshold(args: argparse.Namespace, now: datetime) -> datetime:
    if args.before is not None:
        return args.before
    return now - timedelta(days=args.days)


async def _run(args: argparse.Namespace, client: DynamoDBClient) -> int:
    if args.command == "init":
        await initialize_stores(client)
        print("DynamoDB tables are ready.")
        return EXIT_OK

    threshold = _threshold(args, datetime.now(timezone.utc))
    deleted = await TokenStore(client).prune(threshold)
    print(f"Pruned {deleted} token(s) created before {threshold.isoformat()}.")
    return EXIT_OK


def main(argv: list[str] | None = None, client: Optional[DynamoDBClient] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    configure_logging(settings.log_level)
    client = client or DynamoDBClient(settings.dynamodb)

    try:
        return asyncio.run(_run(args, client))
    except SchemaSetupError as exc:
        print(f"Table setup failed: {exc}", file=sys.stderr)
        return EXIT_SETUP_ERROR
    except (BotoCoreError, ClientError) as exc:
        logger.exception("DynamoDB request failed")
        print(f"DynamoDB request failed: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
