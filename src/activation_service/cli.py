"""
Admin CLI - Manage activation codes and the verification log.

Non-interactive subcommands against the configured store:

    activation-admin add CODE PRODUCT [--interval HOURS] [--notes TEXT]
    activation-admin update CODE PRODUCT [--interval H] [--status S] [--notes T]
    activation-admin delete CODE PRODUCT
    activation-admin list
    activation-admin search [--code C] [--product P] [--status S]
    activation-admin logs [--limit N] [--code C] [--result R] [--since ISO] [--until ISO]
    activation-admin stats
    activation-admin cleanup [--days N]
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import datetime, timezone

from activation_service.adapters.factory import Stores, build_stores
from activation_service.config.settings import get_settings
from activation_service.domain.exceptions import ActivationError, DuplicateCode
from activation_service.domain.models import (
    ActivationCode,
    CodeQuery,
    CodeStatus,
    LogQuery,
    VerifyOutcome,
)
from activation_service.domain.verification import VerificationService

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return number


def iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_code(record: ActivationCode) -> str:
    notes = record.notes or "-"
    return (
        f"{record.code:<20} {record.product_key:<20} {record.verify_interval_hours:>6}h "
        f"{record.status.value:<8} {record.created_at.isoformat()}  {notes}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="activation-admin",
        description="Manage activation codes and verification logs",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add an activation code")
    add.add_argument("code")
    add.add_argument("product_key")
    add.add_argument("--interval", type=positive_int, default=24, help="Verify interval in hours")
    add.add_argument("--notes", default=None)

    update = sub.add_parser("update", help="Update interval, status or notes")
    update.add_argument("code")
    update.add_argument("product_key")
    update.add_argument("--interval", type=positive_int, default=None)
    update.add_argument("--status", choices=[s.value for s in CodeStatus], default=None)
    update.add_argument("--notes", default=None)

    delete = sub.add_parser("delete", help="Delete an activation code")
    delete.add_argument("code")
    delete.add_argument("product_key")

    sub.add_parser("list", help="List all activation codes")

    search = sub.add_parser("search", help="Search activation codes")
    search.add_argument("--code", default=None, help="Substring of the code")
    search.add_argument("--product", default=None, help="Substring of the product key")
    search.add_argument("--status", choices=[s.value for s in CodeStatus], default=None)

    logs = sub.add_parser("logs", help="Show recent verification log entries")
    logs.add_argument("--limit", type=positive_int, default=50)
    logs.add_argument("--code", default=None)
    logs.add_argument("--result", choices=[r.value for r in VerifyOutcome], default=None)
    logs.add_argument("--since", type=iso_datetime, default=None, help="Inclusive lower bound")
    logs.add_argument("--until", type=iso_datetime, default=None, help="Exclusive upper bound")

    sub.add_parser("stats", help="Show today's verification statistics")

    cleanup = sub.add_parser("cleanup", help="Delete old verification log entries")
    cleanup.add_argument("--days", type=positive_int, default=None, help="Retention in days")

    return parser


def run_command(args: argparse.Namespace, stores: Stores, retention_days: int) -> int:
    """Execute one parsed command. Returns the process exit code."""
    code_store = stores.code_store
    service = VerificationService(code_store=code_store, verification_log=stores.verification_log)

    if args.command == "add":
        record = ActivationCode(
            code=args.code,
            product_key=args.product_key,
            verify_interval_hours=args.interval,
            notes=args.notes,
        )
        try:
            code_store.insert(record)
        except DuplicateCode:
            print(f"Activation code {args.code} already exists for {args.product_key}")
            return 1
        print(f"Added activation code {args.code}")
        return 0

    if args.command == "update":
        if args.interval is None and args.status is None and args.notes is None:
            print("Nothing to update: pass --interval, --status or --notes")
            return 1
        found = code_store.update(
            args.code,
            args.product_key,
            verify_interval_hours=args.interval,
            notes=args.notes,
            status=CodeStatus(args.status) if args.status else None,
        )
        if not found:
            print(f"Activation code {args.code} not found")
            return 1
        print(f"Updated activation code {args.code}")
        return 0

    if args.command == "delete":
        if not code_store.delete(args.code, args.product_key):
            print(f"Activation code {args.code} not found")
            return 1
        print(f"Deleted activation code {args.code}")
        return 0

    if args.command in ("list", "search"):
        if args.command == "list":
            records = code_store.list_all()
        else:
            records = code_store.search(
                CodeQuery(
                    code=args.code,
                    product_key=args.product,
                    status=CodeStatus(args.status) if args.status else None,
                )
            )
        for record in records:
            print(format_code(record))
        print(f"{len(records)} code(s)")
        return 0

    if args.command == "logs":
        filters = LogQuery(
            code=args.code,
            result=VerifyOutcome(args.result) if args.result else None,
            start=args.since,
            end=args.until,
        )
        entries = stores.verification_log.query(args.limit, filters)
        for entry in entries:
            print(
                f"{entry.timestamp.isoformat()}  {entry.result.value:<7} {entry.code:<20} "
                f"device={entry.device_id or '-'} ip={entry.ip_address or '-'}"
            )
        print(f"{len(entries)} entr{'y' if len(entries) == 1 else 'ies'}")
        return 0

    if args.command == "stats":
        snapshot = service.get_stats()
        print(f"active_codes:        {snapshot.active_codes}")
        print(f"today_verifications: {snapshot.today_verifications}")
        print(f"today_success:       {snapshot.today_success}")
        print(f"today_failed:        {snapshot.today_failed}")
        print(f"total_logs:          {snapshot.total_logs}")
        return 0

    if args.command == "cleanup":
        removed = service.purge_old_logs(args.days or retention_days)
        print(f"Removed {removed} log entr{'y' if removed == 1 else 'ies'}")
        return 0

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None, stores: Stores | None = None) -> int:
    """
    CLI entry point.

    Args:
        argv: Arguments without the program name; defaults to sys.argv[1:]
        stores: Pre-built stores (left open); built from settings when omitted
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    owned = stores is None
    try:
        if owned:
            stores = build_stores(settings)
        return run_command(args, stores, settings.log_retention_days)
    except ActivationError as e:
        logger.error("Command failed: %s", e)
        return 1
    finally:
        if owned and stores is not None:
            stores.close()


if __name__ == "__main__":
    sys.exit(main())
