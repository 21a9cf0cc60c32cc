#!/usr/bin/env python3
"""CLI entry point for storefront metric syncs.

Usage:
    # Sync yesterday's orders + spend for every active storefront
    python scripts/run_sync.py metrics

    # Sync a specific date, or backfill a range
    python scripts/run_sync.py metrics --date 2025-02-01
    python scripts/run_sync.py metrics --start 2025-01-01 --end 2025-01-31

    # Rebuild product sales (trailing 30 days or all-time)
    python scripts/run_sync.py products --days 30
    python scripts/run_sync.py products --all-time

    # Rebuild landing page traffic
    python scripts/run_sync.py traffic --days 7 --limit 20

    # On-demand sync of one storefront for yesterday
    python scripts/run_sync.py store gopivaid

    # Run all cadences on their cron schedule
    python scripts/run_sync.py schedule
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime

from admatrix_core.sync.orchestrator import SyncRunResult
from admatrix_core.sync.scheduler import run_scheduler
from admatrix_core.sync.service import MetricsSyncService


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _parse_date(value: str):
    return datetime.strptime(value, "%Y-%m-%d").date()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Admatrix storefront sync")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    metrics = commands.add_parser("metrics", help="Daily orders + ad spend")
    metrics.add_argument("--date", type=_parse_date, help="IST date (YYYY-MM-DD)")
    metrics.add_argument("--start", type=_parse_date, help="Backfill start date")
    metrics.add_argument("--end", type=_parse_date, help="Backfill end date")

    products = commands.add_parser("products", help="Product sales resync")
    window = products.add_mutually_exclusive_group()
    window.add_argument("--days", type=int, default=30, help="Trailing days")
    window.add_argument("--all-time", action="store_true", help="No date filter")

    traffic = commands.add_parser("traffic", help="Landing page traffic resync")
    traffic.add_argument("--days", type=int, default=7, help="Trailing days")
    traffic.add_argument("--limit", type=int, default=20, help="Max landing pages")

    store = commands.add_parser("store", help="On-demand sync for one storefront")
    store.add_argument("storefront_id")

    commands.add_parser("schedule", help="Run the cron scheduler forever")

    return parser


def _report(result: SyncRunResult) -> int:
    print(
        f"{result.operation.value} run {result.run_id}: "
        f"{result.succeeded}/{result.total} storefronts succeeded"
    )
    for outcome in result.outcomes:
        if not outcome.success:
            print(f"  FAILED {outcome.storefront_name}: {outcome.error}")
    return 0 if result.failed == 0 else 1


async def main() -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)

    service = MetricsSyncService()

    if args.command == "metrics":
        if args.start or args.end:
            if not (args.start and args.end):
                parser.error("--start and --end must be used together")
            result = await service.run_daily_metrics(args.start, args.end)
        else:
            result = await service.run_daily_metrics(args.date)
        return _report(result)

    if args.command == "products":
        days = None if args.all_time else args.days
        return _report(await service.run_product_sync(days))

    if args.command == "traffic":
        return _report(await service.run_traffic_sync(args.days, args.limit))

    if args.command == "store":
        return _report(await service.sync_storefront_now(args.storefront_id))

    await run_scheduler(service)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
