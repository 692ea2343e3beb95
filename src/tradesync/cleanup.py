"""Retention cleanup: drop stored trades outside the lookback window.

Dry run by default; pass --live to actually delete.

Usage:
    tradesync-cleanup                     # dry run, 4 months, configured networks
    tradesync-cleanup --months 6 --live   # delete trades older than ~6 months
    tradesync-cleanup --network 42161     # only Arbitrum One
"""

import argparse
import asyncio
import sys
import time
from dataclasses import dataclass

import structlog

from tradesync.backfill.locator import cutoff_timestamp, locate_block
from tradesync.config import AppSettings
from tradesync.exceptions import ProviderError, SetupError
from tradesync.logging import get_logger, setup_logging
from tradesync.main import NetworkResources, open_network

logger = get_logger(__name__)


@dataclass
class CleanupReport:
    cutoff_block: int
    head_block: int
    total: int
    outside_range: int
    deleted: int = 0


async def cleanup_network(
    resources: NetworkResources,
    months: int,
    live: bool,
    now: float | None = None,
) -> CleanupReport:
    """Count, and with live=True delete, trades outside [cutoff block, head]."""
    network = resources.network
    try:
        head = await resources.reader.latest_block_number()
    except ProviderError as e:
        raise SetupError(f"Cannot read chain head for {network.name}: {e}") from e
    if head < network.start_block:
        raise SetupError(
            f"Chain head {head} is below start block {network.start_block} for {network.name}"
        )

    cutoff_ts = cutoff_timestamp(months, now=time.time() if now is None else now)
    # A guessed cutoff would delete trades inside the window
    try:
        cutoff = await locate_block(
            resources.timestamps.get, network.start_block, head, cutoff_ts, fail_soft=False
        )
    except ProviderError as e:
        raise SetupError(f"Cannot locate cutoff block for {network.name}: {e}") from e

    report = CleanupReport(
        cutoff_block=cutoff,
        head_block=head,
        total=await resources.store.count(),
        outside_range=await resources.store.count_outside_block_range(cutoff, head),
    )
    lowest, highest = await resources.store.block_bounds()
    logger.info(
        "cleanup_analyzed",
        network=network.name,
        months=months,
        cutoff_block=cutoff,
        head_block=head,
        total=report.total,
        outside_range=report.outside_range,
        lowest_stored_block=lowest,
        highest_stored_block=highest,
    )

    if not live:
        logger.info("cleanup_dry_run", would_delete=report.outside_range)
        return report
    if report.outside_range == 0:
        logger.info("cleanup_nothing_to_delete")
        return report

    report.deleted = await resources.store.delete_outside_block_range(cutoff, head)
    logger.info(
        "cleanup_complete",
        deleted=report.deleted,
        remaining=await resources.store.count(),
    )
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradesync-cleanup",
        description="Delete stored trades that fall outside the lookback window.",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=4,
        help="lookback window in 30-day months (default: 4)",
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="actually delete; without it only counts are reported",
    )
    parser.add_argument(
        "--network",
        type=int,
        action="append",
        dest="networks",
        metavar="CHAIN_ID",
        help="chain id to clean (repeatable; default: BACKFILL_NETWORKS)",
    )
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)

    if args.months <= 0:
        logger.error("invalid_months", months=args.months)
        return 1

    failed = 0
    for chain_id in args.networks or settings.backfill.networks:
        with structlog.contextvars.bound_contextvars(chain_id=chain_id):
            try:
                async with open_network(settings, chain_id) as resources:
                    await cleanup_network(resources, args.months, args.live)
            except SetupError as e:
                failed += 1
                logger.error("cleanup_aborted", error=str(e))
    return 1 if failed else 0


def run() -> None:
    """Synchronous entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
