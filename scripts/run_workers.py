#!/usr/bin/env python3
"""Run the sync retry sweep.

Usage:
    # One pass over PENDING / RETRY sync rows
    python scripts/run_workers.py --once --card-loader myboard.cards:load_card

    # Keep sweeping until Ctrl+C, every 10 seconds
    python scripts/run_workers.py --loop --interval 10

    # Bounded loop
    python scripts/run_workers.py --loop --max-iterations 5

Environment variables:
    DATABASE_URL: Sync status database
    EXTERNAL_PROVIDER_URL: Task/calendar gateway base URL
    CARD_LOADER: package.module:callable returning a card for an id
    WORKER_BATCH_SIZE: Sync rows per pass (default: 50)
    WORKER_POLL_INTERVAL_SECONDS: Pause between passes (default: 30)
"""

import argparse
import logging
import sys
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from boardsync.config import get_settings
from boardsync.pipeline import build_sync_pipeline
from boardsync.workers import (
    RunnerResult,
    WorkerRunner,
    configure_worker_logging,
    load_card_loader,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Retry card syncs left in PENDING or RETRY",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Sweep once and exit")
    mode.add_argument("--loop", action="store_true", help="Sweep until interrupted")

    parser.add_argument("--interval", type=int, help="Seconds between passes (--loop)")
    parser.add_argument("--max-iterations", type=int, help="Stop after N passes (--loop)")
    parser.add_argument("--batch-size", type=int, help="Sync rows per pass")
    parser.add_argument(
        "--card-loader",
        help="package.module:callable used to reload cards (default: CARD_LOADER)",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="DEBUG logging")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Warnings only")
    return parser


def print_summary(result: RunnerResult) -> None:
    print("\n--- Retry sweep ---")
    print(f"Processed: {result.total_processed}  Failed: {result.total_failed}")
    for name, worker_result in result.worker_results.items():
        print(
            f"{name}: {worker_result.status.value} "
            f"(processed={worker_result.processed_count}, "
            f"failed={worker_result.failed_count}, "
            f"skipped={worker_result.skipped_count})"
        )
    for error in result.errors:
        print(f"  ! {error}")


def main() -> int:
    args = build_parser().parse_args()

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    configure_worker_logging(level)
    logger = logging.getLogger("run_workers")

    settings = get_settings()
    try:
        card_loader = load_card_loader(args.card_loader or settings.CARD_LOADER)
        pipeline = build_sync_pipeline(settings)
    except (ValueError, ImportError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    runner = WorkerRunner([pipeline.retry_worker(card_loader, batch_size=args.batch_size)])
    try:
        if args.once:
            result = runner.run_once()
            print_summary(result)
            return 1 if result.errors else 0

        runner.run_loop(interval_seconds=args.interval, max_iterations=args.max_iterations)
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Retry sweep failed: {e}", exc_info=True)
        return 1
    finally:
        pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
