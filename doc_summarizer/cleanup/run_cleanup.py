#!/usr/bin/env python3
"""
Standalone runner for the retention sweeper.

Usage:
    python -m doc_summarizer.cleanup.run_cleanup

    # With a custom interval (hours):
    python -m doc_summarizer.cleanup.run_cleanup --interval 1

    # Run once (no loop):
    python -m doc_summarizer.cleanup.run_cleanup --once
"""
import argparse

from doc_summarizer.logging_config import setup_all_loggers
setup_all_loggers()

from doc_summarizer.bootstrap import build_components, close_components
from doc_summarizer.cleanup.cleanup_service import RetentionSweeper, logger
from doc_summarizer.config import CLEANUP_INTERVAL_HOURS, FILE_RETENTION_DAYS


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Retention sweeper for expired uploaded documents"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=CLEANUP_INTERVAL_HOURS,
        help=f"Sweep interval in hours (default: {CLEANUP_INTERVAL_HOURS})"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one sweep and exit (no loop)"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logger.info("=" * 60)
    logger.info("Retention Sweeper")
    logger.info("=" * 60)
    logger.info(f"  Retention: {FILE_RETENTION_DAYS} days")
    logger.info(f"  Sweep interval: {args.interval} hours")
    logger.info(f"  Mode: {'single run' if args.once else 'continuous'}")
    logger.info("=" * 60)

    components = build_components()
    try:
        sweeper = RetentionSweeper(components.registry, interval_hours=args.interval)
        if args.once:
            result = sweeper.run_cleanup()
            logger.info(f"Sweep complete: {result['purged']} of {result['scanned']} documents purged, "
                        f"{result['errors']} errors")
        else:
            sweeper.run_forever()
    finally:
        close_components(components)


if __name__ == "__main__":
    main()
