"""
video-ingest Command Line
=========================

Entry point for one ingestion + training run.

Usage:
    video-ingest --config config.yaml
    video-ingest --manifest archive/slovo/annotations.csv --video-root archive/slovo
    video-ingest --dry-run --batch-size 64

Exit codes:
    0 - run completed (individual videos may have failed)
    1 - run aborted (manifest unreadable, invariant violated, training failed)
    2 - invalid configuration
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import yaml
from pydantic import ValidationError

from video_ingest.config import Settings, load_config, setup_logging
from video_ingest.errors import IngestError
from video_ingest.pipeline import IngestionPipeline, RunSummary
from video_ingest.training.torch_trainer import TorchTrainer


logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_BAD_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="video-ingest",
        description="Ingest a labeled video manifest into training batches",
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--manifest", default=None, help="Manifest file (overrides config)")
    parser.add_argument("--video-root", default=None, help="Dataset base directory")
    parser.add_argument("--concurrency", type=int, default=None, help="Videos processed at once")
    parser.add_argument("--batch-size", type=int, default=None, help="Pairs per batch")
    parser.add_argument("--epochs", type=int, default=None, help="Epochs per batch")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Ingest and assemble batches without training",
    )
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command line values applied on top."""
    data = settings.model_dump()
    if args.manifest:
        data["manifest"]["path"] = args.manifest
    if args.video_root:
        data["videos"]["root_dir"] = args.video_root
    if args.concurrency is not None:
        data["ingestion"]["concurrency"] = args.concurrency
    if args.batch_size is not None:
        data["training"]["batch_size"] = args.batch_size
    if args.epochs is not None:
        data["training"]["epochs"] = args.epochs
    return Settings.model_validate(data)


def log_summary(summary: RunSummary) -> None:
    logger.info("=" * 60)
    logger.info("Run Summary")
    logger.info("=" * 60)
    logger.info(f"Manifest rows: {summary.rows_read} read, {summary.rows_skipped} skipped")
    logger.info(f"Videos: {summary.items_succeeded} ok, {summary.items_failed} failed")
    for item in summary.failed_items:
        logger.info(f"  failed {item.identifier}: {item.error}")
    logger.info(f"Pairs: {summary.total_pairs}, labels: {len(summary.vocabulary)}")
    logger.info(f"Batches: {summary.batch_count}")
    for result in summary.batches:
        final = result.report.final if result.report else None
        if final is not None:
            logger.info(
                f"  batch {result.batch_index} ({result.size}): "
                f"acc={final.accuracy:.4f} loss={final.loss:.4f}"
            )
    logger.info("=" * 60)


async def run(settings: Settings, dry_run: bool = False) -> RunSummary:
    trainer = None
    if not dry_run:
        trainer = TorchTrainer(device=settings.training.device)

    pipeline = IngestionPipeline(settings, trainer=trainer)
    return await pipeline.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_cli_overrides(load_config(args.config), args)
    except (ValidationError, yaml.YAMLError, FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_BAD_CONFIG

    setup_logging(settings)

    try:
        summary = asyncio.run(run(settings, dry_run=args.dry_run))
    except IngestError as e:
        logger.error(f"Run aborted: {e}")
        return EXIT_RUN_FAILED
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_RUN_FAILED

    log_summary(summary)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
