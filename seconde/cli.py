"""Command-line interface for the discovery backend.

Usage:
    python -m seconde.cli run-job popularity
    python -m seconde.cli scheduler
    python -m seconde.cli backfill-embeddings --media-dir data/media
"""

import argparse
import sys
import time
from pathlib import Path

from seconde.database import DocumentStore, EmbeddingStore
from seconde.utils import get_config, get_logger, log_execution_time, set_log_level

logger = get_logger(__name__)

JOB_CHOICES = ["popularity", "prune_index", "swap_party_status"]


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Seconde discovery maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Recompute popularity scores once
  python -m seconde.cli run-job popularity

  # Run every maintenance job on its interval until interrupted
  python -m seconde.cli scheduler --log-level DEBUG

  # Embed every listed item that has no embedding yet
  python -m seconde.cli backfill-embeddings --media-dir data/media
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: auto-detect)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Override log level'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    run_job = commands.add_parser('run-job', help='Run one maintenance job now')
    run_job.add_argument('job', choices=JOB_CHOICES, help='Job to run')

    commands.add_parser('scheduler', help='Run all jobs on their intervals')

    backfill = commands.add_parser('backfill-embeddings', help='Generate missing item embeddings')
    backfill.add_argument(
        '--media-dir',
        type=Path,
        required=True,
        help='Directory item image references are relative to'
    )
    backfill.add_argument(
        '--force',
        action='store_true',
        help='Regenerate embeddings that already exist'
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = get_config(args.config)
        set_log_level(args.log_level or config.log_level)

        store = DocumentStore(config.database)

        if args.command == 'run-job':
            from seconde.core.jobs.scheduler import MaintenanceScheduler

            with log_execution_time(logger, f"job {args.job}"):
                report = MaintenanceScheduler(store, config).run_once(args.job)
            print(report.summary())
            return 0 if report.failed == 0 else 1

        if args.command == 'scheduler':
            from seconde.core.jobs.scheduler import MaintenanceScheduler

            scheduler = MaintenanceScheduler(store, config)
            scheduler.start()
            try:
                while True:
                    time.sleep(60)
            except KeyboardInterrupt:
                logger.info("Stopping scheduler")
            finally:
                scheduler.shutdown()
            return 0

        if args.command == 'backfill-embeddings':
            # Imported here so the other commands do not load torch
            from seconde.core.embedding_pipeline import EmbeddingPipeline, load_local_image
            from seconde.core.encoders.clip_encoder import build_encoder

            embeddings = EmbeddingStore(config.vector_store)
            encoder = build_encoder(config.encoder, config.vector_store.embedding_dim)
            pipeline = EmbeddingPipeline(
                embeddings, store, encoder, image_loader=load_local_image(args.media_dir)
            )
            stats = pipeline.backfill(force=args.force)
            print(
                f"Embedded {stats.processed_items}/{stats.total_items} items "
                f"({stats.skipped_items} skipped, {stats.failed_items} failed)"
            )
            return 0 if stats.failed_items == 0 else 1

        return 1

    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"\n✗ {args.command} failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
