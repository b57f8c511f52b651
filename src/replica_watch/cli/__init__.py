"""
Command-line interface for replica-watch.

Usage: replica-watch [options] [tables ...]
"""

import argparse
import logging
import sys

from replica_watch.exceptions import ReplicaWatchError
from replica_watch.utils.logging import log_file_path, setup_logging, shutdown_logging
from replica_watch.utils.metrics import MetricsPublisher
from replica_watch.utils.tracing import initialize_tracing, shutdown_tracing

from .commands import EXIT_DIVERGED, EXIT_USAGE, cmd_watch
from .config import load_defaults
from .parser import apply_defaults, create_parser

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the command line on top of the YAML defaults."""
    argv = sys.argv[1:] if argv is None else list(argv)

    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument('--config')
    known, _ = pre_parser.parse_known_args(argv)

    parser = create_parser()
    try:
        apply_defaults(parser, load_defaults(known.config))
    except argparse.ArgumentTypeError as e:
        parser.error(f"invalid config default: {e}")

    args = parser.parse_args(argv)
    if not args.database_name:
        parser.error("--database is required")
    return args


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the replica-watch CLI"""
    args = parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=log_file_path(args.log_dir) if args.log_dir else None,
        json_format=args.log_json,
    )

    try:
        if args.metrics_port:
            try:
                MetricsPublisher(port=args.metrics_port).start()
            except RuntimeError as e:
                logger.error(str(e))
                return EXIT_USAGE
        if args.otlp_endpoint:
            initialize_tracing(otlp_endpoint=args.otlp_endpoint)

        return cmd_watch(args)
    except ReplicaWatchError as e:
        logger.error(str(e))
        return EXIT_DIVERGED
    except Exception as e:
        logger.error(f"replica check failed: {e}", exc_info=True)
        return EXIT_DIVERGED
    finally:
        shutdown_tracing()
        shutdown_logging()


__all__ = [
    'main',
    'parse_args',
    'cmd_watch',
    'create_parser',
    'load_defaults',
]


if __name__ == '__main__':
    sys.exit(main())
