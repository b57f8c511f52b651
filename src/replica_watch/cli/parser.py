"""
Command-line argument parser configuration.

Sets up the parser for the replica-watch tool. Defaults loaded from the
YAML config file are applied on top of the built-in defaults, and flags
given on the command line override both.
"""

import argparse
import os
from typing import Any

from replica_watch.row_level.table_pair import DEFAULT_CHUNK_SIZE
from replica_watch.watcher.watcher import DEFAULT_WAIT_INTERVAL

WATCH_MODES = ("CHUNK_SUMMARY", "ROW_DIFF", "WAIT")
ENGINES = ("postgresql", "sqlserver")
DEFAULT_PORTS = {"postgresql": 5432, "sqlserver": 1433}
DEFAULT_TIMEOUT_MINUTES = 10.0
DEFAULT_LOG_DIR = "./logs"


def watch_mode(value: str) -> str:
    mode = value.upper()
    if mode not in WATCH_MODES:
        raise argparse.ArgumentTypeError(f"watch mode must be one of [{', '.join(WATCH_MODES)}]")
    return mode


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="replica-watch",
        description="Check a replica against its primary chunk by chunk and print corrective SQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the mismatched chunk bounds of every table with a primary key
  replica-watch --database shop --primary-host db1 --replica-host db2

  # Print corrective statements for two tables
  replica-watch --database shop --watch-mode ROW_DIFF addresses orders

  # Wait up to 30 minutes for lagging tables to catch up, checking every 10s
  replica-watch --database shop --watch-mode WAIT --timeout 30 --wait-interval 10

  # SQL Server pair with credentials from Vault
  replica-watch --engine sqlserver --database shop --use-vault
        """
    )

    parser.add_argument(
        'tables',
        nargs='*',
        help='Tables to check (default: every table with a single-column primary key)'
    )
    parser.add_argument(
        '--config',
        help='YAML file with a "defaults" mapping (default: ./replica_watch.yml)'
    )

    # ========== Behaviour ==========
    parser.add_argument(
        '--watch-mode',
        type=watch_mode,
        default='CHUNK_SUMMARY',
        help='One of CHUNK_SUMMARY, ROW_DIFF, WAIT (default: CHUNK_SUMMARY)'
    )
    parser.add_argument(
        '--timeout',
        type=non_negative_float,
        default=DEFAULT_TIMEOUT_MINUTES,
        help=f'Deadline in minutes from start (default: {DEFAULT_TIMEOUT_MINUTES:g})'
    )
    parser.add_argument(
        '--wait-interval',
        type=non_negative_float,
        default=DEFAULT_WAIT_INTERVAL,
        help=f'Seconds between re-checks in WAIT mode (default: {DEFAULT_WAIT_INTERVAL})'
    )
    parser.add_argument(
        '--chunk-size',
        type=positive_int,
        default=DEFAULT_CHUNK_SIZE,
        help=f'Rows per checksummed chunk (default: {DEFAULT_CHUNK_SIZE})'
    )
    parser.add_argument(
        '--output',
        help='Write corrective statements to this file instead of stdout'
    )

    # ========== Databases ==========
    parser.add_argument(
        '--database',
        dest='database_name',
        help='Database name; also qualifies tables in generated statements'
    )
    parser.add_argument(
        '--engine',
        choices=ENGINES,
        default='postgresql',
        help='Database engine of both sides (default: postgresql)'
    )
    parser.add_argument(
        '--schema',
        help='Schema holding the tables (default: public / dbo)'
    )
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    for side, role in (("primary", "master"), ("replica", None)):
        def aliases(flag, side=side, role=role):
            return [f"--{side}-{flag}"] + ([f"--{role}-{flag}"] if role else [])

        parser.add_argument(*aliases('host'), dest=f'{side}_host', default='127.0.0.1',
                            help=f'{side.capitalize()} DB hostname (default: 127.0.0.1)')
        parser.add_argument(*aliases('port'), dest=f'{side}_port', type=int,
                            help=f'{side.capitalize()} DB port (default: engine default)')
        parser.add_argument(*aliases('user'), *aliases('username'), dest=f'{side}_user',
                            default=os.getenv('DB_USER'),
                            help=f'{side.capitalize()} DB user name (default: $DB_USER)')
        parser.add_argument(*aliases('password'), dest=f'{side}_password',
                            default=os.getenv('DB_PASS'),
                            help=f'{side.capitalize()} DB password (default: $DB_PASS)')

    # ========== Logging and telemetry ==========
    parser.add_argument(
        '-v', '--verbose',
        dest='log_level',
        action='store_const',
        const='DEBUG',
        default='INFO',
        help='Log debug output'
    )
    parser.add_argument(
        '--no-verbose',
        dest='log_level',
        action='store_const',
        const='WARNING',
        help='Log warnings and errors only'
    )
    parser.add_argument(
        '--log-dir', '--logdir',
        dest='log_dir',
        default=DEFAULT_LOG_DIR,
        help=f'Directory for log files (default: {DEFAULT_LOG_DIR})'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON lines'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port'
    )
    parser.add_argument(
        '--otlp-endpoint',
        help='Export traces to this OTLP collector (e.g., localhost:4317)'
    )

    return parser


def apply_defaults(parser: argparse.ArgumentParser, defaults: dict[str, Any]) -> dict[str, Any]:
    """
    Apply config-file defaults to the parser.

    Keys are option destinations (``watch_mode``, ``primary_host``...);
    unknown keys are ignored.

    Returns:
        The defaults that were applied
    """
    known = {action.dest for action in parser._actions}
    applied = {key: value for key, value in defaults.items() if key in known and key != 'tables'}
    if 'watch_mode' in applied:
        applied['watch_mode'] = watch_mode(str(applied['watch_mode']))
    parser.set_defaults(**applied)
    return applied
