"""
CLI command implementation.

Connects to both sides, builds a ReplicationWatcher and runs the selected
watch mode under the wall-clock deadline:
- CHUNK_SUMMARY: print the mismatched chunk bounds and exit
- ROW_DIFF: print corrective statements once and exit
- WAIT: re-check divergent tables until they converge or time runs out
"""

import argparse
import io
import logging
import os
import sys
from contextlib import ExitStack
from datetime import datetime
from typing import Callable, TextIO

from replica_watch.adapters import ENGINES
from replica_watch.row_level import generate_repair_script
from replica_watch.utils.logging import shutdown_logging
from replica_watch.watcher import CancellationToken, DeadlineTimer, ReplicationWatcher

from .credentials import get_connection_configs

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIVERGED = 1
EXIT_USAGE = 2


def fatal_timeout(deadline: datetime) -> Callable[[], None]:
    """Handler for a deadline reached outside the watch loop: log, flush, exit 1."""

    def abort() -> None:
        logger.error(f"deadline '{deadline.isoformat()}' reached, timing out")
        print(f"Deadline '{deadline.isoformat()}' reached, timing out!", file=sys.stderr)
        shutdown_logging()
        os._exit(EXIT_DIVERGED)

    return abort


def open_connections(args: argparse.Namespace):
    """Open read-only adapters for the primary and the replica."""
    primary_config, replica_config = get_connection_configs(args)
    connection_class = ENGINES[args.engine]

    logger.info(
        f"Connecting to {args.engine} primary {primary_config['host']}:{primary_config['port']} "
        f"and replica {replica_config['host']}:{replica_config['port']}"
    )
    primary = connection_class.connect(schema=args.schema, **primary_config)
    try:
        replica = connection_class.connect(schema=args.schema, **replica_config)
    except Exception:
        primary.close()
        raise
    return primary, replica


def run_watch_mode(
    watcher: ReplicationWatcher,
    mode: str,
    token: CancellationToken,
    wait_interval: float,
    out: TextIO,
    script_path: str | None = None,
    timer: DeadlineTimer | None = None,
) -> int:
    """
    Run one watch mode against a prepared watcher.

    When ``script_path`` is given the statement blocks are also written
    there as a repair script. ``timer`` is stopped as soon as the checks are
    done; the deadline does not cover writing the script.

    Returns:
        EXIT_OK when nothing diverged, EXIT_DIVERGED otherwise
    """
    if mode == "WAIT":
        blocks = watcher.watch(token=token, wait_interval=wait_interval, out=out)
    elif mode == "ROW_DIFF":
        blocks = watcher.reconcile(out=out)
    else:
        blocks = None
        chunks = watcher.reconcile_chunks(out=out)

    if timer is not None:
        timer.stop()
        logger.info(f"checks finished with {timer.remaining()} left before the deadline")

    if blocks is None:
        logger.info(f"{len(chunks)} mismatched chunks found")
        return EXIT_DIVERGED if chunks else EXIT_OK

    if script_path:
        with open(script_path, "w", encoding="utf-8") as script:
            script.write(generate_repair_script(blocks, database_name=watcher.database_name))
        logger.info(f"Repair script written to {script_path}")

    logger.info(f"{len(blocks)} statement blocks generated, {len(watcher.failed_rows)} rows failed")
    return EXIT_DIVERGED if blocks or watcher.failed_rows else EXIT_OK


def cmd_watch(args: argparse.Namespace, connect=open_connections) -> int:
    """
    Run the replica check described by the parsed arguments.

    Args:
        args: Parsed command-line arguments
        connect: Callable(args) returning (primary, replica) adapters

    Returns:
        Process exit status
    """
    token = CancellationToken()
    timer = DeadlineTimer.after(args.timeout, token)
    timer.on_expire = fatal_timeout(timer.deadline)
    logger.info(f"setting timeout for '{timer.deadline.isoformat()}'")

    with ExitStack() as stack:
        stack.enter_context(timer)

        primary, replica = connect(args)
        stack.callback(replica.close)
        stack.callback(primary.close)

        watcher = ReplicationWatcher(
            primary,
            replica,
            table_names=args.tables,
            database_name=args.database_name,
            chunk_size=args.chunk_size,
        )
        if not watcher.table_pairs:
            if args.tables:
                logger.error(f"no valid table names in {args.tables}")
                return EXIT_USAGE
            watcher.search()

        out, script_path = sys.stdout, None
        if args.output and args.watch_mode == "CHUNK_SUMMARY":
            out = stack.enter_context(open(args.output, "w", encoding="utf-8"))
            logger.info(f"Writing output to {args.output}")
        elif args.output:
            # statements go to the script file only
            out, script_path = io.StringIO(), args.output

        return run_watch_mode(
            watcher,
            args.watch_mode,
            token,
            args.wait_interval,
            out,
            script_path=script_path,
            timer=timer,
        )
