"""
Replication watcher: orchestrates table pairs across both sides.

Discovers (or is given) the tables to check, diffs every pair in
sequence, turns row-level divergence into corrective statements and, in
watch mode, keeps re-checking the divergent tables until they converge or
the deadline passes.
"""

import logging
import sys
import time
from enum import Enum
from typing import Any, Callable, Iterable, TextIO

from replica_watch.compare.comparison import ChunkComparison, RowComparison
from replica_watch.compare.quoting import is_valid_identifier
from replica_watch.row_level.repair import annotate_for_replica
from replica_watch.row_level.table_pair import DEFAULT_CHUNK_SIZE, TablePair
from replica_watch.utils.logging import ContextLogger
from replica_watch.utils.metrics import STATEMENTS_GENERATED, WATCH_ITERATIONS
from replica_watch.utils.tracing import trace_operation

from .deadline import CancellationToken

DEFAULT_WAIT_INTERVAL = 5


class WatchState(Enum):
    """States of the watch loop."""

    SCANNING = "scanning"
    WAITING = "waiting"
    RESCAN = "rescan"
    CONVERGED = "converged"
    TIMEOUT = "timeout"


class ReplicationWatcher:
    """
    Top-level orchestrator over a master and a replica data access port.

    Tables, chunks and rows are processed strictly one after the other. The
    master is only ever read; every generated statement targets the replica.
    """

    DEFAULT_WAIT_INTERVAL = DEFAULT_WAIT_INTERVAL

    def __init__(
        self,
        master: Any,
        replica: Any,
        table_names: Iterable[str] = (),
        database_name: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the watcher

        Args:
            master: Data access port for the master side
            replica: Data access port for the replica side
            table_names: Tables to check; empty means call search() later
            database_name: Qualifies table names in generated statements
            chunk_size: Rows per master chunk for every pair
            logger: Logger to use (default: module logger)
        """
        self.master = master
        self.replica = replica
        self.database_name = database_name
        self.chunk_size = chunk_size
        self.logger = logger or logging.getLogger(__name__)
        self.table_pairs: list[TablePair] = []
        self.failed_rows: list[tuple[RowComparison, Exception]] = []
        self.state: WatchState | None = None

        if table_names:
            self.reset(table_names)

    def _pair(self, table_name: str) -> TablePair:
        return TablePair(
            table_name,
            self.master,
            self.replica,
            chunk_size=self.chunk_size,
            database_name=self.database_name,
            logger=ContextLogger(self.logger, table_name=table_name),
        )

    def _pair_for(self, table_name: str) -> TablePair:
        for pair in self.table_pairs:
            if pair.table_name == table_name:
                return pair
        return self._pair(table_name)

    def search(self) -> list[TablePair]:
        """Replace the table set with every checkable table on the master."""
        tables = self.master.search()
        self.logger.info(f"search found {len(tables)} tables on master")
        return self.reset(tables)

    def reset(self, table_names: Iterable[str]) -> list[TablePair]:
        """
        Replace the table set with one pair per name.

        Duplicates keep their first position; invalid names are skipped.
        """
        pairs = []
        seen = set()
        for name in table_names:
            if not is_valid_identifier(name):
                self.logger.warning(f"skipping invalid table name {name!r}")
                continue
            if name in seen:
                continue
            seen.add(name)
            pairs.append(self._pair(name))

        self.table_pairs = pairs
        return pairs

    def delta(self) -> list[RowComparison]:
        """Row-level divergence of every pair, in table order."""
        row_diff = []
        for pair in self.table_pairs:
            row_diff.extend(pair.delta().values())
        return row_diff

    # Dispatch by presence pattern

    def generate_delete(self, rc: RowComparison) -> list[str]:
        """Stray replica row: delete it."""
        if rc.has_master or not rc.has_replica:
            return []
        return list(
            self.replica.generate_delete(rc.replica.table_name or rc.table_name, rc.replica.row_id,
                                         database_name=self.database_name)
            or []
        )

    def generate_insert(self, rc: RowComparison) -> list[str]:
        """Row missing on the replica: insert it from the master's values."""
        if not rc.has_master or rc.has_replica:
            return []
        return list(
            self.master.generate_insert(rc.master.table_name or rc.table_name, rc.master.row_id,
                                        database_name=self.database_name)
            or []
        )

    def generate_update(self, rc: RowComparison) -> list[str]:
        """Diverged row: update the differing columns."""
        if not (rc.has_master and rc.has_replica):
            return []
        statement = self._pair_for(rc.table_name).generate_update(rc.row_id)
        return [statement] if statement else []

    # Output

    def reconcile_chunks(self, out: TextIO | None = None) -> list[ChunkComparison]:
        """Print one line per mismatched chunk bound of every pair."""
        out = out or sys.stdout
        diff = []
        for pair in self.table_pairs:
            for cc in pair.compare_chunks():
                print(
                    f"diff found on table {cc.table_name} where "
                    f"{cc.table_name}.{cc.primary_key} between '{cc.min_row}' and '{cc.max_row}'",
                    file=out,
                )
                diff.append(cc)
        return diff

    def reconcile(self, row_diff: list[RowComparison] | None = None, out: TextIO | None = None) -> list[str]:
        """
        Print corrective statement blocks for the replica.

        Args:
            row_diff: Divergence to reconcile (default: a fresh delta())
            out: Stream to print to (default: stdout)

        Returns:
            The printed blocks. Rows whose statements could not be generated
            are collected in ``failed_rows`` instead.
        """
        out = out or sys.stdout
        if row_diff is None:
            row_diff = self.delta()

        generators = (
            ("delete", self.generate_delete),
            ("insert", self.generate_insert),
            ("update", self.generate_update),
        )

        blocks = []
        self.failed_rows = []
        with trace_operation("reconcile", rows=len(row_diff)) as span:
            for rc in row_diff:
                for statement_type, generate in generators:
                    try:
                        statements = generate(rc)
                    except Exception as e:
                        self.logger.error(
                            f"could not generate {statement_type} for {rc.table_name} "
                            f"row {rc.row_id!r}: {e}",
                            exc_info=True,
                        )
                        self.failed_rows.append((rc, e))
                        continue

                    block = annotate_for_replica(statements)
                    if not block:
                        continue

                    STATEMENTS_GENERATED.labels(statement_type=statement_type).inc(len(statements))
                    print(block, file=out)
                    blocks.append(block)

            span.set_attribute("blocks", len(blocks))
            span.set_attribute("failed_rows", len(self.failed_rows))

        if self.failed_rows:
            self.logger.warning(f"{len(self.failed_rows)} rows could not be reconciled")
        return blocks

    def watch(
        self,
        token: CancellationToken | None = None,
        wait_interval: float = DEFAULT_WAIT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        out: TextIO | None = None,
    ) -> list[str]:
        """
        Re-check divergent tables until they converge or the token is cancelled.

        The token is checked between iterations, never mid-scan. Whatever
        the outcome, the last computed delta is reconciled.

        Returns:
            The printed statement blocks
        """
        token = token or CancellationToken()
        out = out or sys.stdout

        with token.cooperative():
            self.state = WatchState.SCANNING
            row_diff = self.delta()

            while row_diff and not token.cancelled:
                self.state = WatchState.WAITING
                names = list(dict.fromkeys(rc.table_name for rc in row_diff))
                WATCH_ITERATIONS.inc()
                print(
                    f"{len(row_diff)} rows differ in {', '.join(names)}; "
                    f"checking again in {wait_interval}s",
                    file=out,
                )
                sleep(wait_interval)
                if token.cancelled:
                    break

                self.state = WatchState.RESCAN
                self.reset(names)

                self.state = WatchState.SCANNING
                row_diff = self.delta()

            if row_diff:
                self.state = WatchState.TIMEOUT
                self.logger.warning(
                    f"deadline reached with {len(row_diff)} rows still differing, reconciling"
                )
            else:
                self.state = WatchState.CONVERGED
                self.logger.info("replica converged")

            return self.reconcile(row_diff=row_diff, out=out)
