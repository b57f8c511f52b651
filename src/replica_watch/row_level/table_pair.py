"""
Multi-resolution diff of one logical table across master and replica.

The master is scanned in chunks of ``chunk_size`` rows; the replica is
checksummed over exactly the same bounds. Only chunks whose checksums
differ are inspected row by row, and only rows whose checksums differ are
fetched column by column when an UPDATE is generated.
"""

import logging
from typing import Any

from opentelemetry import trace

from replica_watch.compare.comparison import ChunkComparison, RowComparison
from replica_watch.compare.checksums import ChunkChecksum
from replica_watch.exceptions import RowNotFoundError, SchemaMismatchError
from replica_watch.utils.logging import ContextLogger
from replica_watch.utils.metrics import (
    CHUNK_MISMATCHES,
    CHUNKS_SCANNED,
    ROW_DISCREPANCIES,
    TABLE_DIFF_SECONDS,
)
from replica_watch.utils.tracing import trace_operation

from .repair import build_update_sql
from .table import Table

DEFAULT_CHUNK_SIZE = 1024


class TablePair:
    """Owns the master and replica Table for one table name."""

    def __init__(
        self,
        table_name: str,
        master_connection: Any,
        replica_connection: Any,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        database_name: str | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        """
        Initialize a table pair.

        Args:
            table_name: Table to compare
            master_connection: Data access port for the master side
            replica_connection: Data access port for the replica side
            chunk_size: Maximum rows per master chunk (default: 1024)
            database_name: Qualifies table names in generated statements
            logger: Logger to use (default: module logger tagged with the table)
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.table_name = table_name
        self.chunk_size = chunk_size
        self.database_name = database_name
        self.logger = logger or ContextLogger(logging.getLogger(__name__), table_name=table_name)
        self.master = Table(table_name, master_connection, logger=self.logger)
        self.replica = Table(table_name, replica_connection, logger=self.logger)

    def master_chunks(self) -> list[ChunkChecksum]:
        """
        Scan the master from its lowest row id in chunks of ``chunk_size``.

        The first request is inclusive of the minimum row id; each following
        request starts strictly after the previous chunk's max. The scan ends
        on the first chunk holding fewer than ``chunk_size`` rows.

        Returns:
            Non-empty chunks in ascending key order
        """
        chunks = []
        row_id = self.master.min_row_id()
        if row_id is None:
            self.logger.debug(f"{self.table_name} is empty on master, nothing to chunk")
            return chunks

        exclusive = False
        while True:
            batch = [
                chunk
                for chunk in self.master.chunk_checksum(
                    min=row_id, limit=self.chunk_size, exclusive_min=exclusive
                )
                if not chunk.empty
            ]
            if not batch:
                break

            chunks.extend(batch)
            CHUNKS_SCANNED.labels(table_name=self.table_name).inc(len(batch))

            last = batch[-1]
            if last.count < self.chunk_size:
                break
            row_id = last.max
            exclusive = True

        self.logger.debug(f"scanned {len(chunks)} master chunks")
        return chunks

    def compare_chunks(self) -> list[ChunkComparison]:
        """
        Compare every master chunk with the replica over the same key range.

        Each chunk after the first owns the key gap that follows the previous
        chunk, so the replica is checksummed over (previous max, max] and rows
        that exist only on the replica between two master chunks still make
        the chunk mismatch.

        Returns:
            Comparisons for the mismatched chunks only
        """
        diff = []
        primary_key = self.master.primary_key()

        previous_max = None
        for mch in self.master_chunks():
            if previous_max is None:
                replica_chunks = self.replica.chunk_checksum(min=mch.min, max=mch.max)
            else:
                replica_chunks = self.replica.chunk_checksum(
                    min=previous_max, max=mch.max, exclusive_min=True
                )
            previous_max = mch.max

            if not replica_chunks:
                diff.append(self._chunk_comparison(mch, None, primary_key))
                continue

            for rch in replica_chunks:
                if rch.matches(mch):
                    continue
                diff.append(self._chunk_comparison(mch, rch, primary_key))

        if diff:
            CHUNK_MISMATCHES.labels(table_name=self.table_name).inc(len(diff))

        if self.logger.isEnabledFor(logging.DEBUG):
            summary = {
                "table_name": self.table_name,
                "min_row_id": self.master.min_row_id(),
                "max_row_id": self.master.max_row_id(),
                "primary_key": primary_key,
                "mismatched_bounds": [(cc.min_row, cc.max_row) for cc in diff],
            }
            self.logger.debug(f"checksum diff: {summary}")

        return diff

    def compare_rows(self, min: Any = None, max: Any = None, row_id: Any = None) -> dict[Any, RowComparison]:
        """
        Diff the rows of one key range (or one row id) across both sides.

        Returns:
            Map of row id to comparison, holding only master-only,
            replica-only or diverged rows
        """
        opts = {k: v for k, v in (("min", min), ("max", max), ("row_id", row_id)) if v is not None}

        with trace_operation("row_diff", table=self.table_name, **opts) as span:
            diff = {}
            for cs in self.master.row_checksum(**opts):
                diff[cs.row_id] = RowComparison.from_checksums(master=cs)

            for cs in self.replica.row_checksum(**opts):
                existing = diff.get(cs.row_id)

                if existing is None:
                    diff[cs.row_id] = RowComparison.from_checksums(replica=cs)
                    continue

                if existing.master is not None and existing.master.matches(cs):
                    del diff[cs.row_id]
                    continue

                existing.replica = cs

            span.set_attribute("row_discrepancies", len(diff))
            return diff

    def delta(self) -> dict[Any, RowComparison]:
        """
        Row-level divergence of the whole table.

        Row checksums are only requested for chunk bounds whose chunk
        checksums differ; a table whose chunks all match yields an empty
        delta without any row-level query.
        """
        with trace_operation(
            "table_delta",
            kind=trace.SpanKind.INTERNAL,
            table=self.table_name,
            chunk_size=self.chunk_size,
        ) as span:
            with TABLE_DIFF_SECONDS.labels(table_name=self.table_name).time():
                ccs = self.compare_chunks()
                if not ccs:
                    self.logger.debug(f"no chunk diff on {self.table_name}, skipping row diff")
                    return {}

                row_diff = {}
                for cc in ccs:
                    row_diff.update(self.compare_rows(min=cc.min_row, max=cc.max_row))

            for rc in row_diff.values():
                ROW_DISCREPANCIES.labels(
                    table_name=self.table_name,
                    discrepancy_type=rc.discrepancy_type.lower(),
                ).inc()

            span.set_attribute("mismatched_chunks", len(ccs))
            span.set_attribute("row_discrepancies", len(row_diff))
            self.logger.info(
                f"{len(row_diff)} rows differ in {len(ccs)} mismatched chunks of {self.table_name}"
            )
            return row_diff

    def column_delta(self, row_id: Any) -> dict[str, Any]:
        """
        Master values of the non-key columns that differ for one row.

        Raises:
            RowNotFoundError: If the row is missing on either side
            SchemaMismatchError: If the two sides return different columns
        """
        master_row = self.master.row_values(row_id)
        if not master_row:
            raise RowNotFoundError(self.table_name, row_id, "master")

        replica_row = self.replica.row_values(row_id)
        if not replica_row:
            raise RowNotFoundError(self.table_name, row_id, "replica")

        if master_row.keys() != replica_row.keys():
            raise SchemaMismatchError(
                self.table_name,
                set(master_row) - set(replica_row),
                set(replica_row) - set(master_row),
            )

        primary_key = self.master.primary_key()
        return {
            col: value
            for col, value in master_row.items()
            if col != primary_key and replica_row[col] != value
        }

    def generate_update(self, row_id: Any) -> str:
        """
        UPDATE statement re-aligning one diverged row on the replica.

        Returns:
            The statement, or an empty string when no non-key column differs
        """
        changes = self.column_delta(row_id)
        if not changes:
            return ""

        return build_update_sql(
            self.table_name,
            self.master.primary_key(),
            row_id,
            changes,
            database_name=self.database_name,
        )

    def _chunk_comparison(self, mch, rch, primary_key) -> ChunkComparison:
        # row diff must start at the lowest key either side holds in the range
        min_row = mch.min
        if rch is not None and rch.min is not None and rch.min < min_row:
            min_row = rch.min

        return ChunkComparison(
            master=mch,
            replica=rch,
            table_name=mch.table_name or self.table_name,
            primary_key=primary_key,
            min_row=min_row,
            max_row=mch.max,
        )

    def __repr__(self) -> str:
        return f"TablePair({self.table_name!r}, chunk_size={self.chunk_size})"
