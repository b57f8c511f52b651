"""
Unit tests for TablePair.

Tests the chunk scan, chunk and row diffs, the cost-control guarantee that
row checksums are only requested for mismatched chunk bounds, and
column-level UPDATE generation.
"""

from unittest.mock import MagicMock, patch

import pytest
from prometheus_client import REGISTRY

from replica_watch.compare import ChunkChecksum
from replica_watch.exceptions import RowNotFoundError, SchemaMismatchError
from replica_watch.row_level import TablePair


def scripted_port(chunks, primary_key="id"):
    """
    Mocked port whose chunk_checksum answers from a fixed chunk list.

    Answers with the first chunk starting at or after ``min`` (strictly
    after for ``exclusive_min``) that ends within ``max``.
    """
    port = MagicMock()
    port.primary_key.return_value = primary_key
    port.min_row_id.return_value = chunks[0].min if chunks else None
    port.max_row_id.return_value = chunks[-1].max if chunks else None

    def chunk_checksum(table_name, min=None, max=None, limit=None, exclusive_min=False):
        for chunk in chunks:
            after_min = chunk.min > min if exclusive_min else chunk.min >= min
            if after_min and (max is None or chunk.max <= max):
                return [chunk]
        return [ChunkChecksum(table_name=table_name, primary_key=primary_key, count=0)]

    port.chunk_checksum.side_effect = chunk_checksum
    port.row_checksum.return_value = []
    return port


def metric(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestChunkScan:
    """Test master_chunks()."""

    def test_scans_whole_table(self, master, replica):
        """Six rows with chunk_size=2 make three chunks."""
        pair = TablePair("addresses", master, replica, chunk_size=2)

        chunks = pair.master_chunks()

        assert [(c.min, c.max, c.count) for c in chunks] == [(1, 2, 2), (3, 4, 2), (5, 6, 2)]

    def test_first_request_inclusive_then_exclusive(self, master, replica):
        """Consecutive chunks never share their boundary row."""
        TablePair("addresses", master, replica, chunk_size=2).master_chunks()

        calls = master.calls_to("chunk_checksum")
        assert calls[0][2] == {"min": 1, "max": None, "limit": 2, "exclusive_min": False}
        assert calls[1][2] == {"min": 2, "max": None, "limit": 2, "exclusive_min": True}
        assert calls[2][2]["min"] == 4

    def test_short_chunk_ends_scan(self, fake_port, make_address):
        """A chunk with fewer than chunk_size rows is the last one."""
        rows = {i: make_address(i) for i in range(1, 6)}
        master = fake_port({"addresses": rows})
        pair = TablePair("addresses", master, fake_port({"addresses": rows}), chunk_size=2)

        chunks = pair.master_chunks()

        assert [(c.min, c.max, c.count) for c in chunks] == [(1, 2, 2), (3, 4, 2), (5, 5, 1)]
        assert len(master.calls_to("chunk_checksum")) == 3

    def test_empty_table(self, fake_port):
        """An empty master has no chunks and issues no chunk queries."""
        master = fake_port({"addresses": {}})
        pair = TablePair("addresses", master, fake_port({"addresses": {}}), chunk_size=2)

        assert pair.master_chunks() == []
        assert master.calls_to("chunk_checksum") == []

    def test_counts_scanned_chunks(self, master, replica):
        before = metric("replica_watch_chunks_scanned_total", table_name="addresses")

        TablePair("addresses", master, replica, chunk_size=4).master_chunks()

        assert metric("replica_watch_chunks_scanned_total", table_name="addresses") == before + 2

    def test_invalid_chunk_size(self, master, replica):
        with pytest.raises(ValueError, match="chunk_size"):
            TablePair("addresses", master, replica, chunk_size=0)


class TestChunkDiff:
    """Test compare_chunks() and delta() at chunk level."""

    def test_matching_chunks_give_empty_delta(self):
        """Identical chunks: no diff and no row-level queries."""
        chunks = [
            ChunkChecksum(table_name="addresses", primary_key="id", min=1, max=2, count=2, crc32=0xA),
            ChunkChecksum(table_name="addresses", primary_key="id", min=3, max=4, count=2, crc32=0xA),
        ]
        master, replica = scripted_port(chunks), scripted_port(chunks)
        pair = TablePair("addresses", master, replica, chunk_size=2)

        assert pair.compare_chunks() == []
        assert pair.delta() == {}
        master.row_checksum.assert_not_called()
        replica.row_checksum.assert_not_called()

    def test_replica_asked_for_master_bounds(self, master, replica):
        """The replica is never chunked on its own; later chunks start after the previous max."""
        TablePair("addresses", master, replica, chunk_size=2).compare_chunks()

        bounds = [
            (c[2]["min"], c[2]["max"], c[2]["exclusive_min"])
            for c in replica.calls_to("chunk_checksum")
        ]
        assert bounds == [(1, 2, False), (2, 4, True), (4, 6, True)]
        assert all(c[2]["limit"] is None for c in replica.calls_to("chunk_checksum"))

    def test_stray_row_between_master_chunks(self, fake_port, make_address):
        """A replica-only row in the key gap between two master chunks is found."""
        master_rows = {i: make_address(i) for i in (1, 2, 5, 6)}
        replica_rows = {i: make_address(i) for i in (1, 2, 3, 5, 6)}
        pair = TablePair(
            "addresses",
            fake_port({"addresses": master_rows}),
            fake_port({"addresses": replica_rows}),
            chunk_size=2,
        )

        diff = pair.compare_chunks()
        delta = pair.delta()

        assert [(cc.min_row, cc.max_row) for cc in diff] == [(3, 6)]
        assert list(delta) == [3]
        assert delta[3].master is None
        assert delta[3].discrepancy_type == "EXTRA"

    def test_mismatched_chunk_reported(self, master, replica):
        replica.tables["addresses"][4]["city"] = "Shelbyville"

        diff = TablePair("addresses", master, replica, chunk_size=2).compare_chunks()

        assert len(diff) == 1
        assert (diff[0].min_row, diff[0].max_row) == (3, 4)
        assert diff[0].table_name == "addresses"
        assert diff[0].primary_key == "id"
        assert not diff[0].compare()

    def test_replica_returns_nothing(self):
        """An empty replica answer counts as a mismatch."""
        chunks = [ChunkChecksum(table_name="addresses", primary_key="id", min=1, max=2, count=2, crc32=1)]
        master, replica = scripted_port(chunks), scripted_port(chunks)
        replica.chunk_checksum.side_effect = None
        replica.chunk_checksum.return_value = []

        diff = TablePair("addresses", master, replica, chunk_size=2).compare_chunks()

        assert len(diff) == 1
        assert diff[0].replica is None

    def test_row_queries_only_for_mismatched_bounds(self, master, replica):
        """Row checksums are requested once per side per mismatched chunk."""
        replica.tables["addresses"][6]["city"] = "Shelbyville"

        TablePair("addresses", master, replica, chunk_size=2).delta()

        for side in (master, replica):
            calls = side.calls_to("row_checksum")
            assert [(c[2]["min"], c[2]["max"]) for c in calls] == [(5, 6)]


class TestRowDiff:
    """Test compare_rows() and delta() at row level."""

    def test_row_missing_on_replica(self, master, replica):
        """Row 5 absent from the replica is master-only."""
        del replica.tables["addresses"][5]

        delta = TablePair("addresses", master, replica, chunk_size=2).delta()

        assert list(delta) == [5]
        assert delta[5].has_master
        assert delta[5].replica is None
        assert delta[5].discrepancy_type == "MISSING"

    def test_stray_row_on_replica(self, master, replica, make_address):
        """A replica row inside the master's key range is replica-only."""
        del master.tables["addresses"][3]

        delta = TablePair("addresses", master, replica, chunk_size=10).delta()

        assert list(delta) == [3]
        assert delta[3].master is None
        assert delta[3].has_replica

    def test_diverged_row(self, master, replica):
        replica.tables["addresses"][2]["city"] = "Shelbyville"

        delta = TablePair("addresses", master, replica, chunk_size=2).delta()

        assert list(delta) == [2]
        assert delta[2].has_master and delta[2].has_replica
        assert not delta[2].compare()

    @patch("replica_watch.row_level.table_pair.trace_operation")
    def test_row_diff_traced(self, mock_trace, master, replica):
        """Each row diff runs inside its own span."""
        replica.tables["addresses"][2]["city"] = "Shelbyville"

        TablePair("addresses", master, replica).compare_rows(min=1, max=4)

        mock_trace.assert_called_once_with("row_diff", table="addresses", min=1, max=4)
        span = mock_trace.return_value.__enter__.return_value
        span.set_attribute.assert_called_once_with("row_discrepancies", 1)

    def test_matching_rows_dropped(self, master, replica):
        """compare_rows over identical data is empty."""
        pair = TablePair("addresses", master, replica)
        assert pair.compare_rows(min=1, max=6) == {}

    def test_compare_rows_idempotent(self, master, replica):
        replica.tables["addresses"][2]["city"] = "Shelbyville"
        del replica.tables["addresses"][4]
        pair = TablePair("addresses", master, replica)

        assert pair.compare_rows(min=1, max=6) == pair.compare_rows(min=1, max=6)

    def test_compare_single_row(self, master, replica):
        replica.tables["addresses"][2]["city"] = "Shelbyville"
        pair = TablePair("addresses", master, replica)

        assert list(pair.compare_rows(row_id=2)) == [2]
        assert pair.compare_rows(row_id=3) == {}

    def test_discrepancies_counted(self, master, replica):
        del replica.tables["addresses"][5]
        before = metric(
            "replica_watch_row_discrepancies_total", table_name="addresses", discrepancy_type="missing"
        )

        TablePair("addresses", master, replica, chunk_size=2).delta()

        after = metric(
            "replica_watch_row_discrepancies_total", table_name="addresses", discrepancy_type="missing"
        )
        assert after == before + 1


class TestGenerateUpdate:
    """Test column_delta() and generate_update()."""

    def test_single_column_update(self, fake_port, make_address):
        """Row 7 differing only in city."""
        rows = {i: make_address(i) for i in range(1, 9)}
        master = fake_port({"addresses": rows})
        replica = fake_port({"addresses": rows})
        master.tables["addresses"][7]["city"] = "X"

        pair = TablePair("addresses", master, replica)

        assert pair.generate_update(7) == "UPDATE addresses SET city = 'X' WHERE id = '7';"

    def test_database_qualified(self, master, replica):
        master.tables["addresses"][2]["city"] = "X"
        pair = TablePair("addresses", master, replica, database_name="shop")

        assert pair.generate_update(2) == "UPDATE shop.addresses SET city = 'X' WHERE id = '2';"

    def test_null_value(self, master, replica):
        master.tables["addresses"][2]["city"] = None
        pair = TablePair("addresses", master, replica)

        assert pair.generate_update(2) == "UPDATE addresses SET city = NULL WHERE id = '2';"

    def test_identical_rows(self, master, replica):
        """Nothing to update gives an empty string."""
        assert TablePair("addresses", master, replica).generate_update(2) == ""

    def test_primary_key_excluded(self):
        """A differing key column alone produces no statement."""
        master, replica = MagicMock(), MagicMock()
        master.primary_key.return_value = "id"
        master.row_values.return_value = {"id": 7, "city": "X"}
        replica.row_values.return_value = {"id": "7", "city": "X"}

        pair = TablePair("addresses", master, replica)

        assert pair.column_delta(7) == {}
        assert pair.generate_update(7) == ""

    def test_row_missing(self, master, replica):
        del replica.tables["addresses"][2]

        with pytest.raises(RowNotFoundError) as exc_info:
            TablePair("addresses", master, replica).generate_update(2)

        assert exc_info.value.side == "replica"
        assert exc_info.value.row_id == 2

    def test_schema_mismatch(self, master, replica):
        """Different column sets are surfaced, never skipped."""
        replica.tables["addresses"][2]["zip"] = "12345"

        with pytest.raises(SchemaMismatchError) as exc_info:
            TablePair("addresses", master, replica).generate_update(2)

        assert exc_info.value.replica_only == {"zip"}
        assert exc_info.value.master_only == set()
