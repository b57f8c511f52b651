"""
Unit tests for checksum records and the comparison model.

Tests equality rules, presence shapes and construction from either side.
"""

import pytest

from replica_watch.compare import ChunkChecksum, ChunkComparison, RowChecksum, RowComparison


def chunk(min=1, max=2, count=2, crc32=111, table_name="addresses"):
    return ChunkChecksum(table_name=table_name, primary_key="id", min=min, max=max, count=count, crc32=crc32)


def row(row_id=7, crc32=111, table_name="addresses"):
    return RowChecksum(table_name=table_name, primary_key="id", row_id=row_id, crc32=crc32)


class TestChunkChecksum:
    """Test ChunkChecksum invariants."""

    def test_empty_chunk(self):
        """A chunk with no rows needs no bounds."""
        empty = ChunkChecksum(table_name="addresses", count=0)

        assert empty.empty
        assert empty.min is None

    def test_negative_count_rejected(self):
        """Counts cannot be negative."""
        with pytest.raises(ValueError, match="negative"):
            chunk(count=-1)

    def test_non_empty_chunk_requires_bounds(self):
        """A chunk holding rows must carry both bounds."""
        with pytest.raises(ValueError, match="min and max"):
            ChunkChecksum(table_name="addresses", min=1, count=3)

    def test_immutable(self):
        """Checksum records cannot be mutated."""
        record = chunk()
        with pytest.raises(AttributeError):
            record.crc32 = 5


class TestChunkComparison:
    """Test ChunkComparison equality."""

    def test_identical_chunks_match(self):
        """Same bounds, count and crc compare equal."""
        assert ChunkComparison(master=chunk(), replica=chunk()).compare()

    @pytest.mark.parametrize("field,value", [("min", 0), ("max", 3), ("count", 1), ("crc32", 222)])
    def test_single_differing_field(self, field, value):
        """Any one differing field is a mismatch."""
        replica = chunk(**{field: value})
        assert not ChunkComparison(master=chunk(), replica=replica).compare()

    def test_table_name_not_compared(self):
        """Table and primary key names do not take part in equality."""
        assert ChunkComparison(master=chunk(), replica=chunk(table_name="other")).compare()

    def test_missing_replica_side(self):
        """A chunk the replica did not report never matches."""
        comparison = ChunkComparison(master=chunk(), replica=None)

        assert not comparison.compare()
        assert comparison.has_master
        assert not comparison.has_replica

    def test_fields_derived_from_master(self):
        """Bounds and names default to the master's."""
        comparison = ChunkComparison(master=chunk(min=3, max=4), replica=chunk())

        assert comparison.table_name == "addresses"
        assert comparison.primary_key == "id"
        assert (comparison.min_row, comparison.max_row) == (3, 4)


class TestRowComparison:
    """Test RowComparison construction and equality."""

    def test_from_master(self):
        """Master only: replica is None, row id from the master."""
        master = row(row_id=5)
        comparison = RowComparison.from_checksums(master=master)

        assert comparison.master is master
        assert comparison.replica is None
        assert comparison.row_id == 5
        assert comparison.table_name == "addresses"
        assert comparison.discrepancy_type == "MISSING"

    def test_from_replica(self):
        """Replica only is the mirror image."""
        replica = row(row_id=9)
        comparison = RowComparison.from_checksums(replica=replica)

        assert comparison.master is None
        assert comparison.replica is replica
        assert comparison.row_id == 9
        assert comparison.discrepancy_type == "EXTRA"

    def test_from_neither(self):
        """At least one side is required."""
        with pytest.raises(ValueError, match="must provide master or replica"):
            RowComparison.from_checksums()

    def test_both_sides(self):
        """Both sides present with different crc is a modified row."""
        comparison = RowComparison.from_checksums(master=row(crc32=1), replica=row(crc32=2))

        assert not comparison.compare()
        assert comparison.discrepancy_type == "MODIFIED"
        assert comparison.primary_key == "id"

    def test_matching_rows(self):
        """Same row id and crc compare equal."""
        assert RowComparison.from_checksums(master=row(), replica=row()).compare()

    def test_different_row_ids(self):
        """Row id takes part in equality."""
        assert not RowComparison.from_checksums(master=row(row_id=1), replica=row(row_id=2)).compare()

    def test_one_sided_never_matches(self):
        """compare() requires both sides."""
        assert not RowComparison.from_checksums(master=row()).compare()
