"""
Two-sided comparison model.

A comparison pairs the master's checksum with the replica's for the same
chunk bound or row id. Either side may be missing for rows; a chunk always
has a master side.
"""

from dataclasses import dataclass
from typing import Any

from .checksums import ChunkChecksum, RowChecksum


class TwoSided:
    """Presence and equality contract shared by chunk and row comparisons."""

    master: Any
    replica: Any

    @property
    def has_master(self) -> bool:
        return self.master is not None

    @property
    def has_replica(self) -> bool:
        return self.replica is not None

    def compare(self) -> bool:
        """True iff both sides are present and their checksums match."""
        return self.has_master and self.has_replica and self.master.matches(self.replica)

    def _side_attr(self, name: str) -> Any:
        if self.master is not None and getattr(self.master, name, None) is not None:
            return getattr(self.master, name)
        if self.replica is not None:
            return getattr(self.replica, name, None)
        return None


@dataclass
class ChunkComparison(TwoSided):
    """A master chunk and the replica's checksum over the same bounds."""

    master: ChunkChecksum | None = None
    replica: ChunkChecksum | None = None
    table_name: str | None = None
    primary_key: str | None = None
    min_row: Any = None
    max_row: Any = None

    def __post_init__(self):
        if self.table_name is None:
            self.table_name = self._side_attr("table_name")
        if self.primary_key is None:
            self.primary_key = self._side_attr("primary_key")
        if self.min_row is None and self.master is not None:
            self.min_row = self.master.min
        if self.max_row is None and self.master is not None:
            self.max_row = self.master.max


@dataclass
class RowComparison(TwoSided):
    """
    The master and replica checksums of one row id.

    After a row diff only three shapes remain: master-only (row missing on
    the replica), replica-only (stray row on the replica) and both present
    with differing fingerprints.
    """

    master: RowChecksum | None = None
    replica: RowChecksum | None = None
    row_id: Any = None
    table_name: str | None = None

    @classmethod
    def from_checksums(
        cls,
        master: RowChecksum | None = None,
        replica: RowChecksum | None = None,
    ) -> "RowComparison":
        """
        Build a comparison, taking row_id and table_name from whichever side exists

        Raises:
            ValueError: If neither master nor replica is given
        """
        if master is None and replica is None:
            raise ValueError("must provide master or replica")

        source = master if master is not None else replica
        return cls(
            master=master,
            replica=replica,
            row_id=source.row_id,
            table_name=source.table_name,
        )

    @property
    def primary_key(self) -> str | None:
        return self._side_attr("primary_key")

    @property
    def discrepancy_type(self) -> str:
        """MISSING (master only), EXTRA (replica only) or MODIFIED (both)."""
        if self.has_master and not self.has_replica:
            return "MISSING"
        if self.has_replica and not self.has_master:
            return "EXTRA"
        return "MODIFIED"
