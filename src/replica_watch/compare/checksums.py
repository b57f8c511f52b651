"""
Checksum records produced by the data access layer.

A ChunkChecksum fingerprints a contiguous primary-key range, a RowChecksum
fingerprints a single row. Both are immutable and created fresh for every
query.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ChunkChecksum:
    """Aggregate fingerprint of the rows whose key lies in [min, max]."""

    table_name: str | None = None
    primary_key: str | None = None
    min: Any = None
    max: Any = None
    count: int = 0
    crc32: int | None = None

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"chunk count must not be negative, got {self.count}")
        if self.count > 0 and (self.min is None or self.max is None):
            raise ValueError("a non-empty chunk needs both min and max bounds")

    @property
    def empty(self) -> bool:
        return self.count == 0

    def matches(self, other: "ChunkChecksum | None") -> bool:
        """
        True when bounds, row count and fingerprint are identical.

        Table name and primary-key name are not part of the comparison.
        """
        if other is None:
            return False
        return (
            self.min == other.min
            and self.max == other.max
            and self.count == other.count
            and self.crc32 == other.crc32
        )


@dataclass(frozen=True)
class RowChecksum:
    """Fingerprint of one physical row."""

    table_name: str | None = None
    primary_key: str | None = None
    row_id: Any = None
    crc32: int | None = None

    def matches(self, other: "RowChecksum | None") -> bool:
        """True when row id and fingerprint are identical."""
        if other is None:
            return False
        return self.row_id == other.row_id and self.crc32 == other.crc32
