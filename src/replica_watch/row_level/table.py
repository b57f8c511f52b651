"""
Per-side, per-table accessor over a data access port.
"""

import logging
from typing import Any

from replica_watch.compare.checksums import ChunkChecksum, RowChecksum

_UNSET = object()


class Table:
    """
    One table on one side (master or replica).

    Every call delegates to the connection scoped to this table's name. The
    primary key and the row-id bounds are looked up once and cached for the
    lifetime of the instance; build a new Table to refresh them.
    """

    def __init__(self, table_name: str, connection: Any, logger: logging.Logger | None = None):
        self.name = table_name
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)
        self._primary_key = _UNSET
        self._min_row_id = _UNSET
        self._max_row_id = _UNSET

    def primary_key(self) -> str:
        if self._primary_key is _UNSET:
            self._primary_key = self.connection.primary_key(self.name)
        return self._primary_key

    def min_row_id(self) -> Any:
        if self._min_row_id is _UNSET:
            self._min_row_id = self.connection.min_row_id(self.name)
        return self._min_row_id

    def max_row_id(self) -> Any:
        if self._max_row_id is _UNSET:
            self._max_row_id = self.connection.max_row_id(self.name)
        return self._max_row_id

    def chunk_checksum(self, **opts) -> list[ChunkChecksum]:
        return list(self.connection.chunk_checksum(self.name, **opts))

    def row_checksum(self, **opts) -> list[RowChecksum]:
        return list(self.connection.row_checksum(self.name, **opts))

    def row_values(self, row_id: Any) -> dict[str, Any]:
        return self.connection.row_values(self.name, row_id) or {}

    def __repr__(self) -> str:
        return f"Table({self.name!r})"
