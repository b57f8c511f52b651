"""
Pytest configuration and fixtures for replica-watch tests.
Provides an in-memory data access port standing in for a database side.
"""

import logging
import zlib
from pathlib import Path
from typing import Any

import pytest

from replica_watch.compare.checksums import ChunkChecksum, RowChecksum
from replica_watch.row_level.repair import build_delete_sql, build_insert_sql


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "property: mark test as hypothesis property test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakePort:
    """
    In-memory data access port.

    Tables are dicts of row id -> column map. Row fingerprints are CRC32s of
    the sorted column items, chunk fingerprints their sum. Every call is
    recorded in ``calls`` as (method, table_name, kwargs).
    """

    def __init__(self, tables: dict[str, dict[Any, dict]] | None = None, primary_key: str = "id"):
        self.tables = {}
        self.primary_keys = {}
        self.calls = []
        self.closed = False
        for name, rows in (tables or {}).items():
            self.add_table(name, rows, primary_key)

    def add_table(self, name: str, rows: dict[Any, dict], primary_key: str = "id") -> None:
        self.tables[name] = {row_id: dict(row) for row_id, row in rows.items()}
        self.primary_keys[name] = primary_key

    def calls_to(self, method: str) -> list:
        return [call for call in self.calls if call[0] == method]

    @staticmethod
    def crc(row: dict) -> int:
        return zlib.crc32(repr(sorted(row.items())).encode("utf-8"))

    def _ids(self, table_name, min=None, max=None, exclusive_min=False):
        ids = sorted(self.tables[table_name])
        if min is not None:
            ids = [i for i in ids if (i > min if exclusive_min else i >= min)]
        if max is not None:
            ids = [i for i in ids if i <= max]
        return ids

    def search(self) -> dict[str, str]:
        self.calls.append(("search", None, {}))
        return dict(self.primary_keys)

    def primary_key(self, table_name):
        return self.primary_keys[table_name]

    def min_row_id(self, table_name):
        ids = self._ids(table_name)
        return ids[0] if ids else None

    def max_row_id(self, table_name):
        ids = self._ids(table_name)
        return ids[-1] if ids else None

    def chunk_checksum(self, table_name, min=None, max=None, limit=None, exclusive_min=False):
        self.calls.append(
            ("chunk_checksum", table_name, {"min": min, "max": max, "limit": limit, "exclusive_min": exclusive_min})
        )
        ids = self._ids(table_name, min, max, exclusive_min)
        if limit is not None:
            ids = ids[:limit]
        pk = self.primary_keys[table_name]
        if not ids:
            return [ChunkChecksum(table_name=table_name, primary_key=pk, count=0)]

        rows = self.tables[table_name]
        return [
            ChunkChecksum(
                table_name=table_name,
                primary_key=pk,
                min=ids[0],
                max=ids[-1],
                count=len(ids),
                crc32=sum(self.crc(rows[i]) for i in ids) % 2**32,
            )
        ]

    def row_checksum(self, table_name, min=None, max=None, row_id=None):
        self.calls.append(("row_checksum", table_name, {"min": min, "max": max, "row_id": row_id}))
        rows = self.tables[table_name]
        if row_id is not None:
            ids = [row_id] if row_id in rows else []
        else:
            ids = self._ids(table_name, min, max)
        pk = self.primary_keys[table_name]
        return [RowChecksum(table_name=table_name, primary_key=pk, row_id=i, crc32=self.crc(rows[i])) for i in ids]

    def row_values(self, table_name, row_id):
        self.calls.append(("row_values", table_name, {"row_id": row_id}))
        return dict(self.tables[table_name].get(row_id, {}))

    def generate_insert(self, table_name, row_id, database_name=None):
        row = self.row_values(table_name, row_id)
        return [build_insert_sql(table_name, row, database_name=database_name)] if row else []

    def generate_delete(self, table_name, row_id, database_name=None):
        return [build_delete_sql(table_name, self.primary_keys[table_name], row_id, database_name=database_name)]

    def close(self):
        self.closed = True


def address(row_id: int, city: str = "Springfield", street: str | None = None) -> dict:
    """Row of the addresses table."""
    return {"id": row_id, "street": street or f"{row_id} Main St", "city": city}


@pytest.fixture
def addresses() -> dict[int, dict]:
    """Six identical address rows."""
    return {i: address(i) for i in range(1, 7)}


@pytest.fixture
def master(addresses) -> FakePort:
    """Master side holding the addresses table."""
    return FakePort({"addresses": addresses})


@pytest.fixture
def replica(addresses) -> FakePort:
    """Replica side holding an identical copy of the addresses table."""
    return FakePort({"addresses": addresses})


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fake_port():
    """The FakePort class, for tests that build their own sides."""
    return FakePort


@pytest.fixture
def make_address():
    """Factory for addresses rows."""
    return address


@pytest.fixture
def root_logger_guard():
    """Restore the root logger's handlers and level after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
