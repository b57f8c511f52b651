"""
Data access port and the SQL implementation shared by both engines.

The diff engine only ever talks to a DataAccessPort. SqlConnection
implements the port on top of a DB-API connection and leaves the
engine-specific bits (placeholders, identifier quoting, the row fingerprint
expression and row limiting) to its subclasses.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from replica_watch.compare.checksums import ChunkChecksum, RowChecksum
from replica_watch.exceptions import UnsupportedTableError
from replica_watch.compare.quoting import validate_identifier
from replica_watch.row_level.repair import build_delete_sql, build_insert_sql
from replica_watch.utils.retry import RetryExecutor


class DataAccessPort(ABC):
    """Everything the diff engine needs from one side of the pair."""

    @abstractmethod
    def primary_key(self, table_name: str) -> str:
        pass

    @abstractmethod
    def min_row_id(self, table_name: str) -> Any:
        pass

    @abstractmethod
    def max_row_id(self, table_name: str) -> Any:
        pass

    @abstractmethod
    def chunk_checksum(
        self,
        table_name: str,
        min: Any = None,
        max: Any = None,
        limit: int | None = None,
        exclusive_min: bool = False,
    ) -> list[ChunkChecksum]:
        pass

    @abstractmethod
    def row_checksum(
        self,
        table_name: str,
        min: Any = None,
        max: Any = None,
        row_id: Any = None,
    ) -> list[RowChecksum]:
        pass

    @abstractmethod
    def row_values(self, table_name: str, row_id: Any) -> dict[str, Any]:
        pass

    @abstractmethod
    def generate_insert(self, table_name: str, row_id: Any, database_name: str | None = None) -> list[str]:
        pass

    @abstractmethod
    def generate_delete(self, table_name: str, row_id: Any, database_name: str | None = None) -> list[str]:
        pass

    @abstractmethod
    def search(self) -> dict[str, str]:
        pass


class SqlConnection(DataAccessPort):
    """
    DataAccessPort over a DB-API 2.0 connection.

    Every query runs through a RetryExecutor. Rows come back as dicts keyed
    by the column names in ``cursor.description``.
    """

    engine = "sql"
    placeholder = "?"
    default_schema: str | None = None
    crc_aggregate = "SUM"

    def __init__(
        self,
        connection: Any,
        schema: str | None = None,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the adapter

        Args:
            connection: Open DB-API connection
            schema: Schema holding the checked tables (default: engine default)
            executor: RetryExecutor for queries (default: driver-aware executor)
            logger: Logger to use (default: module logger)
        """
        self.connection = connection
        self.schema = validate_identifier(schema or self.default_schema)
        self.logger = logger or logging.getLogger(__name__)
        self.executor = executor or RetryExecutor(no_retry=self.no_retry_errors(), logger=self.logger)
        self.primary_key_cache: dict[str, str] = {}

    # Engine hooks

    @classmethod
    def no_retry_errors(cls) -> tuple[type[BaseException], ...]:
        return ()

    @abstractmethod
    def quote(self, identifier: str) -> str:
        pass

    @abstractmethod
    def row_crc_expression(self, alias: str) -> str:
        """SQL expression yielding a 32-bit integer fingerprint of one row."""

    @abstractmethod
    def ordered_select(
        self, select_list: str, from_where: str, order_by: str, params: list, limit: int | None
    ) -> tuple[str, list]:
        """Wrap a SELECT with the engine's row limiting syntax."""

    # Query plumbing

    def _fetch_all(self, query: str, params: list | tuple = (), operation_name: str = "query") -> list[dict[str, Any]]:
        def run():
            cursor = self.connection.cursor()
            try:
                cursor.execute(query, tuple(params))
                if cursor.description is None:
                    return []
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()

        self.logger.debug(f"{operation_name}: {' '.join(query.split())} {list(params)}")
        return self.executor.execute(run, operation_name=f"{self.engine}.{operation_name}")

    def _qualified(self, table_name: str) -> str:
        validate_identifier(table_name)
        if "." in table_name:
            return self.quote(table_name)
        return self.quote(f"{self.schema}.{table_name}")

    def _split(self, table_name: str) -> tuple[str, str]:
        validate_identifier(table_name)
        if "." in table_name:
            schema, table = table_name.split(".", 1)
            return schema, table
        return self.schema, table_name

    def _bounds(self, pk: str, min: Any, max: Any, exclusive_min: bool = False) -> tuple[list[str], list]:
        clauses, params = [], []
        if min is not None:
            clauses.append(f"{pk} {'>' if exclusive_min else '>='} {self.placeholder}")
            params.append(min)
        if max is not None:
            clauses.append(f"{pk} <= {self.placeholder}")
            params.append(max)
        return clauses, params

    @staticmethod
    def _where(clauses: list[str]) -> str:
        return f" WHERE {' AND '.join(clauses)}" if clauses else ""

    # Catalog

    def search(self) -> dict[str, str]:
        """
        Tables of the schema that have a single-column primary key.

        Populates ``primary_key_cache`` as a side effect.
        """
        ph = self.placeholder
        rows = self._fetch_all(
            f"""
            SELECT tc.table_name AS table_name, MIN(kcu.column_name) AS column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON tc.constraint_name = kcu.constraint_name
             AND tc.table_schema = kcu.table_schema
             AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_schema = {ph}
            GROUP BY tc.table_name
            HAVING COUNT(*) = 1
            ORDER BY tc.table_name
            """,
            [self.schema],
            operation_name="search",
        )
        tables = {row["table_name"]: row["column_name"] for row in rows}
        self.primary_key_cache.update(tables)
        self.logger.info(f"found {len(tables)} checkable tables in schema {self.schema}")
        return tables

    def primary_key(self, table_name: str) -> str:
        if table_name in self.primary_key_cache:
            return self.primary_key_cache[table_name]

        schema, table = self._split(table_name)
        ph = self.placeholder
        rows = self._fetch_all(
            f"""
            SELECT kcu.column_name AS column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON tc.constraint_name = kcu.constraint_name
             AND tc.table_schema = kcu.table_schema
             AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND tc.table_schema = {ph} AND tc.table_name = {ph}
            """,
            [schema, table],
            operation_name="primary_key",
        )
        if len(rows) != 1:
            raise UnsupportedTableError(
                f"{table_name} needs exactly one primary key column, found {len(rows)}"
            )

        self.primary_key_cache[table_name] = rows[0]["column_name"]
        return self.primary_key_cache[table_name]

    # Bounds and checksums

    def _row_id_aggregate(self, table_name: str, func: str) -> Any:
        pk = self.quote(self.primary_key(table_name))
        rows = self._fetch_all(
            f"SELECT {func}({pk}) AS row_id FROM {self._qualified(table_name)}",
            operation_name=f"{func.lower()}_row_id",
        )
        return rows[0]["row_id"] if rows else None

    def min_row_id(self, table_name: str) -> Any:
        return self._row_id_aggregate(table_name, "MIN")

    def max_row_id(self, table_name: str) -> Any:
        return self._row_id_aggregate(table_name, "MAX")

    def chunk_checksum(
        self,
        table_name: str,
        min: Any = None,
        max: Any = None,
        limit: int | None = None,
        exclusive_min: bool = False,
    ) -> list[ChunkChecksum]:
        """
        One aggregate checksum over the ordered slice of rows.

        ``limit`` caps the slice at the first N rows from ``min``; the
        returned chunk's ``max`` is the last row id actually included.
        """
        primary_key = self.primary_key(table_name)
        pk = self.quote(primary_key)
        clauses, params = self._bounds(pk, min, max, exclusive_min)

        inner, params = self.ordered_select(
            f"{pk} AS row_id, {self.row_crc_expression('t')} AS crc",
            f"FROM {self._qualified(table_name)} AS t{self._where(clauses)}",
            pk,
            params,
            limit,
        )
        rows = self._fetch_all(
            f"""
            SELECT MIN(row_id) AS min_id, MAX(row_id) AS max_id,
                   COUNT(*) AS row_count, {self.crc_aggregate}(crc) AS crc32
            FROM ({inner}) AS chunk
            """,
            params,
            operation_name="chunk_checksum",
        )
        if not rows:
            return []

        row = rows[0]
        crc32 = row["crc32"]
        return [
            ChunkChecksum(
                table_name=table_name,
                primary_key=primary_key,
                min=row["min_id"],
                max=row["max_id"],
                count=int(row["row_count"] or 0),
                crc32=int(crc32) if crc32 is not None else None,
            )
        ]

    def row_checksum(
        self,
        table_name: str,
        min: Any = None,
        max: Any = None,
        row_id: Any = None,
    ) -> list[RowChecksum]:
        primary_key = self.primary_key(table_name)
        pk = self.quote(primary_key)

        if row_id is not None:
            clauses, params = [f"{pk} = {self.placeholder}"], [row_id]
        else:
            clauses, params = self._bounds(pk, min, max)

        rows = self._fetch_all(
            f"SELECT {pk} AS row_id, {self.row_crc_expression('t')} AS crc32 "
            f"FROM {self._qualified(table_name)} AS t{self._where(clauses)} ORDER BY {pk}",
            params,
            operation_name="row_checksum",
        )
        return [
            RowChecksum(
                table_name=table_name,
                primary_key=primary_key,
                row_id=row["row_id"],
                crc32=int(row["crc32"]) if row["crc32"] is not None else None,
            )
            for row in rows
        ]

    def row_values(self, table_name: str, row_id: Any) -> dict[str, Any]:
        pk = self.quote(self.primary_key(table_name))
        rows = self._fetch_all(
            f"SELECT * FROM {self._qualified(table_name)} WHERE {pk} = {self.placeholder}",
            [row_id],
            operation_name="row_values",
        )
        return rows[0] if rows else {}

    # Corrective statements

    def generate_insert(self, table_name: str, row_id: Any, database_name: str | None = None) -> list[str]:
        row = self.row_values(table_name, row_id)
        if not row:
            return []
        return [build_insert_sql(table_name, row, database_name=database_name)]

    def generate_delete(self, table_name: str, row_id: Any, database_name: str | None = None) -> list[str]:
        return [
            build_delete_sql(table_name, self.primary_key(table_name), row_id, database_name=database_name)
        ]

    def close(self) -> None:
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
