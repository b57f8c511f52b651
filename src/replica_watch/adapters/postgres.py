"""PostgreSQL data access port."""

from typing import Any

import psycopg2
from opentelemetry import trace

from replica_watch.compare.quoting import quote_postgres_identifier
from replica_watch.utils.tracing import trace_operation

from .base import SqlConnection


class PostgresConnection(SqlConnection):
    """
    Data access port for PostgreSQL (psycopg2).

    Row fingerprints are the first 32 bits of ``md5(row::text)`` and a
    chunk's fingerprint is their sum.
    """

    engine = "postgresql"
    placeholder = "%s"
    default_schema = "public"
    crc_aggregate = "SUM"

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        schema: str | None = None,
        **kwargs: Any,
    ) -> "PostgresConnection":
        """
        Open a read-only session and wrap it.

        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Username
            password: Password
            schema: Schema holding the checked tables (default: public)
            **kwargs: Passed through to the constructor (executor, logger)
        """
        with trace_operation(
            "postgres_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=host,
            db_name=database,
        ):
            conn = psycopg2.connect(
                host=host,
                port=port,
                database=database,
                user=user,
                password=password,
                connect_timeout=10,
            )
            conn.set_session(readonly=True, autocommit=True)
        return cls(conn, schema=schema, **kwargs)

    @classmethod
    def no_retry_errors(cls) -> tuple[type[BaseException], ...]:
        return (psycopg2.ProgrammingError, psycopg2.DataError, psycopg2.IntegrityError)

    def quote(self, identifier: str) -> str:
        return quote_postgres_identifier(identifier)

    def row_crc_expression(self, alias: str) -> str:
        return f"('x' || substr(md5(CAST({alias} AS text)), 1, 8))::bit(32)::bigint"

    def ordered_select(
        self, select_list: str, from_where: str, order_by: str, params: list, limit: int | None
    ) -> tuple[str, list]:
        query = f"SELECT {select_list} {from_where} ORDER BY {order_by}"
        if limit is None:
            return query, list(params)
        return f"{query} LIMIT {self.placeholder}", [*params, int(limit)]
