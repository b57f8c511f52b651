"""SQL Server data access port."""

from typing import Any

from opentelemetry import trace

from replica_watch.compare.quoting import quote_sqlserver_identifier
from replica_watch.utils.tracing import trace_operation

from .base import SqlConnection


class SqlServerConnection(SqlConnection):
    """
    Data access port for SQL Server (pyodbc).

    Rows are fingerprinted with ``BINARY_CHECKSUM(*)`` and chunks with
    ``CHECKSUM_AGG``. pyodbc is imported on first use since loading it
    requires the unixODBC runtime.
    """

    engine = "sqlserver"
    placeholder = "?"
    default_schema = "dbo"
    crc_aggregate = "CHECKSUM_AGG"

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        schema: str | None = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        **kwargs: Any,
    ) -> "SqlServerConnection":
        """
        Open a session reading uncommitted data and wrap it.

        Args:
            host: SQL Server host
            port: SQL Server port
            database: Database name
            user: Username
            password: Password
            schema: Schema holding the checked tables (default: dbo)
            driver: ODBC driver name
            **kwargs: Passed through to the constructor (executor, logger)
        """
        import pyodbc

        conn_str = (
            f"DRIVER={{{driver}}};"
            f"SERVER={host},{port};"
            f"DATABASE={database};"
            f"UID={user};"
            f"PWD={password};"
            f"TrustServerCertificate=yes"
        )
        with trace_operation(
            "sqlserver_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=host,
            db_name=database,
        ):
            conn = pyodbc.connect(conn_str, autocommit=True, timeout=10)
            cursor = conn.cursor()
            try:
                cursor.execute("SET TRANSACTION ISOLATION LEVEL READ UNCOMMITTED")
            finally:
                cursor.close()
        return cls(conn, schema=schema, **kwargs)

    @classmethod
    def no_retry_errors(cls) -> tuple[type[BaseException], ...]:
        import pyodbc

        return (pyodbc.ProgrammingError, pyodbc.DataError, pyodbc.IntegrityError)

    def quote(self, identifier: str) -> str:
        return quote_sqlserver_identifier(identifier)

    def row_crc_expression(self, alias: str) -> str:
        return "BINARY_CHECKSUM(*)"

    def ordered_select(
        self, select_list: str, from_where: str, order_by: str, params: list, limit: int | None
    ) -> tuple[str, list]:
        # ORDER BY is only legal in a derived table together with TOP
        if limit is None:
            return f"SELECT {select_list} {from_where}", list(params)
        return (
            f"SELECT TOP ({self.placeholder}) {select_list} {from_where} ORDER BY {order_by}",
            [int(limit), *params],
        )
