"""
Corrective statement generation.

Builds the INSERT, UPDATE and DELETE text that re-aligns the replica with
the master. Statements are printed for manual review: values are inlined
as single-quoted literals (or NULL), never parameter-bound, and nothing
here executes them.
"""

from datetime import UTC, date, datetime
from typing import Any, Iterable

from replica_watch.compare.quoting import qualify_table, validate_identifier

REPLICA_BANNER = "-- run on REPLICA"


def format_value(value: Any) -> str:
    """Format a value as a SQL literal: NULL, or a single-quoted string."""
    if value is None:
        return "NULL"

    if isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, datetime):
        text = value.isoformat(sep=" ")
    elif isinstance(value, date):
        text = value.isoformat()
    elif isinstance(value, (bytes, bytearray, memoryview)):
        text = bytes(value).decode("utf-8", errors="replace")
    else:
        text = str(value)

    escaped = text.replace("'", "''")
    return f"'{escaped}'"


def build_update_sql(
    table_name: str,
    primary_key: str,
    row_id: Any,
    changes: dict[str, Any],
    database_name: str | None = None,
) -> str:
    """
    Generate an UPDATE that sets only the changed columns.

    The primary-key column is never part of the SET list. Returns an empty
    string when nothing is left to set.
    """
    validate_identifier(primary_key)
    set_parts = [
        f"{validate_identifier(col)} = {format_value(value)}"
        for col, value in changes.items()
        if col != primary_key
    ]
    if not set_parts:
        return ""

    table = qualify_table(table_name, database_name)
    return (
        f"UPDATE {table} SET {', '.join(set_parts)} "
        f"WHERE {primary_key} = {format_value(row_id)};"
    )


def build_insert_sql(
    table_name: str,
    row: dict[str, Any],
    database_name: str | None = None,
) -> str:
    """Generate an INSERT that recreates ``row``; empty string when row is empty."""
    if not row:
        return ""

    columns = [validate_identifier(col) for col in row]
    values = [format_value(row[col]) for col in row]
    table = qualify_table(table_name, database_name)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(values)});"


def build_delete_sql(
    table_name: str,
    primary_key: str,
    row_id: Any,
    database_name: str | None = None,
) -> str:
    """Generate a DELETE for a single row id."""
    validate_identifier(primary_key)
    table = qualify_table(table_name, database_name)
    return f"DELETE FROM {table} WHERE {primary_key} = {format_value(row_id)};"


def annotate_for_replica(statements: Iterable[str]) -> str:
    """
    Join statements into one block headed by the replica banner.

    Returns an empty string when there is nothing to run.
    """
    statements = [s for s in statements if s]
    if not statements:
        return ""
    return f"{REPLICA_BANNER}\n" + "\n\n".join(statements) + "\n"


def generate_repair_script(blocks: list[str], database_name: str | None = None) -> str:
    """
    Assemble annotated statement blocks into a reviewable script.

    No transaction wrapper is emitted; statements are applied one by one
    by whoever runs the script.
    """
    lines = [
        "-- Replica repair script",
        f"-- Generated: {datetime.now(UTC).isoformat()}",
        f"-- Database: {database_name or '(connection default)'}",
        f"-- Statement blocks: {len(blocks)}",
        "",
    ]
    lines.extend(blocks)
    return "\n".join(lines).rstrip("\n") + "\n"
