"""
Identifier validation and quoting.

Table, column and database names are interpolated into SQL text, both in
checksum queries and in the corrective statements printed for review, so
every name is checked against a strict ASCII identifier pattern first.
"""

import re

from replica_watch.exceptions import InvalidIdentifierError

# Strict ASCII-only pattern (no Unicode via \w); one optional qualifier
VALID_IDENTIFIER_PATTERN = re.compile(
    r'^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$'
)


def is_valid_identifier(identifier: str) -> bool:
    """Return True if ``identifier`` is a plain or dotted SQL identifier."""
    return isinstance(identifier, str) and bool(VALID_IDENTIFIER_PATTERN.match(identifier))


def validate_identifier(identifier: str) -> str:
    """
    Validate an identifier and return it unchanged

    Raises:
        InvalidIdentifierError: If identifier format is invalid
    """
    if not is_valid_identifier(identifier):
        raise InvalidIdentifierError(f"Invalid identifier format: {identifier!r}")
    return identifier


def quote_postgres_identifier(identifier: str) -> str:
    """
    Quote a PostgreSQL identifier with double quotes

    Args:
        identifier: Table or column name (may include schema, e.g., 'schema.table')

    Returns:
        Quoted identifier, e.g. '"public"."addresses"'
    """
    validate_identifier(identifier)
    return ".".join(f'"{part}"' for part in identifier.split("."))


def quote_sqlserver_identifier(identifier: str) -> str:
    """
    Quote a SQL Server identifier with brackets

    Args:
        identifier: Table or column name (may include schema, e.g., 'dbo.table')

    Returns:
        Quoted identifier, e.g. '[dbo].[addresses]'
    """
    validate_identifier(identifier.replace("[", "").replace("]", ""))
    identifier = identifier.replace("[", "").replace("]", "")
    return ".".join(f"[{part}]" for part in identifier.split("."))


def qualify_table(table_name: str, database_name: str | None = None) -> str:
    """
    Return the table name used in generated statements

    ``db.table`` when a database name is configured, the bare table name
    otherwise. Neither part is quoted.
    """
    validate_identifier(table_name)
    if database_name:
        validate_identifier(database_name)
        return f"{database_name}.{table_name}"
    return table_name
