"""
Data access adapters.

Provides:
- DataAccessPort: the contract the diff engine consumes
- SqlConnection: shared information_schema / checksum SQL over DB-API
- PostgresConnection: psycopg2 implementation
- SqlServerConnection: pyodbc implementation
"""

from .base import DataAccessPort, SqlConnection
from .postgres import PostgresConnection
from .sqlserver import SqlServerConnection

ENGINES = {
    "postgresql": PostgresConnection,
    "sqlserver": SqlServerConnection,
}

__all__ = [
    'DataAccessPort',
    'ENGINES',
    'PostgresConnection',
    'SqlConnection',
    'SqlServerConnection',
]
