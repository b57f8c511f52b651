"""
Row-level diffing and corrective statement generation.

Provides:
- Table: one table on one side, with cached primary key and bounds
- TablePair: chunk scan, row diff and column-level UPDATE generation
- Statement builders for INSERT, UPDATE and DELETE
"""

from .repair import (
    REPLICA_BANNER,
    annotate_for_replica,
    build_delete_sql,
    build_insert_sql,
    build_update_sql,
    format_value,
    generate_repair_script,
)
from .table import Table
from .table_pair import DEFAULT_CHUNK_SIZE, TablePair

__all__ = [
    'DEFAULT_CHUNK_SIZE',
    'REPLICA_BANNER',
    'Table',
    'TablePair',
    'annotate_for_replica',
    'build_delete_sql',
    'build_insert_sql',
    'build_update_sql',
    'format_value',
    'generate_repair_script',
]
