"""
Checksum records and the two-sided comparison model.

This submodule provides:
- ChunkChecksum / RowChecksum: immutable fingerprints of key ranges and rows
- ChunkComparison / RowComparison: master and replica sides paired for equality
- Identifier validation and quoting for generated SQL
"""

from .checksums import ChunkChecksum, RowChecksum
from .comparison import ChunkComparison, RowComparison, TwoSided
from .quoting import (
    VALID_IDENTIFIER_PATTERN,
    is_valid_identifier,
    qualify_table,
    quote_postgres_identifier,
    quote_sqlserver_identifier,
    validate_identifier,
)

__all__ = [
    'ChunkChecksum',
    'RowChecksum',
    'ChunkComparison',
    'RowComparison',
    'TwoSided',
    'VALID_IDENTIFIER_PATTERN',
    'is_valid_identifier',
    'qualify_table',
    'quote_postgres_identifier',
    'quote_sqlserver_identifier',
    'validate_identifier',
]
