"""
replica-watch: chunked checksum consistency checks between a primary
database and its replica.

Tables are fingerprinted in primary-key chunks on both sides; only
mismatched chunks are diffed row by row, and only diverged rows are
compared column by column to print corrective INSERT, UPDATE and DELETE
statements for the replica.
"""

from replica_watch.compare import ChunkChecksum, ChunkComparison, RowChecksum, RowComparison
from replica_watch.row_level import Table, TablePair
from replica_watch.utils.retry import RetryExecutor
from replica_watch.watcher import CancellationToken, DeadlineTimer, ReplicationWatcher, WatchState

__version__ = "1.0.0"

__all__ = [
    'CancellationToken',
    'ChunkChecksum',
    'ChunkComparison',
    'DeadlineTimer',
    'ReplicationWatcher',
    'RetryExecutor',
    'RowChecksum',
    'RowComparison',
    'Table',
    'TablePair',
    'WatchState',
]
