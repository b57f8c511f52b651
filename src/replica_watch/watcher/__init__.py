"""
Watch orchestration.

Provides:
- ReplicationWatcher: discovery, full diff, reconciliation and watch loop
- WatchState: states of the watch loop
- CancellationToken / DeadlineTimer: wall-clock deadline enforcement
"""

from .deadline import CancellationToken, DeadlineTimer
from .watcher import DEFAULT_WAIT_INTERVAL, ReplicationWatcher, WatchState

__all__ = [
    'CancellationToken',
    'DEFAULT_WAIT_INTERVAL',
    'DeadlineTimer',
    'ReplicationWatcher',
    'WatchState',
]
