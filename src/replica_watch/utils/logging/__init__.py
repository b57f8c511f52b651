"""
Structured logging configuration for replica-watch

Usage:
    from replica_watch.utils.logging import setup_logging, ContextLogger

    setup_logging(level="DEBUG", log_file="./logs/replica_watch.log")
    logger = ContextLogger(logging.getLogger(__name__), table_name="addresses")
    logger.info("chunk mismatch")
"""

from .config import (
    configure_from_env,
    get_logger,
    log_file_path,
    setup_logging,
    shutdown_logging,
)
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "log_file_path",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
