"""
Logger adapters that carry context.

Provides ContextLogger for attaching fixed context (table name, side)
to every record emitted by a component.
"""

import logging
from typing import Any


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual information to all log messages

    Usage:
        logger = ContextLogger(logging.getLogger(__name__), table_name="addresses")
        logger.info("chunk mismatch", extra={"min_row": 12})
        # Output includes both table_name and min_row
    """

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter, **context):
        super().__init__(logger, dict(context))

    def process(self, msg: Any, kwargs: dict) -> tuple[Any, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **context) -> "ContextLogger":
        """Return a new adapter with additional context merged in."""
        return ContextLogger(self.logger, **{**self.extra, **context})

    def get_context(self) -> dict[str, Any]:
        """Get current context"""
        return dict(self.extra)
