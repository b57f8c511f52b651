"""
YAML defaults file.

The file holds a top-level ``defaults`` mapping whose keys are option
destinations, for example::

    defaults:
      watch_mode: WAIT
      timeout: 30
      primary_host: db-primary.internal
      replica_host: db-replica.internal
"""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "replica_watch.yml"


def load_defaults(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load option defaults from a YAML file.

    Args:
        path: Config file (default: replica_watch.yml in the working directory)

    Returns:
        Defaults keyed by option destination; empty when the file is absent,
        unreadable or malformed
    """
    explicit = path is not None
    config_path = Path(path) if explicit else Path(CONFIG_FILE_NAME)

    if not config_path.is_file():
        if explicit:
            logger.warning(f"Config file {config_path} not found, using built-in defaults")
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read config file {config_path}: {e}")
        return {}

    defaults = document.get("defaults") if isinstance(document, dict) else None
    if not isinstance(defaults, dict):
        logger.warning(f"Config file {config_path} has no 'defaults' mapping, ignoring it")
        return {}

    logger.debug(f"Loaded {len(defaults)} defaults from {config_path}")
    return {str(key).replace("-", "_"): value for key, value in defaults.items()}
