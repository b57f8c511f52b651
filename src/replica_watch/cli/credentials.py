"""
Connection settings for both sides of the replication pair.

Credentials come from the command line (falling back to the DB_USER and
DB_PASS environment variables) or, with ``--use-vault``, from HashiCorp
Vault.
"""

import argparse
import logging
from typing import Any

import requests

from replica_watch.exceptions import ConfigurationError
from replica_watch.utils.vault_client import VaultClient

from .parser import DEFAULT_PORTS

logger = logging.getLogger(__name__)

SIDES = ("primary", "replica")


def _side_from_args(args: argparse.Namespace, side: str) -> dict[str, Any]:
    return {
        "host": getattr(args, f"{side}_host"),
        "port": getattr(args, f"{side}_port"),
        "user": getattr(args, f"{side}_user"),
        "password": getattr(args, f"{side}_password"),
    }


def _side_from_vault(vault_client: VaultClient, side: str) -> dict[str, Any]:
    creds = vault_client.get_database_credentials(side)
    return {
        "host": creds["host"],
        "port": creds.get("port"),
        "user": creds["username"],
        "password": creds["password"],
    }


def get_connection_configs(args: argparse.Namespace) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Build the primary and replica connection settings.

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (primary_config, replica_config), each with host, port,
        database, user and password

    Raises:
        ConfigurationError: If Vault cannot be read or a user/password is missing
    """
    if args.use_vault:
        try:
            vault_client = VaultClient()
            sides = {side: _side_from_vault(vault_client, side) for side in SIDES}
        except (ValueError, requests.RequestException) as e:
            raise ConfigurationError(f"Failed to fetch credentials from Vault: {e}") from e
        logger.info("Fetched primary and replica credentials from Vault")
    else:
        sides = {side: _side_from_args(args, side) for side in SIDES}

    configs = []
    for side in SIDES:
        config = sides[side]
        config["port"] = int(config["port"] or DEFAULT_PORTS[args.engine])
        config["database"] = args.database_name

        for field in ("user", "password"):
            if not config[field]:
                raise ConfigurationError(f"{side.capitalize()} database {field} not provided")
        configs.append(config)

    return configs[0], configs[1]
