"""
HashiCorp Vault client for fetching database credentials

Reads the primary and replica connection credentials from the Vault
KV v2 secrets engine over its HTTP API.
"""

import logging
import os
import re
from typing import Any

import requests

from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

SECRET_PATH_PATTERN = re.compile(r"^[a-zA-Z0-9/_-]+$")
SIDES = ("primary", "replica")
REQUIRED_FIELDS = ("host", "username", "password")


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    Uses the KV v2 secrets engine; credentials for each side live at
    ``<mount>/replica-watch/<side>``.
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        mount: str = "secret",
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            mount: KV v2 mount point (default: secret)

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        vault_token = vault_token or os.getenv("VAULT_TOKEN")

        if not vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )
        if not vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = vault_addr.rstrip("/")
        self.mount = mount
        self.headers = {"X-Vault-Token": vault_token, "Content-Type": "application/json"}
        if namespace:
            self.headers["X-Vault-Namespace"] = namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    @retry_with_backoff(retry_count=3, retry_wait=1.0, no_retry=(ValueError, requests.HTTPError))
    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Fetch secret data from the KV v2 engine

        Args:
            secret_path: Path below the mount (e.g., "replica-watch/primary")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If secret_path is invalid or holds no data
            requests.HTTPError: If Vault answers with an error status
        """
        if not secret_path or ".." in secret_path or not SECRET_PATH_PATTERN.match(secret_path):
            raise ValueError(f"Invalid secret_path: {secret_path!r}")

        url = f"{self.vault_addr}/v1/{self.mount}/data/{secret_path.strip('/')}"
        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=10)
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")

        return secret_data

    def get_database_credentials(self, side: str) -> dict[str, Any]:
        """
        Fetch connection credentials for one side of the replication pair

        Args:
            side: "primary" or "replica"

        Returns:
            Dictionary with host, port (optional), username and password

        Raises:
            ValueError: If side is unknown or required fields are missing
        """
        if side not in SIDES:
            raise ValueError(f"Unsupported side: {side}. Must be one of {', '.join(SIDES)}.")

        secret_data = self.get_secret(f"replica-watch/{side}")

        missing_fields = [field for field in REQUIRED_FIELDS if field not in secret_data]
        if missing_fields:
            raise ValueError(f"Missing required fields in secret: {', '.join(missing_fields)}")

        logger.info(f"Successfully fetched {side} credentials from Vault")
        return secret_data
