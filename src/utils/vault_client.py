"""
Vault Client for Column Reconciliation

Reads source credentials (PostgreSQL login, BigQuery service account key)
from HashiCorp Vault so they never have to be written to disk.
"""

import os
from typing import Dict, Any, Optional
from dataclasses import dataclass
import hvac
from hvac.exceptions import VaultError, InvalidPath
import logging

logger = logging.getLogger(__name__)

SOURCE_SECRET_PATHS = {
    "postgres": "postgres-credentials",
    "bigquery": "bigquery-credentials",
}


@dataclass
class HealthStatus:
    """
    Vault health as seen by this client.

    Attributes:
        healthy: True when authenticated and unsealed
        authenticated: Whether the token is accepted
        sealed: Whether Vault is sealed
        error: Error message if the check failed
    """

    healthy: bool
    authenticated: bool
    sealed: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.healthy


class VaultClient:
    """
    Reads KV v2 secrets for the reconciliation sources.

    Secret values are returned to the caller and never logged.
    """

    def __init__(
        self,
        vault_url: Optional[str] = None,
        vault_token: Optional[str] = None,
        verify_ssl: bool = True,
        mount_point: str = "secret"
    ):
        """
        Initialize Vault client.

        Args:
            vault_url: Vault server URL (defaults to VAULT_ADDR env var)
            vault_token: Vault token (defaults to VAULT_TOKEN env var)
            verify_ssl: Whether to verify SSL certificates
            mount_point: KV secrets engine mount point

        Raises:
            ValueError: If the URL or token is missing
            VaultError: If authentication fails
        """
        self.vault_url = vault_url or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.mount_point = mount_point

        if not self.vault_url:
            raise ValueError("Vault URL must be provided via parameter or VAULT_ADDR environment variable")

        if not self.vault_token:
            raise ValueError("Vault token must be provided via parameter or VAULT_TOKEN environment variable")

        try:
            self.client = hvac.Client(
                url=self.vault_url,
                token=self.vault_token,
                verify=verify_ssl
            )
            authenticated = self.client.is_authenticated()
        except Exception as e:
            logger.error(f"Failed to initialize Vault client: {e}")
            raise VaultError(f"Vault initialization failed: {e}")

        if not authenticated:
            logger.error("Vault rejected the token")
            raise VaultError("Failed to authenticate with Vault")

        logger.info(f"Connected to Vault at {self.vault_url}")

    def get_secret(self, path: str) -> Dict[str, Any]:
        """
        Read a secret.

        Args:
            path: Secret path relative to the mount point

        Returns:
            Secret data

        Raises:
            InvalidPath: If nothing is stored at the path
            VaultError: If the read fails
        """
        try:
            logger.debug(f"Reading secret {self.mount_point}/data/{path}")
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point
            )
        except InvalidPath:
            logger.error(f"Secret not found at path: {path}")
            raise
        except Exception as e:
            logger.error(f"Failed to read secret {path}: {e}")
            raise VaultError(f"Secret retrieval failed: {e}")

        if not response or "data" not in response:
            logger.error(f"Secret not found at path: {path}")
            raise InvalidPath(f"No data found at path: {path}")

        return response["data"].get("data", {})

    def get_source_credentials(self, source: str) -> Dict[str, Any]:
        """
        Read the credentials of one source.

        Args:
            source: "postgres" or "bigquery"

        Raises:
            ValueError: If the source is unknown
        """
        if source not in SOURCE_SECRET_PATHS:
            raise ValueError(f"Invalid source: {source}. Must be one of {sorted(SOURCE_SECRET_PATHS)}")

        credentials = self.get_secret(SOURCE_SECRET_PATHS[source])
        logger.info(f"Retrieved {source} credentials")
        return credentials

    def get_postgres_credentials(self) -> Dict[str, Any]:
        return self.get_source_credentials("postgres")

    def get_bigquery_credentials(self) -> Dict[str, Any]:
        return self.get_source_credentials("bigquery")

    def health_check(self) -> HealthStatus:
        """
        Check that Vault is reachable, unsealed and accepts the token.

        Returns:
            HealthStatus; usable as a boolean
        """
        try:
            if not self.client.is_authenticated():
                logger.warning("Vault authentication check failed")
                return HealthStatus(healthy=False, authenticated=False, sealed=True, error="Not authenticated")

            health = self.client.sys.read_health_status()
            sealed = health.get("sealed", True)
        except Exception as e:
            logger.error(f"Vault health check failed: {e}")
            return HealthStatus(healthy=False, authenticated=False, sealed=True, error=str(e))

        if sealed:
            logger.warning("Vault is sealed")
            return HealthStatus(healthy=False, authenticated=True, sealed=True, error="Vault is sealed")

        return HealthStatus(healthy=True, authenticated=True, sealed=False)

    def close(self):
        """Drop the underlying client."""
        self.client = None
        logger.info("Vault client closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
