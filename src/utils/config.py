"""
Configuration for Column Reconciliation

Connection settings for PostgreSQL (source A) and BigQuery (source B), run
settings, and loading of pair working sets from YAML files.

Connection configs carry credentials; their repr masks secrets so they can
never end up in logs.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

import yaml

from src.reconciliation.exceptions import ConfigError
from src.reconciliation.models import ColumnRef
from src.reconciliation.reconciler import DEFAULT_SAMPLE_LIMIT
from src.reconciliation.working_set import PairWorkingSet

if TYPE_CHECKING:
    from src.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

DEFAULT_KEY_COLUMN = "ID"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


@dataclass
class PostgresConfig:
    """
    PostgreSQL connection settings.

    Attributes:
        host: Server host
        port: Server port
        database: Database name
        user: Username
        password: Password (masked in repr)
        schema: Schema browsed for tables and used to qualify queries
        min_connections: Pool minimum size
        max_connections: Pool maximum size
    """

    host: str = "localhost"
    port: int = 5432
    database: str = ""
    user: str = ""
    password: str = field(default="", repr=False)
    schema: str = "public"
    min_connections: int = 0
    max_connections: int = 4

    def validate(self) -> None:
        """
        Check required parameters.

        Raises:
            ConfigError: If a required parameter is missing or invalid
        """
        missing = [name for name in ("host", "database", "user") if not getattr(self, name)]
        if missing:
            raise ConfigError(f"PostgreSQL config missing: {', '.join(missing)}")

        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigError(f"Invalid PostgreSQL port: {self.port}")

        if self.min_connections < 0 or self.max_connections < 1:
            raise ConfigError("PostgreSQL pool sizes must be min >= 0 and max >= 1")

        if self.min_connections > self.max_connections:
            raise ConfigError(
                f"PostgreSQL min_connections ({self.min_connections}) exceeds "
                f"max_connections ({self.max_connections})"
            )

    @classmethod
    def from_env(cls) -> "PostgresConfig":
        """Build from RECON_PG_* environment variables."""
        return cls(
            host=os.getenv("RECON_PG_HOST", "localhost"),
            port=_env_int("RECON_PG_PORT", 5432),
            database=os.getenv("RECON_PG_DATABASE", ""),
            user=os.getenv("RECON_PG_USER", ""),
            password=os.getenv("RECON_PG_PASSWORD", ""),
            schema=os.getenv("RECON_PG_SCHEMA", "public"),
            max_connections=_env_int("RECON_PG_MAX_CONNECTIONS", 4)
        )

    @classmethod
    def from_vault(cls, vault: "VaultClient", schema: str = "public") -> "PostgresConfig":
        """
        Build from the postgres-credentials secret.

        The secret is expected to hold host, port, database, username and
        password keys.
        """
        creds = vault.get_postgres_credentials()
        try:
            return cls(
                host=creds.get("host", "localhost"),
                port=int(creds.get("port", 5432)),
                database=creds.get("database", ""),
                user=creds.get("username") or creds.get("user", ""),
                password=creds.get("password", ""),
                schema=creds.get("schema", schema)
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid PostgreSQL credentials in Vault: {e}")


@dataclass
class BigQueryConfig:
    """
    BigQuery connection settings.

    Attributes:
        project_id: GCP project
        dataset_id: Dataset browsed for tables
        service_account_json: Service account key as a JSON string (masked in repr)
        credentials_file: Path to a service account key file
        location: Optional job location
    """

    project_id: str = ""
    dataset_id: str = ""
    service_account_json: Optional[str] = field(default=None, repr=False)
    credentials_file: Optional[str] = None
    location: Optional[str] = None

    def validate(self) -> None:
        """
        Check required parameters.

        Raises:
            ConfigError: If a required parameter is missing or invalid
        """
        if not self.project_id or not self.dataset_id:
            raise ConfigError("BigQuery config requires project_id and dataset_id")

        if not self.service_account_json and not self.credentials_file:
            raise ConfigError("Service account JSON not provided")

        if self.service_account_json:
            self.service_account_info()

    def service_account_info(self) -> Dict[str, Any]:
        """
        Parse the service account key.

        Returns:
            Parsed key, read from service_account_json or credentials_file

        Raises:
            ConfigError: If the key is missing or not valid JSON
        """
        raw = self.service_account_json
        if raw is None and self.credentials_file:
            path = Path(self.credentials_file)
            if not path.exists():
                raise ConfigError(f"Service account file not found: {path}")
            raw = path.read_text()

        if raw is None:
            raise ConfigError("Service account JSON not provided")

        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Service account JSON is invalid: {e}")

        if not isinstance(info, dict):
            raise ConfigError("Service account JSON is invalid: expected an object")

        return info

    @classmethod
    def from_env(cls) -> "BigQueryConfig":
        """Build from RECON_BQ_* and GOOGLE_APPLICATION_CREDENTIALS."""
        return cls(
            project_id=os.getenv("RECON_BQ_PROJECT", ""),
            dataset_id=os.getenv("RECON_BQ_DATASET", ""),
            service_account_json=os.getenv("RECON_BQ_SERVICE_ACCOUNT_JSON") or None,
            credentials_file=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or None,
            location=os.getenv("RECON_BQ_LOCATION") or None
        )

    @classmethod
    def from_vault(cls, vault: "VaultClient") -> "BigQueryConfig":
        """
        Build from the bigquery-credentials secret.

        The secret holds project_id, dataset_id and service_account_json.
        """
        creds = vault.get_bigquery_credentials()
        sa = creds.get("service_account_json")
        if isinstance(sa, dict):
            sa = json.dumps(sa)

        return cls(
            project_id=creds.get("project_id", ""),
            dataset_id=creds.get("dataset_id", ""),
            service_account_json=sa,
            location=creds.get("location")
        )


@dataclass
class ReconcileSettings:
    """Run settings for a reconciliation batch."""

    sample_limit: int = DEFAULT_SAMPLE_LIMIT
    max_workers: int = 1
    timeout_seconds: Optional[float] = None
    default_key_column: str = DEFAULT_KEY_COLUMN

    def validate(self) -> None:
        if self.sample_limit < 0:
            raise ConfigError(f"sample_limit must be >= 0, got {self.sample_limit}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout_seconds}")
        if not self.default_key_column:
            raise ConfigError("default_key_column must not be empty")

    @classmethod
    def from_env(cls) -> "ReconcileSettings":
        """Build from RECON_SAMPLE_LIMIT, RECON_MAX_WORKERS, RECON_TIMEOUT and RECON_KEY_COLUMN."""
        return cls(
            sample_limit=_env_int("RECON_SAMPLE_LIMIT", DEFAULT_SAMPLE_LIMIT),
            max_workers=_env_int("RECON_MAX_WORKERS", 1),
            timeout_seconds=_env_float("RECON_TIMEOUT", None),
            default_key_column=os.getenv("RECON_KEY_COLUMN", DEFAULT_KEY_COLUMN)
        )


def _column_ref(entry: Any, side: str, index: int) -> ColumnRef:
    if not isinstance(entry, dict):
        raise ConfigError(f"Pair {index}: '{side}' must be a mapping")

    table = entry.get("table")
    column = entry.get("column") or entry.get("name")
    if not table or not column:
        raise ConfigError(f"Pair {index}: '{side}' requires table and column")

    return ColumnRef(table=str(table), column=str(column), data_type=str(entry.get("type", "")))


def parse_pairs(data: Any, default_key_column: str = DEFAULT_KEY_COLUMN) -> PairWorkingSet:
    """
    Build a working set from parsed YAML/JSON data.

    Expected shape::

        key_column: ID            # optional default for every pair
        pairs:
          - id: email             # optional
            a: {table: CUSTOMERS, column: EMAIL, type: VARCHAR2}
            b: {table: customers, column: email, type: STRING, key_column: id}

    Args:
        data: Parsed document
        default_key_column: Key column used when neither the pair nor the
            document names one

    Returns:
        PairWorkingSet in document order

    Raises:
        ConfigError: If the document is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("pairs"), list):
        raise ConfigError("Pairs document must be a mapping with a 'pairs' list")

    doc_key = data.get("key_column", default_key_column)
    working_set = PairWorkingSet()

    for i, entry in enumerate(data["pairs"]):
        if not isinstance(entry, dict):
            raise ConfigError(f"Pair {i}: entry must be a mapping")

        source_a = _column_ref(entry.get("a"), "a", i)
        source_b = _column_ref(entry.get("b"), "b", i)
        pair_key = entry.get("key_column", doc_key)
        key_a = entry["a"].get("key_column", pair_key)
        key_b = entry["b"].get("key_column", pair_key)

        try:
            working_set.add(
                source_a,
                source_b,
                key_column_a=str(key_a),
                key_column_b=str(key_b),
                pair_id=str(entry["id"]) if entry.get("id") is not None else None
            )
        except ValueError as e:
            raise ConfigError(f"Pair {i}: {e}")

    return working_set


def load_pairs_file(path: str, default_key_column: str = DEFAULT_KEY_COLUMN) -> PairWorkingSet:
    """
    Load a working set from a YAML file.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    pairs_path = Path(path)
    if not pairs_path.exists():
        raise ConfigError(f"Pairs file not found: {pairs_path}")

    try:
        with open(pairs_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid pairs file {pairs_path}: {e}")

    working_set = parse_pairs(data, default_key_column)
    logger.info(f"Loaded {len(working_set)} pairs from {pairs_path}")
    return working_set


def parse_pair_spec(
    spec: str,
    working_set: PairWorkingSet,
    key_column: str = DEFAULT_KEY_COLUMN
) -> None:
    """
    Parse a "A_TABLE.A_COLUMN=B_TABLE.B_COLUMN" command-line pair and add it.

    Raises:
        ConfigError: If the text is not in that form
    """
    try:
        left, right = spec.split("=", 1)
        table_a, column_a = left.strip().rsplit(".", 1)
        table_b, column_b = right.strip().rsplit(".", 1)
    except ValueError:
        raise ConfigError(f"Invalid pair {spec!r}, expected A_TABLE.A_COLUMN=B_TABLE.B_COLUMN")

    if not all((table_a, column_a, table_b, column_b)):
        raise ConfigError(f"Invalid pair {spec!r}, expected A_TABLE.A_COLUMN=B_TABLE.B_COLUMN")

    working_set.add(
        ColumnRef(table=table_a, column=column_a),
        ColumnRef(table=table_b, column=column_b),
        key_column_a=key_column
    )
