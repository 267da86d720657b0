"""
Unit tests for config module.
"""

import json

import pytest
from unittest.mock import MagicMock

from src.reconciliation.exceptions import ConfigError
from src.reconciliation.working_set import PairWorkingSet
from src.utils.config import (
    BigQueryConfig,
    PostgresConfig,
    ReconcileSettings,
    load_pairs_file,
    parse_pair_spec,
    parse_pairs,
)


SERVICE_ACCOUNT = {"type": "service_account", "project_id": "proj", "client_email": "sa@proj.iam"}


class TestPostgresConfig:
    """Test PostgreSQL settings."""

    @pytest.fixture
    def config(self):
        return PostgresConfig(host="db", database="sales", user="recon", password="s3cret")

    def test_valid_config(self, config):
        config.validate()

    def test_missing_fields_reported(self):
        with pytest.raises(ConfigError, match="database, user"):
            PostgresConfig(host="db").validate()

    def test_invalid_port(self, config):
        config.port = 70000

        with pytest.raises(ConfigError, match="Invalid PostgreSQL port"):
            config.validate()

    def test_pool_bounds(self, config):
        config.min_connections = 5
        config.max_connections = 2

        with pytest.raises(ConfigError, match="exceeds"):
            config.validate()

    def test_repr_masks_password(self, config):
        assert "s3cret" not in repr(config)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RECON_PG_HOST", "pg.internal")
        monkeypatch.setenv("RECON_PG_PORT", "6543")
        monkeypatch.setenv("RECON_PG_DATABASE", "warehouse")
        monkeypatch.setenv("RECON_PG_USER", "reader")
        monkeypatch.setenv("RECON_PG_SCHEMA", "sales")

        config = PostgresConfig.from_env()

        assert config.host == "pg.internal"
        assert config.port == 6543
        assert config.database == "warehouse"
        assert config.schema == "sales"

    def test_from_env_bad_port(self, monkeypatch):
        monkeypatch.setenv("RECON_PG_PORT", "abc")

        with pytest.raises(ConfigError, match="RECON_PG_PORT must be an integer"):
            PostgresConfig.from_env()

    def test_from_vault(self):
        vault = MagicMock()
        vault.get_postgres_credentials.return_value = {
            "host": "vault-db",
            "port": "5433",
            "database": "sales",
            "username": "recon",
            "password": "pw"
        }

        config = PostgresConfig.from_vault(vault)

        assert config.host == "vault-db"
        assert config.port == 5433
        assert config.user == "recon"
        assert config.password == "pw"

    def test_from_vault_bad_port(self):
        vault = MagicMock()
        vault.get_postgres_credentials.return_value = {"port": "not-a-port"}

        with pytest.raises(ConfigError, match="Invalid PostgreSQL credentials"):
            PostgresConfig.from_vault(vault)


class TestBigQueryConfig:
    """Test BigQuery settings."""

    def test_missing_service_account(self):
        config = BigQueryConfig(project_id="proj", dataset_id="ds")

        with pytest.raises(ConfigError, match="Service account JSON not provided"):
            config.validate()

    def test_missing_dataset(self):
        config = BigQueryConfig(project_id="proj", service_account_json=json.dumps(SERVICE_ACCOUNT))

        with pytest.raises(ConfigError, match="project_id and dataset_id"):
            config.validate()

    def test_invalid_service_account_json(self):
        config = BigQueryConfig(project_id="proj", dataset_id="ds", service_account_json="{not json")

        with pytest.raises(ConfigError, match="Service account JSON is invalid"):
            config.validate()

    def test_service_account_must_be_object(self):
        config = BigQueryConfig(project_id="proj", dataset_id="ds", service_account_json="[1, 2]")

        with pytest.raises(ConfigError, match="expected an object"):
            config.service_account_info()

    def test_service_account_from_file(self, tmp_path):
        key_file = tmp_path / "key.json"
        key_file.write_text(json.dumps(SERVICE_ACCOUNT))
        config = BigQueryConfig(project_id="proj", dataset_id="ds", credentials_file=str(key_file))

        config.validate()
        assert config.service_account_info() == SERVICE_ACCOUNT

    def test_service_account_file_missing(self, tmp_path):
        config = BigQueryConfig(
            project_id="proj",
            dataset_id="ds",
            credentials_file=str(tmp_path / "missing.json")
        )

        with pytest.raises(ConfigError, match="not found"):
            config.service_account_info()

    def test_repr_masks_key(self):
        config = BigQueryConfig(project_id="proj", dataset_id="ds", service_account_json=json.dumps(SERVICE_ACCOUNT))

        assert "client_email" not in repr(config)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RECON_BQ_PROJECT", "proj")
        monkeypatch.setenv("RECON_BQ_DATASET", "analytics")
        monkeypatch.setenv("RECON_BQ_LOCATION", "EU")
        monkeypatch.delenv("RECON_BQ_SERVICE_ACCOUNT_JSON", raising=False)
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)

        config = BigQueryConfig.from_env()

        assert config.project_id == "proj"
        assert config.dataset_id == "analytics"
        assert config.location == "EU"
        assert config.service_account_json is None

    def test_from_vault_serializes_mapping_key(self):
        vault = MagicMock()
        vault.get_bigquery_credentials.return_value = {
            "project_id": "proj",
            "dataset_id": "ds",
            "service_account_json": SERVICE_ACCOUNT
        }

        config = BigQueryConfig.from_vault(vault)

        assert config.service_account_info() == SERVICE_ACCOUNT


class TestReconcileSettings:
    """Test run settings."""

    def test_defaults(self):
        settings = ReconcileSettings()

        settings.validate()
        assert settings.sample_limit == 200
        assert settings.max_workers == 1
        assert settings.timeout_seconds is None
        assert settings.default_key_column == "ID"

    @pytest.mark.parametrize("kwargs", [
        {"sample_limit": -1},
        {"max_workers": 0},
        {"timeout_seconds": 0},
        {"default_key_column": ""},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            ReconcileSettings(**kwargs).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RECON_SAMPLE_LIMIT", "50")
        monkeypatch.setenv("RECON_MAX_WORKERS", "4")
        monkeypatch.setenv("RECON_TIMEOUT", "2.5")
        monkeypatch.setenv("RECON_KEY_COLUMN", "CUSTOMER_ID")

        settings = ReconcileSettings.from_env()

        assert settings.sample_limit == 50
        assert settings.max_workers == 4
        assert settings.timeout_seconds == 2.5
        assert settings.default_key_column == "CUSTOMER_ID"

    def test_from_env_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("RECON_TIMEOUT", "soon")

        with pytest.raises(ConfigError, match="RECON_TIMEOUT must be a number"):
            ReconcileSettings.from_env()


class TestPairsDocument:
    """Test loading working sets from YAML."""

    def test_parse_pairs(self):
        data = {
            "key_column": "ID",
            "pairs": [
                {
                    "id": "email",
                    "a": {"table": "CUSTOMERS", "column": "EMAIL", "type": "VARCHAR2"},
                    "b": {"table": "customers", "name": "email", "type": "STRING", "key_column": "id"}
                },
                {
                    "a": {"table": "ORDERS", "column": "TOTAL"},
                    "b": {"table": "orders", "column": "total"}
                },
            ]
        }

        working_set = parse_pairs(data)

        first, second = working_set.to_list()
        assert first.pair_id == "email"
        assert first.source_a.data_type == "VARCHAR2"
        assert first.source_b.column == "email"
        assert first.key_column_a == "ID"
        assert first.key_column_b == "id"
        assert second.key_column_a == second.key_column_b == "ID"
        assert len(second.pair_id) == 8

    def test_pair_level_key_column(self):
        data = {"pairs": [{
            "key_column": "ORDER_ID",
            "a": {"table": "A", "column": "X"},
            "b": {"table": "B", "column": "Y"}
        }]}

        pair = parse_pairs(data, default_key_column="ID").to_list()[0]

        assert pair.key_column_a == "ORDER_ID"
        assert pair.key_column_b == "ORDER_ID"

    @pytest.mark.parametrize("data", [
        None,
        [],
        {"pairs": "nope"},
        {"pairs": ["nope"]},
        {"pairs": [{"a": {"table": "A"}, "b": {"table": "B", "column": "Y"}}]},
        {"pairs": [{"a": "A.X", "b": {"table": "B", "column": "Y"}}]},
    ])
    def test_malformed_documents(self, data):
        with pytest.raises(ConfigError):
            parse_pairs(data)

    def test_duplicate_ids_rejected(self):
        entry = {"id": "dup", "a": {"table": "A", "column": "X"}, "b": {"table": "B", "column": "Y"}}

        with pytest.raises(ConfigError, match="Duplicate pair id"):
            parse_pairs({"pairs": [entry, dict(entry)]})

    def test_load_pairs_file(self, tmp_path):
        pairs_file = tmp_path / "pairs.yaml"
        pairs_file.write_text(
            "key_column: id\n"
            "pairs:\n"
            "  - id: name\n"
            "    a: {table: users, column: name}\n"
            "    b: {table: users, column: full_name}\n"
        )

        working_set = load_pairs_file(str(pairs_file))

        assert len(working_set) == 1
        assert working_set.get("name").label == "users::name__users::full_name"

    def test_load_pairs_file_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_pairs_file(str(tmp_path / "missing.yaml"))

    def test_load_pairs_file_invalid_yaml(self, tmp_path):
        pairs_file = tmp_path / "pairs.yaml"
        pairs_file.write_text("pairs: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid pairs file"):
            load_pairs_file(str(pairs_file))


class TestParsePairSpec:
    """Test command-line pair parsing."""

    def test_parse(self):
        working_set = PairWorkingSet()

        parse_pair_spec("sales.orders.total=orders.amount", working_set, key_column="order_id")

        pair = working_set.to_list()[0]
        assert pair.source_a.table == "sales.orders"
        assert pair.source_a.column == "total"
        assert pair.source_b.table == "orders"
        assert pair.source_b.column == "amount"
        assert pair.key_column_a == pair.key_column_b == "order_id"

    @pytest.mark.parametrize("spec", ["orders.total", "orders=orders.amount", ".total=orders.amount"])
    def test_invalid(self, spec):
        with pytest.raises(ConfigError, match="Invalid pair"):
            parse_pair_spec(spec, PairWorkingSet())
