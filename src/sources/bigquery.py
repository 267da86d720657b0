"""
BigQuery source handle (source B).

Browses one dataset and runs standard-SQL query jobs for column scans.
Credentials are kept in memory only.
"""

import concurrent.futures
import logging
from typing import Any, List, Optional, Tuple

from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery
from google.oauth2 import service_account

from src.reconciliation.exceptions import SourceConnectionError
from src.sources.base import ColumnInfo, SourceHandle
from src.utils.config import BigQueryConfig

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """
    Backtick-quote a BigQuery identifier.

    Raises:
        ValueError: If the name is empty or contains a backtick
    """
    if not name:
        raise ValueError("Identifier cannot be empty")
    if "`" in name:
        raise ValueError(f"Identifier contains a backtick: {name!r}")
    return f"`{name}`"


class BigQuerySource(SourceHandle):
    """Warehouse source handle over a BigQuery dataset."""

    name = "BigQuery"

    def __init__(
        self,
        client: bigquery.Client,
        project_id: str,
        dataset_id: str,
        location: Optional[str] = None
    ):
        """
        Wrap an existing client.

        Use BigQuerySource.connect() to build one from configuration.
        """
        self._client = client
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.location = location

    @classmethod
    def connect(cls, config: BigQueryConfig) -> "BigQuerySource":
        """
        Create a client and verify access to the dataset.

        Args:
            config: BigQuery settings

        Returns:
            Connected BigQuerySource

        Raises:
            ConfigError: If the config or service account key is invalid
            SourceConnectionError: If the dataset cannot be reached
        """
        config.validate()
        info = config.service_account_info()

        logger.info(f"Connecting to BigQuery dataset {config.project_id}.{config.dataset_id}")

        try:
            credentials = service_account.Credentials.from_service_account_info(info)
            client = bigquery.Client(
                project=config.project_id,
                credentials=credentials,
                location=config.location
            )
        except (ValueError, google_exceptions.GoogleAPIError) as e:
            logger.error(f"Failed to create BigQuery client: {e}")
            raise SourceConnectionError(cls.name, str(e), e) from e

        try:
            client.get_dataset(f"{config.project_id}.{config.dataset_id}")
        except google_exceptions.GoogleAPIError as e:
            client.close()
            logger.error(f"Cannot access BigQuery dataset {config.dataset_id}: {e}")
            raise SourceConnectionError(cls.name, str(e), e) from e

        logger.info("Connected to BigQuery")
        return cls(client, config.project_id, config.dataset_id, config.location)

    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            raise RuntimeError("Not connected to BigQuery")
        return self._client

    def table_path(self, table: str) -> str:
        return f"{self.project_id}.{self.dataset_id}.{table}"

    def list_tables(self) -> List[str]:
        tables = [
            t.table_id
            for t in self.client.list_tables(f"{self.project_id}.{self.dataset_id}")
            if t.table_id
        ]
        logger.debug(f"Listed {len(tables)} tables in dataset {self.dataset_id}")
        return tables

    def list_columns(self, table: str) -> List[ColumnInfo]:
        bq_table = self.client.get_table(self.table_path(table))
        return [
            ColumnInfo(name=f.name, data_type=f.field_type or "")
            for f in bq_table.schema
        ]

    def build_column_query(self, table: str, column: str, key_column: str) -> str:
        return (
            f"SELECT {quote_identifier(key_column)} AS IDX, {quote_identifier(column)} AS VAL "
            f"FROM {quote_identifier(self.table_path(table))}"
        )

    def query_column(
        self,
        table: str,
        column: str,
        key_column: str,
        timeout_seconds: Optional[float] = None
    ) -> List[Tuple[Any, Any]]:
        """
        Scan a full column with a query job.

        On deadline expiry the job is cancelled and the timeout propagates.
        """
        query = self.build_column_query(table, column, key_column)
        job_config = bigquery.QueryJobConfig(use_legacy_sql=False)

        logger.debug(f"Executing BigQuery query: {query}")
        job = self.client.query(query, job_config=job_config, location=self.location)

        try:
            result = job.result(timeout=timeout_seconds)
        except concurrent.futures.TimeoutError:
            logger.warning(f"BigQuery job {job.job_id} exceeded {timeout_seconds}s, cancelling")
            job.cancel()
            raise

        rows = [(row["IDX"], row["VAL"]) for row in result]
        logger.debug(f"Fetched {len(rows)} rows from BigQuery {self.table_path(table)}")
        return rows

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("BigQuery client closed")
