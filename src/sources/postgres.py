"""
PostgreSQL source handle (source A).

Backed by a psycopg2 ThreadedConnectionPool. Each operation borrows one
connection for a single query and returns it afterwards.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import pool, sql

from src.reconciliation.exceptions import SourceConnectionError
from src.sources.base import ColumnInfo, SourceHandle
from src.utils.config import PostgresConfig

logger = logging.getLogger(__name__)

FETCH_SIZE = 10000


class PostgresSource(SourceHandle):
    """Relational source handle over a PostgreSQL schema."""

    name = "PostgreSQL"

    def __init__(
        self,
        connection_pool: pool.AbstractConnectionPool,
        schema: str = "public",
        max_connections: Optional[int] = None
    ):
        """
        Wrap an existing connection pool.

        Use PostgresSource.connect() to build one from configuration.

        Args:
            connection_pool: psycopg2 connection pool
            schema: Schema holding the reconciled tables
            max_connections: Pool size; callers beyond it wait for a free
                connection (defaults to the pool's maxconn)
        """
        self._pool = connection_pool
        self.schema = schema

        if max_connections is None:
            max_connections = getattr(connection_pool, "maxconn", None)
        # psycopg2 pools raise PoolError when exhausted instead of blocking
        self._slots = (
            threading.BoundedSemaphore(max_connections)
            if isinstance(max_connections, int) and max_connections > 0
            else None
        )

    @classmethod
    def connect(cls, config: PostgresConfig) -> "PostgresSource":
        """
        Open a connection pool and verify connectivity.

        Args:
            config: PostgreSQL connection settings

        Returns:
            Connected PostgresSource

        Raises:
            ConfigError: If the config is invalid (no I/O attempted)
            SourceConnectionError: If the server is unreachable or rejects the credentials
        """
        config.validate()

        logger.info(f"Connecting to PostgreSQL at {config.host}:{config.port}/{config.database}")

        try:
            connection_pool = pool.ThreadedConnectionPool(
                config.min_connections,
                config.max_connections,
                host=config.host,
                port=config.port,
                dbname=config.database,
                user=config.user,
                password=config.password
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise SourceConnectionError(cls.name, str(e).strip(), e) from e

        source = cls(connection_pool, schema=config.schema, max_connections=config.max_connections)

        try:
            with source._connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("SELECT 1")
        except psycopg2.Error as e:
            source.close()
            logger.error(f"PostgreSQL connectivity check failed: {e}")
            raise SourceConnectionError(cls.name, str(e).strip(), e) from e

        logger.info("Connected to PostgreSQL")
        return source

    @contextmanager
    def _connection(self):
        """Borrow a pooled connection for one query."""
        if self._pool is None:
            raise RuntimeError("Not connected to PostgreSQL")

        if self._slots is not None:
            self._slots.acquire()
        try:
            conn = self._pool.getconn()
            try:
                yield conn
            finally:
                broken = bool(conn.closed)
                if not broken:
                    try:
                        conn.rollback()
                    except psycopg2.Error:
                        broken = True
                self._pool.putconn(conn, close=broken)
        finally:
            if self._slots is not None:
                self._slots.release()

    def list_tables(self) -> List[str]:
        with self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = %s AND table_type = 'BASE TABLE'
                    ORDER BY table_name
                    """,
                    (self.schema,)
                )
                tables = [row[0] for row in cursor.fetchall()]

        logger.debug(f"Listed {len(tables)} tables in schema {self.schema}")
        return tables

    def list_columns(self, table: str) -> List[ColumnInfo]:
        with self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT column_name, data_type
                    FROM information_schema.columns
                    WHERE table_schema = %s AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (self.schema, table)
                )
                return [ColumnInfo(name=name, data_type=data_type) for name, data_type in cursor.fetchall()]

    def build_column_query(self, table: str, column: str, key_column: str) -> sql.Composed:
        return sql.SQL("SELECT {key} AS idx, {value} AS val FROM {schema}.{table}").format(
            key=sql.Identifier(key_column),
            value=sql.Identifier(column),
            schema=sql.Identifier(self.schema),
            table=sql.Identifier(table)
        )

    def query_column(
        self,
        table: str,
        column: str,
        key_column: str,
        timeout_seconds: Optional[float] = None
    ) -> List[Tuple[Any, Any]]:
        """
        Scan a full column.

        Column names are matched against the catalog without regard to case,
        so the key column "ID" finds an unquoted id column.

        The deadline is enforced server-side with SET LOCAL statement_timeout;
        expiry raises psycopg2.errors.QueryCanceled.
        """
        rows: List[Tuple[Any, Any]] = []

        with self._connection() as conn:
            with conn.cursor() as cursor:
                if timeout_seconds is not None:
                    # statement_timeout = 0 disables the timeout
                    cursor.execute(
                        "SET LOCAL statement_timeout = %s",
                        (max(1, int(timeout_seconds * 1000)),)
                    )
                column, key_column = self._resolve_columns(cursor, table, (column, key_column))
                cursor.execute(self.build_column_query(table, column, key_column))
                while True:
                    batch = cursor.fetchmany(FETCH_SIZE)
                    if not batch:
                        break
                    rows.extend((row[0], row[1]) for row in batch)

        logger.debug(f"Fetched {len(rows)} rows from PostgreSQL {self.schema}.{table}")
        return rows

    def _resolve_columns(self, cursor, table: str, names: Sequence[str]) -> List[str]:
        """
        Map requested column names to the table's actual column names.

        An exact match wins; otherwise a single case-insensitive match is
        used. Unknown names are returned unchanged so the scan reports them.
        """
        cursor.execute(
            """
            SELECT column_name
            FROM information_schema.columns
            WHERE table_schema = %s AND table_name = %s
            """,
            (self.schema, table)
        )
        actual = [row[0] for row in cursor.fetchall()]

        resolved = []
        for name in names:
            if name not in actual:
                matches = [c for c in actual if c.lower() == name.lower()]
                if len(matches) == 1:
                    logger.debug(f"Resolved column {name} to {matches[0]} in {self.schema}.{table}")
                    name = matches[0]
            resolved.append(name)
        return resolved

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")
