"""
Source session owning both source handles.

Replaces process-wide connection state: the session is created by the host,
passed to the orchestrator and closed explicitly.
"""

import logging
from typing import Callable, Optional

from src.reconciliation.exceptions import ConfigError, SourceConnectionError
from src.sources.base import SourceHandle
from src.utils.config import BigQueryConfig, PostgresConfig

logger = logging.getLogger(__name__)


class SourceSession:
    """
    Holds the source A (relational) and source B (warehouse) handles.

    Each side moves between disconnected and connected. A failed connect
    leaves that side disconnected.
    """

    def __init__(
        self,
        source_a: Optional[SourceHandle] = None,
        source_b: Optional[SourceHandle] = None,
        connect_a_factory: Optional[Callable[[PostgresConfig], SourceHandle]] = None,
        connect_b_factory: Optional[Callable[[BigQueryConfig], SourceHandle]] = None
    ):
        """
        Initialize the session.

        Args:
            source_a: Already-open source A handle
            source_b: Already-open source B handle
            connect_a_factory: Builds a source A handle from config
                (defaults to PostgresSource.connect)
            connect_b_factory: Builds a source B handle from config
                (defaults to BigQuerySource.connect)
        """
        self.source_a = source_a
        self.source_b = source_b
        self._connect_a_factory = connect_a_factory
        self._connect_b_factory = connect_b_factory

    @property
    def is_a_connected(self) -> bool:
        return self.source_a is not None

    @property
    def is_b_connected(self) -> bool:
        return self.source_b is not None

    def connect_a(self, config: PostgresConfig) -> SourceHandle:
        """
        Connect source A, replacing any existing handle.

        Raises:
            ConfigError: If the config is invalid
            SourceConnectionError: If the connection fails
        """
        self.disconnect_a()
        factory = self._connect_a_factory
        if factory is None:
            from src.sources.postgres import PostgresSource
            factory = PostgresSource.connect

        self.source_a = self._open(factory, config, "source A")
        return self.source_a

    def connect_b(self, config: BigQueryConfig) -> SourceHandle:
        """
        Connect source B, replacing any existing handle.

        Raises:
            ConfigError: If the config is invalid
            SourceConnectionError: If the connection fails
        """
        self.disconnect_b()
        factory = self._connect_b_factory
        if factory is None:
            from src.sources.bigquery import BigQuerySource
            factory = BigQuerySource.connect

        self.source_b = self._open(factory, config, "source B")
        return self.source_b

    def disconnect_a(self) -> None:
        if self.source_a is not None:
            self._close(self.source_a)
            self.source_a = None

    def disconnect_b(self) -> None:
        if self.source_b is not None:
            self._close(self.source_b)
            self.source_b = None

    def close(self) -> None:
        """Disconnect both sides."""
        self.disconnect_a()
        self.disconnect_b()

    def _open(self, factory, config, label: str) -> SourceHandle:
        try:
            handle = factory(config)
        except (ConfigError, SourceConnectionError):
            raise
        except Exception as e:
            logger.error(f"Failed to connect {label}: {e}")
            raise SourceConnectionError(label, str(e), e) from e

        logger.info(f"Connected {label} ({handle.name})")
        return handle

    def _close(self, handle: SourceHandle) -> None:
        try:
            handle.close()
            logger.info(f"Disconnected {handle.name}")
        except Exception as e:
            logger.warning(f"Error closing {handle.name}: {e}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
