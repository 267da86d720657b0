"""
Source handles for Column Reconciliation

- base: SourceHandle interface and ColumnInfo
- postgres: PostgreSQL handle (source A)
- bigquery: BigQuery handle (source B)
- session: SourceSession owning both handles

The concrete handles import their vendor SDKs, so they are not re-exported
here.
"""

from src.sources.base import ColumnInfo, SourceHandle
from src.sources.session import SourceSession

__all__ = [
    "ColumnInfo",
    "SourceHandle",
    "SourceSession",
]
