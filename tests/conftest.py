"""
Pytest configuration and shared fixtures.

Provides an in-memory source handle so the reconciliation engine can be
exercised without PostgreSQL or BigQuery.
"""

import pytest

from src.reconciliation.models import ColumnPair, ColumnRef
from src.sources.base import ColumnInfo, SourceHandle


class FakeSource(SourceHandle):
    """
    In-memory source.

    tables maps table name -> list of row dicts. Queries against a table
    listed in failing_tables raise the configured error.
    """

    def __init__(self, name, tables=None, failing_tables=None):
        self.name = name
        self.tables = tables or {}
        self.failing_tables = failing_tables or {}
        self.queries = []
        self.closed = False

    def list_tables(self):
        return sorted(self.tables)

    def list_columns(self, table):
        rows = self.tables[table]
        names = list(rows[0].keys()) if rows else []
        return [ColumnInfo(name=n, data_type="STRING") for n in names]

    def query_column(self, table, column, key_column, timeout_seconds=None):
        self.queries.append((table, column, key_column, timeout_seconds))

        if table in self.failing_tables:
            raise self.failing_tables[table]
        if table not in self.tables:
            raise LookupError(f'relation "{table}" does not exist')

        rows = self.tables[table]
        if rows and column not in rows[0]:
            raise LookupError(f'column "{column}" does not exist')

        return [(row.get(key_column), row.get(column)) for row in rows]

    def close(self):
        self.closed = True


def make_pair(pair_id="p1", table_a="t", column_a="val", table_b="t", column_b="val", key="id"):
    """Build a ColumnPair with the same key column on both sides."""
    return ColumnPair(
        pair_id=pair_id,
        source_a=ColumnRef(table=table_a, column=column_a, data_type="VARCHAR"),
        source_b=ColumnRef(table=table_b, column=column_b, data_type="STRING"),
        key_column_a=key,
        key_column_b=key
    )


def rows_from(mapping, key="id", column="val"):
    """Turn {key: value} into row dicts."""
    return [{key: k, column: v} for k, v in mapping.items()]


@pytest.fixture
def example_sources():
    """Sources A and B holding the worked example data."""
    source_a = FakeSource("Source A", {"t": rows_from({1: "a", 2: "b", 3: None})})
    source_b = FakeSource("Source B", {"t": rows_from({1: "a ", 2: "c", 4: "d"})})
    return source_a, source_b
