#!/usr/bin/env python3
"""
Column Reconciliation Tool: PostgreSQL (source A) vs BigQuery (source B)

Browses both sources and reconciles column pairs row-by-row, keyed by a join
column. Results are printed as JSON.

Connection settings come from the environment (RECON_PG_*, RECON_BQ_*,
GOOGLE_APPLICATION_CREDENTIALS) or, with --vault, from HashiCorp Vault
(VAULT_ADDR / VAULT_TOKEN).

Usage:
    ./scripts/reconcile.py tables --source a --search cust
    ./scripts/reconcile.py columns --source b --table customers
    ./scripts/reconcile.py reconcile --pairs pairs.yaml
    ./scripts/reconcile.py reconcile --pair customers.email=customers.email --key-column id
"""

import sys
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.monitoring import ReconciliationMetrics
from src.reconciliation import (
    BatchOrchestrator,
    ColumnExtractor,
    ConfigError,
    PairReconciler,
    PairWorkingSet,
    ReconciliationError,
    filter_tables,
)
from src.sources import SourceSession
from src.utils.config import (
    BigQueryConfig,
    PostgresConfig,
    ReconcileSettings,
    load_pairs_file,
    parse_pair_spec,
)
from src.utils.logging_config import configure_logging
from src.utils.vault_client import VaultClient

logger = logging.getLogger("src.cli")


class ReconciliationTool:
    """Host process for the reconciliation engine."""

    def __init__(self, settings: ReconcileSettings, use_vault: bool = False):
        """
        Initialize reconciliation tool.

        Args:
            settings: Run settings
            use_vault: Read source credentials from Vault instead of the environment
        """
        settings.validate()
        self.settings = settings
        self.use_vault = use_vault
        self.session = SourceSession()
        self.metrics = ReconciliationMetrics()

    def _vault(self) -> VaultClient:
        """
        Open a Vault client and check it can serve secrets.

        Raises:
            ConfigError: If Vault is sealed or rejects the token
        """
        vault = VaultClient()
        status = vault.health_check()
        if not status:
            vault.close()
            raise ConfigError(f"Vault is not available: {status.error}")
        return vault

    def postgres_config(self) -> PostgresConfig:
        if self.use_vault:
            with self._vault() as vault:
                return PostgresConfig.from_vault(vault)
        return PostgresConfig.from_env()

    def bigquery_config(self) -> BigQueryConfig:
        if self.use_vault:
            with self._vault() as vault:
                return BigQueryConfig.from_vault(vault)
        return BigQueryConfig.from_env()

    def connect(self, source: str) -> None:
        """Connect one side ("a" or "b")."""
        if source == "a":
            self.session.connect_a(self.postgres_config())
        else:
            self.session.connect_b(self.bigquery_config())

    def list_tables(self, source: str, search: Optional[str] = None) -> Dict[str, Any]:
        self.connect(source)
        handle = self.session.source_a if source == "a" else self.session.source_b
        tables = filter_tables(handle.list_tables(), search)
        return {"ok": True, "source": handle.name, "tables": tables}

    def list_columns(self, source: str, table: str) -> Dict[str, Any]:
        self.connect(source)
        handle = self.session.source_a if source == "a" else self.session.source_b
        columns = [c.to_dict() for c in handle.list_columns(table)]
        return {"ok": True, "source": handle.name, "table": table, "columns": columns}

    def reconcile(self, pairs: PairWorkingSet) -> Dict[str, Any]:
        """
        Reconcile a working set.

        A side that fails to connect is reported per pair rather than
        aborting the batch.
        """
        if len(pairs) > 0:
            for side in ("a", "b"):
                try:
                    self.connect(side)
                except ReconciliationError as e:
                    logger.error(f"Could not connect source {side.upper()}: {e}")

        extractor = ColumnExtractor(
            timeout_seconds=self.settings.timeout_seconds,
            metrics=self.metrics
        )
        reconciler = PairReconciler(
            extractor=extractor,
            sample_limit=self.settings.sample_limit
        )
        orchestrator = BatchOrchestrator(
            self.session,
            reconciler=reconciler,
            max_workers=self.settings.max_workers,
            metrics=self.metrics
        )
        return orchestrator.reconcile(pairs.to_list()).to_dict()

    def close(self) -> None:
        self.session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Column Reconciliation Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    tables_parser = subparsers.add_parser("tables", help="List tables of a source")
    tables_parser.add_argument("--source", choices=["a", "b"], required=True)
    tables_parser.add_argument("--search", help="Case-insensitive substring filter")

    columns_parser = subparsers.add_parser("columns", help="List columns of a table")
    columns_parser.add_argument("--source", choices=["a", "b"], required=True)
    columns_parser.add_argument("--table", required=True, help="Table name")

    reconcile_parser = subparsers.add_parser("reconcile", help="Reconcile column pairs")
    reconcile_parser.add_argument("--pairs", help="YAML file with the pair working set")
    reconcile_parser.add_argument(
        "--pair",
        action="append",
        default=[],
        metavar="A_TABLE.A_COL=B_TABLE.B_COL",
        help="Column pair (repeatable)"
    )
    reconcile_parser.add_argument("--key-column", help="Join key column (default: RECON_KEY_COLUMN or ID)")
    reconcile_parser.add_argument("--sample-limit", type=int, help="Max discrepancy rows shown per pair")
    reconcile_parser.add_argument("--max-workers", type=int, help="Pairs processed concurrently")
    reconcile_parser.add_argument("--timeout", type=float, help="Per-extraction deadline in seconds")
    reconcile_parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    reconcile_parser.add_argument("--pushgateway", help="Push metrics to this Pushgateway when done")

    parser.add_argument("--vault", action="store_true", help="Read credentials from Vault")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    return parser


def build_settings(args: argparse.Namespace) -> ReconcileSettings:
    settings = ReconcileSettings.from_env()

    if getattr(args, "key_column", None):
        settings.default_key_column = args.key_column
    if getattr(args, "sample_limit", None) is not None:
        settings.sample_limit = args.sample_limit
    if getattr(args, "max_workers", None) is not None:
        settings.max_workers = args.max_workers
    if getattr(args, "timeout", None) is not None:
        settings.timeout_seconds = args.timeout

    return settings


def build_working_set(args: argparse.Namespace, settings: ReconcileSettings) -> PairWorkingSet:
    if args.pairs:
        working_set = load_pairs_file(args.pairs, settings.default_key_column)
    else:
        working_set = PairWorkingSet()

    for spec in args.pair:
        parse_pair_spec(spec, working_set, settings.default_key_column)

    return working_set


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    if not args.command:
        parser.print_help()
        return 1

    tool = None
    try:
        settings = build_settings(args)
        tool = ReconciliationTool(settings, use_vault=args.vault)

        if args.command == "tables":
            output = tool.list_tables(args.source, args.search)

        elif args.command == "columns":
            output = tool.list_columns(args.source, args.table)

        else:
            working_set = build_working_set(args, settings)
            if args.metrics_port:
                tool.metrics.start_server(args.metrics_port)
            output = tool.reconcile(working_set)
            if args.pushgateway:
                tool.metrics.push(args.pushgateway)

        print(json.dumps(output, indent=2, default=str))
        return 0 if output.get("ok") else 1

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        print(json.dumps({"ok": False, "error": str(e)}, indent=2))
        return 1

    finally:
        if tool is not None:
            tool.close()


if __name__ == "__main__":
    sys.exit(main())
