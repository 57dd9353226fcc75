#!/usr/bin/env python3
"""
Schema and Data Reconciliation Tool for TTree to RNTuple Migrations

Compares a legacy TTree with the RNTuple it was migrated to and reports:
- Entry and field counts
- Field name correspondences
- Type compatibility (exact, near, mismatch, missing)
- Sequence field element counts
- Per-type statistics (count, mean, standard deviation)

Usage:
    ./scripts/reconcile.py check -t legacy.root -r migrated.root -tn events -rn events
    ./scripts/reconcile.py check -t legacy.root -r migrated.root -tn events -rn events --include-values
    ./scripts/reconcile.py types --type-table types.yaml

Exit codes:
    0  stores agree
    1  divergence found
    2  fatal error (store cannot be opened, bad type table, bad arguments)
"""

import sys
import argparse
import json
import logging
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.monitoring import ReconciliationMetrics
from src.reconciliation.checker import CheckerConfig, ReconciliationChecker
from src.reconciliation.errors import ReconciliationError
from src.reconciliation.type_table import TypeTable
from src.utils.logging_config import configure_logging

logger = logging.getLogger("src.scripts.reconcile")

EXIT_PASSED = 0
EXIT_DIVERGED = 1
EXIT_ERROR = 2


def run_check(args) -> int:
    """Run one reconciliation and print the report."""
    config = CheckerConfig(
        ttree_file=args.ttree_file,
        rntuple_file=args.rntuple_file,
        ttree_name=args.ttree_name,
        rntuple_name=args.rntuple_name,
        type_table_path=args.type_table,
        include_values=args.include_values,
    )

    metrics = None
    if args.metrics_port:
        metrics = ReconciliationMetrics()
        metrics.start_server(args.metrics_port)

    checker = ReconciliationChecker.from_config(config, metrics=metrics)
    report = checker.run()

    print(json.dumps(report.to_dict(), indent=2))

    if report.passed:
        logger.info("TTree and RNTuple agree")
        return EXIT_PASSED

    logger.warning("TTree and RNTuple diverge")
    return EXIT_DIVERGED


def show_types(args) -> int:
    """Print the effective type table."""
    if args.type_table:
        table = TypeTable.from_yaml(args.type_table)
    else:
        table = TypeTable.default()

    print(json.dumps(table.to_dict(), indent=2))
    return EXIT_PASSED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Schema and Data Reconciliation Tool for TTree/RNTuple",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Check command
    check_parser = subparsers.add_parser("check", help="Compare a TTree with an RNTuple")
    check_parser.add_argument("-t", "--ttree-file", required=True, help="File holding the TTree")
    check_parser.add_argument("-r", "--rntuple-file", required=True, help="File holding the RNTuple")
    check_parser.add_argument("-tn", "--ttree-name", required=True, help="TTree name")
    check_parser.add_argument("-rn", "--rntuple-name", required=True, help="RNTuple name")
    check_parser.add_argument("--type-table", help="YAML file with extra type spellings")
    check_parser.add_argument("--include-values", action="store_true", help="Add flattened values to the report")
    check_parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")

    # Types command
    types_parser = subparsers.add_parser("types", help="Show the effective type table")
    types_parser.add_argument("--type-table", help="YAML file with extra type spellings")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log records")

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, json_logs=args.json_logs)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    try:
        if args.command == "check":
            return run_check(args)
        elif args.command == "types":
            return show_types(args)

    except (ReconciliationError, ValueError) as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return EXIT_ERROR

    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
