# =============================================================================
# src/cli/bigquery.py - BigQuery Bridge CLI
# =============================================================================
#
# Thin command-line front end over BigQueryService, mainly for operators
# checking credentials, cache configuration and table loads by hand.
#
#   python -m src.cli query "SELECT 1 AS x"
#   python -m src.cli truncate my_dataset my_table
#   python -m src.cli load rows.csv my_table --fields id,name --dataset raw
#   python -m src.cli publish-config [--path config/bigquery.yaml] [--force]
#
# Logs go to stderr so stdout carries only command output (JSON rows for
# `query`), which keeps the output pipeable.
# =============================================================================

"""Command-line interface for the BigQuery bridge."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.config.loader import (
    DEFAULT_CONFIG_PATH,
    guard_against_invalid_configuration,
    load_settings,
    publish_config,
)
from src.main import build_all
from src.utils.errors import BridgeError
from src.utils.logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Run BigQuery queries and loads through the bridge.",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to the YAML configuration file (default: %(default)s)",
    )
    parser.add_argument("--project", default=None, help="Override the project id")
    sub = parser.add_subparsers(dest="command", required=True)

    query = sub.add_parser("query", help="Run a query and print rows as JSON")
    query.add_argument("sql", help="Standard SQL text")
    query.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for the query to finish (default: until it does)",
    )

    truncate = sub.add_parser("truncate", help="Delete every row of a table")
    truncate.add_argument("dataset")
    truncate.add_argument("table")

    load = sub.add_parser("load", help="Load a ';'-delimited CSV into a table")
    load.add_argument("file", type=Path)
    load.add_argument("table")
    load.add_argument(
        "--fields",
        required=True,
        help="Comma-separated column names, in CSV column order",
    )
    load.add_argument("--dataset", default=None)

    publish = sub.add_parser("publish-config", help="Write the default YAML configuration")
    publish.add_argument("--path", type=Path, default=DEFAULT_CONFIG_PATH)
    publish.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = _build_parser().parse_args(argv)

    if args.command == "publish-config":
        try:
            target = publish_config(args.path, force=args.force)
        except BridgeError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(f"Configuration published to {target}")
        return 0

    settings = load_settings(args.config)
    configure_logging(log_level=settings.log_level, stream=sys.stderr)

    try:
        guard_against_invalid_configuration(settings)
        service = build_all(settings)["bigquery"]

        if args.command == "query":
            client = service.make_client(args.project)
            job = service.run_query(args.sql, client, wait_timeout=args.wait)
            rows = [dict(row.items()) for row in job.result()]
            print(json.dumps(rows, indent=2, default=str))
        elif args.command == "truncate":
            done = service.truncate(args.dataset, args.table, args.project)
            print("done" if done else "submitted")
        elif args.command == "load":
            fields = [name.strip() for name in args.fields.split(",") if name.strip()]
            job = service.save_from_file(
                args.file, args.table, fields, dataset=args.dataset, project_id=args.project
            )
            print(f"Loaded {job.output_rows} rows (job {job.job_id})")
    except BridgeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
