"""Run one query against a configured data source and print or export the result.

Usage:
    python scripts/run_query.py local_postgres "select region, day, sales from daily_sales"
    python scripts/run_query.py local_postgres "select ..." --chart bar --x day --y sales --group-by region --svg out.svg
    python scripts/run_query.py local_mysql --tables
    python scripts/run_query.py local_mysql --describe orders
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from querycharts.config.settings import load_settings
from querycharts.db.executor import execute_for
from querycharts.db.introspection import fetch_table_summary, fetch_tables
from querycharts.db.models import NormalizedResult
from querycharts.exceptions.errors import QueryChartsError
from querycharts.export.exporter import export_result_csv, export_svg
from querycharts.logging.logger import get_logger, init_logging
from querycharts.viz.series import generate_series
from querycharts.viz.spec import ChartSpec

log = get_logger("scripts.run_query")


def _print_result(result: NormalizedResult) -> None:
    print("\t".join(result.field_names))
    for row in result.rows:
        print("\t".join("" if v is None else str(v) for v in row))
    print(f"({len(result.rows)} rows, {result.runtime_millis:.1f} ms)", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Run a query and chart the result.")
    p.add_argument("data_source", help="Name of a data source in config/<APP_ENV>.yaml")
    p.add_argument("query", nargs="?", help="SQL to run")
    p.add_argument("--tables", action="store_true", help="List tables instead of running a query")
    p.add_argument("--describe", metavar="TABLE", help="Describe the columns of TABLE")
    p.add_argument("--chart", choices=["line", "scatter", "bar", "area", "pie", "normal"])
    p.add_argument("--x")
    p.add_argument("--y", action="append", default=[])
    p.add_argument("--group-by")
    p.add_argument("--stacking", default="off", choices=["off", "enable", "percent"])
    p.add_argument("--svg", metavar="PATH", help="Write the chart as SVG")
    p.add_argument("--csv", metavar="PATH", help="Write the result as CSV")
    args = p.parse_args(argv)

    settings = load_settings()
    init_logging(settings.log_level, settings.log_file)

    try:
        ds = settings.data_source(args.data_source)
        timeout = settings.query_timeout_seconds
        if args.tables:
            result = fetch_tables(ds, timeout=timeout)
        elif args.describe:
            result = fetch_table_summary(args.describe, ds, timeout=timeout)
        elif args.query:
            result = execute_for(ds, args.query, timeout=timeout)
        else:
            p.error("a query, --tables or --describe is required")
            return 2

        if args.csv:
            export_result_csv(result, args.csv)

        if not args.chart:
            _print_result(result)
            return 0

        spec = ChartSpec.from_result(
            result, type=args.chart, x=args.x or "", y=args.y, stacking=args.stacking, group_by=args.group_by
        )
        if args.svg:
            svg = export_svg(spec)
            if svg is None:
                print("Nothing to draw.", file=sys.stderr)
                return 1
            Path(args.svg).write_text(svg, encoding="utf-8")
        else:
            print(json.dumps([asdict(s) for s in generate_series(spec)], default=str, indent=2))
        return 0
    except QueryChartsError as e:
        log.error("Query failed: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
