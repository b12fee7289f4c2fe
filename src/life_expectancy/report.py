"""Cleaning-phase data quality report.

Loads a raw CSV file and reports what the cleaning pass would do to it:
duplicated keys, blank statuses, blank life expectancy values, the values
interpolation would write and countries with inconsistent statuses. Nothing
is modified unless ``--after`` is given, in which case the report is run a
second time on the cleaned table.

Usage:
    wle-report --input data/raw/world_life_expectancy.csv
    wle-report --input raw.csv --format json --output reports/cleaning.json --after
"""

import argparse
import json
import os
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

import duckdb
import pandas as pd

from life_expectancy import diagnostics
from life_expectancy.cleaning import clean
from life_expectancy.exceptions import CleaningBaseError
from life_expectancy.ingest import load_csv
from life_expectancy.logging_config import create_logger
from life_expectancy.quality_metrics import QualityMetrics

logger = create_logger(__name__)

REPORT_TABLE = "world_life_expectancy"


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Rows as native Python values, NaN as None."""
    return json.loads(df.to_json(orient="records"))


class CleaningReporter:
    """Generate cleaning-phase reports for one raw table."""

    def __init__(self, connection: Optional[duckdb.DuckDBPyConnection] = None):
        """Initialize the reporter.

        Args:
            connection: DuckDB connection. If None, creates a new connection.
        """
        self.con = connection if connection else duckdb.connect()
        self.metrics_calculator = QualityMetrics(self.con)

    def collect(self, table_name: str) -> Dict[str, Any]:
        """Collect metrics and diagnostics for the table in its current state."""
        preview = diagnostics.preview_life_expectancy_interpolation(self.con, table_name)
        conflicts = diagnostics.find_status_conflicts(self.con, table_name)
        duplicates = diagnostics.find_duplicate_keys(self.con, table_name)

        return {
            "metrics": asdict(self.metrics_calculator.calculate_dataset_metrics(table_name)),
            "statuses": diagnostics.distinct_statuses(self.con, table_name),
            "duplicate_keys": _records(duplicates),
            "status_conflicts": _records(conflicts),
            "interpolation_preview": _records(preview),
        }

    def generate_console_report(self, sections: Dict[str, Dict[str, Any]]) -> None:
        """Print the report to the console.

        Args:
            sections: Report sections keyed by snapshot name
        """
        print("\n" + "=" * 80)
        print("WORLD LIFE EXPECTANCY CLEANING REPORT")
        print("=" * 80)
        print(f"\nGenerated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

        for name, section in sections.items():
            metrics = section["metrics"]
            print("-" * 80)
            print(f"\nSnapshot: {name}")
            print(f"  Total Records: {metrics['total_records']:,}")
            print(f"  Countries: {metrics['total_countries']}")
            print(f"  Year Range: {metrics['year_range_min']}-{metrics['year_range_max']}")
            print(f"  Duplicated Keys: {metrics['duplicate_key_count']}")
            print(f"  Blank Status: {metrics['missing_status_count']}")
            print(f"  Blank Life Expectancy: {metrics['missing_life_expectancy_count']}")
            print(f"  Known Statuses: {', '.join(section['statuses']) or 'none'}")

            print("\n  Completeness:")
            for column, value in metrics["completeness_percentage"].items():
                print(f"    {column}: {value}%")

            if section["status_conflicts"]:
                print("\n  Inconsistent Status:")
                for row in section["status_conflicts"]:
                    print(f"    {row['country']}: {row['statuses']}")

            if section["interpolation_preview"]:
                print("\n  Interpolation Preview:")
                for row in section["interpolation_preview"]:
                    print(
                        f"    {row['country']} {row['year']}: "
                        f"({row['previous_life_expectancy']} + {row['next_life_expectancy']}) / 2 "
                        f"-> {row['filled_life_expectancy']}"
                    )

            if metrics["issues"]:
                print("\n  Issues:")
                for issue in metrics["issues"]:
                    print(f"    - {issue}")
            else:
                print("\n  No issues detected")
            print()

        print("=" * 80 + "\n")

    def export_json(self, sections: Dict[str, Dict[str, Any]], output_path: str) -> None:
        parent = os.path.dirname(os.path.abspath(output_path))
        os.makedirs(parent, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(sections, f, indent=2)
        logger.info(f"Cleaning report exported to {output_path}")

    def run_report(self, input_path: str, after: bool = False) -> Dict[str, Dict[str, Any]]:
        """Load the raw file and collect the report sections.

        Args:
            input_path: Raw CSV file
            after: Also clean the table and report on the result

        Returns:
            Report sections keyed by snapshot name ("before", and "after")
        """
        load_csv(self.con, input_path, REPORT_TABLE)
        sections = {"before": self.collect(REPORT_TABLE)}

        if after:
            clean(self.con, REPORT_TABLE)
            sections["after"] = self.collect(REPORT_TABLE)

        return sections


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the cleaning report."""
    parser = argparse.ArgumentParser(
        description="Report duplicates and missing values in the world life expectancy table"
    )
    parser.add_argument("--input", "-i", required=True, help="Raw CSV file")
    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Output format (default: console)",
    )
    parser.add_argument("--output", type=str, help="Output file path (required for json)")
    parser.add_argument(
        "--after",
        action="store_true",
        help="Also report on the table after cleaning",
    )

    args = parser.parse_args(argv)

    if args.format == "json" and not args.output:
        parser.error("--output is required for json format")

    try:
        reporter = CleaningReporter()
        sections = reporter.run_report(args.input, after=args.after)
    except CleaningBaseError as e:
        logger.error(f"Error generating cleaning report: {e}")
        return 1

    if args.format == "json":
        reporter.export_json(sections, args.output)
    else:
        reporter.generate_console_report(sections)

    return 0


if __name__ == "__main__":
    sys.exit(main())
