"""Data quality metrics for the life expectancy table.

This module measures the properties the cleaning pass is meant to improve:
duplicate keys, blank statuses, blank life expectancy values and overall
completeness of the tracked measures. The pipeline takes one snapshot before
and one after cleaning.
"""

import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import duckdb

from life_expectancy.config import validate_table_name
from life_expectancy.logging_config import create_logger
from life_expectancy.schema import COUNTRY, NUMERIC_MEASURES, STATUS, YEAR

logger = create_logger(__name__)

TRACKED_COLUMNS = (STATUS,) + NUMERIC_MEASURES


@dataclass
class DatasetMetrics:
    """Data quality metrics for one snapshot of the table."""

    dataset_name: str
    timestamp: str
    total_records: int
    total_countries: int
    total_years: int
    year_range_min: Optional[int]
    year_range_max: Optional[int]
    duplicate_key_count: int
    missing_status_count: int
    missing_life_expectancy_count: int
    completeness_percentage: Dict[str, float]
    issues: List[str]


class QualityMetrics:
    """Calculate data quality metrics for the record table."""

    def __init__(self, connection: Optional[duckdb.DuckDBPyConnection] = None):
        """Initialize quality metrics calculator.

        Args:
            connection: DuckDB connection. If None, creates a new connection.
        """
        self.con = connection if connection else duckdb.connect()

    def calculate_completeness(self, table_name: str,
                               columns: Tuple[str, ...] = TRACKED_COLUMNS) -> Dict[str, float]:
        """Calculate the percentage of non-NULL values per column.

        Args:
            table_name: Table to inspect
            columns: Columns to measure

        Returns:
            Dictionary mapping column names to completeness percentages (0-100)
        """
        select_list = ", ".join(
            f"100.0 * COUNT({col}) / NULLIF(COUNT(*), 0)" for col in columns
        )
        result = self.con.execute(f"SELECT {select_list} FROM {table_name}").fetchone()
        return {
            col: round(float(value), 2) if value is not None else 0.0
            for col, value in zip(columns, result)
        }

    def count_duplicate_keys(self, table_name: str) -> int:
        """Count (country, year) keys held by more than one record.

        Args:
            table_name: Table to inspect

        Returns:
            Number of duplicated keys
        """
        query = f"""
            SELECT COUNT(*) AS duplicate_count
            FROM (
                SELECT {COUNTRY}, {YEAR}
                FROM {table_name}
                GROUP BY {COUNTRY}, {YEAR}
                HAVING COUNT(*) > 1
            )
        """
        return int(self.con.execute(query).fetchone()[0])

    def get_year_range(self, table_name: str) -> Tuple[Optional[int], Optional[int]]:
        """Get the year range for the table, (None, None) when it is empty."""
        result = self.con.execute(
            f"SELECT MIN({YEAR}), MAX({YEAR}) FROM {table_name}"
        ).fetchone()
        if result[0] is None:
            return (None, None)
        return (int(result[0]), int(result[1]))

    def calculate_dataset_metrics(self, table_name: str) -> DatasetMetrics:
        """Calculate every metric for the table.

        Args:
            table_name: Table to inspect

        Returns:
            DatasetMetrics object with all calculated metrics
        """
        validate_table_name(table_name)
        logger.debug(f"Calculating metrics for {table_name}")
        issues = []

        counts = self.con.execute(
            f"""
            SELECT
                COUNT(*),
                COUNT(DISTINCT {COUNTRY}),
                COUNT(DISTINCT {YEAR}),
                COUNT(*) FILTER (WHERE status IS NULL),
                COUNT(*) FILTER (WHERE life_expectancy IS NULL)
            FROM {table_name}
            """
        ).fetchone()
        total_records, total_countries, total_years, missing_status, missing_le = (
            int(value) for value in counts
        )

        duplicate_keys = self.count_duplicate_keys(table_name)
        completeness = self.calculate_completeness(table_name)
        year_min, year_max = self.get_year_range(table_name)

        if duplicate_keys > 0:
            issues.append(f"Found {duplicate_keys} duplicated (country, year) key(s)")
        if missing_status > 0:
            issues.append(f"{missing_status} record(s) with blank status")
        if missing_le > 0:
            issues.append(f"{missing_le} record(s) with blank life expectancy")

        metrics = DatasetMetrics(
            dataset_name=table_name,
            timestamp=datetime.now().isoformat(),
            total_records=total_records,
            total_countries=total_countries,
            total_years=total_years,
            year_range_min=year_min,
            year_range_max=year_max,
            duplicate_key_count=duplicate_keys,
            missing_status_count=missing_status,
            missing_life_expectancy_count=missing_le,
            completeness_percentage=completeness,
            issues=issues,
        )

        logger.info(
            f"Metrics for {table_name}: {total_records} records, "
            f"{total_countries} countries, {len(issues)} issue(s)"
        )
        return metrics

    def export_metrics_json(self, metrics: Dict[str, DatasetMetrics],
                            output_path: str) -> None:
        """Export metrics to JSON file.

        Args:
            metrics: Dictionary of snapshot name to metrics
            output_path: Path to output JSON file
        """
        parent = os.path.dirname(os.path.abspath(output_path))
        os.makedirs(parent, exist_ok=True)

        metrics_dict = {name: asdict(metric) for name, metric in metrics.items()}
        with open(output_path, "w") as f:
            json.dump(metrics_dict, f, indent=2)
        logger.info(f"Metrics exported to {output_path}")
