"""Clean module for the end-to-end life expectancy cleaning run.

This module loads a raw CSV file into DuckDB, runs the cleaning pass
(deduplication, status fill, life expectancy interpolation), measures data
quality before and after, and optionally writes the cleaned table to CSV or
Parquet.

Usage:
    wle-clean --input data/raw/world_life_expectancy.csv \\
        --output data/clean/world_life_expectancy.csv
    python -m life_expectancy.clean.run --input raw.csv --strict
"""

import argparse
import sys
import time
from typing import Dict, List, Optional

import duckdb

from life_expectancy import config
from life_expectancy.cleaning import CleaningReport, clean
from life_expectancy.exceptions import CleaningBaseError, CleaningPipelineError
from life_expectancy.export import export_table
from life_expectancy.ingest import load_csv
from life_expectancy.logging_config import (
    attach_log_file,
    create_logger,
    detach_log_file,
    log_exception,
    set_log_level,
)
from life_expectancy.quality_metrics import DatasetMetrics, QualityMetrics

logger = create_logger(__name__)


class CleaningPipeline:
    """Manage one cleaning run of the world life expectancy table.

    Key features:
    - Load the raw CSV into a typed DuckDB table
    - Clean the table in place inside one transaction
    - Snapshot data quality before and after cleaning
    - Optionally export the cleaned table and the quality metrics
    """

    def __init__(
        self,
        input_path: str,
        output_path: Optional[str] = None,
        db_path: Optional[str] = None,
        table_name: Optional[str] = None,
        strict: Optional[bool] = None,
        metrics_path: Optional[str] = None,
    ) -> None:
        """Initialize the pipeline with a DuckDB connection.

        Arguments left as None fall back to the environment configuration.
        """
        self.input_path = input_path
        self.output_path = output_path
        self.db_path = db_path or config.DB_PATH
        self.table_name = config.validate_table_name(table_name or config.TABLE_NAME)
        self.strict = config.STRICT_STATUS if strict is None else strict
        self.metrics_path = metrics_path

        logger.info(f"Initializing cleaning pipeline (database: {self.db_path})")
        try:
            self.con = duckdb.connect(self.db_path)
        except duckdb.Error as e:
            raise CleaningPipelineError(
                f"Unable to open DuckDB database {self.db_path}: {e}"
            ) from e
        self.quality = QualityMetrics(self.con)
        self.metrics: Dict[str, DatasetMetrics] = {}
        self.report: Optional[CleaningReport] = None

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.con is not None:
            self.con.close()
            self.con = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def log_summary(self, duration: float) -> None:
        """Log what the run changed and what it left unresolved."""
        report = self.report
        logger.info(
            f"Cleaning completed in {duration:.2f}s: "
            f"{report.rows_before} -> {report.rows_after} rows"
        )
        logger.info(f"   Duplicates removed: {report.duplicates_removed}")
        logger.info(
            f"   Status filled: {report.status.filled}, "
            f"unresolved: {report.status.unresolved}"
        )
        logger.info(
            f"   Life expectancy interpolated: {report.life_expectancy.filled}, "
            f"unresolved: {report.life_expectancy.unresolved}"
        )
        if report.status.conflicting_countries:
            logger.warning(
                f"   Countries with inconsistent status: "
                f"{report.status.conflicting_countries}"
            )

    def run(self) -> CleaningReport:
        """
        Main method to run the cleaning process.

        :return: Report of the cleaning pass
        :raises CleaningPipelineError: If any stage of the run fails
        """
        start_time = time.time()

        try:
            logger.info(f"Starting cleaning run for {self.input_path}")

            load_csv(self.con, self.input_path, self.table_name)
            self.metrics["before"] = self.quality.calculate_dataset_metrics(self.table_name)

            self.report = clean(self.con, self.table_name, strict=self.strict)
            self.metrics["after"] = self.quality.calculate_dataset_metrics(self.table_name)

            if self.output_path:
                export_table(self.con, self.table_name, self.output_path)

            if self.metrics_path:
                self.quality.export_metrics_json(self.metrics, self.metrics_path)

            self.log_summary(time.time() - start_time)
            return self.report

        except (CleaningBaseError, duckdb.Error, OSError) as e:
            log_exception(logger, e, {"input": self.input_path, "table": self.table_name})
            raise CleaningPipelineError(f"Cleaning run failed: {e}") from e


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Clean the world life expectancy table: deduplicate records "
                    "and impute missing status and life expectancy values."
    )
    parser.add_argument("--input", "-i", required=True, help="Raw CSV file to clean")
    parser.add_argument("--output", "-o", help="Destination file (.csv or .parquet)")
    parser.add_argument("--db", help="DuckDB database file (default: in-memory)")
    parser.add_argument("--table", help="Table name to load the records into")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail when a country's known statuses disagree",
    )
    parser.add_argument("--metrics-output", help="Write quality metrics as JSON")
    parser.add_argument(
        "--log-level",
        choices=config.VALID_LOG_LEVELS,
        default=None,
        help="Logging level (default: LOG_LEVEL environment variable or INFO)",
    )
    parser.add_argument("--log-file", help="Also write the log to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point, returns the process exit code."""
    args = parse_args(argv)
    log_level = args.log_level or config.get_log_level()
    set_log_level(log_level)
    log_handler = attach_log_file(args.log_file, log_level) if args.log_file else None

    try:
        config.validate_config()
        with CleaningPipeline(
            input_path=args.input,
            output_path=args.output,
            db_path=args.db,
            table_name=args.table,
            strict=args.strict,
            metrics_path=args.metrics_output,
        ) as pipeline:
            pipeline.run()
    except CleaningBaseError as e:
        logger.error(f"Cleaning run failed: {e}")
        return 1
    finally:
        if log_handler is not None:
            detach_log_file(log_handler)

    return 0


if __name__ == "__main__":
    sys.exit(main())
