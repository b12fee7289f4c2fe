"""Life expectancy package for cleaning the world life expectancy table.

This package loads the per-country, per-year life expectancy records into
DuckDB, removes duplicate observations, imputes missing status and life
expectancy values, and writes the cleaned table out.
"""

from life_expectancy.cleaning import (
    CleaningReport,
    InterpolationResult,
    StatusFillResult,
    clean,
    deduplicate,
    fill_missing_status,
    interpolate_missing_life_expectancy,
)
from life_expectancy.export import export_table, fetch_records
from life_expectancy.ingest import load_csv, load_dataframe
from life_expectancy.schema import Record

__version__ = "1.0.0"

__all__ = [
    "CleaningReport",
    "InterpolationResult",
    "Record",
    "StatusFillResult",
    "clean",
    "deduplicate",
    "export_table",
    "fetch_records",
    "fill_missing_status",
    "interpolate_missing_life_expectancy",
    "load_csv",
    "load_dataframe",
]
