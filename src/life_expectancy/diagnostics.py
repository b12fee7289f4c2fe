"""Inspection queries for the cleaning phase.

Read-only views of what the cleaning pass will change, or has left
unresolved. Every function returns a pandas DataFrame.
"""

import duckdb
import pandas as pd

from life_expectancy.cleaning import (
    duplicate_rows_sql,
    life_expectancy_fills_sql,
)
from life_expectancy.config import validate_table_name


def find_duplicate_keys(con: duckdb.DuckDBPyConnection, table_name: str) -> pd.DataFrame:
    """(country, year) keys held by more than one record, with their frequency."""
    validate_table_name(table_name)
    return con.execute(
        f"""
        SELECT country, year, COUNT(*) AS frequency
        FROM {table_name}
        GROUP BY country, year
        HAVING COUNT(*) > 1
        ORDER BY country, year
        """
    ).fetchdf()


def find_duplicate_rows(con: duckdb.DuckDBPyConnection, table_name: str) -> pd.DataFrame:
    """Records ``deduplicate`` would remove, with their rank inside the key."""
    validate_table_name(table_name)
    return con.execute(
        f"SELECT * FROM ({duplicate_rows_sql(table_name)}) AS d ORDER BY row_id"
    ).fetchdf()


def distinct_statuses(con: duckdb.DuckDBPyConnection, table_name: str) -> list:
    """Known status values, sorted."""
    validate_table_name(table_name)
    rows = con.execute(
        f"""
        SELECT DISTINCT status
        FROM {table_name}
        WHERE status IS NOT NULL
        ORDER BY status
        """
    ).fetchall()
    return [row[0] for row in rows]


def find_missing_status(con: duckdb.DuckDBPyConnection, table_name: str) -> pd.DataFrame:
    validate_table_name(table_name)
    return con.execute(
        f"""
        SELECT *
        FROM {table_name}
        WHERE status IS NULL
        ORDER BY country, year
        """
    ).fetchdf()


def find_missing_life_expectancy(
    con: duckdb.DuckDBPyConnection, table_name: str
) -> pd.DataFrame:
    validate_table_name(table_name)
    return con.execute(
        f"""
        SELECT *
        FROM {table_name}
        WHERE life_expectancy IS NULL
        ORDER BY country, year
        """
    ).fetchdf()


def preview_life_expectancy_interpolation(
    con: duckdb.DuckDBPyConnection, table_name: str
) -> pd.DataFrame:
    """Rows interpolation would fill, with both neighbours and the new value."""
    validate_table_name(table_name)
    return con.execute(
        f"""
        SELECT *
        FROM ({life_expectancy_fills_sql(table_name)}) AS fills
        ORDER BY country, year
        """
    ).fetchdf()


def find_status_conflicts(con: duckdb.DuckDBPyConnection, table_name: str) -> pd.DataFrame:
    """Countries with more than one distinct known status, and those statuses."""
    validate_table_name(table_name)
    return con.execute(
        f"""
        SELECT
            country,
            ARRAY_TO_STRING(LIST_SORT(LIST(DISTINCT status)), ', ') AS statuses
        FROM {table_name}
        WHERE status IS NOT NULL
        GROUP BY country
        HAVING COUNT(DISTINCT status) > 1
        ORDER BY country
        """
    ).fetchdf()
