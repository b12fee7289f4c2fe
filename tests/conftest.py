"""Pytest configuration and shared fixtures for the life expectancy cleaning tests.

This module provides fixtures for:
- In-memory DuckDB connections
- Raw record test data
- Temporary file management
"""

import tempfile
from pathlib import Path
from typing import Generator

import duckdb
import pandas as pd
import pytest

from life_expectancy.ingest import load_dataframe

TABLE_NAME = "world_life_expectancy"


# ============================================================================
# DuckDB Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def duckdb_connection() -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """Provide an in-memory DuckDB connection for testing.

    Yields:
        DuckDB connection object
    """
    con = duckdb.connect(":memory:")

    yield con

    con.close()


@pytest.fixture(scope="function")
def table_name() -> str:
    return TABLE_NAME


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def sample_raw_data() -> pd.DataFrame:
    """Generate raw records with the headers of the published dataset.

    Countries:
    - X: 2001 has blank status and blank life expectancy between two known years
    - Y: 2000 has blank life expectancy and no previous year
    - Z: 2005 is duplicated (row_id 4 and 5), 2006 has blank status
    - W: no known status in any year

    Returns:
        Pandas DataFrame with test data
    """
    return pd.DataFrame({
        "Country": ["X", "X", "X", "Y", "Y", "Z", "Z", "Z", "W", "W"],
        "Year": [2000, 2001, 2002, 2000, 2001, 2005, 2005, 2006, 2010, 2011],
        "Status": [
            "Developing", "", "Developing",
            "Developed", "Developed",
            "Developing", "Developing", "",
            "", "",
        ],
        "Lifeexpectancy": ["70.0", "", "72.0", "", "70.0", "65.0", "65.0", "66.0", "80.0", "81.0"],
        "AdultMortality": ["263", "271", "268", "0", "75", "120", "120", "118", "", "60"],
        "GDP": ["584.3", "612.7", "0", "41000.5", "42000.1", "1500", "1500", "1600", "", "3000"],
        "BMI ": ["19.1", "18.6", "18.1", "60.2", "60.5", "25.0", "25.0", "25.3", "0", "30.1"],
        "Row_ID": [1, 2, 3, 8, 9, 4, 5, 6, 7, 10],
    })


@pytest.fixture(scope="function")
def loaded_table(
    duckdb_connection: duckdb.DuckDBPyConnection,
    sample_raw_data: pd.DataFrame,
) -> str:
    """Load the sample raw data into the test connection.

    Returns:
        Name of the loaded table
    """
    load_dataframe(duckdb_connection, sample_raw_data, TABLE_NAME)
    return TABLE_NAME


# ============================================================================
# Temporary File Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for testing.

    Yields:
        Path to temporary directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def temp_csv_file(temp_dir: Path, sample_raw_data: pd.DataFrame) -> Path:
    """Create a temporary CSV file with the sample raw data.

    Returns:
        Path to temporary CSV file
    """
    csv_path = temp_dir / "world_life_expectancy.csv"
    sample_raw_data.to_csv(csv_path, index=False)
    return csv_path
