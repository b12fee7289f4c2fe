"""Ingest module for loading raw life expectancy records into DuckDB.

This module reads the raw table (a CSV file or a pandas DataFrame), maps the
headers onto the record contract, normalises every missing value to NULL and
materialises a typed DuckDB table ready for cleaning.

Missing values:
- text columns: empty or whitespace-only text becomes NULL
- life_expectancy, adult_mortality, gdp, bmi: empty text and zero become NULL;
  any other text that is not a finite number is rejected with SchemaError
"""

import os
from typing import Any, Dict, List, Optional

import duckdb
import pandas as pd

from life_expectancy.config import validate_table_name
from life_expectancy.exceptions import IngestError, SchemaError
from life_expectancy.logging_config import create_logger
from life_expectancy.schema import (
    COLUMN_TYPES,
    COUNTRY,
    NUMERIC_MEASURES,
    ROW_ID,
    YEAR,
    normalize_column_name,
    validate_columns,
)

logger = create_logger(__name__)

STAGING_TABLE = "__raw_records"
ORDINAL_COLUMN = "__ordinal"
INTEGER_PATTERN = "[+-]?[0-9]+"


def quote_identifier(name: str) -> str:
    """Quote a column name for use in DuckDB SQL."""
    return '"' + name.replace('"', '""') + '"'


def _text(column: str) -> str:
    return f"NULLIF(TRIM({quote_identifier(column)}), '')"


def _typed_expression(source_column: str, target: str) -> str:
    """Build the SELECT expression converting a raw text column to its typed form."""
    text = _text(source_column)

    if target in NUMERIC_MEASURES:
        return f"NULLIF(TRY_CAST({text} AS DOUBLE), 0) AS {target}"

    if target in COLUMN_TYPES and COLUMN_TYPES[target] != "VARCHAR":
        return f"TRY_CAST({text} AS {COLUMN_TYPES[target]}) AS {target}"

    if target in COLUMN_TYPES:
        return f"{text} AS {target}"

    # Columns outside the contract are carried through as raw text
    return f"{quote_identifier(source_column)} AS {quote_identifier(target)}"


def _count(con: duckdb.DuckDBPyConnection, sql: str) -> int:
    return con.execute(sql).fetchone()[0]


def _check_keys(con: duckdb.DuckDBPyConnection, source: Dict[str, str]) -> None:
    """Validate composite key and row identifier values in the staging table.

    :raises SchemaError: On null keys, non-integer years or bad row identifiers
    """
    country_text = _text(source[COUNTRY])
    year_text = _text(source[YEAR])

    null_keys = _count(
        con,
        f"SELECT COUNT(*) FROM {STAGING_TABLE} "
        f"WHERE {country_text} IS NULL OR {year_text} IS NULL",
    )
    if null_keys > 0:
        raise SchemaError(f"{null_keys} row(s) with a missing country or year")

    # TRY_CAST to an integer type rounds "2001.5", so match the digits instead
    bad_years = _count(
        con,
        f"SELECT COUNT(*) FROM {STAGING_TABLE} "
        f"WHERE NOT regexp_full_match({year_text}, '{INTEGER_PATTERN}') "
        f"OR TRY_CAST({year_text} AS INTEGER) IS NULL",
    )
    if bad_years > 0:
        raise SchemaError(f"{bad_years} row(s) with a non-integer year")

    if ROW_ID not in source:
        return

    row_id_text = _text(source[ROW_ID])
    bad_row_ids = _count(
        con,
        f"SELECT COUNT(*) FROM {STAGING_TABLE} "
        f"WHERE {row_id_text} IS NULL "
        f"OR NOT regexp_full_match({row_id_text}, '{INTEGER_PATTERN}') "
        f"OR TRY_CAST({row_id_text} AS BIGINT) IS NULL",
    )
    if bad_row_ids > 0:
        raise SchemaError(f"{bad_row_ids} row(s) with a missing or non-integer row_id")

    duplicated_row_ids = _count(
        con,
        f"""
        SELECT COUNT(*) FROM (
            SELECT TRY_CAST({row_id_text} AS BIGINT) AS row_id
            FROM {STAGING_TABLE}
            GROUP BY 1
            HAVING COUNT(*) > 1
        )
        """,
    )
    if duplicated_row_ids > 0:
        raise SchemaError(f"{duplicated_row_ids} duplicated row_id value(s)")


def _check_measures(con: duckdb.DuckDBPyConnection, source: Dict[str, str]) -> None:
    """Reject numeric measures holding text that is neither blank nor a number.

    Only blank text and zero mean missing; anything else unparseable would
    otherwise turn into NULL and be overwritten by imputation.

    :raises SchemaError: On non-numeric measure values
    """
    problems = []
    for target in NUMERIC_MEASURES:
        if target not in source:
            continue
        text = _text(source[target])
        bad_values = _count(
            con,
            f"SELECT COUNT(*) FROM {STAGING_TABLE} "
            f"WHERE {text} IS NOT NULL "
            f"AND NOT COALESCE(isfinite(TRY_CAST({text} AS DOUBLE)), false)",
        )
        if bad_values > 0:
            problems.append(f"{target} ({bad_values})")

    if problems:
        raise SchemaError(f"Non-numeric values in {', '.join(problems)}")


def _materialize(con: duckdb.DuckDBPyConnection, table_name: str) -> int:
    """Create the typed table from the staging table and drop the staging table.

    :return: Number of rows loaded
    """
    raw_columns = [
        row[0]
        for row in con.execute(f"DESCRIBE {STAGING_TABLE}").fetchall()
        if row[0] != ORDINAL_COLUMN
    ]
    normalized = [normalize_column_name(col) for col in raw_columns]
    validate_columns(normalized)

    # normalized name -> raw header
    source = dict(zip(normalized, raw_columns))
    logger.debug(f"Column mapping: {source}")

    _check_keys(con, source)
    _check_measures(con, source)

    select_list: List[str] = []
    if ROW_ID in source:
        select_list.append(_typed_expression(source[ROW_ID], ROW_ID))
    else:
        logger.info("No row_id column in source, assigning row_id in file order")
        select_list.append(f"CAST({ORDINAL_COLUMN} AS BIGINT) AS {ROW_ID}")

    for target, raw in source.items():
        if target == ROW_ID:
            continue
        select_list.append(_typed_expression(raw, target))

    # Contract columns absent from the source are created empty
    for target, sql_type in COLUMN_TYPES.items():
        if target not in source and target != ROW_ID:
            select_list.append(f"CAST(NULL AS {sql_type}) AS {target}")

    con.execute(f"DROP TABLE IF EXISTS {table_name}")
    con.execute(
        f"""
        CREATE TABLE {table_name} AS
        SELECT {', '.join(select_list)}
        FROM {STAGING_TABLE}
        ORDER BY {ORDINAL_COLUMN}
        """
    )
    con.execute(f"DROP TABLE IF EXISTS {STAGING_TABLE}")

    row_count = _count(con, f"SELECT COUNT(*) FROM {table_name}")
    logger.info(f"Table {table_name} created with {row_count} rows")
    return row_count


def _ensure_schema(con: duckdb.DuckDBPyConnection, table_name: str) -> None:
    if "." in table_name:
        schema_name = table_name.split(".", 1)[0]
        con.execute(f"CREATE SCHEMA IF NOT EXISTS {schema_name}")


def load_csv(
    con: duckdb.DuckDBPyConnection,
    csv_path: str,
    table_name: str,
    delimiter: Optional[str] = None,
) -> int:
    """Load a raw CSV file into a typed DuckDB table.

    :param con: DuckDB connection
    :param csv_path: Path to the CSV file
    :param table_name: Destination table (replaced if it exists)
    :param delimiter: Field delimiter, sniffed by DuckDB when omitted
    :return: Number of rows loaded
    :raises IngestError: If the file is missing or cannot be parsed
    :raises SchemaError: If the records violate the record contract
    """
    validate_table_name(table_name)

    if not os.path.isfile(csv_path):
        raise IngestError(f"File not found: {csv_path}")

    logger.info(f"Processing file {csv_path} into table {table_name}")
    _ensure_schema(con, table_name)

    options = "header = true, all_varchar = true"
    if delimiter:
        escaped = delimiter.replace("'", "''")
        options += f", delim = '{escaped}'"

    try:
        con.execute(f"DROP TABLE IF EXISTS {STAGING_TABLE}")
        con.execute(
            f"""
            CREATE TEMP TABLE {STAGING_TABLE} AS
            SELECT ROW_NUMBER() OVER () AS {ORDINAL_COLUMN}, *
            FROM read_csv(?, {options})
            """,
            [csv_path],
        )
    except duckdb.Error as e:
        logger.error(f"Failed to read {csv_path}: {e}")
        raise IngestError(f"Failed to read {csv_path}: {e}") from e

    return _materialize(con, table_name)


def _to_text(value: Any) -> Optional[str]:
    # None, NaN, pd.NA and pd.NaT are all missing
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def load_dataframe(
    con: duckdb.DuckDBPyConnection,
    df: pd.DataFrame,
    table_name: str,
) -> int:
    """Load a pandas DataFrame of raw records into a typed DuckDB table.

    Applies the same header and missing-value normalisation as ``load_csv``.

    :param con: DuckDB connection
    :param df: Raw records, one row per observation
    :param table_name: Destination table (replaced if it exists)
    :return: Number of rows loaded
    :raises SchemaError: If the records violate the record contract
    """
    validate_table_name(table_name)
    logger.info(f"Loading DataFrame ({len(df)} rows) into table {table_name}")
    _ensure_schema(con, table_name)

    staged = pd.DataFrame(
        {str(col): [_to_text(v) for v in df[col].tolist()] for col in df.columns},
        dtype=object,
    )
    staged.insert(0, ORDINAL_COLUMN, range(1, len(staged) + 1))

    con.register("__raw_records_df", staged)
    try:
        con.execute(f"DROP TABLE IF EXISTS {STAGING_TABLE}")
        column_list = ", ".join(
            [ORDINAL_COLUMN]
            + [f"CAST({quote_identifier(c)} AS VARCHAR) AS {quote_identifier(c)}"
               for c in staged.columns if c != ORDINAL_COLUMN]
        )
        con.execute(
            f"CREATE TEMP TABLE {STAGING_TABLE} AS "
            f"SELECT {column_list} FROM __raw_records_df"
        )
    finally:
        con.unregister("__raw_records_df")

    return _materialize(con, table_name)
