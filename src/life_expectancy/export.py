"""Export of the cleaned table.

Writes the table ordered by (country, year) to CSV or Parquet, chosen by the
output file extension.
"""

import os
from typing import List

import duckdb

from life_expectancy.config import validate_table_name
from life_expectancy.exceptions import ExportError
from life_expectancy.logging_config import create_logger
from life_expectancy.schema import Record

logger = create_logger(__name__)

FORMATS = {
    ".csv": "(HEADER, DELIMITER ',')",
    ".parquet": "(FORMAT PARQUET)",
}


def export_table(con: duckdb.DuckDBPyConnection, table_name: str, output_path: str) -> int:
    """Write a table to a CSV or Parquet file.

    :param con: DuckDB connection
    :param table_name: Table to export
    :param output_path: Destination file, ``.csv`` or ``.parquet``
    :return: Number of rows written
    :raises ExportError: If the format is unsupported or the write fails
    """
    validate_table_name(table_name)

    extension = os.path.splitext(output_path)[1].lower()
    if extension not in FORMATS:
        raise ExportError(
            f"Unsupported output format {extension!r}, expected one of {sorted(FORMATS)}"
        )

    parent = os.path.dirname(os.path.abspath(output_path))
    try:
        os.makedirs(parent, exist_ok=True)
    except OSError as e:
        raise ExportError(f"Unable to create output directory {parent}: {e}") from e

    escaped = output_path.replace("'", "''")
    try:
        con.execute(
            f"""
            COPY (
                SELECT * FROM {table_name}
                ORDER BY country, year, row_id
            )
            TO '{escaped}'
            {FORMATS[extension]}
            """
        )
        row_count = con.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
    except duckdb.Error as e:
        logger.error(f"Failed to export {table_name} to {output_path}: {e}")
        raise ExportError(f"Failed to export {table_name}: {e}") from e

    logger.info(f"Exported {row_count} rows from {table_name} to {output_path}")
    return row_count


def fetch_records(con: duckdb.DuckDBPyConnection, table_name: str) -> List[Record]:
    """Read a table back as Record objects ordered by (country, year)."""
    validate_table_name(table_name)
    cursor = con.execute(f"SELECT * FROM {table_name} ORDER BY country, year, row_id")
    columns = [desc[0] for desc in cursor.description]
    return [Record.from_row(dict(zip(columns, row))) for row in cursor.fetchall()]
