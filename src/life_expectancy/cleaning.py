"""Record deduplication and imputation for the life expectancy table.

The cleaning pass runs as set-based SQL over the loaded DuckDB table and
mutates it in place:

1. ``deduplicate`` keeps one row per (country, year).
2. ``fill_missing_status`` fills a blank status from the country's other years.
3. ``interpolate_missing_life_expectancy`` fills a blank life expectancy with
   the mean of the previous and following year.

Deduplication must come first: both imputations look records up by
(country, year) and a repeated key would match several rows. The two
imputations are independent of each other.

A value that cannot be imputed is left NULL. That is reported in the returned
results, never raised.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

import duckdb

from life_expectancy.config import validate_table_name
from life_expectancy.exceptions import CleaningError, StatusConflictError
from life_expectancy.logging_config import create_logger
from life_expectancy.schema import STATUS_FILL_ORDER
from life_expectancy.transaction_manager import CleaningTransaction

logger = create_logger(__name__)

STATUS_FILLS_TABLE = "__status_fills"
LIFE_EXPECTANCY_FILLS_TABLE = "__life_expectancy_fills"


@dataclass
class StatusFillResult:
    """Outcome of a status fill pass."""

    filled: int = 0
    unresolved: int = 0
    unresolved_countries: List[str] = field(default_factory=list)
    conflicting_countries: List[str] = field(default_factory=list)


@dataclass
class InterpolationResult:
    """Outcome of a life expectancy interpolation pass."""

    filled: int = 0
    unresolved: int = 0


@dataclass
class CleaningReport:
    """Summary of a complete cleaning pass."""

    table_name: str
    rows_before: int
    rows_after: int
    duplicates_removed: int
    status: StatusFillResult
    life_expectancy: InterpolationResult

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _count(con: duckdb.DuckDBPyConnection, sql: str) -> int:
    return con.execute(sql).fetchone()[0]


def count_rows(con: duckdb.DuckDBPyConnection, table_name: str) -> int:
    """Return the number of rows in a table."""
    return _count(con, f"SELECT COUNT(*) FROM {validate_table_name(table_name)}")


def duplicate_rows_sql(table_name: str) -> str:
    """SELECT returning every row after the first in its (country, year) group.

    Rows of a group are ranked by row_id, i.e. by arrival order.
    """
    return f"""
        SELECT row_id, country, year, row_num
        FROM (
            SELECT
                row_id,
                country,
                year,
                ROW_NUMBER() OVER (
                    PARTITION BY country, year
                    ORDER BY row_id
                ) AS row_num
            FROM {table_name}
        ) AS ranked
        WHERE row_num > 1
    """


def status_fills_sql(table_name: str) -> str:
    """SELECT returning the status each blank-status row would receive.

    The per-country status is computed once from the known statuses; the
    first entry of ``STATUS_FILL_ORDER`` present for the country wins.
    """
    cases = " ".join(
        f"WHEN BOOL_OR(status = '{status}') THEN '{status}'"
        for status in STATUS_FILL_ORDER
    )
    return f"""
        WITH country_status AS (
            SELECT country, CASE {cases} END AS fill_status
            FROM {table_name}
            WHERE status IS NOT NULL
            GROUP BY country
        )
        SELECT t.row_id, t.country, t.year, cs.fill_status
        FROM {table_name} AS t
        JOIN country_status AS cs
            ON t.country = cs.country
        WHERE t.status IS NULL
          AND cs.fill_status IS NOT NULL
    """


def life_expectancy_fills_sql(table_name: str) -> str:
    """SELECT returning the interpolated value for each fillable row.

    A row qualifies when the same country has non-blank values in both the
    previous and the following year. The mean is rounded half up to one
    decimal using exact decimal arithmetic.
    """
    return f"""
        SELECT
            t1.row_id,
            t1.country,
            t1.year,
            t2.life_expectancy AS previous_life_expectancy,
            t3.life_expectancy AS next_life_expectancy,
            CAST(
                ROUND(
                    (CAST(t2.life_expectancy AS DECIMAL(28, 10))
                     + CAST(t3.life_expectancy AS DECIMAL(28, 10))) * 0.5,
                    1
                ) AS DOUBLE
            ) AS filled_life_expectancy
        FROM {table_name} AS t1
        JOIN {table_name} AS t2
            ON t1.country = t2.country
            AND t2.year = t1.year - 1
        JOIN {table_name} AS t3
            ON t1.country = t3.country
            AND t3.year = t1.year + 1
        WHERE t1.life_expectancy IS NULL
          AND t2.life_expectancy IS NOT NULL
          AND t3.life_expectancy IS NOT NULL
    """


def status_conflicts(con: duckdb.DuckDBPyConnection, table_name: str) -> List[str]:
    """Return countries whose known statuses are not all the same."""
    validate_table_name(table_name)
    rows = con.execute(
        f"""
        SELECT country
        FROM {table_name}
        WHERE status IS NOT NULL
        GROUP BY country
        HAVING COUNT(DISTINCT status) > 1
        ORDER BY country
        """
    ).fetchall()
    return [row[0] for row in rows]


def deduplicate(con: duckdb.DuckDBPyConnection, table_name: str) -> int:
    """Remove every record whose (country, year) key was already seen.

    The record with the lowest row_id of each key is kept. Keys without
    duplicates are untouched. Removal is permanent.

    :param con: DuckDB connection
    :param table_name: Table to clean in place
    :return: Number of records removed
    :raises CleaningError: If the delete fails
    """
    validate_table_name(table_name)
    try:
        before = count_rows(con, table_name)
        con.execute(
            f"""
            DELETE FROM {table_name}
            WHERE row_id IN (
                SELECT row_id FROM ({duplicate_rows_sql(table_name)}) AS duplicates
            )
            """
        )
        removed = before - count_rows(con, table_name)
    except duckdb.Error as e:
        raise CleaningError(f"Deduplication of {table_name} failed: {e}") from e

    logger.info(f"Removed {removed} duplicate record(s) from {table_name}")
    return removed


def fill_missing_status(
    con: duckdb.DuckDBPyConnection,
    table_name: str,
    strict: bool = False,
) -> StatusFillResult:
    """Fill blank statuses from the other records of the same country.

    A country that has "Developing" in any year fills its blanks with
    "Developing"; otherwise one that has "Developed" fills with "Developed".
    Countries with no known status keep their blanks.

    Countries whose known statuses disagree are reported in
    ``conflicting_countries``. In strict mode they abort the fill.

    :param con: DuckDB connection
    :param table_name: Table to clean in place
    :param strict: Raise instead of resolving inconsistent statuses
    :return: Fill counts and the countries left unresolved or in conflict
    :raises StatusConflictError: In strict mode, if any country is in conflict
    :raises CleaningError: If the update fails
    """
    validate_table_name(table_name)
    result = StatusFillResult()

    try:
        result.conflicting_countries = status_conflicts(con, table_name)
        if result.conflicting_countries:
            if strict:
                raise StatusConflictError(result.conflicting_countries)
            logger.warning(
                f"Inconsistent status for {len(result.conflicting_countries)} "
                f"country(ies), preferring {STATUS_FILL_ORDER[0]}: "
                f"{result.conflicting_countries}"
            )

        con.execute(f"DROP TABLE IF EXISTS {STATUS_FILLS_TABLE}")
        con.execute(
            f"CREATE TEMP TABLE {STATUS_FILLS_TABLE} AS {status_fills_sql(table_name)}"
        )
        result.filled = _count(con, f"SELECT COUNT(*) FROM {STATUS_FILLS_TABLE}")

        con.execute(
            f"""
            UPDATE {table_name}
            SET status = fills.fill_status
            FROM {STATUS_FILLS_TABLE} AS fills
            WHERE {table_name}.row_id = fills.row_id
            """
        )
        con.execute(f"DROP TABLE {STATUS_FILLS_TABLE}")

        unresolved = con.execute(
            f"""
            SELECT country, COUNT(*)
            FROM {table_name}
            WHERE status IS NULL
            GROUP BY country
            ORDER BY country
            """
        ).fetchall()
    except duckdb.Error as e:
        raise CleaningError(f"Status fill of {table_name} failed: {e}") from e

    result.unresolved = sum(row[1] for row in unresolved)
    result.unresolved_countries = [row[0] for row in unresolved]

    logger.info(f"Filled {result.filled} blank status value(s) in {table_name}")
    if result.unresolved:
        logger.warning(
            f"{result.unresolved} status value(s) left blank, no known status for: "
            f"{result.unresolved_countries}"
        )
    return result


def interpolate_missing_life_expectancy(
    con: duckdb.DuckDBPyConnection,
    table_name: str,
) -> InterpolationResult:
    """Fill blank life expectancy values from the adjacent years.

    Each blank takes the mean of the same country's previous-year and
    following-year values, rounded half up to one decimal. Both neighbours
    must exist and be non-blank. Values filled in this pass are never used as
    neighbours in the same pass, so gaps of two or more years and the first
    or last year of a series stay blank.

    :param con: DuckDB connection
    :param table_name: Table to clean in place
    :return: Fill and unresolved counts
    :raises CleaningError: If the update fails
    """
    validate_table_name(table_name)
    result = InterpolationResult()

    try:
        con.execute(f"DROP TABLE IF EXISTS {LIFE_EXPECTANCY_FILLS_TABLE}")
        con.execute(
            f"CREATE TEMP TABLE {LIFE_EXPECTANCY_FILLS_TABLE} AS "
            f"{life_expectancy_fills_sql(table_name)}"
        )
        result.filled = _count(
            con, f"SELECT COUNT(*) FROM {LIFE_EXPECTANCY_FILLS_TABLE}"
        )

        con.execute(
            f"""
            UPDATE {table_name}
            SET life_expectancy = fills.filled_life_expectancy
            FROM {LIFE_EXPECTANCY_FILLS_TABLE} AS fills
            WHERE {table_name}.row_id = fills.row_id
            """
        )
        con.execute(f"DROP TABLE {LIFE_EXPECTANCY_FILLS_TABLE}")

        result.unresolved = _count(
            con,
            f"SELECT COUNT(*) FROM {table_name} WHERE life_expectancy IS NULL",
        )
    except duckdb.Error as e:
        raise CleaningError(
            f"Life expectancy interpolation of {table_name} failed: {e}"
        ) from e

    logger.info(f"Interpolated {result.filled} life expectancy value(s) in {table_name}")
    if result.unresolved:
        logger.warning(
            f"{result.unresolved} life expectancy value(s) left blank "
            f"(no non-blank value in both adjacent years)"
        )
    return result


def clean(
    con: duckdb.DuckDBPyConnection,
    table_name: str,
    strict: bool = False,
) -> CleaningReport:
    """Run the full cleaning pass in one transaction.

    :param con: DuckDB connection
    :param table_name: Table to clean in place
    :param strict: Raise on inconsistent per-country statuses
    :return: Report of everything the pass changed or left unresolved
    :raises CleaningError: If any step fails; the table is left as loaded
    """
    validate_table_name(table_name)
    logger.info(f"Cleaning table {table_name}")

    with CleaningTransaction(con):
        rows_before = count_rows(con, table_name)
        removed = deduplicate(con, table_name)
        status = fill_missing_status(con, table_name, strict=strict)
        life_expectancy = interpolate_missing_life_expectancy(con, table_name)
        rows_after = count_rows(con, table_name)

    return CleaningReport(
        table_name=table_name,
        rows_before=rows_before,
        rows_after=rows_after,
        duplicates_removed=removed,
        status=status,
        life_expectancy=life_expectancy,
    )
