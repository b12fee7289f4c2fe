"""Unit tests for the ingest module.

Tests cover:
- CSV and DataFrame loading
- Header normalisation
- Missing-value normalisation
- Row identifier assignment
- Schema error handling
"""

import pandas as pd
import pytest

from life_expectancy.cleaning import fill_missing_status
from life_expectancy.exceptions import ConfigurationError, IngestError, SchemaError
from life_expectancy.ingest import load_csv, load_dataframe
from life_expectancy.schema import normalize_column_name


def _column(con, table_name, column):
    return con.execute(
        f"SELECT {column} FROM {table_name} ORDER BY row_id"
    ).fetchdf()[column].tolist()


# ============================================================================
# Header Normalisation Tests
# ============================================================================

@pytest.mark.unit
class TestNormalizeColumnName:
    """Test raw header normalisation."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Country", "country"),
            ("Year", "year"),
            ("Life expectancy ", "life_expectancy"),
            ("Lifeexpectancy", "life_expectancy"),
            ("Life_expectancy", "life_expectancy"),
            ("AdultMortality", "adult_mortality"),
            ("Adult Mortality", "adult_mortality"),
            ("Row_ID", "row_id"),
            (" BMI ", "bmi"),
            ("GDP", "gdp"),
            ("HIV/AIDS", "hiv_aids"),
            ("thinness  1-19 years", "thinness_1_19_years"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_column_name(raw) == expected


# ============================================================================
# CSV Loading Tests
# ============================================================================

@pytest.mark.unit
@pytest.mark.duckdb
class TestLoadCsv:
    """Test loading raw CSV files."""

    def test_load_csv_success(self, duckdb_connection, temp_csv_file, table_name):
        """Test a CSV file is loaded with canonical columns."""
        row_count = load_csv(duckdb_connection, str(temp_csv_file), table_name)

        assert row_count == 10
        columns = [
            row[0] for row in duckdb_connection.execute(f"DESCRIBE {table_name}").fetchall()
        ]
        assert columns[0] == "row_id"
        for expected in ["country", "year", "status", "life_expectancy",
                         "adult_mortality", "gdp", "bmi"]:
            assert expected in columns

    def test_column_types(self, duckdb_connection, temp_csv_file, table_name):
        """Test contract columns get their declared types."""
        load_csv(duckdb_connection, str(temp_csv_file), table_name)

        types = {
            row[0]: row[1]
            for row in duckdb_connection.execute(f"DESCRIBE {table_name}").fetchall()
        }
        assert types["row_id"] == "BIGINT"
        assert types["year"] == "INTEGER"
        assert types["status"] == "VARCHAR"
        assert types["life_expectancy"] == "DOUBLE"

    def test_blank_and_zero_become_null(self, duckdb_connection, temp_csv_file, table_name):
        """Test blank text and zero measures are loaded as NULL."""
        load_csv(duckdb_connection, str(temp_csv_file), table_name)

        statuses = _column(duckdb_connection, table_name, "status")
        assert statuses[1] is None

        life_expectancy = _column(duckdb_connection, table_name, "life_expectancy")
        assert pd.isna(life_expectancy[1])

        # Y 2000 has adult mortality 0, X 2002 has GDP 0, W 2010 has BMI 0
        nulls = duckdb_connection.execute(
            f"""
            SELECT
                COUNT(*) FILTER (WHERE adult_mortality IS NULL),
                COUNT(*) FILTER (WHERE gdp IS NULL),
                COUNT(*) FILTER (WHERE bmi IS NULL)
            FROM {table_name}
            """
        ).fetchone()
        assert nulls == (2, 2, 1)

    def test_missing_file(self, duckdb_connection, temp_dir, table_name):
        """Test a missing file raises IngestError."""
        with pytest.raises(IngestError, match="File not found"):
            load_csv(duckdb_connection, str(temp_dir / "missing.csv"), table_name)

    def test_custom_delimiter(self, duckdb_connection, temp_dir, table_name):
        """Test an explicit delimiter is honoured."""
        csv_path = temp_dir / "semicolon.csv"
        csv_path.write_text("Country;Year;Status\nX;2000;Developing\nX;2001;\n")

        assert load_csv(duckdb_connection, str(csv_path), table_name, delimiter=";") == 2
        assert _column(duckdb_connection, table_name, "status") == ["Developing", None]

    def test_assigns_row_id_in_file_order(self, duckdb_connection, temp_dir, table_name):
        """Test row_id follows file order when the source has none."""
        csv_path = temp_dir / "no_row_id.csv"
        csv_path.write_text("Country,Year,Status\nB,2001,\nA,2000,Developed\nC,1999,\n")

        load_csv(duckdb_connection, str(csv_path), table_name)

        rows = duckdb_connection.execute(
            f"SELECT row_id, country FROM {table_name} ORDER BY row_id"
        ).fetchall()
        assert rows == [(1, "B"), (2, "A"), (3, "C")]

    def test_missing_contract_columns_created(self, duckdb_connection, temp_dir, table_name):
        """Test absent measure columns are created empty."""
        csv_path = temp_dir / "minimal.csv"
        csv_path.write_text("Country,Year\nX,2000\n")

        load_csv(duckdb_connection, str(csv_path), table_name)

        row = duckdb_connection.execute(
            f"SELECT status, life_expectancy, gdp FROM {table_name}"
        ).fetchone()
        assert row == (None, None, None)

    def test_extra_columns_carried_through(self, duckdb_connection, temp_dir, table_name):
        """Test columns outside the contract are kept."""
        csv_path = temp_dir / "extra.csv"
        csv_path.write_text("Country,Year,Schooling\nX,2000,10.1\n")

        load_csv(duckdb_connection, str(csv_path), table_name)

        assert _column(duckdb_connection, table_name, "schooling") == ["10.1"]

    def test_schema_qualified_table(self, duckdb_connection, temp_csv_file):
        """Test the schema of a qualified table name is created."""
        load_csv(duckdb_connection, str(temp_csv_file), "source.world_life_expectancy")

        count = duckdb_connection.execute(
            "SELECT COUNT(*) FROM source.world_life_expectancy"
        ).fetchone()[0]
        assert count == 10

    def test_invalid_table_name(self, duckdb_connection, temp_csv_file):
        """Test table names that are not identifiers are rejected."""
        with pytest.raises(ConfigurationError):
            load_csv(duckdb_connection, str(temp_csv_file), "records; DROP TABLE x")


# ============================================================================
# Schema Error Tests
# ============================================================================

@pytest.mark.unit
@pytest.mark.duckdb
class TestSchemaErrors:
    """Test records that violate the record contract."""

    def test_missing_required_column(self, duckdb_connection, table_name):
        df = pd.DataFrame({"Country": ["X"], "Status": ["Developing"]})

        with pytest.raises(SchemaError, match="year"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_null_key(self, duckdb_connection, table_name):
        df = pd.DataFrame({"Country": ["X", ""], "Year": [2000, 2001]})

        with pytest.raises(SchemaError, match="missing country or year"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_non_integer_year(self, duckdb_connection, table_name):
        df = pd.DataFrame({"Country": ["X", "X"], "Year": ["2000", "two thousand"]})

        with pytest.raises(SchemaError, match="non-integer year"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_fractional_year_rejected(self, duckdb_connection, temp_dir, table_name):
        """Test a fractional year is not rounded into another record's key."""
        csv_path = temp_dir / "fractional_year.csv"
        csv_path.write_text(
            "Row_ID,Country,Year,Life expectancy\n"
            "1,A,2001.5,60\n"
            "2,A,2002,72\n"
        )

        with pytest.raises(SchemaError, match="1 row\\(s\\) with a non-integer year"):
            load_csv(duckdb_connection, str(csv_path), table_name)

        tables = duckdb_connection.execute(
            "SELECT COUNT(*) FROM duckdb_tables() WHERE table_name = ?", [table_name]
        ).fetchone()[0]
        assert tables == 0

    def test_fractional_row_id_rejected(self, duckdb_connection, table_name):
        df = pd.DataFrame({"Country": ["X", "Y"], "Year": [2000, 2000], "Row_ID": [1.0, 1.5]})

        with pytest.raises(SchemaError, match="non-integer row_id"):
            load_dataframe(duckdb_connection, df, table_name)

    @pytest.mark.parametrize("value", ["n/a73", "seventy", "inf", "NaN"])
    def test_non_numeric_measure_rejected(self, duckdb_connection, temp_dir, table_name, value):
        """Test unparseable measure text is not treated as missing."""
        csv_path = temp_dir / "bad_measure.csv"
        csv_path.write_text(
            "Country,Year,Life expectancy\n"
            "A,2000,70\n"
            f"A,2001,{value}\n"
            "A,2002,72\n"
        )

        with pytest.raises(SchemaError, match="Non-numeric values in life_expectancy \\(1\\)"):
            load_csv(duckdb_connection, str(csv_path), table_name)

    def test_non_numeric_values_counted_per_measure(self, duckdb_connection, table_name):
        df = pd.DataFrame({
            "Country": ["X", "X", "X"],
            "Year": [2000, 2001, 2002],
            "GDP": ["1.5", "abc", "x"],
            "BMI": ["20", "", "0"],
        })

        with pytest.raises(SchemaError, match="gdp \\(2\\)"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_duplicated_row_id(self, duckdb_connection, table_name):
        df = pd.DataFrame({"Country": ["X", "Y"], "Year": [2000, 2000], "Row_ID": [1, 1]})

        with pytest.raises(SchemaError, match="duplicated row_id"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_duplicate_columns_after_normalization(self, duckdb_connection, table_name):
        df = pd.DataFrame({
            "Country": ["X"],
            "Year": [2000],
            "Life expectancy": [70.0],
            "Lifeexpectancy": [71.0],
        })

        with pytest.raises(SchemaError, match="life_expectancy"):
            load_dataframe(duckdb_connection, df, table_name)


# ============================================================================
# DataFrame Loading Tests
# ============================================================================

@pytest.mark.unit
@pytest.mark.duckdb
class TestLoadDataFrame:
    """Test loading raw records from pandas."""

    def test_matches_csv_load(self, duckdb_connection, sample_raw_data, temp_csv_file):
        """Test both loaders produce the same table."""
        load_dataframe(duckdb_connection, sample_raw_data, "from_df")
        load_csv(duckdb_connection, str(temp_csv_file), "from_csv")

        columns = "row_id, country, year, status, life_expectancy, adult_mortality, gdp, bmi"
        from_df = duckdb_connection.execute(
            f"SELECT {columns} FROM from_df ORDER BY row_id"
        ).fetchall()
        from_csv = duckdb_connection.execute(
            f"SELECT {columns} FROM from_csv ORDER BY row_id"
        ).fetchall()
        assert from_df == from_csv

    def test_nan_values_become_null(self, duckdb_connection, table_name):
        df = pd.DataFrame({
            "country": ["X", "X"],
            "year": [2000.0, 2001.0],
            "life_expectancy": [70.5, float("nan")],
        })

        load_dataframe(duckdb_connection, df, table_name)

        rows = duckdb_connection.execute(
            f"SELECT year, life_expectancy FROM {table_name} ORDER BY row_id"
        ).fetchall()
        assert rows == [(2000, 70.5), (2001, None)]

    def test_nullable_dtypes_become_null(self, duckdb_connection, table_name):
        """Test pd.NA in nullable string and integer columns is missing, not text."""
        df = pd.DataFrame({
            "country": pd.array(["A", "A", "A"], dtype="string"),
            "year": pd.array([2000, 2001, 2002], dtype="Int64"),
            "status": pd.array(["Developing", None, "Developing"], dtype="string"),
            "life_expectancy": pd.array([70.0, None, 72.0], dtype="Float64"),
            "adult_mortality": pd.array([100, pd.NA, 0], dtype="Int64"),
        })

        load_dataframe(duckdb_connection, df, table_name)

        rows = duckdb_connection.execute(
            f"SELECT year, status, life_expectancy, adult_mortality "
            f"FROM {table_name} ORDER BY row_id"
        ).fetchall()
        assert rows == [
            (2000, "Developing", 70.0, 100.0),
            (2001, None, None, None),
            (2002, "Developing", 72.0, None),
        ]

    def test_nullable_missing_country_rejected(self, duckdb_connection, table_name):
        df = pd.DataFrame({
            "country": pd.array(["A", None], dtype="string"),
            "year": pd.array([2000, 2001], dtype="Int64"),
        })

        with pytest.raises(SchemaError, match="missing country or year"):
            load_dataframe(duckdb_connection, df, table_name)

    def test_nullable_status_is_filled(self, duckdb_connection, table_name):
        """Test a pd.NA status is filled like any other blank status."""
        df = pd.DataFrame({
            "country": ["A", "A"],
            "year": [2000, 2001],
            "status": pd.array(["Developing", None], dtype="string"),
        })
        load_dataframe(duckdb_connection, df, table_name)

        result = fill_missing_status(duckdb_connection, table_name, strict=True)

        assert result.filled == 1
        assert result.conflicting_countries == []
        assert _column(duckdb_connection, table_name, "status") == ["Developing", "Developing"]

    def test_replaces_existing_table(self, duckdb_connection, sample_raw_data, table_name):
        load_dataframe(duckdb_connection, sample_raw_data, table_name)
        load_dataframe(duckdb_connection, sample_raw_data.head(3), table_name)

        count = duckdb_connection.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
        assert count == 3
