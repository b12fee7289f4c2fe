"""Record contract for the world life expectancy table.

Defines the canonical column names and types, header normalisation for raw
files, and the ``Record`` dataclass that mirrors one cleaned row.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from life_expectancy.exceptions import SchemaError

ROW_ID = "row_id"
COUNTRY = "country"
YEAR = "year"
STATUS = "status"
LIFE_EXPECTANCY = "life_expectancy"
ADULT_MORTALITY = "adult_mortality"
GDP = "gdp"
BMI = "bmi"

DEVELOPING = "Developing"
DEVELOPED = "Developed"

# Order matters: a blank status is filled with the first value a country has
STATUS_FILL_ORDER = (DEVELOPING, DEVELOPED)

REQUIRED_COLUMNS = (COUNTRY, YEAR)

# Measures where both blank and zero mean "not observed"
NUMERIC_MEASURES = (LIFE_EXPECTANCY, ADULT_MORTALITY, GDP, BMI)

COLUMN_TYPES: Dict[str, str] = {
    ROW_ID: "BIGINT",
    COUNTRY: "VARCHAR",
    YEAR: "INTEGER",
    STATUS: "VARCHAR",
    LIFE_EXPECTANCY: "DOUBLE",
    ADULT_MORTALITY: "DOUBLE",
    GDP: "DOUBLE",
    BMI: "DOUBLE",
}

# Squashed header spellings seen in published copies of the dataset
COLUMN_ALIASES = {
    "rowid": ROW_ID,
    "lifeexpectancy": LIFE_EXPECTANCY,
    "adultmortality": ADULT_MORTALITY,
}


def normalize_column_name(name: str) -> str:
    """Normalize a raw header to a snake_case column name.

    Args:
        name: Header as it appears in the source file

    Returns:
        Canonical column name

    Examples:
        >>> normalize_column_name("Life expectancy ")
        'life_expectancy'
        >>> normalize_column_name("AdultMortality")
        'adult_mortality'
    """
    cleaned = name.strip()
    cleaned = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", cleaned)
    cleaned = re.sub(r"[^A-Za-z0-9]+", "_", cleaned).strip("_").lower()

    squashed = cleaned.replace("_", "")
    if squashed in COLUMN_ALIASES:
        return COLUMN_ALIASES[squashed]
    return cleaned


def validate_columns(columns: Iterable[str]) -> List[str]:
    """Check normalized column names against the record contract.

    Args:
        columns: Normalized column names

    Returns:
        The column names as a list

    Raises:
        SchemaError: If a required column is missing or a name repeats
    """
    columns = list(columns)

    missing = [col for col in REQUIRED_COLUMNS if col not in columns]
    if missing:
        raise SchemaError(f"Missing required column(s): {missing}")

    duplicated = sorted({col for col in columns if columns.count(col) > 1})
    if duplicated:
        raise SchemaError(
            f"Duplicate column names after normalization: {duplicated}"
        )

    return columns


def _optional(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


@dataclass
class Record:
    """One observation of a country in a year."""

    row_id: int
    country: str
    year: int
    status: Optional[str] = None
    life_expectancy: Optional[float] = None
    adult_mortality: Optional[float] = None
    gdp: Optional[float] = None
    bmi: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, int]:
        """Composite key identifying the intended observation."""
        return (self.country, self.year)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Record":
        """Build a record from a column -> value mapping.

        Columns outside the record contract are kept in ``extra``.
        """
        known = {name: _optional(row.get(name)) for name in COLUMN_TYPES}
        extra = {k: _optional(v) for k, v in row.items() if k not in COLUMN_TYPES}
        return cls(
            row_id=int(known[ROW_ID]),
            country=known[COUNTRY],
            year=int(known[YEAR]),
            status=known[STATUS],
            life_expectancy=known[LIFE_EXPECTANCY],
            adult_mortality=known[ADULT_MORTALITY],
            gdp=known[GDP],
            bmi=known[BMI],
            extra=extra,
        )
