"""
Custom exceptions for the life expectancy cleaning package.

This module defines a hierarchy of exceptions to provide more
precise error handling and debugging across the cleaning pipeline.
"""


class CleaningBaseError(Exception):
    """
    Base exception for all cleaning-related errors.

    All custom exceptions in the package should inherit from this class.
    Provides a common base for catching and handling package-specific errors.
    """

    pass


class ConfigurationError(CleaningBaseError):
    """
    Raised when there are configuration-related issues.

    This exception is used when:
    - Required configuration parameters are missing
    - Configuration values are invalid
    - Environment setup is incorrect
    """

    pass


class IngestError(CleaningBaseError):
    """
    Raised while loading raw records into DuckDB.

    Covers errors specific to data ingestion, including:
    - Missing or unreadable source files
    - CSV parsing failures
    """

    pass


class SchemaError(IngestError):
    """
    Raised when the raw table does not honour the record contract.

    Covers problems such as:
    - Missing country or year columns
    - Null or non-integer composite key values
    - Duplicated row identifiers
    """

    pass


class CleaningError(CleaningBaseError):
    """
    Raised when a cleaning operation cannot be applied.

    A missing value that cannot be imputed is NOT an error; this covers
    failures of the cleaning pass itself.
    """

    pass


class StatusConflictError(CleaningError):
    """
    Raised in strict mode when a country's known statuses disagree.

    Attributes:
        countries: Countries with more than one distinct known status
    """

    def __init__(self, countries):
        self.countries = list(countries)
        super().__init__(
            f"Inconsistent status for {len(self.countries)} country(ies): "
            f"{', '.join(self.countries)}"
        )


class ExportError(CleaningBaseError):
    """
    Raised when the cleaned table cannot be written out.
    """

    pass


class CleaningPipelineError(CleaningBaseError):
    """
    Raised when the end-to-end cleaning run fails.

    Wraps the underlying error raised by ingestion, cleaning or export.
    """

    pass
