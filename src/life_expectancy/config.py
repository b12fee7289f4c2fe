"""Configuration module for project settings and environment variables.

This module manages configuration settings and environment-specific
parameters for the life expectancy cleaning pipeline. Values can be
provided through the environment or a local ``.env`` file.
"""

import logging
import os
import re

from dotenv import load_dotenv

from life_expectancy.exceptions import ConfigurationError
from life_expectancy.logging_config import create_logger

load_dotenv()

# get the local root directory
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DATALAKE_DIR = os.path.join(ROOT_DIR, "data")
RAW_DATA_DIR = os.getenv("RAW_DATA_DIR", os.path.join(DATALAKE_DIR, "raw"))
CLEAN_DATA_DIR = os.getenv("CLEAN_DATA_DIR", os.path.join(DATALAKE_DIR, "clean"))

# In-memory DuckDB unless a database file is requested
DB_PATH = os.getenv("DB_PATH", ":memory:")

TABLE_NAME = os.getenv("TABLE_NAME", "world_life_expectancy")
STRICT_STATUS = os.getenv("STRICT_STATUS", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = create_logger(__name__)


def validate_table_name(table_name: str) -> str:
    """
    Check that a table name is a plain (optionally schema-qualified) identifier.

    Table names are interpolated into SQL, so anything else is rejected.

    :param table_name: Table name to check
    :return: The table name unchanged
    :raises ConfigurationError: If the name is empty or not an identifier
    """
    if not table_name or not TABLE_NAME_PATTERN.match(table_name):
        raise ConfigurationError(f"Invalid table name: {table_name!r}")
    return table_name


def validate_config():
    """
    Validate critical configuration parameters.
    Raises ConfigurationError if any required config is missing or invalid.

    :raises ConfigurationError: If configuration is invalid
    """
    validate_table_name(TABLE_NAME)

    if LOG_LEVEL not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid LOG_LEVEL {LOG_LEVEL!r}, expected one of {VALID_LOG_LEVELS}"
        )

    if not DB_PATH:
        raise ConfigurationError("Database path (DB_PATH) is not configured")

    required_dirs = [("CLEAN_DATA_DIR", CLEAN_DATA_DIR)]
    if DB_PATH != ":memory:":
        required_dirs.append(("DB_PATH directory", os.path.dirname(os.path.abspath(DB_PATH))))

    for dir_name, dir_path in required_dirs:
        if not dir_path:
            raise ConfigurationError(
                f"Missing required directory configuration: {dir_name}"
            )

        try:
            os.makedirs(dir_path, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Unable to create directory {dir_name} at {dir_path}: {e}"
            ) from e

    logger.debug("Configuration validation successful")


def get_log_level() -> int:
    """Return the configured log level as a logging constant."""
    return getattr(logging, LOG_LEVEL, logging.INFO)
