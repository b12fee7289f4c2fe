"""Transaction support for in-place table cleaning.

The cleaning pass mutates the loaded table destructively. Running it inside
a DuckDB transaction makes the pass all-or-nothing: either every operation
is applied, or the table is left exactly as it was loaded.

Example usage:
    with CleaningTransaction(con) as txn:
        deduplicate(con, table)
        fill_missing_status(con, table)
"""

from enum import Enum

import duckdb

from life_expectancy.exceptions import CleaningError
from life_expectancy.logging_config import create_logger

logger = create_logger(__name__)


class TransactionState(str, Enum):
    """States for transaction lifecycle."""
    CREATED = "created"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class CleaningTransaction:
    """A single DuckDB transaction wrapping one cleaning pass."""

    def __init__(self, con: duckdb.DuckDBPyConnection):
        self.con = con
        self.state = TransactionState.CREATED

    def begin(self) -> None:
        """Open the transaction."""
        try:
            self.con.begin()
        except duckdb.Error as e:
            raise CleaningError(f"Unable to start transaction: {e}") from e
        self.state = TransactionState.ACTIVE
        logger.debug("Transaction started")

    def commit(self) -> None:
        """Make every change of the pass permanent."""
        if self.state != TransactionState.ACTIVE:
            raise CleaningError(f"Cannot commit transaction in state {self.state.value}")
        self.con.commit()
        self.state = TransactionState.COMMITTED
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Discard every change of the pass."""
        if self.state != TransactionState.ACTIVE:
            return
        self.con.rollback()
        self.state = TransactionState.ROLLED_BACK
        logger.warning("Transaction rolled back, table left as loaded")

    def __enter__(self):
        """Context manager entry."""
        self.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic commit/rollback."""
        if exc_type is None:
            self.commit()
        else:
            logger.error(f"Exception in cleaning transaction: {exc_val}")
            try:
                self.rollback()
            except duckdb.Error as rollback_error:
                logger.critical(f"Failed to rollback: {rollback_error}")

        # Let the exception propagate
        return False
