"""
DuckDB connection lifecycle and transactions for the topic store.
"""

import duckdb
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class ConnectionHandler:
    """
    Owns the single DuckDB connection of a TopicDatabase.

    The connection is opened lazily. File databases get their parent
    directory created on first connect; `is_new_db` records whether the
    schema still has to be created.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        if isinstance(db_path, str) and db_path.lower() == MEMORY_DB:
            self.db_path_resolved = Path(MEMORY_DB)
        else:
            self.db_path_resolved = Path(db_path).expanduser().resolve()
        self.read_only = read_only
        self.is_new_db = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        logger.debug(
            f"Topic store at {self.db_path_resolved} (read_only={read_only})"
        )

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_DB

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _open(self) -> duckdb.DuckDBPyConnection:
        if self.is_memory:
            # A fresh in-memory database is always empty and writable.
            self.is_new_db = True
            return duckdb.connect(database=MEMORY_DB)

        self.is_new_db = not self.db_path_resolved.exists()
        if self.is_new_db and self.read_only:
            raise DatabaseConnectionError(
                f"Topic store {self.db_path_resolved} does not exist "
                "and cannot be created in read-only mode."
            )
        self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(
            database=str(self.db_path_resolved), read_only=self.read_only
        )

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting first if needed.

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the database.
        """
        if self._connection is None:
            try:
                self._connection = self._open()
            except duckdb.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to connect to database: {e}", original_exception=e
                ) from e
            logger.info(
                f"Opened topic store {self.db_path_resolved} "
                f"({'new' if self.is_new_db else 'existing'})."
            )
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """
        Run the enclosed block in one transaction on a fresh cursor.

        Commits when the block finishes. Any exception rolls back and
        propagates unchanged; a failing rollback is only logged.
        """
        conn = self.get_connection()
        with conn.cursor() as cursor:
            cursor.begin()
            try:
                yield cursor
                cursor.commit()
            except Exception:
                try:
                    cursor.rollback()
                except duckdb.Error as rb_err:
                    logger.error(f"Failed to rollback transaction: {rb_err}")
                raise

    def close_connection(self) -> None:
        """Close the connection if open. A later call reconnects."""
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.info(f"Closed topic store {self.db_path_resolved}.")
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")
        finally:
            self._connection = None
