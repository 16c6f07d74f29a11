"""
DuckDB database interactions for recallcore.
Implements the TopicDatabase facade over connection, schema and marshalling.
"""

import duckdb
import uuid
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union, cast

from ..exceptions import (
    DatabaseConnectionError,
    MarshallingError,
    TopicNotFoundError,
    TopicOperationError,
)
from ..models import SchedulingState, Topic
from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)

_TOPIC_SELECT = f"SELECT {', '.join(db_utils.TOPIC_COLUMNS)} FROM topics"


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class TopicDatabase:
    """
    Acts as a Facade for the database subsystem, providing a simple, high-level
    interface for all topic data operations.

    It coordinates the ConnectionHandler, SchemaManager, and data marshalling
    utilities. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Create a TopicDatabase backed by the given DuckDB path.

        Args:
            db_path (str | Path): Path to the database file. Use ':memory:' for an in-memory database.
            read_only (bool): If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"TopicDatabase initialized for DB at: {self._handler.db_path_resolved}"
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "TopicDatabase":
        """
        Open the connection and initialize the schema of a newly created,
        writable database.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _require_writable(self, operation: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(
                f"Cannot {operation} in read-only mode."
            )

    def _rows_to_topics(self, rows: List[Dict[str, Any]]) -> List[Topic]:
        try:
            return [
                db_utils.db_row_to_topic(cast(Dict[str, Any], row))
                for row in rows
            ]
        except MarshallingError as e:
            raise TopicOperationError(
                "Failed to parse topics from database.", original_exception=e
            ) from e

    # --- Topic Operations ---
    _INSERT_TOPIC_SQL = f"""
        INSERT INTO topics ({', '.join(db_utils.TOPIC_COLUMNS)})
        VALUES ({', '.join(f'${i}' for i in range(1, len(db_utils.TOPIC_COLUMNS) + 1))});
        """

    def append_topics(self, topics: Sequence[Topic]) -> int:
        """
        Insert a batch of topics in a single transaction.

        Returns:
            int: Number of topics inserted; 0 for an empty batch.

        Raises:
            TopicOperationError: If marshalling or the insert fails.
        """
        if not topics:
            return 0
        self._require_writable("append topics")

        try:
            params = [db_utils.topic_to_db_params_tuple(t) for t in topics]
        except MarshallingError as e:
            raise TopicOperationError(
                "Failed to prepare topics for insertion.", original_exception=e
            ) from e

        try:
            with self._handler.transaction() as cursor:
                cursor.executemany(self._INSERT_TOPIC_SQL, params)
        except duckdb.Error as e:
            logger.error(f"Error appending {len(topics)} topics: {e}")
            raise TopicOperationError(
                f"Failed to append topics: {e}", original_exception=e
            ) from e
        logger.info(f"Appended {len(topics)} topic(s).")
        return len(topics)

    def get_topic_by_id(self, topic_id: uuid.UUID) -> Optional[Topic]:
        """
        Fetch a topic by its id, or None if it does not exist.

        Raises:
            TopicOperationError: On a database error or an unparsable row.
        """
        conn = self.get_connection()
        try:
            cursor = conn.execute(f"{_TOPIC_SELECT} WHERE id = $1;", (topic_id,))
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching topic {topic_id}: {e}")
            raise TopicOperationError(
                f"Failed to fetch topic by id: {e}", original_exception=e
            ) from e
        if not rows:
            return None
        return self._rows_to_topics(rows)[0]

    def get_topics(
        self, tag: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Topic]:
        """
        Retrieve topics in the order they were logged.

        Parameters:
            tag: Only return topics carrying this tag.
            limit: Only return the most recently logged `limit` topics.
        """
        conn = self.get_connection()
        params: List[Any] = []
        inner = "SELECT * FROM topics"
        if tag:
            inner += " WHERE list_contains(tags, $1)"
            params.append(tag)
        if limit is not None and limit > 0:
            inner += f" ORDER BY seq DESC LIMIT ${len(params) + 1}"
            params.append(limit)
        sql = (
            f"SELECT {', '.join(db_utils.TOPIC_COLUMNS)} "
            f"FROM ({inner}) ORDER BY seq;"
        )
        try:
            cursor = conn.execute(sql, params)
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching topics (tag: {tag}, limit: {limit}): {e}")
            raise TopicOperationError(
                f"Failed to get topics: {e}", original_exception=e
            ) from e
        return self._rows_to_topics(rows)

    def count_topics(self) -> int:
        conn = self.get_connection()
        try:
            result = conn.execute("SELECT COUNT(*) FROM topics;").fetchone()
        except duckdb.Error as e:
            raise TopicOperationError(
                f"Failed to count topics: {e}", original_exception=e
            ) from e
        return result[0] if result else 0

    def get_state_counts(self) -> Dict[str, int]:
        """Number of topics per FSRS state name."""
        conn = self.get_connection()
        try:
            rows = conn.execute(
                "SELECT state, COUNT(*) FROM topics GROUP BY state ORDER BY state;"
            ).fetchall()
        except duckdb.Error as e:
            raise TopicOperationError(
                "Could not retrieve topic state counts.", original_exception=e
            ) from e
        return {state: count for state, count in rows}

    _UPDATE_STATE_SQL = """
        UPDATE topics
        SET state = $1, stability = $2, difficulty = $3, due = $4,
            last_reviewed = $5, review_count = $6, lapses = $7
        WHERE id = $8;
        """

    def update_topic_state(
        self,
        topic_id: uuid.UUID,
        updater: Callable[[Topic], SchedulingState],
    ) -> Topic:
        """
        Atomically replace a topic's scheduling state.

        The topic is read, passed to `updater`, and the returned state is
        written back inside one transaction. Any exception raised by
        `updater` rolls the transaction back and propagates unchanged.

        Returns:
            Topic: The topic carrying its new scheduling state.

        Raises:
            TopicNotFoundError: If no topic has this id.
            TopicOperationError: If the database operation fails.
        """
        self._require_writable("update topics")
        try:
            with self._handler.transaction() as cursor:
                cursor.execute(f"{_TOPIC_SELECT} WHERE id = $1;", (topic_id,))
                rows = _rows_to_dicts(cursor)
                if not rows:
                    raise TopicNotFoundError(f"Topic not found: {topic_id}")
                topic = self._rows_to_topics(rows)[0]

                new_state = updater(topic)
                cursor.execute(
                    self._UPDATE_STATE_SQL,
                    db_utils.state_to_db_params(new_state) + (topic_id,),
                )
        except duckdb.Error as e:
            logger.error(f"Error updating topic {topic_id}: {e}")
            raise TopicOperationError(
                f"Failed to update topic state: {e}", original_exception=e
            ) from e

        return topic.model_copy(update={"fsrs": new_state})

    def clear_topics(self) -> int:
        """
        Delete every topic.

        Returns:
            int: The number of topics removed.
        """
        self._require_writable("clear topics")
        try:
            with self._handler.transaction() as cursor:
                result = cursor.execute("SELECT COUNT(*) FROM topics;").fetchone()
                cursor.execute("DELETE FROM topics;")
        except duckdb.Error as e:
            raise TopicOperationError(
                f"Failed to clear topics: {e}", original_exception=e
            ) from e
        removed = result[0] if result else 0
        logger.info(f"Cleared {removed} topic(s).")
        return removed
