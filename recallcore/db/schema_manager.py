import duckdb
import logging

from .connection import ConnectionHandler
from . import schema
from ..exceptions import DatabaseConnectionError, SchemaInitializationError

logger = logging.getLogger(__name__)


class SchemaManager:
    """Manages the database schema initialization."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Initializes the database schema inside a transaction. Skips file
        databases opened read-only. Forcing recreation drops every topic.
        """
        if self._handler.read_only:
            if force_recreate_tables:
                raise DatabaseConnectionError(
                    "Cannot force_recreate_tables in read-only mode."
                )
            if not self._handler.is_memory:
                logger.warning(
                    "Attempting to initialize schema in read-only mode. Skipping."
                )
                return

        try:
            with self._handler.transaction() as cursor:
                if force_recreate_tables:
                    logger.warning(
                        f"Forcing table recreation for {self._handler.db_path_resolved}. "
                        "ALL EXISTING TOPICS WILL BE LOST."
                    )
                    cursor.execute("DROP TABLE IF EXISTS topics CASCADE;")
                    cursor.execute("DROP SEQUENCE IF EXISTS topic_seq CASCADE;")
                cursor.execute(schema.DB_SCHEMA_SQL)
            logger.info(
                f"Database schema at {self._handler.db_path_resolved} initialized successfully (or already exists)."
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"
            )
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e
