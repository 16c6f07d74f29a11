from typing import Optional


class SchedulingError(ValueError):
    """Base exception for scheduling engine failures."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class InvalidGradeError(SchedulingError):
    """Raised when a review grade is outside 1-4."""

    pass


class CorruptStateError(SchedulingError):
    """Raised when a non-new scheduling state lacks stability or difficulty."""

    pass


class ConfigurationError(SchedulingError):
    """Raised for malformed weights or an unreadable scheduler config."""

    pass


class InvalidTimelineError(SchedulingError):
    """Raised when the review time precedes the last recorded review."""

    pass


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class TopicOperationError(DatabaseError):
    """Raised for errors during topic operations (CRUD)."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class TopicNotFoundError(DatabaseError):
    """Raised when a topic id does not exist in the database."""

    pass
