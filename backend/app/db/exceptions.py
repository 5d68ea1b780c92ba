"""Database-specific exceptions for the Engine Board API."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DuplicateRecordError(DatabaseError):
    """Raised when a unique constraint rejects an insert or update."""

    pass


class StaleRecordError(DatabaseError):
    """Raised when a versioned row was changed by another transaction."""

    pass


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""

    pass
