"""Persistence layer exceptions.

All of them derive from PersistenceError so callers can catch the whole
family with one except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Database could not be initialized or reached.

    Examples:
    - Empty or malformed database URL
    - Database file not writable
    - Session requested before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """A row that must exist was not found.

    Optional lookups return None instead of raising this.
    """

    pass


class DataIntegrityError(PersistenceError):
    """A constraint was violated (duplicate id, unique recipient, ...)."""

    pass
