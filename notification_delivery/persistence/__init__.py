"""Persistence layer for the delivery queue, delivery log and suppression list.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - QueueRepository: queue item inserts, due selection, claim and state changes
    - DeliveryLogRepository: append-only log writes and aggregate stats
    - SuppressionRepository: do-not-contact list

    # Exceptions
    - PersistenceError: Base exception for all persistence errors
    - DatabaseConnectionError: Database connection/initialization failures
    - RecordNotFoundError: Required record not found
    - DataIntegrityError: Constraint violations

Example usage:
    >>> from notification_delivery.persistence import init_database, get_session, QueueRepository
    >>> from notification_delivery.utils import utc_now
    >>>
    >>> init_database("sqlite:///./data/notification_delivery.db")
    >>>
    >>> with get_session() as session:
    ...     due = QueueRepository(session).select_due(utc_now(), limit=100)
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Repository classes
from .repositories import DeliveryLogRepository, QueueRepository, SuppressionRepository

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "QueueRepository",
    "DeliveryLogRepository",
    "SuppressionRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
