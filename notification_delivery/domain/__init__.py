"""Domain models for the delivery subsystem."""

from .models import (
    Channel,
    DeliveryLogEntry,
    DeliveryStats,
    DeliveryStatus,
    QueueItem,
    QueueStatus,
    SuppressionEntry,
)

__all__ = [
    "Channel",
    "QueueStatus",
    "DeliveryStatus",
    "QueueItem",
    "DeliveryLogEntry",
    "SuppressionEntry",
    "DeliveryStats",
]
