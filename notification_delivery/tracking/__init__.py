"""Persisted delivery state: retry queue, audit log and suppression list.

Each class takes a session factory (default: persistence.get_session) and
opens one short session per operation.
"""

from .delivery_log import DeliveryLog
from .queue import DeliveryQueue
from .suppression import SuppressionList

__all__ = [
    "DeliveryQueue",
    "DeliveryLog",
    "SuppressionList",
]
