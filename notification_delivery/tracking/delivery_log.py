"""Append-only audit trail of send attempts."""

import uuid
from datetime import datetime, timedelta
from typing import Callable, ContextManager, List, Optional

from sqlalchemy.orm import Session

from notification_delivery.domain.models import (
    Channel,
    DeliveryLogEntry,
    DeliveryStats,
    DeliveryStatus,
)
from notification_delivery.logging import get_logger
from notification_delivery.persistence.database import get_session
from notification_delivery.persistence.repositories import DeliveryLogRepository
from notification_delivery.utils.timestamps import utc_now

logger = get_logger(__name__, component="delivery_log")

SessionFactory = Callable[[], ContextManager[Session]]


class DeliveryLog:
    """Records one entry per transport-reaching send and answers stats queries."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def record(
        self,
        channel: Channel,
        recipient: str,
        status: DeliveryStatus,
        message_type: Optional[str] = None,
        subject: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        external_message_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> DeliveryLogEntry:
        """Append an entry.

        Raises:
            PersistenceError: If the write fails
        """
        entry = DeliveryLogEntry(
            id=str(uuid.uuid4()),
            channel=channel,
            recipient=recipient,
            status=status,
            message_type=message_type,
            subject=subject,
            error_code=error_code,
            error_message=error_message,
            external_message_id=external_message_id,
            tenant_id=tenant_id,
            created_at=utc_now(),
        )

        with self._session_factory() as session:
            saved = DeliveryLogRepository(session).add(entry)

        logger.debug(
            "Delivery attempt recorded",
            extra={
                "event": "delivery_log.recorded",
                "channel": channel.value,
                "status": status.value,
                "log_id": saved.id,
            },
        )
        return saved

    def entries(
        self,
        recipient: Optional[str] = None,
        tenant_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[DeliveryLogEntry]:
        """Most recent entries first."""
        with self._session_factory() as session:
            return DeliveryLogRepository(session).list_entries(
                recipient=recipient, tenant_id=tenant_id, limit=limit
            )

    def get_delivery_stats(
        self,
        tenant_id: str,
        days: int = 30,
        channel: Optional[Channel] = None,
        now: Optional[datetime] = None,
    ) -> DeliveryStats:
        """Counts for a tenant over the trailing `days` days.

        Failures include failed, bounced and rejected entries.
        """
        if days < 0:
            raise ValueError(f"days must be >= 0, got {days}")

        since = (now or utc_now()) - timedelta(days=days)
        with self._session_factory() as session:
            return DeliveryLogRepository(session).stats(tenant_id, since, channel=channel)
