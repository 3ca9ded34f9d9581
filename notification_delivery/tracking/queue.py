"""Durable queue of deliveries awaiting a later retry."""

import uuid
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from notification_delivery.domain.models import Channel, QueueItem, QueueStatus
from notification_delivery.logging import get_logger
from notification_delivery.persistence.database import get_session
from notification_delivery.persistence.repositories import QueueRepository
from notification_delivery.retry.backoff import next_retry_at
from notification_delivery.retry.models import DEFAULT_RETRY_CONFIG, RetryConfig
from notification_delivery.utils.timestamps import utc_now

logger = get_logger(__name__, component="queue")

SessionFactory = Callable[[], ContextManager[Session]]


class DeliveryQueue:
    """Queue items move pending -> processing -> completed | pending | failed.

    Items are never deleted. Every state change is a single-row update in its
    own session.
    """

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def enqueue(
        self,
        channel: Channel,
        recipients: Sequence[str],
        payload: Dict[str, Any],
        tenant_id: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        now: Optional[datetime] = None,
    ) -> QueueItem:
        """Persist a failed delivery for the sweeper.

        The first sweep attempt is due after backoff_delay(0).

        Raises:
            PersistenceError: If the insert fails
        """
        config = retry_config or DEFAULT_RETRY_CONFIG
        created = now or utc_now()

        item = QueueItem(
            id=str(uuid.uuid4()),
            channel=channel,
            recipient=",".join(recipients),
            payload=payload,
            retry_count=0,
            max_retries=config.max_retries,
            next_retry_at=next_retry_at(0, config, now=created),
            status=QueueStatus.PENDING,
            tenant_id=tenant_id,
            created_at=created,
            updated_at=created,
        )

        with self._session_factory() as session:
            saved = QueueRepository(session).add(item)

        logger.info(
            f"Queued {channel.value} delivery for retry",
            extra={
                "event": "queue.item.enqueued",
                "queue_item_id": saved.id,
                "channel": channel.value,
                "next_retry_at": saved.next_retry_at.isoformat(),
            },
        )
        return saved

    def due_items(self, now: Optional[datetime] = None, limit: int = 100) -> List[QueueItem]:
        """Pending items with next_retry_at <= now, oldest created first."""
        with self._session_factory() as session:
            return QueueRepository(session).select_due(now or utc_now(), limit)

    def claim(self, item_id: str, now: Optional[datetime] = None) -> bool:
        """Move a pending item to processing. False if it was no longer pending."""
        with self._session_factory() as session:
            return QueueRepository(session).claim(item_id, now or utc_now())

    def mark_completed(self, item_id: str, now: Optional[datetime] = None) -> None:
        with self._session_factory() as session:
            QueueRepository(session).mark_completed(item_id, now or utc_now())

        logger.info(
            "Queued delivery completed",
            extra={"event": "queue.item.completed", "queue_item_id": item_id},
        )

    def mark_retry(
        self,
        item_id: str,
        retry_count: int,
        retry_at: datetime,
        last_error: Optional[str],
        now: Optional[datetime] = None,
    ) -> None:
        """Return an item to pending with an updated retry count and due time."""
        with self._session_factory() as session:
            QueueRepository(session).reschedule(
                item_id, retry_count, retry_at, last_error, now or utc_now()
            )

        logger.info(
            "Queued delivery rescheduled",
            extra={
                "event": "queue.item.rescheduled",
                "queue_item_id": item_id,
                "retry_count": retry_count,
                "next_retry_at": retry_at.isoformat(),
            },
        )

    def mark_failed(
        self,
        item_id: str,
        retry_count: int,
        last_error: Optional[str],
        now: Optional[datetime] = None,
    ) -> None:
        """Give up on an item (terminal)."""
        with self._session_factory() as session:
            QueueRepository(session).mark_failed(
                item_id, retry_count, last_error, now or utc_now()
            )

        logger.warning(
            f"Queued delivery failed permanently: {last_error}",
            extra={
                "event": "queue.item.failed",
                "queue_item_id": item_id,
                "retry_count": retry_count,
            },
        )

    def get(self, item_id: str) -> Optional[QueueItem]:
        with self._session_factory() as session:
            return QueueRepository(session).get(item_id)

    def count_by_status(self) -> Dict[str, int]:
        with self._session_factory() as session:
            return QueueRepository(session).count_by_status()
