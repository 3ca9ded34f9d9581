"""Data access layer (repositories) for the delivery subsystem.

Repositories encapsulate SQL for queue items, delivery log entries and
suppression entries, and return domain models rather than ORM models.
SQLAlchemy errors are wrapped in PersistenceError subclasses.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notification_delivery.domain.models import (
    Channel,
    DeliveryLogEntry,
    DeliveryStats,
    DeliveryStatus,
    QueueItem,
    QueueStatus,
    SuppressionEntry,
)
from notification_delivery.utils.timestamps import format_for_storage

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import DeliveryLogModel, QueueItemModel, SuppressionModel

logger = logging.getLogger(__name__)

# SQLite's default host-parameter limit is 999
_IN_CLAUSE_CHUNK = 500

_FAILURE_STATUSES = (
    DeliveryStatus.FAILED.value,
    DeliveryStatus.BOUNCED.value,
    DeliveryStatus.REJECTED.value,
)


class QueueRepository:
    """Repository for delivery_queue rows."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def add(self, item: QueueItem) -> QueueItem:
        """Insert a new queue item.

        Raises:
            DataIntegrityError: If an item with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            model = QueueItemModel.from_domain(item)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error inserting queue item {item.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert queue item: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting queue item {item.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert queue item: {e}") from e

    def get(self, item_id: str) -> Optional[QueueItem]:
        """Retrieve a queue item by id, or None."""
        try:
            model = self.session.get(QueueItemModel, item_id)
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving queue item {item_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve queue item: {e}") from e

    def select_due(self, now: datetime, limit: int) -> List[QueueItem]:
        """Pending items whose next_retry_at has passed, oldest first.

        Args:
            now: Reference time (UTC)
            limit: Maximum number of items to return

        Returns:
            List of QueueItem ordered by created_at ascending
        """
        try:
            stmt = (
                select(QueueItemModel)
                .where(
                    QueueItemModel.status == QueueStatus.PENDING.value,
                    QueueItemModel.next_retry_at <= format_for_storage(now),
                )
                .order_by(QueueItemModel.created_at.asc(), QueueItemModel.id.asc())
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error selecting due queue items: {e}", exc_info=True)
            raise PersistenceError(f"Failed to select due queue items: {e}") from e

    def claim(self, item_id: str, now: datetime) -> bool:
        """Move an item from pending to processing.

        The update is conditional on the row still being pending, so at most
        one caller wins.

        Returns:
            True if this call performed the transition
        """
        try:
            stmt = (
                update(QueueItemModel)
                .where(
                    QueueItemModel.id == item_id,
                    QueueItemModel.status == QueueStatus.PENDING.value,
                )
                .values(
                    status=QueueStatus.PROCESSING.value,
                    updated_at=format_for_storage(now),
                )
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount == 1

        except SQLAlchemyError as e:
            logger.error(f"Error claiming queue item {item_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to claim queue item: {e}") from e

    def mark_completed(self, item_id: str, now: datetime) -> None:
        """Set status to completed.

        Raises:
            RecordNotFoundError: If item_id doesn't exist
        """
        self._update(
            item_id,
            status=QueueStatus.COMPLETED.value,
            updated_at=format_for_storage(now),
        )

    def reschedule(
        self,
        item_id: str,
        retry_count: int,
        next_retry_at: datetime,
        last_error: Optional[str],
        now: datetime,
    ) -> None:
        """Put an item back to pending with a new retry time.

        Raises:
            RecordNotFoundError: If item_id doesn't exist
        """
        self._update(
            item_id,
            status=QueueStatus.PENDING.value,
            retry_count=retry_count,
            next_retry_at=format_for_storage(next_retry_at),
            last_error=last_error,
            updated_at=format_for_storage(now),
        )

    def mark_failed(
        self, item_id: str, retry_count: int, last_error: Optional[str], now: datetime
    ) -> None:
        """Set status to failed (terminal).

        Raises:
            RecordNotFoundError: If item_id doesn't exist
        """
        self._update(
            item_id,
            status=QueueStatus.FAILED.value,
            retry_count=retry_count,
            last_error=last_error,
            updated_at=format_for_storage(now),
        )

    def count_by_status(self) -> Dict[str, int]:
        """Number of items per status. Statuses with no items map to 0."""
        try:
            stmt = select(QueueItemModel.status, func.count()).group_by(QueueItemModel.status)
            counts = {status.value: 0 for status in QueueStatus}
            for status, count in self.session.execute(stmt).all():
                counts[status] = count
            return counts

        except SQLAlchemyError as e:
            logger.error(f"Error counting queue items: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count queue items: {e}") from e

    def _update(self, item_id: str, **values) -> None:
        try:
            stmt = update(QueueItemModel).where(QueueItemModel.id == item_id).values(**values)
            result = self.session.execute(stmt)
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"Queue item {item_id} not found")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating queue item {item_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update queue item: {e}") from e


class DeliveryLogRepository:
    """Repository for the append-only delivery_log table."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, entry: DeliveryLogEntry) -> DeliveryLogEntry:
        """Append a log entry.

        Raises:
            DataIntegrityError: If an entry with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            model = DeliveryLogModel.from_domain(entry)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error inserting log entry {entry.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert delivery log entry: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting log entry {entry.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert delivery log entry: {e}") from e

    def list_entries(
        self,
        recipient: Optional[str] = None,
        tenant_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[DeliveryLogEntry]:
        """Most recent entries first, optionally filtered."""
        try:
            stmt = select(DeliveryLogModel)
            if recipient is not None:
                stmt = stmt.where(DeliveryLogModel.recipient == recipient)
            if tenant_id is not None:
                stmt = stmt.where(DeliveryLogModel.tenant_id == tenant_id)
            stmt = stmt.order_by(DeliveryLogModel.created_at.desc()).limit(limit)

            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error listing delivery log entries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list delivery log entries: {e}") from e

    def stats(
        self, tenant_id: str, since: datetime, channel: Optional[Channel] = None
    ) -> DeliveryStats:
        """Aggregate counts for a tenant's entries created at or after `since`."""
        try:
            stmt = select(
                func.count(),
                func.sum(case((DeliveryLogModel.status == DeliveryStatus.SUCCESS.value, 1), else_=0)),
                func.sum(case((DeliveryLogModel.status.in_(_FAILURE_STATUSES), 1), else_=0)),
            ).where(
                DeliveryLogModel.tenant_id == tenant_id,
                DeliveryLogModel.created_at >= format_for_storage(since),
            )
            if channel is not None:
                stmt = stmt.where(DeliveryLogModel.channel == channel.value)

            total, successes, failures = self.session.execute(stmt).one()
            return DeliveryStats(
                total_sent=total or 0,
                success_count=successes or 0,
                failure_count=failures or 0,
            )

        except SQLAlchemyError as e:
            logger.error(f"Error computing delivery stats for {tenant_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to compute delivery stats: {e}") from e


class SuppressionRepository:
    """Repository for suppression_list rows."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, entry: SuppressionEntry) -> bool:
        """Insert a suppression entry unless the recipient is already present.

        Returns:
            True if a new row was inserted, False if it already existed
        """
        try:
            if self.exists(entry.recipient):
                return False

            self.session.add(SuppressionModel.from_domain(entry))
            self.session.flush()
            return True

        except IntegrityError:
            # Concurrent insert of the same recipient
            self.session.rollback()
            logger.debug(f"Recipient already suppressed: {entry.recipient}")
            return False
        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error adding suppression for {entry.recipient}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add suppression entry: {e}") from e

    def exists(self, recipient: str) -> bool:
        try:
            stmt = select(SuppressionModel.id).where(SuppressionModel.recipient == recipient)
            return self.session.execute(stmt).first() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking suppression for {recipient}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check suppression list: {e}") from e

    def get(self, recipient: str) -> Optional[SuppressionEntry]:
        try:
            stmt = select(SuppressionModel).where(SuppressionModel.recipient == recipient)
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving suppression for {recipient}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve suppression entry: {e}") from e

    def filter_suppressed(self, recipients: Iterable[str]) -> Set[str]:
        """Return the subset of `recipients` present on the suppression list."""
        unique = list(dict.fromkeys(recipients))
        suppressed: Set[str] = set()

        try:
            for start in range(0, len(unique), _IN_CLAUSE_CHUNK):
                chunk = unique[start : start + _IN_CLAUSE_CHUNK]
                stmt = select(SuppressionModel.recipient).where(
                    SuppressionModel.recipient.in_(chunk)
                )
                suppressed.update(self.session.execute(stmt).scalars().all())
            return suppressed

        except SQLAlchemyError as e:
            logger.error(f"Error filtering suppressed recipients: {e}", exc_info=True)
            raise PersistenceError(f"Failed to filter suppressed recipients: {e}") from e

    def remove(self, recipient: str) -> bool:
        """Delete a suppression entry.

        Returns:
            True if a row was deleted
        """
        try:
            stmt = delete(SuppressionModel).where(SuppressionModel.recipient == recipient)
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Error removing suppression for {recipient}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to remove suppression entry: {e}") from e
