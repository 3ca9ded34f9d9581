"""Do-not-contact list consulted before every email send."""

import uuid
from typing import Callable, ContextManager, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from notification_delivery.domain.models import SuppressionEntry
from notification_delivery.logging import get_logger
from notification_delivery.persistence.database import get_session
from notification_delivery.persistence.repositories import SuppressionRepository
from notification_delivery.utils.timestamps import utc_now

logger = get_logger(__name__, component="suppression")

SessionFactory = Callable[[], ContextManager[Session]]


class SuppressionList:
    """Recipients who opted out. Entries are added idempotently and never expire.

    Lookups are exact string matches on the recipient as given; callers
    normalize addresses before adding and checking.
    """

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def unsubscribe(
        self,
        recipient: str,
        tenant_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """Add a recipient. Adding an existing recipient is a no-op.

        Returns:
            True if the recipient was newly suppressed
        """
        entry = SuppressionEntry(
            id=str(uuid.uuid4()),
            recipient=recipient,
            tenant_id=tenant_id,
            reason=reason,
            created_at=utc_now(),
        )

        with self._session_factory() as session:
            added = SuppressionRepository(session).add(entry)

        logger.info(
            "Recipient unsubscribed" if added else "Recipient already unsubscribed",
            extra={
                "event": "suppression.added" if added else "suppression.exists",
                "recipient": entry.recipient,
                "tenant_id": tenant_id,
            },
        )
        return added

    def is_suppressed(self, recipient: str) -> bool:
        with self._session_factory() as session:
            return SuppressionRepository(session).exists(recipient.strip())

    def get(self, recipient: str) -> Optional[SuppressionEntry]:
        with self._session_factory() as session:
            return SuppressionRepository(session).get(recipient.strip())

    def partition(self, recipients: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Split recipients into (allowed, suppressed), preserving input order."""
        candidates = list(recipients)
        with self._session_factory() as session:
            blocked = SuppressionRepository(session).filter_suppressed(candidates)

        allowed = [r for r in candidates if r not in blocked]
        suppressed = [r for r in candidates if r in blocked]
        return allowed, suppressed

    def remove(self, recipient: str) -> bool:
        """Re-allow a recipient. Returns True if an entry was deleted."""
        with self._session_factory() as session:
            removed = SuppressionRepository(session).remove(recipient.strip())

        if removed:
            logger.info(
                "Recipient removed from suppression list",
                extra={"event": "suppression.removed", "recipient": recipient},
            )
        return removed
