"""Shared plumbing for channel adapters.

Adapters validate, send through the retry executor, record the outcome in
the delivery log and hand retryable failures to the delivery queue. Writes
to the log and queue are best-effort: a persistence failure is logged and the
transport outcome is still returned to the caller.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from notification_delivery.domain.models import Channel, DeliveryStatus, QueueItem
from notification_delivery.logging import get_logger
from notification_delivery.persistence.exceptions import PersistenceError
from notification_delivery.retry.executor import RetryExecutor
from notification_delivery.retry.models import (
    DEFAULT_RETRY_CONFIG,
    DeliveryAttemptResult,
    RetryConfig,
)
from notification_delivery.tracking.delivery_log import DeliveryLog
from notification_delivery.tracking.queue import DeliveryQueue

logger = get_logger(__name__, component="channel")


class BaseChannelAdapter(ABC):
    """Base class for the email and SMS adapters.

    Attributes:
        channel: Channel this adapter delivers on
        retry_config: Policy for the synchronous attempts and queue backoff
    """

    channel: Channel

    def __init__(
        self,
        delivery_log: Optional[DeliveryLog] = None,
        queue: Optional[DeliveryQueue] = None,
        retry_config: Optional[RetryConfig] = None,
        executor: Optional[RetryExecutor] = None,
    ) -> None:
        self.delivery_log = delivery_log or DeliveryLog()
        self.queue = queue or DeliveryQueue()
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.executor = executor or RetryExecutor()

    @abstractmethod
    def send(self, params: Any, enqueue_on_failure: bool = True) -> DeliveryAttemptResult:
        """Deliver one message. Never raises."""

    @abstractmethod
    def params_from_queue_item(self, item: QueueItem) -> Any:
        """Rebuild the send parameters stored in a queue item's payload."""

    def _record_attempt(
        self,
        recipient: str,
        result: DeliveryAttemptResult,
        message_type: Optional[str] = None,
        subject: Optional[str] = None,
        external_message_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> None:
        """Write the single log entry for a transport-reaching send."""
        try:
            self.delivery_log.record(
                channel=self.channel,
                recipient=recipient,
                status=DeliveryStatus.SUCCESS if result.success else DeliveryStatus.FAILED,
                message_type=message_type,
                subject=subject,
                error_code=result.error.code if result.error else None,
                error_message=result.error_message,
                external_message_id=external_message_id,
                tenant_id=tenant_id,
            )
        except PersistenceError as e:
            logger.error(
                f"Failed to record {self.channel.value} delivery attempt: {e}",
                extra={"event": "delivery_log.write_failed", "error_type": type(e).__name__},
                exc_info=True,
            )

    def _enqueue_retry(
        self,
        recipients: Sequence[str],
        payload: Dict[str, Any],
        tenant_id: Optional[str],
    ) -> Optional[QueueItem]:
        try:
            return self.queue.enqueue(
                channel=self.channel,
                recipients=recipients,
                payload=payload,
                tenant_id=tenant_id,
                retry_config=self.retry_config,
            )
        except PersistenceError as e:
            logger.error(
                f"Failed to queue {self.channel.value} delivery for retry: {e}",
                extra={"event": "queue.enqueue_failed", "error_type": type(e).__name__},
                exc_info=True,
            )
            return None
