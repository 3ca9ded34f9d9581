"""Queue sweeper: re-attempts queued deliveries whose retry time has come.

Invoked periodically by SchedulerService (or once via `--once`). Each run
handles at most `batch_size` items, oldest first. An item's send goes through
the normal adapter path (validation, retry executor, delivery log) but never
creates a new queue item; the existing item is rescheduled instead.
"""

import time
import uuid
from typing import Callable, Dict, Mapping, Optional

from notification_delivery.channels.base import BaseChannelAdapter
from notification_delivery.domain.models import Channel, QueueItem
from notification_delivery.logging import get_logger
from notification_delivery.logging.context import log_context
from notification_delivery.persistence.exceptions import PersistenceError
from notification_delivery.retry.backoff import next_retry_at
from notification_delivery.retry.models import (
    DEFAULT_RETRY_CONFIG,
    DeliveryAttemptResult,
    ErrorCode,
    RetryConfig,
)
from notification_delivery.tracking.queue import DeliveryQueue
from notification_delivery.utils.timestamps import utc_now

logger = get_logger(__name__, component="sweeper")

DEFAULT_BATCH_SIZE = 100


class QueueSweeper:
    """Drains due items from the delivery queue.

    Attributes:
        queue: DeliveryQueue to read and update
        adapters: Channel -> adapter used to re-send
        retry_config: Policy used to compute the next due time
        batch_size: Maximum items handled per run
    """

    def __init__(
        self,
        queue: DeliveryQueue,
        adapters: Mapping[Channel, BaseChannelAdapter],
        retry_config: Optional[RetryConfig] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Optional[Callable] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.queue = queue
        self.adapters: Dict[Channel, BaseChannelAdapter] = dict(adapters)
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.batch_size = batch_size
        self.clock = clock or utc_now

    def run(self) -> int:
        """Process one batch of due items.

        Returns:
            Number of items completed in this run
        """
        run_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        counts = {"completed": 0, "rescheduled": 0, "failed": 0, "skipped": 0, "errors": 0}

        with log_context(sweep_run_id=run_id):
            try:
                items = self.queue.due_items(self.clock(), self.batch_size)
            except PersistenceError as e:
                logger.error(
                    f"Could not load due queue items: {e}",
                    extra={"event": "sweeper.run.failed", "error_type": type(e).__name__},
                    exc_info=True,
                )
                return 0

            logger.info(
                f"Sweep started: {len(items)} due item(s)",
                extra={"event": "sweeper.run.started", "due_count": len(items)},
            )

            for item in items:
                with log_context(queue_item_id=item.id, channel=item.channel.value):
                    try:
                        outcome = self._process_item(item)
                    except PersistenceError as e:
                        # Item stays in whatever state the last successful write left it
                        logger.error(
                            f"Queue update failed for item {item.id}: {e}",
                            extra={"event": "sweeper.item.error", "error_type": type(e).__name__},
                            exc_info=True,
                        )
                        outcome = "errors"
                    counts[outcome] += 1

            logger.info(
                f"Sweep completed: {counts['completed']} completed, "
                f"{counts['rescheduled']} rescheduled, {counts['failed']} failed",
                extra={
                    "event": "sweeper.run.completed",
                    "due_count": len(items),
                    "duration_seconds": round(time.monotonic() - started, 3),
                    **counts,
                },
            )

        return counts["completed"]

    def _process_item(self, item: QueueItem) -> str:
        if not self.queue.claim(item.id, self.clock()):
            logger.debug(
                "Queue item already claimed, skipping",
                extra={"event": "sweeper.item.skipped"},
            )
            return "skipped"

        result = self._attempt(item)

        if result.success:
            self.queue.mark_completed(item.id, self.clock())
            return "completed"

        now = self.clock()
        new_retry_count = item.retry_count + 1
        last_error = result.error_message or "Unknown error"

        if new_retry_count >= item.max_retries:
            self.queue.mark_failed(
                item.id, min(new_retry_count, item.max_retries), last_error, now
            )
            return "failed"

        self.queue.mark_retry(
            item.id,
            new_retry_count,
            next_retry_at(new_retry_count, self.retry_config, now=now),
            last_error,
            now,
        )
        return "rescheduled"

    def _attempt(self, item: QueueItem) -> DeliveryAttemptResult:
        adapter = self.adapters.get(item.channel)
        if adapter is None:
            logger.error(
                f"No adapter configured for channel {item.channel.value}",
                extra={"event": "sweeper.item.no_adapter"},
            )
            return DeliveryAttemptResult.failure(
                code=ErrorCode.UNKNOWN_ERROR,
                message=f"No adapter configured for channel {item.channel.value}",
                retryable=True,
            )

        try:
            params = adapter.params_from_queue_item(item)
            return adapter.send(params, enqueue_on_failure=False)
        except Exception as e:
            logger.error(
                f"Unexpected error re-sending queue item: {e}",
                extra={"event": "sweeper.item.unexpected_error", "error_type": type(e).__name__},
                exc_info=True,
            )
            return DeliveryAttemptResult.failure(
                code=ErrorCode.UNKNOWN_ERROR,
                message=str(e) or type(e).__name__,
                retryable=True,
            )
