"""SMS channel adapter."""

import re
from typing import Optional

from notification_delivery.domain.models import Channel, QueueItem
from notification_delivery.logging import get_logger
from notification_delivery.logging.context import log_context
from notification_delivery.ratelimit.token_bucket import TokenBucket
from notification_delivery.retry.executor import RetryExecutor
from notification_delivery.retry.models import DeliveryAttemptResult, ErrorCode, RetryConfig
from notification_delivery.tracking.delivery_log import DeliveryLog
from notification_delivery.tracking.queue import DeliveryQueue
from notification_delivery.transports.sms import SMSTransport
from notification_delivery.utils.timestamps import utc_now

from .base import BaseChannelAdapter
from .models import BroadcastResult, BroadcastSMSParams, SMSMessageType, SMSParams, SMSResult

logger = get_logger(__name__, component="sms")

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
MAX_MESSAGE_LENGTH = 1600
DEFAULT_RATE_LIMIT = 10


def is_valid_phone_number(phone: str) -> bool:
    """True for E.164 numbers: '+', non-zero leading digit, 2-15 digits total."""
    return bool(E164_PATTERN.match(phone))


class SMSAdapter(BaseChannelAdapter):
    """Sends SMS through an SMSTransport, throttled by a token bucket."""

    channel = Channel.SMS

    def __init__(
        self,
        transport: SMSTransport,
        rate_limiter: Optional[TokenBucket] = None,
        delivery_log: Optional[DeliveryLog] = None,
        queue: Optional[DeliveryQueue] = None,
        retry_config: Optional[RetryConfig] = None,
        executor: Optional[RetryExecutor] = None,
        max_message_length: int = MAX_MESSAGE_LENGTH,
    ) -> None:
        super().__init__(
            delivery_log=delivery_log,
            queue=queue,
            retry_config=retry_config,
            executor=executor,
        )
        self.transport = transport
        self.rate_limiter = rate_limiter or TokenBucket(max_per_second=DEFAULT_RATE_LIMIT)
        self.max_message_length = max_message_length

    def send(
        self, params: SMSParams, enqueue_on_failure: bool = True
    ) -> DeliveryAttemptResult[SMSResult]:
        """Send one SMS.

        Blocks on the rate limiter once per send; retries inside the executor
        do not take additional tokens.
        """
        with log_context(channel=self.channel.value, recipient=params.to):
            if not is_valid_phone_number(params.to):
                return DeliveryAttemptResult.failure(
                    code=ErrorCode.VALIDATION_ERROR,
                    message=f"Invalid phone number format: {params.to}",
                    retryable=False,
                )

            if len(params.message) > self.max_message_length:
                return DeliveryAttemptResult.failure(
                    code=ErrorCode.MESSAGE_TOO_LONG,
                    message=(
                        f"Message exceeds {self.max_message_length} character limit "
                        f"({len(params.message)} characters)"
                    ),
                    retryable=False,
                )

            waited = self.rate_limiter.wait_for_token()
            if waited:
                logger.debug(
                    f"Waited {waited:.3f}s for SMS rate limit",
                    extra={"event": "delivery.throttled", "waited_seconds": waited},
                )

            attempt = self.executor.execute(
                lambda: self.transport.send(params.to, params.message),
                self.retry_config,
                operation_name="sms.send",
            )

            if attempt.success:
                response = attempt.value
                outcome = DeliveryAttemptResult.ok(
                    SMSResult(
                        message_sid=response.message_id if response else None,
                        to=params.to,
                        status=response.raw.get("status") if response else None,
                        timestamp=utc_now(),
                    )
                )
                logger.info(
                    "SMS sent",
                    extra={
                        "event": "delivery.send.success",
                        "external_message_id": outcome.value.message_sid,
                    },
                )
            else:
                outcome = DeliveryAttemptResult(success=False, error=attempt.error)
                logger.warning(
                    f"SMS send failed: {attempt.error_message}",
                    extra={
                        "event": "delivery.send.failed",
                        "error_code": attempt.error.code,
                        "retryable": attempt.error.retryable,
                    },
                )

            self._record_attempt(
                recipient=params.to,
                result=outcome,
                message_type=params.message_type.value,
                external_message_id=outcome.value.message_sid if outcome.success else None,
                tenant_id=params.tenant_id,
            )

            if outcome.retryable and enqueue_on_failure:
                outcome.queued = self._enqueue_retry(
                    [params.to],
                    payload={
                        "message": params.message,
                        "message_type": params.message_type.value,
                    },
                    tenant_id=params.tenant_id,
                ) is not None

            return outcome

    def send_broadcast(self, params: BroadcastSMSParams) -> BroadcastResult:
        """Send the same SMS to each recipient in turn, at the limiter's pace."""
        result = BroadcastResult(total=len(params.recipients))

        with log_context(channel=self.channel.value, broadcast=True):
            logger.info(
                f"Broadcasting SMS to {len(params.recipients)} recipient(s)",
                extra={"event": "broadcast.started", "recipient_count": len(params.recipients)},
            )

            for phone in params.recipients:
                outcome = self.send(
                    SMSParams(
                        to=phone,
                        message=params.message,
                        message_type=SMSMessageType.BROADCAST,
                        tenant_id=params.tenant_id,
                    )
                )
                if outcome.success:
                    result.success_count += 1
                elif outcome.queued:
                    result.queued_count += 1
                else:
                    result.failure_count += 1

            logger.info(
                "SMS broadcast finished",
                extra={"event": "broadcast.completed", **result.model_dump()},
            )
        return result

    def params_from_queue_item(self, item: QueueItem) -> SMSParams:
        payload = item.payload
        return SMSParams(
            to=item.recipient,
            message=payload.get("message", ""),
            message_type=payload.get("message_type") or SMSMessageType.NOTIFICATION,
            tenant_id=item.tenant_id,
        )
