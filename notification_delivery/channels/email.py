"""Email channel adapter."""

import html as html_lib
from typing import List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from notification_delivery.domain.models import Channel, QueueItem
from notification_delivery.logging import get_logger
from notification_delivery.logging.context import log_context
from notification_delivery.persistence.exceptions import PersistenceError
from notification_delivery.retry.executor import RetryExecutor
from notification_delivery.retry.models import DeliveryAttemptResult, ErrorCode, RetryConfig
from notification_delivery.tracking.delivery_log import DeliveryLog
from notification_delivery.tracking.queue import DeliveryQueue
from notification_delivery.tracking.suppression import SuppressionList
from notification_delivery.transports.email import EmailTransport, OutboundEmail
from notification_delivery.utils.timestamps import utc_now

from .base import BaseChannelAdapter
from .models import (
    BroadcastEmailParams,
    BroadcastResult,
    EmailParams,
    EmailResult,
    chunk,
)

logger = get_logger(__name__, component="email")

DEFAULT_FROM_EMAIL = "noreply@notifications.example.com"
BROADCAST_BATCH_SIZE = 1000
BROADCAST_TEMPLATE = "broadcast"

UNSUBSCRIBE_FOOTER = (
    '\n<div style="margin-top: 40px; padding-top: 20px; border-top: 1px solid #eee; '
    'text-align: center; color: #666; font-size: 12px;">\n'
    "  <p>Don't want to receive these emails? "
    '<a href="{url}" style="color: #666; text-decoration: underline;">Unsubscribe</a></p>\n'
    "</div>\n"
)


def inject_unsubscribe_link(body: str, unsubscribe_url: str) -> str:
    """Insert an unsubscribe footer before </body>, or append it."""
    footer = UNSUBSCRIBE_FOOTER.format(url=html_lib.escape(unsubscribe_url, quote=True))

    marker = body.lower().rfind("</body>")
    if marker == -1:
        return body + footer
    return body[:marker] + footer + body[marker:]


def is_valid_email(address: str) -> bool:
    """Syntax-only address check (no DNS lookups).

    `.test` domains are accepted; other special-use names such as `.local`
    and `.invalid` are still rejected by email-validator.
    """
    try:
        validate_email(address, check_deliverability=False, test_environment=True)
    except EmailNotValidError:
        return False
    return True


class EmailAdapter(BaseChannelAdapter):
    """Sends email through an EmailTransport with retry, logging and queueing.

    Example:
        >>> adapter = EmailAdapter(ResendEmailTransport(api_key="re_..."))
        >>> result = adapter.send(EmailParams(to="fan@example.com", subject="Hi", html="<p>Hi</p>"))
        >>> result.success
        True
    """

    channel = Channel.EMAIL

    def __init__(
        self,
        transport: EmailTransport,
        suppression: Optional[SuppressionList] = None,
        delivery_log: Optional[DeliveryLog] = None,
        queue: Optional[DeliveryQueue] = None,
        retry_config: Optional[RetryConfig] = None,
        executor: Optional[RetryExecutor] = None,
        from_email: str = DEFAULT_FROM_EMAIL,
        batch_size: int = BROADCAST_BATCH_SIZE,
    ) -> None:
        super().__init__(
            delivery_log=delivery_log,
            queue=queue,
            retry_config=retry_config,
            executor=executor,
        )
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.transport = transport
        self.suppression = suppression or SuppressionList()
        self.from_email = from_email
        self.batch_size = batch_size

    def send(
        self, params: EmailParams, enqueue_on_failure: bool = True
    ) -> DeliveryAttemptResult[EmailResult]:
        """Send one email to one or more recipients.

        Suppressed recipients are dropped; if none remain the send is
        rejected with RECIPIENT_UNSUBSCRIBED. Validation and suppression
        rejections never reach the transport and are not logged.
        """
        with log_context(channel=self.channel.value, recipient=",".join(params.to)):
            invalid = self._validate(params.to)
            if invalid is not None:
                return invalid

            try:
                allowed, suppressed = self.suppression.partition(params.to)
            except PersistenceError as e:
                logger.error(
                    f"Suppression check failed, email not sent: {e}",
                    extra={"event": "delivery.suppression_check_failed"},
                )
                return DeliveryAttemptResult.failure(
                    code=ErrorCode.UNKNOWN_ERROR,
                    message=f"Suppression check failed: {e}",
                    retryable=True,
                )

            if suppressed:
                logger.info(
                    f"Skipping {len(suppressed)} unsubscribed recipient(s)",
                    extra={"event": "delivery.recipients_suppressed", "suppressed_count": len(suppressed)},
                )
            if not allowed:
                return DeliveryAttemptResult.failure(
                    code=ErrorCode.RECIPIENT_UNSUBSCRIBED,
                    message=f"Recipient {', '.join(suppressed)} has unsubscribed",
                    retryable=False,
                )

            return self._deliver(params, allowed, enqueue_on_failure)

    def send_broadcast(self, params: BroadcastEmailParams) -> BroadcastResult:
        """Send the same email to many recipients in batches.

        Every recipient in a batch shares the batch's outcome. Malformed
        addresses are counted as failures without being sent.
        """
        result = BroadcastResult(total=len(params.recipients))
        if not params.recipients:
            return result

        with log_context(channel=self.channel.value, broadcast=True):
            try:
                allowed, suppressed = self.suppression.partition(params.recipients)
            except PersistenceError as e:
                logger.error(
                    f"Suppression check failed, broadcast not sent: {e}",
                    extra={"event": "broadcast.suppression_check_failed"},
                )
                result.failure_count = result.total
                return result

            result.suppressed_count = len(suppressed)

            valid = [r for r in allowed if is_valid_email(r)]
            result.failure_count += len(allowed) - len(valid)

            batches = list(chunk(valid, self.batch_size))
            logger.info(
                f"Broadcasting email to {len(valid)} recipient(s) in {len(batches)} batch(es)",
                extra={
                    "event": "broadcast.started",
                    "recipient_count": len(valid),
                    "batch_count": len(batches),
                    "suppressed_count": result.suppressed_count,
                },
            )

            for batch in batches:
                batch_params = EmailParams(
                    to=batch,
                    subject=params.subject,
                    html=params.html,
                    text=params.text,
                    from_email=params.from_email,
                    template=BROADCAST_TEMPLATE,
                    tenant_id=params.tenant_id,
                    unsubscribe_url=params.unsubscribe_url,
                )
                outcome = self._deliver(batch_params, batch, enqueue_on_failure=True)

                if outcome.success:
                    result.success_count += len(batch)
                elif outcome.queued:
                    result.queued_count += len(batch)
                else:
                    result.failure_count += len(batch)

            logger.info(
                "Email broadcast finished",
                extra={"event": "broadcast.completed", **result.model_dump()},
            )
        return result

    def unsubscribe(
        self, recipient: str, tenant_id: Optional[str] = None, reason: Optional[str] = None
    ) -> bool:
        """Add a recipient to the suppression list (idempotent)."""
        return self.suppression.unsubscribe(recipient, tenant_id=tenant_id, reason=reason)

    def params_from_queue_item(self, item: QueueItem) -> EmailParams:
        payload = item.payload
        return EmailParams(
            to=item.recipients,
            subject=payload.get("subject", ""),
            html=payload.get("html", ""),
            text=payload.get("text"),
            from_email=payload.get("from_email"),
            template=payload.get("template"),
            tenant_id=item.tenant_id,
            unsubscribe_url=payload.get("unsubscribe_url"),
        )

    def _validate(self, recipients: List[str]) -> Optional[DeliveryAttemptResult]:
        if not recipients:
            return DeliveryAttemptResult.failure(
                code=ErrorCode.VALIDATION_ERROR,
                message="At least one recipient is required",
                retryable=False,
            )

        bad = [r for r in recipients if not is_valid_email(r)]
        if bad:
            return DeliveryAttemptResult.failure(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Invalid email address: {', '.join(bad)}",
                retryable=False,
            )
        return None

    def _build_message(self, params: EmailParams, recipients: List[str]) -> OutboundEmail:
        body = params.html
        headers = {}
        if params.unsubscribe_url:
            body = inject_unsubscribe_link(body, params.unsubscribe_url)
            headers["List-Unsubscribe"] = f"<{params.unsubscribe_url}>"

        return OutboundEmail(
            from_email=params.from_email or self.from_email,
            to=list(recipients),
            subject=params.subject,
            html=body,
            text=params.text,
            headers=headers,
        )

    def _deliver(
        self, params: EmailParams, recipients: List[str], enqueue_on_failure: bool
    ) -> DeliveryAttemptResult[EmailResult]:
        message = self._build_message(params, recipients)

        attempt = self.executor.execute(
            lambda: self.transport.send(message),
            self.retry_config,
            operation_name="email.send",
        )

        recipient_field = ",".join(recipients)
        if attempt.success:
            response = attempt.value
            outcome = DeliveryAttemptResult.ok(
                EmailResult(
                    message_id=response.message_id if response else None,
                    to=list(recipients),
                    timestamp=utc_now(),
                )
            )
            logger.info(
                f"Email sent to {len(recipients)} recipient(s)",
                extra={
                    "event": "delivery.send.success",
                    "external_message_id": outcome.value.message_id,
                },
            )
        else:
            outcome = DeliveryAttemptResult(success=False, error=attempt.error)
            logger.warning(
                f"Email send failed: {attempt.error_message}",
                extra={
                    "event": "delivery.send.failed",
                    "error_code": attempt.error.code,
                    "retryable": attempt.error.retryable,
                },
            )

        self._record_attempt(
            recipient=recipient_field,
            result=outcome,
            message_type=params.template,
            subject=params.subject,
            external_message_id=outcome.value.message_id if outcome.success else None,
            tenant_id=params.tenant_id,
        )

        if outcome.retryable and enqueue_on_failure:
            outcome.queued = self._enqueue_retry(
                recipients,
                payload={
                    "subject": params.subject,
                    "html": params.html,
                    "text": params.text,
                    "from_email": message.from_email,
                    "template": params.template,
                    "unsubscribe_url": params.unsubscribe_url,
                },
                tenant_id=params.tenant_id,
            ) is not None

        return outcome
