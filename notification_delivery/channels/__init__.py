"""Channel adapters: the synchronous send path for email and SMS.

Public API:
    - EmailAdapter.send(EmailParams) / send_broadcast(BroadcastEmailParams)
    - SMSAdapter.send(SMSParams) / send_broadcast(BroadcastSMSParams)

Both return DeliveryAttemptResult (or BroadcastResult) and never raise:
validation errors, suppressed recipients and provider failures all come back
as structured results.
"""

from .base import BaseChannelAdapter
from .email import EmailAdapter, inject_unsubscribe_link, is_valid_email
from .models import (
    BroadcastEmailParams,
    BroadcastResult,
    BroadcastSMSParams,
    EmailParams,
    EmailResult,
    SMSMessageType,
    SMSParams,
    SMSResult,
)
from .sms import SMSAdapter, is_valid_phone_number

__all__ = [
    "BaseChannelAdapter",
    "EmailAdapter",
    "SMSAdapter",
    "EmailParams",
    "SMSParams",
    "BroadcastEmailParams",
    "BroadcastSMSParams",
    "EmailResult",
    "SMSResult",
    "BroadcastResult",
    "SMSMessageType",
    "inject_unsubscribe_link",
    "is_valid_email",
    "is_valid_phone_number",
]
