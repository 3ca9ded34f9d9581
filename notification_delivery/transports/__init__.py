"""Provider transports for email and SMS.

A transport turns one send request into one HTTP call and raises a
TransportError subclass on failure. Adapters wrap transports with retry,
logging and queueing.
"""

from .base import BaseTransport, TransportResponse
from .email import RESEND_API_URL, EmailTransport, OutboundEmail, ResendEmailTransport
from .exceptions import (
    TransportConfigurationError,
    TransportError,
    TransportHTTPError,
    TransportNetworkError,
    TransportResponseError,
    TransportTimeoutError,
)
from .sms import TWILIO_API_URL, SMSTransport, TwilioSMSTransport

__all__ = [
    "BaseTransport",
    "TransportResponse",
    "EmailTransport",
    "OutboundEmail",
    "ResendEmailTransport",
    "RESEND_API_URL",
    "SMSTransport",
    "TwilioSMSTransport",
    "TWILIO_API_URL",
    "TransportError",
    "TransportHTTPError",
    "TransportTimeoutError",
    "TransportNetworkError",
    "TransportResponseError",
    "TransportConfigurationError",
]
