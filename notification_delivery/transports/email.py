"""Email provider transports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from .base import BaseTransport, TransportResponse
from .exceptions import TransportConfigurationError, TransportResponseError

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class OutboundEmail:
    """Fully rendered email ready for the provider."""

    from_email: str
    to: List[str]
    subject: str
    html: str
    text: Optional[str] = None
    headers: dict = field(default_factory=dict)


class EmailTransport(ABC):
    """Sends one email request (possibly many recipients) to a provider."""

    @abstractmethod
    def send(self, message: OutboundEmail) -> TransportResponse:
        """Deliver the message or raise a TransportError (or any exception)."""


class ResendEmailTransport(BaseTransport, EmailTransport):
    """Resend HTTP API: JSON body, bearer token auth.

    Example:
        >>> transport = ResendEmailTransport(api_key="re_...")
        >>> transport.send(OutboundEmail(
        ...     from_email="noreply@example.com", to=["fan@example.com"],
        ...     subject="Hi", html="<p>Hi</p>"))
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = RESEND_API_URL,
        timeout: int = 30,
        user_agent: str = "NotificationDelivery/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise TransportConfigurationError("Resend API key cannot be empty")
        super().__init__(timeout=timeout, user_agent=user_agent, session=session)
        self.api_key = api_key.strip()
        self.api_url = api_url

    def send(self, message: OutboundEmail) -> TransportResponse:
        payload = {
            "from": message.from_email,
            "to": list(message.to),
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.headers:
            payload["headers"] = dict(message.headers)

        data = self._post(
            self.api_url,
            json_data=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        message_id = data.get("id")
        if not message_id:
            raise TransportResponseError(f"Resend response missing message id: {data}")

        return TransportResponse(message_id=message_id, raw=data)
