"""SMS provider transports."""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from .base import BaseTransport, TransportResponse
from .exceptions import TransportConfigurationError, TransportResponseError

TWILIO_API_URL = "https://api.twilio.com/2010-04-01/Accounts"


class SMSTransport(ABC):
    """Sends one text message to one phone number."""

    @abstractmethod
    def send(self, to: str, body: str) -> TransportResponse:
        """Deliver the message or raise a TransportError (or any exception)."""


class TwilioSMSTransport(BaseTransport, SMSTransport):
    """Twilio Messages API: form-encoded body, HTTP basic auth.

    The provider's message SID is returned as the message id.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_phone: str,
        api_url: str = TWILIO_API_URL,
        timeout: int = 30,
        user_agent: str = "NotificationDelivery/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("account_sid", account_sid),
                ("auth_token", auth_token),
                ("from_phone", from_phone),
            )
            if not value
        ]
        if missing:
            raise TransportConfigurationError(f"Twilio credentials missing: {', '.join(missing)}")

        super().__init__(timeout=timeout, user_agent=user_agent, session=session)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_phone = from_phone
        self.api_url = api_url.rstrip("/")

    @property
    def messages_url(self) -> str:
        return f"{self.api_url}/{self.account_sid}/Messages.json"

    def send(self, to: str, body: str) -> TransportResponse:
        data = self._post(
            self.messages_url,
            form_data={"To": to, "From": self.from_phone, "Body": body},
            auth=(self.account_sid, self.auth_token),
        )

        sid = data.get("sid")
        if not sid:
            raise TransportResponseError(f"Twilio response missing message sid: {data}")

        return TransportResponse(message_id=sid, raw=data)
