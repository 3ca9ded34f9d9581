"""Base transport with shared HTTP handling for provider APIs.

A transport performs exactly one provider call and raises on failure; retry,
logging of outcomes and queueing happen in the channel adapters.
"""

import logging
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import requests

from notification_delivery.logging import get_logger

from .exceptions import (
    TransportConfigurationError,
    TransportHTTPError,
    TransportNetworkError,
    TransportResponseError,
    TransportTimeoutError,
)

logger = get_logger(__name__, component="transport")


@dataclass
class TransportResponse:
    """Successful provider response.

    Attributes:
        message_id: Provider-assigned id for the accepted message
        raw: Decoded JSON body
    """

    message_id: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


class BaseTransport(ABC):
    """Shared requests.Session handling for provider transports.

    Attributes:
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for HTTP requests
    """

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str = "NotificationDelivery/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize transport.

        Args:
            timeout: HTTP request timeout in seconds (range 5-300)
            user_agent: User-Agent header for requests
            session: Optional pre-built session (tests inject a mock)

        Raises:
            TransportConfigurationError: If timeout is out of range or user_agent is empty
        """
        if not 5 <= timeout <= 300:
            raise TransportConfigurationError(
                f"Timeout must be between 5 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise TransportConfigurationError("user_agent cannot be empty")

        self.timeout = timeout
        self.user_agent = user_agent.strip()

        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent})

    def _post(
        self,
        url: str,
        json_data: Optional[Dict[str, Any]] = None,
        form_data: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST to a provider endpoint and return the decoded JSON body.

        Raises:
            TransportHTTPError: On 4xx or 5xx HTTP status
            TransportTimeoutError: On request timeout
            TransportNetworkError: On connection failures
            TransportResponseError: On a 2xx body that is not JSON
        """
        logger.debug(
            f"HTTP POST request to {url}",
            extra={
                "event": "transport.request",
                "url": url,
                "timeout": self.timeout,
            },
        )

        try:
            response = self._session.request(
                method="POST",
                url=url,
                headers=headers,
                json=json_data,
                data=form_data,
                auth=auth,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={
                    "event": "transport.request.timeout",
                    "url": url,
                    "timeout": self.timeout,
                },
            )
            raise TransportTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.warning(
                f"Network error calling {url}: {e}",
                extra={"event": "transport.request.network_error", "url": url},
            )
            raise TransportNetworkError(f"Network error calling {url}: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {e}",
                extra={
                    "event": "transport.request.error",
                    "error_type": type(e).__name__,
                    "url": url,
                },
            )
            raise TransportNetworkError(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            body = self._safe_json(response)
            retryable = response.status_code >= 500 or response.status_code == 429
            logger.log(
                logging.WARNING if retryable else logging.ERROR,
                f"HTTP {response.status_code} error from {url}",
                extra={
                    "event": "transport.request.http_error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise TransportHTTPError(
                self._error_message(response, body),
                status_code=response.status_code,
                url=url,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                f"Failed to parse JSON response from {url}",
                extra={"event": "transport.response.invalid", "url": url},
            )
            raise TransportResponseError(f"Failed to parse JSON response from {url}: {e}") from e

        if not isinstance(data, dict):
            raise TransportResponseError(f"Expected a JSON object from {url}, got {type(data).__name__}")

        logger.debug(
            "HTTP request succeeded",
            extra={
                "event": "transport.request.succeeded",
                "status_code": response.status_code,
                "url": url,
            },
        )
        return data

    @staticmethod
    def _safe_json(response: requests.Response) -> Optional[dict]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    def _error_message(self, response: requests.Response, body: Optional[dict]) -> str:
        """Provider error text, falling back to the status line."""
        if body and body.get("message"):
            return f"HTTP {response.status_code}: {body['message']}"
        return f"HTTP {response.status_code}: {response.reason}"

    def close(self) -> None:
        self._session.close()
