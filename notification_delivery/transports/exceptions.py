"""Exceptions raised by provider transports."""

from typing import Optional


class TransportError(Exception):
    """Base exception for all transport errors.

    The retry executor classifies these (and anything else an operation
    raises) into retryable and terminal failures.
    """

    pass


class TransportHTTPError(TransportError):
    """Provider answered with a 4xx or 5xx status.

    Attributes:
        status_code: HTTP status returned by the provider
        url: Endpoint that was called
        body: Parsed error body, when the provider sent JSON
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        url: str,
        body: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.body = body or {}


class TransportTimeoutError(TransportError):
    """Request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class TransportNetworkError(TransportError):
    """Connection could not be established or was dropped."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class TransportResponseError(TransportError):
    """Provider answered 2xx but the body could not be understood."""

    pass


class TransportConfigurationError(TransportError):
    """Transport was built with missing or invalid credentials/settings."""

    pass
