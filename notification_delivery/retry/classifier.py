"""Failure classification for the retry executor.

Maps whatever an operation raised to an error code and a retryable flag.
Rules are evaluated in order:

1. network / timeout failures        -> retryable
2. HTTP 429 or "rate limit"           -> retryable
3. HTTP 5xx                           -> retryable
4. HTTP 4xx (other than 429)          -> terminal
5. anything unrecognized              -> retryable

Unknown failures default to retryable: a duplicate notification is cheaper
than a silently dropped one.
"""

import re
from dataclasses import dataclass
from typing import Optional

import requests

from notification_delivery.transports.exceptions import (
    TransportNetworkError,
    TransportTimeoutError,
)

from .models import ErrorCode

_CLIENT_ERROR_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
}

_NETWORK_MARKERS = ("network", "connection", "econnrefused", "econnreset", "enotfound")
_TIMEOUT_MARKERS = ("timeout", "timed out")

_SERVER_STATUS_RE = re.compile(r"\b5\d\d\b")
_CLIENT_STATUS_RE = re.compile(r"\b(400|401|403|404)\b")


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classify_error()."""

    code: str
    retryable: bool


def extract_status_code(error: BaseException) -> Optional[int]:
    """Return the HTTP status attached to an exception, if any.

    Looks at a `status_code` or `status` attribute and, for requests'
    HTTPError, at the attached response.
    """
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value

    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and value > 0:
            return value

    return None


def classify_error(error: BaseException) -> ErrorClassification:
    """Classify a failure into an error code and retryable flag.

    Args:
        error: Exception raised by an operation

    Returns:
        ErrorClassification
    """
    status = extract_status_code(error)
    message = str(error).lower()

    # Rule 1. A response with a status means the network round-trip worked,
    # so message sniffing only applies when there is no status.
    if isinstance(error, (TransportTimeoutError, requests.exceptions.Timeout, TimeoutError)):
        return ErrorClassification(ErrorCode.TIMEOUT_ERROR, True)
    if isinstance(error, (TransportNetworkError, requests.exceptions.ConnectionError, ConnectionError)):
        return ErrorClassification(ErrorCode.NETWORK_ERROR, True)
    if status is None:
        if any(marker in message for marker in _TIMEOUT_MARKERS):
            return ErrorClassification(ErrorCode.TIMEOUT_ERROR, True)
        if any(marker in message for marker in _NETWORK_MARKERS):
            return ErrorClassification(ErrorCode.NETWORK_ERROR, True)

    # Rule 2
    if status == 429 or "rate limit" in message or (status is None and "429" in message):
        return ErrorClassification(ErrorCode.RATE_LIMIT_ERROR, True)

    if status is not None:
        # Rules 3 and 4 on the status code
        if status >= 500:
            return ErrorClassification(ErrorCode.SERVER_ERROR, True)
        if 400 <= status < 500:
            return ErrorClassification(
                _CLIENT_ERROR_CODES.get(status, ErrorCode.CLIENT_ERROR), False
            )
    else:
        # Rules 3 and 4 on the message
        if _SERVER_STATUS_RE.search(message):
            return ErrorClassification(ErrorCode.SERVER_ERROR, True)
        match = _CLIENT_STATUS_RE.search(message)
        if match:
            return ErrorClassification(_CLIENT_ERROR_CODES[int(match.group(1))], False)

    # Rule 5
    return ErrorClassification(ErrorCode.UNKNOWN_ERROR, True)


def is_retryable(error: BaseException) -> bool:
    """Shorthand for classify_error(error).retryable."""
    return classify_error(error).retryable
