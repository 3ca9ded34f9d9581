"""Test helper utilities for notification delivery tests."""

from .fakes import (
    FakeClock,
    FakeEmailTransport,
    FakeSMSTransport,
    FakeWallClock,
    http_error,
    locked_session,
)

__all__ = [
    "FakeClock",
    "FakeEmailTransport",
    "FakeSMSTransport",
    "FakeWallClock",
    "http_error",
    "locked_session",
]
