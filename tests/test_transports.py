"""Unit tests for the email and SMS provider transports."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from notification_delivery.transports import (
    OutboundEmail,
    ResendEmailTransport,
    TransportConfigurationError,
    TransportHTTPError,
    TransportNetworkError,
    TransportResponseError,
    TransportTimeoutError,
    TwilioSMSTransport,
)


# ============================================================================
# Fixtures
# ============================================================================


def make_response(status_code=200, body=None, reason="OK", raw_text=None):
    """Build a real requests.Response with the given status and body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if raw_text is not None:
        response._content = raw_text.encode("utf-8")
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    return response


@pytest.fixture
def session():
    """Mock requests.Session with a real headers dict."""
    mock = MagicMock()
    mock.headers = {}
    return mock


@pytest.fixture
def email_transport(session):
    return ResendEmailTransport(api_key="re_test_key", session=session)


@pytest.fixture
def sms_transport(session):
    return TwilioSMSTransport(
        account_sid="AC123",
        auth_token="secret",
        from_phone="+15550009999",
        session=session,
    )


@pytest.fixture
def message():
    return OutboundEmail(
        from_email="shows@example.com",
        to=["fan@example.com"],
        subject="New show",
        html="<p>Hi</p>",
    )


# ============================================================================
# Base transport
# ============================================================================


class TestBaseTransport:
    @pytest.mark.parametrize("timeout", [4, 301])
    def test_timeout_out_of_range(self, timeout):
        with pytest.raises(TransportConfigurationError):
            ResendEmailTransport(api_key="re_x", timeout=timeout)

    def test_empty_user_agent(self):
        with pytest.raises(TransportConfigurationError):
            ResendEmailTransport(api_key="re_x", user_agent="  ")

    def test_user_agent_header_set(self, session):
        ResendEmailTransport(api_key="re_x", user_agent="Worker/2.0", session=session)
        assert session.headers["User-Agent"] == "Worker/2.0"

    def test_timeout_becomes_transport_timeout(self, email_transport, session, message):
        session.request.side_effect = requests.exceptions.ReadTimeout("read timed out")

        with pytest.raises(TransportTimeoutError):
            email_transport.send(message)

    def test_connection_error_becomes_network_error(self, email_transport, session, message):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportNetworkError):
            email_transport.send(message)

    def test_other_request_errors_become_network_error(self, email_transport, session, message):
        session.request.side_effect = requests.exceptions.TooManyRedirects("loop")

        with pytest.raises(TransportNetworkError):
            email_transport.send(message)

    def test_http_error_carries_status_and_provider_message(self, email_transport, session, message):
        session.request.return_value = make_response(
            422, {"name": "validation_error", "message": "Invalid `to` field"}, reason="Unprocessable"
        )

        with pytest.raises(TransportHTTPError) as exc_info:
            email_transport.send(message)

        assert exc_info.value.status_code == 422
        assert "Invalid `to` field" in str(exc_info.value)
        assert exc_info.value.body["name"] == "validation_error"

    def test_http_error_without_json_uses_reason(self, email_transport, session, message):
        session.request.return_value = make_response(502, raw_text="<html>Bad Gateway</html>", reason="Bad Gateway")

        with pytest.raises(TransportHTTPError) as exc_info:
            email_transport.send(message)

        assert str(exc_info.value) == "HTTP 502: Bad Gateway"
        assert exc_info.value.body == {}

    def test_non_json_success_body(self, email_transport, session, message):
        session.request.return_value = make_response(200, raw_text="ok")

        with pytest.raises(TransportResponseError):
            email_transport.send(message)

    def test_non_object_success_body(self, email_transport, session, message):
        session.request.return_value = make_response(200, ["not", "an", "object"])

        with pytest.raises(TransportResponseError):
            email_transport.send(message)

    def test_close(self, email_transport, session):
        email_transport.close()
        session.close.assert_called_once()


# ============================================================================
# Resend
# ============================================================================


class TestResendEmailTransport:
    def test_empty_api_key(self):
        with pytest.raises(TransportConfigurationError):
            ResendEmailTransport(api_key="")

    def test_send_posts_json_with_bearer_auth(self, email_transport, session, message):
        session.request.return_value = make_response(200, {"id": "re_msg_1"})

        response = email_transport.send(message)

        assert response.message_id == "re_msg_1"
        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "https://api.resend.com/emails"
        assert kwargs["headers"] == {"Authorization": "Bearer re_test_key"}
        assert kwargs["json"] == {
            "from": "shows@example.com",
            "to": ["fan@example.com"],
            "subject": "New show",
            "html": "<p>Hi</p>",
        }
        assert kwargs["timeout"] == 30

    def test_text_and_headers_included_when_set(self, email_transport, session, message):
        session.request.return_value = make_response(200, {"id": "re_msg_2"})
        message.text = "Hi"
        message.headers = {"List-Unsubscribe": "<https://u.test>"}

        email_transport.send(message)

        body = session.request.call_args.kwargs["json"]
        assert body["text"] == "Hi"
        assert body["headers"] == {"List-Unsubscribe": "<https://u.test>"}

    def test_missing_id(self, email_transport, session, message):
        session.request.return_value = make_response(200, {"object": "email"})

        with pytest.raises(TransportResponseError):
            email_transport.send(message)


# ============================================================================
# Twilio
# ============================================================================


class TestTwilioSMSTransport:
    def test_missing_credentials(self):
        with pytest.raises(TransportConfigurationError) as exc_info:
            TwilioSMSTransport(account_sid="AC1", auth_token="", from_phone="")

        assert "auth_token" in str(exc_info.value)
        assert "from_phone" in str(exc_info.value)

    def test_messages_url(self, sms_transport):
        assert sms_transport.messages_url == (
            "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        )

    def test_send_posts_form_with_basic_auth(self, sms_transport, session):
        session.request.return_value = make_response(201, {"sid": "SM42", "status": "queued"})

        response = sms_transport.send("+15551234567", "Doors at 8")

        assert response.message_id == "SM42"
        assert response.raw["status"] == "queued"
        kwargs = session.request.call_args.kwargs
        assert kwargs["data"] == {"To": "+15551234567", "From": "+15550009999", "Body": "Doors at 8"}
        assert kwargs["auth"] == ("AC123", "secret")
        assert kwargs["json"] is None

    def test_rate_limited(self, sms_transport, session):
        session.request.return_value = make_response(
            429, {"code": 20429, "message": "Too Many Requests"}, reason="Too Many Requests"
        )

        with pytest.raises(TransportHTTPError) as exc_info:
            sms_transport.send("+15551234567", "hi")

        assert exc_info.value.status_code == 429

    def test_missing_sid(self, sms_transport, session):
        session.request.return_value = make_response(201, {"status": "queued"})

        with pytest.raises(TransportResponseError):
            sms_transport.send("+15551234567", "hi")
