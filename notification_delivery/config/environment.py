"""Environment variable loading and validation.

Provider credentials never live in the YAML file; they are read from the
process environment (a `.env` file is loaded by the worker entry point).
"""

import os
import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/notification_delivery.db"

_E164 = re.compile(r"^\+[1-9]\d{1,14}$")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        resend_api_key: Optional[str] = None,
        twilio_account_sid: Optional[str] = None,
        twilio_auth_token: Optional[str] = None,
        twilio_from_phone: Optional[str] = None,
        email_from: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.resend_api_key = resend_api_key
        self.twilio_account_sid = twilio_account_sid
        self.twilio_auth_token = twilio_auth_token
        self.twilio_from_phone = twilio_from_phone
        self.email_from = email_from
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.environment = environment or "local"

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_phone)


def load_environment_config() -> EnvironmentConfig:
    """Load and validate environment variables.

    Email channel:
    - RESEND_API_KEY: email provider API key
    - EMAIL_FROM: optional sender override

    SMS channel (all three or none):
    - TWILIO_ACCOUNT_SID
    - TWILIO_AUTH_TOKEN
    - TWILIO_FROM_PHONE: sender number in E.164 form

    Optional:
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/notification_delivery.db)
    - ENVIRONMENT: deployment name included in every log record

    Raises:
        ConfigurationError: If no channel is configured or values are invalid
    """
    errors = []

    resend_api_key = os.getenv("RESEND_API_KEY")
    sms_values = {
        "TWILIO_ACCOUNT_SID": os.getenv("TWILIO_ACCOUNT_SID"),
        "TWILIO_AUTH_TOKEN": os.getenv("TWILIO_AUTH_TOKEN"),
        "TWILIO_FROM_PHONE": os.getenv("TWILIO_FROM_PHONE"),
    }
    email_from = os.getenv("EMAIL_FROM")
    log_level = os.getenv("LOG_LEVEL")

    present = [name for name, value in sms_values.items() if value]
    if present and len(present) != len(sms_values):
        missing = [name for name in sms_values if name not in present]
        errors.append(
            f"Incomplete SMS credentials: {', '.join(present)} set but "
            f"{', '.join(missing)} missing. Set all three or none."
        )

    if not resend_api_key and not present:
        errors.append(
            "No delivery channel configured: set RESEND_API_KEY and/or the TWILIO_* variables"
        )

    from_phone = sms_values["TWILIO_FROM_PHONE"]
    if from_phone and not _E164.match(from_phone):
        errors.append(
            f"Invalid TWILIO_FROM_PHONE: '{from_phone}'. Must be E.164, e.g. +15551234567"
        )

    if email_from:
        try:
            validate_email(email_from, check_deliverability=False)
        except EmailNotValidError as e:
            errors.append(f"Invalid EMAIL_FROM address '{email_from}': {e}")

    if log_level and log_level.upper() not in _VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your provider credentials",
                "Phone numbers must include the country code, e.g. +15551234567",
            ],
        )

    return EnvironmentConfig(
        resend_api_key=resend_api_key,
        twilio_account_sid=sms_values["TWILIO_ACCOUNT_SID"],
        twilio_auth_token=sms_values["TWILIO_AUTH_TOKEN"],
        twilio_from_phone=from_phone,
        email_from=email_from,
        log_level=log_level.upper() if log_level else None,
        database_url=os.getenv("DATABASE_URL"),
        environment=os.getenv("ENVIRONMENT"),
    )
