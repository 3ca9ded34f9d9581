"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from notification_delivery.retry.models import RetryConfig

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class QueueConfig(BaseModel):
    """Delivery queue sweep settings."""

    batch_size: int = Field(100, ge=1, le=1000, description="Items processed per sweep")


class EmailChannelConfig(BaseModel):
    """Email channel settings."""

    from_email: str = Field(
        "noreply@notifications.example.com",
        min_length=3,
        description="Default sender address",
    )
    batch_size: int = Field(
        1000, ge=1, le=1000, description="Recipients per broadcast batch request"
    )
    api_url: str = Field(
        "https://api.resend.com/emails", description="Email provider send endpoint"
    )

    @field_validator("from_email", "api_url")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class SMSChannelConfig(BaseModel):
    """SMS channel settings."""

    rate_limit_per_second: int = Field(
        10, ge=1, le=1000, description="Token bucket capacity and refill rate"
    )
    max_message_length: int = Field(
        1600, ge=1, le=1600, description="Longest accepted message body"
    )
    api_url: str = Field(
        "https://api.twilio.com/2010-04-01/Accounts",
        description="SMS provider accounts base URL",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """Advanced runtime settings."""

    http_request_timeout: int = Field(
        30, ge=5, le=300, description="Timeout for provider API calls (seconds)"
    )
    user_agent: str = Field(
        "NotificationDelivery/1.0",
        min_length=1,
        description="User-Agent string for HTTP requests",
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object for the delivery worker."""

    sweep_interval: str = Field("5m", description="How often the queue sweeper runs")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Backoff policy")
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue settings")
    email: EmailChannelConfig = Field(
        default_factory=EmailChannelConfig, description="Email channel settings"
    )
    sms: SMSChannelConfig = Field(
        default_factory=SMSChannelConfig, description="SMS channel settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    advanced: AdvancedConfig = Field(
        default_factory=AdvancedConfig, description="Advanced runtime settings"
    )

    # Computed field
    sweep_interval_seconds: Optional[int] = None

    @field_validator("sweep_interval")
    @classmethod
    def validate_sweep_interval(cls, v: str) -> str:
        try:
            validate_duration_range(parse_duration(v))
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def compute_sweep_seconds(self):
        self.sweep_interval_seconds = parse_duration(self.sweep_interval)
        return self
