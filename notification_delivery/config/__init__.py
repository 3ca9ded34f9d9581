"""Configuration management for the delivery worker."""

from .duration import DurationParseError, parse_duration, validate_duration_range
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config_file
from .models import (
    AdvancedConfig,
    AppConfig,
    EmailChannelConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    QueueConfig,
    SMSChannelConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "QueueConfig",
    "EmailChannelConfig",
    "SMSChannelConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Duration helpers
    "parse_duration",
    "validate_duration_range",
    "DurationParseError",
    # Exceptions
    "ConfigurationError",
]
