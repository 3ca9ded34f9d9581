"""Unit tests for configuration loading and validation."""

import warnings
from pathlib import Path

import pytest
from pydantic import ValidationError

from notification_delivery.config import (
    AppConfig,
    ConfigurationError,
    DurationParseError,
    EnvironmentConfig,
    SMSChannelConfig,
    load_config,
    load_environment_config,
    parse_config_file,
    parse_duration,
    validate_duration_range,
)
from notification_delivery.config.duration import humanize_seconds
from notification_delivery.config.environment import DEFAULT_DATABASE_URL
from notification_delivery.config.validators import check_for_warnings

ENV_VARS = (
    "RESEND_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_PHONE",
    "EMAIL_FROM",
    "LOG_LEVEL",
    "DATABASE_URL",
    "ENVIRONMENT",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the worker reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def email_env(clean_env):
    clean_env.setenv("RESEND_API_KEY", "re_test_key")
    return clean_env


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


# ============================================================================
# Durations
# ============================================================================


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("5m", 300),
            ("90s", 90),
            ("1h", 3600),
            ("1h30m", 5400),
            ("1h 30m", 5400),
            ("2d", 172800),
            ("PT5M", 300),
            ("PT1H", 3600),
            ("PT90S", 90),
            ("pt10m", 600),
            ("P1D", 86400),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "5", "5x", "m5", "P", "PT", "PTXM", "five minutes"])
    def test_invalid(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_zero_rejected(self):
        with pytest.raises(DurationParseError, match="zero"):
            parse_duration("0m")


class TestDurationRange:
    def test_within_range(self):
        validate_duration_range(300)

    def test_too_short(self):
        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(30)

    def test_too_long(self):
        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(7200)

    def test_humanize(self):
        assert humanize_seconds(300) == "5 minutes"
        assert humanize_seconds(3600) == "1 hour"
        assert humanize_seconds(1) == "1 second"


# ============================================================================
# Models
# ============================================================================


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig()

        assert config.sweep_interval == "5m"
        assert config.sweep_interval_seconds == 300
        assert config.retry.max_retries == 3
        assert config.queue.batch_size == 100
        assert config.email.batch_size == 1000
        assert config.sms.rate_limit_per_second == 10
        assert config.sms.max_message_length == 1600
        assert config.logging.level == "INFO"
        assert config.advanced.http_request_timeout == 30

    def test_sweep_interval_out_of_range(self):
        with pytest.raises(ValidationError):
            AppConfig(sweep_interval="10s")

    def test_nested_retry_policy(self):
        config = AppConfig.model_validate({"retry": {"max_retries": 5, "initial_delay_ms": 500}})
        assert config.retry.max_retries == 5
        assert config.retry.initial_delay_ms == 500

    def test_sms_length_cannot_exceed_provider_limit(self):
        with pytest.raises(ValidationError):
            SMSChannelConfig(max_message_length=1601)

    def test_blank_from_email_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig.model_validate({"email": {"from_email": "   "}})


# ============================================================================
# Environment
# ============================================================================


class TestEnvironmentConfig:
    def test_email_only(self, email_env):
        env = load_environment_config()

        assert env.email_enabled is True
        assert env.sms_enabled is False
        assert env.database_url == DEFAULT_DATABASE_URL
        assert env.environment == "local"

    def test_sms_only(self, clean_env):
        clean_env.setenv("TWILIO_ACCOUNT_SID", "AC123")
        clean_env.setenv("TWILIO_AUTH_TOKEN", "secret")
        clean_env.setenv("TWILIO_FROM_PHONE", "+15550009999")

        env = load_environment_config()

        assert env.sms_enabled is True
        assert env.email_enabled is False

    def test_no_channel_configured(self, clean_env):
        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert any("No delivery channel" in e for e in exc_info.value.errors)

    def test_partial_sms_credentials(self, email_env):
        email_env.setenv("TWILIO_ACCOUNT_SID", "AC123")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "TWILIO_AUTH_TOKEN" in str(exc_info.value)

    def test_from_phone_must_be_e164(self, clean_env):
        clean_env.setenv("TWILIO_ACCOUNT_SID", "AC123")
        clean_env.setenv("TWILIO_AUTH_TOKEN", "secret")
        clean_env.setenv("TWILIO_FROM_PHONE", "555-0000")

        with pytest.raises(ConfigurationError, match="E.164"):
            load_environment_config()

    def test_invalid_email_from(self, email_env):
        email_env.setenv("EMAIL_FROM", "not-an-address")

        with pytest.raises(ConfigurationError, match="EMAIL_FROM"):
            load_environment_config()

    def test_log_level_normalized(self, email_env):
        email_env.setenv("LOG_LEVEL", "debug")
        assert load_environment_config().log_level == "DEBUG"

    def test_invalid_log_level(self, email_env):
        email_env.setenv("LOG_LEVEL", "verbose")

        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            load_environment_config()

    def test_collects_every_error(self, clean_env):
        clean_env.setenv("TWILIO_ACCOUNT_SID", "AC123")
        clean_env.setenv("LOG_LEVEL", "loud")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 2

    def test_database_and_environment_overrides(self, email_env):
        email_env.setenv("DATABASE_URL", "sqlite:///:memory:")
        email_env.setenv("ENVIRONMENT", "production")

        env = load_environment_config()

        assert env.database_url == "sqlite:///:memory:"
        assert env.environment == "production"

    def test_defaults_on_direct_construction(self):
        env = EnvironmentConfig()
        assert env.database_url == DEFAULT_DATABASE_URL
        assert not env.email_enabled


# ============================================================================
# Loader
# ============================================================================


class TestParseConfigFile:
    def test_full_file(self, tmp_path):
        path = write_config(
            tmp_path,
            """
sweep_interval: "10m"
retry:
  max_retries: 4
  initial_delay_ms: 500
  max_delay_ms: 20000
  backoff_multiplier: 2
queue:
  batch_size: 50
email:
  from_email: "shows@example.com"
sms:
  rate_limit_per_second: 5
logging:
  level: "DEBUG"
  format: "json"
""",
        )

        config = parse_config_file(path)

        assert config.sweep_interval_seconds == 600
        assert config.retry.max_retries == 4
        assert config.queue.batch_size == 50
        assert config.email.from_email == "shows@example.com"
        assert config.sms.rate_limit_per_second == 5
        assert config.logging.format == "json"

    def test_empty_file_gives_defaults(self, tmp_path):
        config = parse_config_file(write_config(tmp_path, ""))
        assert config == AppConfig()

    def test_non_mapping_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError, match="mapping"):
            parse_config_file(write_config(tmp_path, "- just\n- a list\n"))

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError, match="YAML"):
            parse_config_file(write_config(tmp_path, "retry: [unclosed\n"))

    def test_validation_errors_are_listed(self, tmp_path):
        path = write_config(tmp_path, "queue:\n  batch_size: 0\nsms:\n  rate_limit_per_second: abc\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert any("queue -> batch_size" in e for e in errors)
        assert any("Invalid type" in e and "rate_limit_per_second" in e for e in errors)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            parse_config_file(tmp_path / "nope.yaml")

    def test_risky_settings_warn(self, tmp_path):
        path = write_config(tmp_path, "retry:\n  max_retries: 0\n")

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            parse_config_file(path)

        assert any("max_retries is 0" in str(w.message) for w in caught)


class TestLoadConfig:
    def test_explicit_path(self, tmp_path, email_env):
        path = write_config(tmp_path, 'sweep_interval: "15m"\n')

        app_config, env_config = load_config(path)

        assert app_config.sweep_interval_seconds == 900
        assert env_config.email_enabled

    def test_explicit_path_missing(self, tmp_path, email_env):
        with pytest.raises(ConfigurationError, match="Specified configuration file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_default_location(self, tmp_path, email_env):
        write_config(tmp_path, "")
        email_env.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.sweep_interval == "5m"

    def test_no_file_anywhere(self, tmp_path, email_env):
        email_env.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert len(exc_info.value.errors) == 2


class TestWarnings:
    def test_no_warnings_for_defaults(self):
        assert check_for_warnings({}) == []

    def test_long_backoff(self):
        messages = check_for_warnings(
            {"retry": {"max_retries": 5, "initial_delay_ms": 10000, "max_delay_ms": 30000}}
        )
        assert any("block a send" in m for m in messages)

    def test_high_sms_rate(self):
        assert check_for_warnings({"sms": {"rate_limit_per_second": 500}})

    def test_long_sweep_interval(self):
        messages = check_for_warnings({"sweep_interval": "45m"})
        assert any("Long sweep_interval" in m for m in messages)

    def test_unparseable_interval_left_to_validation(self):
        assert check_for_warnings({"sweep_interval": "soon"}) == []


class TestConfigurationError:
    def test_renders_errors_and_suggestions(self):
        error = ConfigurationError("Broken", errors=["a", "b"], suggestions=["fix it"])

        text = str(error)

        assert text.startswith("Broken")
        assert "1. a" in text
        assert "2. b" in text
        assert "- fix it" in text

    def test_add_error(self):
        error = ConfigurationError("Broken")
        error.add_error("late")
        error.add_suggestion("hint")
        assert "late" in str(error)
        assert "hint" in str(error)
