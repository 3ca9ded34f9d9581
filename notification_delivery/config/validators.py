"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Return warnings for settings that are valid but likely unintended.

    Args:
        config_dict: Raw configuration dictionary (before validation)
    """
    messages = []

    retry = config_dict.get("retry") or {}
    if isinstance(retry, dict):
        max_retries = retry.get("max_retries")
        if max_retries == 0:
            messages.append(
                "retry.max_retries is 0: sends are attempted once and queued items fail on first sweep"
            )

        initial = retry.get("initial_delay_ms", 1000)
        multiplier = retry.get("backoff_multiplier", 2)
        max_delay = retry.get("max_delay_ms", 30000)
        retries = max_retries if isinstance(max_retries, int) else 3
        if all(isinstance(v, (int, float)) for v in (initial, multiplier, max_delay)):
            # Total time a request thread can spend backing off
            worst_case_ms = sum(
                min(initial * multiplier**n, max_delay) for n in range(min(retries, 10))
            )
            if worst_case_ms > 60000:
                messages.append(
                    f"Retry policy can block a send for up to {worst_case_ms / 1000:.0f}s"
                )

    sms = config_dict.get("sms") or {}
    if isinstance(sms, dict):
        rate = sms.get("rate_limit_per_second")
        if isinstance(rate, int) and rate > 100:
            messages.append(
                f"sms.rate_limit_per_second ({rate}) is above typical provider account limits"
            )

    sweep_interval = config_dict.get("sweep_interval")
    if isinstance(sweep_interval, str):
        try:
            seconds = parse_duration(sweep_interval)
        except DurationParseError:
            # Reported as an error by model validation
            seconds = None
        if seconds is not None and seconds >= 1800:
            messages.append(
                f"Long sweep_interval ({sweep_interval}) delays queued retries well past their backoff"
            )

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message as a UserWarning."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
