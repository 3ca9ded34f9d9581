"""Duration parsing for the sweep interval.

Accepts human-readable ("5m", "1h30m", "90s") and ISO-8601 ("PT5M", "PT1H")
forms and converts them to whole seconds.
"""

import re

# Sweep interval bounds
MIN_SWEEP_SECONDS = 60
MAX_SWEEP_SECONDS = 3600

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_ISO_PATTERN = re.compile(
    r"^P(?:(?P<d>\d+)D)?(?:T(?:(?P<h>\d+)H)?(?:(?P<m>\d+)M)?(?:(?P<s>\d+(?:\.\d+)?)S)?)?$"
)
_HUMAN_TOKEN = re.compile(r"(\d+)([smhd])")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed or is out of range."""

    pass


def parse_duration(value: str) -> int:
    """Convert a duration string to seconds.

    Raises:
        DurationParseError: If the string is empty, malformed or zero

    Examples:
        >>> parse_duration("5m")
        300
        >>> parse_duration("PT1H")
        3600
        >>> parse_duration("1h30m")
        5400
    """
    text = (value or "").strip()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    if text[0] in "Pp":
        seconds = _parse_iso8601(text.upper())
    else:
        seconds = _parse_human(text.lower())

    if seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{value}'")

    return seconds


def _parse_iso8601(text: str) -> int:
    match = _ISO_PATTERN.match(text)
    if not match or text in ("P", "PT"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration: '{text}'. Expected e.g. 'PT5M', 'PT1H', 'PT90S'"
        )

    parts = match.groupdict()
    total = 0.0
    for unit in ("d", "h", "m", "s"):
        if parts[unit]:
            total += float(parts[unit]) * _UNIT_SECONDS[unit]
    return int(total)


def _parse_human(text: str) -> int:
    compact = re.sub(r"\s+", "", text)
    tokens = _HUMAN_TOKEN.findall(compact)

    # Every character must belong to a number+unit token
    if not tokens or "".join(n + u for n, u in tokens) != compact:
        raise DurationParseError(
            f"Invalid duration: '{text}'. Use digits with units s, m, h or d, e.g. '5m' or '1h30m'"
        )

    return sum(int(number) * _UNIT_SECONDS[unit] for number, unit in tokens)


def validate_duration_range(
    seconds: int,
    min_seconds: int = MIN_SWEEP_SECONDS,
    max_seconds: int = MAX_SWEEP_SECONDS,
) -> None:
    """Reject sweep intervals outside [min_seconds, max_seconds].

    Raises:
        DurationParseError: If the value is out of range
    """
    if seconds < min_seconds:
        raise DurationParseError(
            f"Sweep interval too short: {humanize_seconds(seconds)}. "
            f"Minimum is {humanize_seconds(min_seconds)}."
        )
    if seconds > max_seconds:
        raise DurationParseError(
            f"Sweep interval too long: {humanize_seconds(seconds)}. "
            f"Maximum is {humanize_seconds(max_seconds)}."
        )


def humanize_seconds(seconds: int) -> str:
    """Render seconds in the largest whole unit, e.g. 300 -> '5 minutes'."""
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
