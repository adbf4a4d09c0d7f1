"""Parsing for duration expressions such as "10s", "1m30s" or "250ms"."""

from __future__ import annotations

import re
from datetime import timedelta

from mongo_destination.errors import ConfigurationError

# Seconds per unit.
_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_TERM = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration expression into a timedelta.

    An expression is an optional sign followed by one or more decimal numbers,
    each with a unit suffix: "300ms", "-1.5h" or "2h45m". Valid units are
    "ns", "us" (or "µs"), "ms", "s", "m" and "h". The bare string "0" is
    accepted as zero.

    Args:
        text: The duration expression.

    Returns:
        The parsed duration.

    Raises:
        ConfigurationError: If the text is not a valid duration expression.
    """
    if not isinstance(text, str):
        raise ConfigurationError(f"Duration must be a string, got {type(text).__name__}")

    body = text
    sign = 1.0
    if body[:1] in ("+", "-"):
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body:
        raise ConfigurationError(f"Invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _TERM.match(body, pos)
        if match is None:
            raise ConfigurationError(
                f"Invalid duration {text!r}",
                details=f"Unexpected input at offset {pos}: {body[pos:]!r}",
            )
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        pos = match.end()

    try:
        return timedelta(seconds=sign * total)
    except OverflowError as exc:
        raise ConfigurationError(f"Invalid duration {text!r}", details="duration out of range") from exc


def parse_timeout(text: str, name: str) -> float:
    """Parse a timeout expression and return it in seconds.

    Args:
        text: The duration expression.
        name: Configuration name used in error messages.

    Returns:
        Timeout in seconds, always positive.

    Raises:
        ConfigurationError: If the expression is invalid or not positive.
    """
    try:
        duration = parse_duration(text)
    except ConfigurationError as exc:
        raise ConfigurationError(f"Invalid {name}: {exc.message}", details=exc.details) from exc

    seconds = duration.total_seconds()
    if seconds <= 0:
        raise ConfigurationError(f"Invalid {name}: {text!r} must be a positive duration")
    return seconds
