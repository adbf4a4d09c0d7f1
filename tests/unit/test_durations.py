"""Tests for duration parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mongo_destination.durations import parse_duration, parse_timeout
from mongo_destination.errors import ConfigurationError


class TestParseDuration:
    """Test cases for parse_duration."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("10s", timedelta(seconds=10)),
            ("250ms", timedelta(milliseconds=250)),
            ("1m30s", timedelta(seconds=90)),
            ("1.5h", timedelta(minutes=90)),
            ("2h45m", timedelta(hours=2, minutes=45)),
            ("1500us", timedelta(microseconds=1500)),
            ("1500µs", timedelta(microseconds=1500)),
            (".5s", timedelta(milliseconds=500)),
            ("+3s", timedelta(seconds=3)),
            ("-2s", timedelta(seconds=-2)),
            ("0", timedelta(0)),
        ],
    )
    def test_valid_expressions(self, text: str, expected: timedelta) -> None:
        """Go-style duration expressions should parse to the expected timedelta."""
        assert parse_duration(text) == expected

    def test_nanoseconds_round_to_timedelta_resolution(self) -> None:
        """Nanosecond terms are accepted even below timedelta resolution."""
        assert parse_duration("1000ns") == timedelta(microseconds=1)

    @pytest.mark.parametrize("text", ["", "10", "s", "10x", "10 s", "1h 5m", "ten seconds", "1s-", "-", "5sec"])
    def test_invalid_expressions(self, text: str) -> None:
        """Malformed expressions should raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            parse_duration(text)

    def test_out_of_range_rejected(self) -> None:
        """A duration beyond what timedelta can hold is a configuration error."""
        with pytest.raises(ConfigurationError, match="out of range"):
            parse_duration("9999999999999999h")

    def test_non_string_rejected(self) -> None:
        """Numbers are not duration expressions."""
        with pytest.raises(ConfigurationError, match="must be a string"):
            parse_duration(10)  # type: ignore[arg-type]


class TestParseTimeout:
    """Test cases for parse_timeout."""

    def test_returns_seconds(self) -> None:
        assert parse_timeout("10s", "query timeout") == 10.0
        assert parse_timeout("250ms", "query timeout") == pytest.approx(0.25)

    @pytest.mark.parametrize("text", ["0", "0s", "-1s"])
    def test_non_positive_rejected(self, text: str) -> None:
        """A timeout that can never be met is a configuration error."""
        with pytest.raises(ConfigurationError, match="positive"):
            parse_timeout(text, "query timeout")

    def test_error_names_setting(self) -> None:
        with pytest.raises(ConfigurationError, match="connection timeout"):
            parse_timeout("soon", "connection timeout")
