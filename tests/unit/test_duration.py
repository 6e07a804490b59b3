"""
Unit tests for the Duration value type.

Tests cover:
1. Canonical text rendering
2. Parsing of the span grammar
3. Rejection of malformed spans
4. Round-trip of every span used by the default builders
"""

from datetime import timedelta

import pytest

from spnode.core.duration import (
    Duration,
    format_duration,
    parse_duration,
    MAX_NANOSECONDS,
)
from spnode.core.errors import MalformedDuration
from spnode.core.defaults import (
    default_full_node,
    default_storage_miner,
    default_user_raft_config,
)
from spnode.core.types import ConfigModel


# =============================================================================
# Formatting Tests
# =============================================================================


class TestFormat:
    """Tests for canonical span text."""

    @pytest.mark.parametrize("duration, text", [
        (Duration(0), "0s"),
        (Duration.of(seconds=20), "20s"),
        (Duration.of(hours=24), "24h0m0s"),
        (Duration.of(hours=24 * 14), "336h0m0s"),
        (Duration.of(minutes=5), "5m0s"),
        (Duration.of(seconds=100), "1m40s"),
        (Duration.of(milliseconds=200), "200ms"),
        (Duration.of(milliseconds=1500), "1.5s"),
        (Duration.of(nanoseconds=1500), "1.5µs"),
        (Duration(10), "10ns"),
        (Duration.of(seconds=-90), "-1m30s"),
    ])
    def test_format(self, duration, text):
        assert format_duration(duration) == text
        assert str(duration) == text

    def test_fraction_trims_trailing_zeros(self):
        d = Duration.of(hours=2, minutes=3, seconds=4, nanoseconds=5)
        assert str(d) == "2h3m4.000000005s"


# =============================================================================
# Parsing Tests
# =============================================================================


class TestParse:
    """Tests for the span grammar."""

    def test_multi_unit(self):
        assert parse_duration("1h30m") == Duration.of(hours=1, minutes=30)

    def test_fractional_unit(self):
        assert parse_duration("1.5h") == Duration.of(minutes=90)

    def test_signs(self):
        assert parse_duration("-1.5s") == Duration.of(milliseconds=-1500)
        assert parse_duration("+5s") == Duration.of(seconds=5)

    def test_bare_zero(self):
        assert parse_duration("0") == Duration(0)
        assert parse_duration("-0") == Duration(0)

    def test_micro_spellings(self):
        expected = Duration.of(microseconds=3)
        assert parse_duration("3us") == expected
        assert parse_duration("3µs") == expected
        assert parse_duration("3μs") == expected

    def test_trailing_dot(self):
        assert parse_duration("1.s") == Duration.of(seconds=1)

    def test_int64_bounds(self):
        assert parse_duration(f"{MAX_NANOSECONDS}ns").nanoseconds == MAX_NANOSECONDS
        assert parse_duration(f"-{MAX_NANOSECONDS + 1}ns").nanoseconds == -(MAX_NANOSECONDS + 1)

    @pytest.mark.parametrize("text", [
        "",
        "-",
        "5",
        "5x",
        "h",
        ".s",
        "1h5",
        "1d",
        "ten seconds",
        f"{MAX_NANOSECONDS + 1}ns",
    ])
    def test_malformed(self, text):
        with pytest.raises(MalformedDuration):
            parse_duration(text)

    def test_huge_digit_groups(self):
        with pytest.raises(MalformedDuration):
            parse_duration("9" * 5000 + "s")
        assert parse_duration("0" * 5000 + "1s") == Duration.of(seconds=1)
        assert parse_duration("1." + "5" * 5000 + "ns") == Duration(1)

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            parse_duration("soon")

    def test_non_string_rejected(self):
        with pytest.raises(MalformedDuration):
            parse_duration(30)


# =============================================================================
# Conversion Tests
# =============================================================================


class TestConversion:
    """Tests for timedelta interop and config coercion."""

    def test_timedelta_roundtrip(self):
        td = timedelta(hours=6, microseconds=7)
        assert Duration.from_timedelta(td).to_timedelta() == td

    def test_total_seconds(self):
        assert Duration.of(milliseconds=200).total_seconds() == pytest.approx(0.2)

    def test_coerce_shapes(self):
        expected = Duration.of(seconds=15)
        assert Duration.coerce("15s") == expected
        assert Duration.coerce(15 * 10**9) == expected
        assert Duration.coerce(timedelta(seconds=15)) == expected
        assert Duration.coerce(expected) is expected

    def test_coerce_rejects_bool_and_float(self):
        with pytest.raises(MalformedDuration):
            Duration.coerce(True)
        with pytest.raises(MalformedDuration):
            Duration.coerce(1.5)

    def test_ordering(self):
        assert Duration.of(hours=1) < Duration.of(hours=24)
        assert max(Duration.of(seconds=1), Duration(5)) == Duration.of(seconds=1)


# =============================================================================
# Builder Round-Trip
# =============================================================================


def _durations(model):
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, Duration):
            yield value
        elif isinstance(value, ConfigModel):
            yield from _durations(value)


class TestBuilderSpans:
    """Every span a builder assigns must survive text encoding."""

    @pytest.mark.parametrize("builder", [
        default_full_node,
        default_storage_miner,
        default_user_raft_config,
    ])
    def test_roundtrip(self, builder):
        spans = list(_durations(builder()))
        assert spans
        for d in spans:
            assert parse_duration(format_duration(d)) == d


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
