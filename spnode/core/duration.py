"""
Duration - Serializable time span for config fields.

Every wait, timeout and interval in the config tree is a Duration. Its
persisted form is the canonical span text ("20s", "24h0m0s", "200ms"),
never a raw integer.

Grammar:
    [-+]? ( <digits>[.<digits>] <unit> )+     or the bare literal "0"
    unit := ns | us | µs | μs | ms | s | m | h
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction
from typing import Any

from pydantic_core import core_schema

from spnode.core.errors import MalformedDuration


# =============================================================================
# Constants
# =============================================================================

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

# Spans are bounded by a signed 64-bit nanosecond count
MAX_NANOSECONDS = 2**63 - 1
MIN_NANOSECONDS = -(2**63)

# Any whole part longer than this is out of range in every unit; fraction
# digits past the cap are below a nanosecond even in hours
MAX_WHOLE_DIGITS = 20
MAX_FRACTION_DIGITS = 24

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_GROUP = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


# =============================================================================
# Duration
# =============================================================================


@dataclass(frozen=True, order=True)
class Duration:
    """
    A signed time span with nanosecond resolution.

    Attributes:
        nanoseconds: Length of the span in nanoseconds
    """
    nanoseconds: int = 0

    @classmethod
    def of(
        cls,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        milliseconds: int = 0,
        microseconds: int = 0,
        nanoseconds: int = 0,
    ) -> "Duration":
        """Build a span from unit components."""
        total = (
            hours * HOUR
            + minutes * MINUTE
            + seconds * SECOND
            + milliseconds * MILLISECOND
            + microseconds * MICROSECOND
            + nanoseconds
        )
        return cls(int(total))

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "Duration":
        whole_seconds = delta.days * 86400 + delta.seconds
        return cls(whole_seconds * SECOND + delta.microseconds * MICROSECOND)

    def to_timedelta(self) -> timedelta:
        # timedelta stops at microseconds
        return timedelta(microseconds=self.nanoseconds // MICROSECOND)

    def total_seconds(self) -> float:
        return self.nanoseconds / SECOND

    def __str__(self) -> str:
        return format_duration(self)

    @classmethod
    def coerce(cls, value: Any) -> "Duration":
        """
        Interpret a config value as a Duration.

        Accepts a Duration, a timedelta, span text or an integer count of
        nanoseconds.

        Raises:
            MalformedDuration: If the value has none of those shapes
        """
        if isinstance(value, Duration):
            return value
        if isinstance(value, timedelta):
            return cls.from_timedelta(value)
        if isinstance(value, str):
            return parse_duration(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        raise MalformedDuration(f"cannot interpret {value!r} as a duration")

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                format_duration, when_used="json"
            ),
        )


# =============================================================================
# Text Encoding
# =============================================================================


def _split_fraction(value: int, precision: int):
    """Split value / 10**precision into whole part and trimmed fraction text."""
    whole, frac = divmod(value, 10**precision)
    if frac == 0:
        return whole, ""
    return whole, "." + str(frac).rjust(precision, "0").rstrip("0")


def format_duration(duration: Duration) -> str:
    """
    Render a Duration as canonical span text.

    Spans of a second or more use h/m/s ("1h0m0s", "1m30s", "1.5s");
    shorter spans use the largest fitting sub-second unit ("200ms").
    """
    ns = duration.nanoseconds
    if ns == 0:
        return "0s"

    sign = "-" if ns < 0 else ""
    magnitude = abs(ns)

    if magnitude < SECOND:
        if magnitude < MICROSECOND:
            precision, unit = 0, "ns"
        elif magnitude < MILLISECOND:
            precision, unit = 3, "µs"
        else:
            precision, unit = 6, "ms"
        whole, frac = _split_fraction(magnitude, precision)
        return f"{sign}{whole}{frac}{unit}"

    seconds, frac = _split_fraction(magnitude, 9)
    text = f"{seconds % 60}{frac}s"
    minutes = seconds // 60
    if minutes:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def parse_duration(text: str) -> Duration:
    """
    Parse span text into a Duration.

    Args:
        text: Span text such as "24h0m0s", "1.5s" or "-200ms"

    Returns:
        Parsed Duration

    Raises:
        MalformedDuration: On empty text, missing or unknown units, or a
            span outside the signed 64-bit nanosecond range
    """
    if not isinstance(text, str):
        raise MalformedDuration(f"duration must be str, got {type(text).__name__}")

    body = text
    negative = False
    if body[:1] in ("-", "+"):
        negative = body[0] == "-"
        body = body[1:]

    if body == "0":
        return Duration(0)
    if not body:
        raise MalformedDuration(f"invalid duration {text!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(body):
        match = _GROUP.match(body, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise MalformedDuration(f"invalid duration {text!r}")
        if not unit:
            raise MalformedDuration(f"missing unit in duration {text!r}")
        if unit not in _UNITS:
            raise MalformedDuration(f"unknown unit {unit!r} in duration {text!r}")

        whole = whole.lstrip("0")
        if len(whole) > MAX_WHOLE_DIGITS:
            raise MalformedDuration(f"invalid duration {text!r}: out of range")
        frac = (frac or "")[:MAX_FRACTION_DIGITS]

        amount = Fraction(int(whole or "0"))
        if frac:
            amount += Fraction(int(frac), 10 ** len(frac))
        total += amount * _UNITS[unit]
        pos = match.end()

    nanoseconds = int(total)  # sub-nanosecond remainders truncate
    if negative:
        nanoseconds = -nanoseconds
    if not MIN_NANOSECONDS <= nanoseconds <= MAX_NANOSECONDS:
        raise MalformedDuration(f"invalid duration {text!r}: out of range")
    return Duration(nanoseconds)
