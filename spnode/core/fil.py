"""
FIL - Token amounts in the network's native attoFIL unit.

All fee caps and balance buffers in the config tree are FIL values. The
amount is an unbounded Python int, so sums and per-sector products never
overflow or round.
"""

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

from pydantic_core import core_schema

from spnode.core.errors import MalformedTokenAmount


# =============================================================================
# Constants
# =============================================================================

FILECOIN_PRECISION = 10**18

# Longest decimal text accepted by parse_fil
MAX_FIL_TEXT_LENGTH = 50

_UNIT_SUFFIXES = {
    "": FILECOIN_PRECISION,
    "fil": FILECOIN_PRECISION,
    "filecoin": FILECOIN_PRECISION,
    "millifil": 10**15,
    "mfil": 10**15,
    "microfil": 10**12,
    "ufil": 10**12,
    "nanofil": 10**9,
    "nfil": 10**9,
    "picofil": 10**6,
    "pfil": 10**6,
    "femtofil": 10**3,
    "ffil": 10**3,
    "attofil": 1,
    "afil": 1,
}

_DECIMAL = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)")
_NUMBER_PREFIX = re.compile(r"[-.0-9]*")


# =============================================================================
# FIL
# =============================================================================


@dataclass(frozen=True, order=True)
class FIL:
    """
    A token amount.

    Attributes:
        atto: Amount in attoFIL (10^-18 FIL)
    """
    atto: int = 0

    def __add__(self, other: "FIL") -> "FIL":
        if not isinstance(other, FIL):
            return NotImplemented
        return FIL(self.atto + other.atto)

    def __sub__(self, other: "FIL") -> "FIL":
        if not isinstance(other, FIL):
            return NotImplemented
        return FIL(self.atto - other.atto)

    def __mul__(self, factor: int) -> "FIL":
        if not isinstance(factor, int) or isinstance(factor, bool):
            return NotImplemented
        return FIL(self.atto * factor)

    __rmul__ = __mul__

    def __int__(self) -> int:
        return self.atto

    def unitless(self) -> str:
        """Decimal FIL text without the unit, trailing zeros trimmed."""
        if self.atto == 0:
            return "0"
        sign = "-" if self.atto < 0 else ""
        whole, frac = divmod(abs(self.atto), FILECOIN_PRECISION)
        if frac == 0:
            return f"{sign}{whole}"
        digits = str(frac).rjust(18, "0").rstrip("0")
        return f"{sign}{whole}.{digits}"

    def __str__(self) -> str:
        return f"{self.unitless()} FIL"

    @classmethod
    def coerce(cls, value: Any) -> "FIL":
        """
        Interpret a config value as a FIL amount.

        Accepts a FIL, decimal FIL text or an integer attoFIL count.

        Raises:
            MalformedTokenAmount: If the value has none of those shapes
        """
        if isinstance(value, FIL):
            return value
        if isinstance(value, str):
            return parse_fil(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        raise MalformedTokenAmount(f"cannot interpret {value!r} as a FIL amount")

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )


ATTO_FIL = FIL(1)
FEMTO_FIL = FIL(10**3)
PICO_FIL = FIL(10**6)
NANO_FIL = FIL(10**9)
MICRO_FIL = FIL(10**12)
MILLI_FIL = FIL(10**15)
WHOLE_FIL = FIL(FILECOIN_PRECISION)


# =============================================================================
# Parsing
# =============================================================================


def parse_fil(text: str) -> FIL:
    """
    Parse a decimal currency string into a FIL amount.

    Args:
        text: Amount such as "0.07", "5 FIL", "320 picoFIL" or "10 attoFIL"

    Returns:
        Parsed FIL amount

    Raises:
        MalformedTokenAmount: On an unknown suffix, text that is too long or
            not decimal, or a value that is not a whole number of attoFIL
    """
    if not isinstance(text, str):
        raise MalformedTokenAmount(f"FIL amount must be str, got {type(text).__name__}")

    text = text.strip()
    number = _NUMBER_PREFIX.match(text).group(0)
    suffix = text[len(number):].strip().lower()

    if suffix not in _UNIT_SUFFIXES:
        raise MalformedTokenAmount(f"unrecognized suffix: {text[len(number):]!r}")
    if len(number) > MAX_FIL_TEXT_LENGTH:
        raise MalformedTokenAmount(f"string length too large: {len(number)}")
    if not _DECIMAL.fullmatch(number):
        raise MalformedTokenAmount(f"failed to parse {number!r} as a decimal number")

    value = Fraction(number) * _UNIT_SUFFIXES[suffix]
    if value.denominator != 1:
        raise MalformedTokenAmount(f"invalid FIL value: {text!r}")
    return FIL(value.numerator)


def must_parse_fil(text: str) -> FIL:
    """
    Parse a FIL literal that is part of the program itself.

    A malformed literal is a coding error, so it fails loudly instead of
    surfacing as a recoverable MalformedTokenAmount.
    """
    try:
        return parse_fil(text)
    except MalformedTokenAmount as e:
        raise RuntimeError(f"invalid FIL literal {text!r}: {e}") from e
