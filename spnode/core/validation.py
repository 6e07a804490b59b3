"""
Field Validation - Bound checks for overridden config values.

Each check returns (is_valid, error_message) so callers can collect every
problem in a tree before rejecting it.
"""

from typing import Any, Optional, Tuple

from spnode.core.duration import Duration
from spnode.core.fil import FIL

# =============================================================================
# Constants
# =============================================================================

MIN_COUNT = 0
MAX_UINT64 = 2**64 - 1
MAX_INT64 = 2**63 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_COUNT,
    max_val: int = MAX_UINT64,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_count(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a non-negative count."""
    return validate_integer(value, name, MIN_COUNT, MAX_UINT64)


def validate_positive(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a strictly positive capacity or concurrency bound."""
    return validate_integer(value, name, 1, MAX_UINT64)


def validate_duration(
    value: Any,
    name: str,
    min_val: Optional[Duration] = None,
    strictly_positive: bool = False,
) -> Tuple[bool, str]:
    """
    Validate a Duration.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed span
        strictly_positive: Reject zero and negative spans

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, Duration):
        return False, f"{name} must be Duration, got {type(value).__name__}"

    if strictly_positive and value.nanoseconds <= 0:
        return False, f"{name} must be positive, got {value}"

    if min_val is not None and value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    return True, ""


def validate_amount(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a non-negative token amount."""
    if not isinstance(value, FIL):
        return False, f"{name} must be FIL, got {type(value).__name__}"

    if value.atto < 0:
        return False, f"{name} must not be negative, got {value}"

    return True, ""


def validate_less_than(
    lower: Any,
    upper: Any,
    lower_name: str,
    upper_name: str,
    allow_equal: bool = False,
) -> Tuple[bool, str]:
    """Validate an ordering between two comparable fields."""
    if lower < upper or (allow_equal and lower == upper):
        return True, ""

    relation = "<=" if allow_equal else "<"
    return False, f"{lower_name} ({lower}) must be {relation} {upper_name} ({upper})"


__all__ = [
    "validate_integer",
    "validate_count",
    "validate_positive",
    "validate_duration",
    "validate_amount",
    "validate_less_than",
    "MAX_UINT64",
    "MAX_INT64",
]
