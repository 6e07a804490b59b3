"""
Error types raised by the config value types and the override loader.

All of them are ValueError subclasses so pydantic validators turn them
into field-level validation errors.
"""

from typing import List, Optional


class MalformedDuration(ValueError):
    """A textual span could not be parsed into a Duration."""


class MalformedTokenAmount(ValueError):
    """A decimal currency string is not a whole number of attoFIL."""


class UnsupportedNetworkVersion(ValueError):
    """No protocol policy is defined for the requested network version."""


class ConfigError(ValueError):
    """
    A configuration tree was rejected at the overlay boundary.

    Attributes:
        problems: One message per offending field or invariant
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + ": " + "; ".join(self.problems)
        super().__init__(message)
