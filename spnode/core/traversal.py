"""
Traversal Budget - Link limit for DAG traversals.

Bounds the number of links walked while computing piece commitments or
serving graphsync requests, which caps DAG depth and density. The budget
is read once at process bootstrap and handed to consumers as an
immutable value.
"""

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import dotenv_values

from spnode.utils.logger import get_logger

logger = get_logger("traversal")


# =============================================================================
# Constants
# =============================================================================

MAX_TRAVERSAL_LINKS_ENV = "LOTUS_MAX_TRAVERSAL_LINKS"
DEFAULT_MAX_TRAVERSAL_LINKS = 32 * (1 << 20)

MAX_UINT64 = 2**64 - 1

_UINT = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class TraversalBudget:
    """
    Process-wide DAG traversal limit.

    Attributes:
        max_links: Maximum number of links to traverse in one DAG walk
    """
    max_links: int = DEFAULT_MAX_TRAVERSAL_LINKS


def parse_uint64(text: str) -> Optional[int]:
    """Parse a base-10 unsigned 64-bit integer, None if text is not one."""
    if not _UINT.fullmatch(text):
        return None
    value = int(text)
    if value > MAX_UINT64:
        return None
    return value


def load_traversal_budget(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[str] = None,
) -> TraversalBudget:
    """
    Read the traversal budget from the environment.

    Args:
        environ: Variables to consult. Defaults to os.environ.
        env_file: Optional .env file; its values sit below environ

    Returns:
        TraversalBudget with the override applied, or the built-in default
        when the variable is absent or not a valid uint64
    """
    variables = {}
    if env_file:
        variables.update(
            {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        )
    variables.update(os.environ if environ is None else environ)

    raw = variables.get(MAX_TRAVERSAL_LINKS_ENV)
    if not raw:
        return TraversalBudget()

    value = parse_uint64(raw)
    if value is None:
        logger.warning(
            f"Ignoring {MAX_TRAVERSAL_LINKS_ENV}={raw!r}: not an unsigned 64-bit integer"
        )
        return TraversalBudget()

    logger.info(f"DAG traversal budget set to {value} links")
    return TraversalBudget(max_links=value)
