"""
Protocol Policy - Network constants the default builders depend on.

Covers only what the defaults consume:
- Epoch timing
- Sector expiration extension limits
- Proof aggregation and precommit batch ceilings
- PreCommit ticket and ProveCommit expiration windows

Values track the miner actor of the actors version each network version
runs.
"""

from dataclasses import dataclass
from enum import IntEnum

from spnode.core.duration import Duration, SECOND
from spnode.core.errors import UnsupportedNetworkVersion


# =============================================================================
# Constants
# =============================================================================

EPOCH_DURATION_SECONDS = 30
EPOCHS_IN_HOUR = 3600 // EPOCH_DURATION_SECONDS
EPOCHS_IN_DAY = 24 * EPOCHS_IN_HOUR
CHAIN_FINALITY = 900

# Epochs between PreCommit and the earliest ProveCommit
PRE_COMMIT_CHALLENGE_DELAY = 150

# FIP-0013 proof aggregation
MIN_AGGREGATED_SECTORS = 4
MAX_AGGREGATED_SECTORS = 819
PRE_COMMIT_SECTOR_BATCH_MAX_SIZE = 256


class NetworkVersion(IntEnum):
    """Network upgrade versions."""
    V0 = 0
    V1 = 1
    V2 = 2
    V3 = 3
    V4 = 4
    V5 = 5
    V6 = 6
    V7 = 7
    V8 = 8
    V9 = 9
    V10 = 10
    V11 = 11
    V12 = 12
    V13 = 13   # Hyperdrive: proof aggregation, precommit batching
    V14 = 14
    V15 = 15
    V16 = 16
    V17 = 17
    V18 = 18
    V19 = 19
    V20 = 20
    V21 = 21   # Watermelon: longer sector expiration extension
    V22 = 22
    V23 = 23


# Committed-capacity lifetime is derived at this version unless the
# deployment passes another one to the builder.
DEFAULT_CC_LIFETIME_NETWORK_VERSION = NetworkVersion.V20

# First network version running each actors version
_ACTORS_VERSION_START = [
    (NetworkVersion.V0, 0),
    (NetworkVersion.V4, 2),
    (NetworkVersion.V10, 3),
    (NetworkVersion.V12, 4),
    (NetworkVersion.V13, 5),
    (NetworkVersion.V14, 6),
    (NetworkVersion.V15, 7),
    (NetworkVersion.V16, 8),
    (NetworkVersion.V17, 9),
    (NetworkVersion.V18, 10),
    (NetworkVersion.V19, 11),
    (NetworkVersion.V21, 12),
    (NetworkVersion.V22, 13),
    (NetworkVersion.V23, 14),
]


@dataclass(frozen=True)
class AggregationLimits:
    """Batch size ceilings for aggregated commits and batched precommits."""
    min_aggregated_sectors: int
    max_aggregated_sectors: int
    max_pre_commit_batch: int


# =============================================================================
# Lookups
# =============================================================================


def _network_version(nv) -> NetworkVersion:
    try:
        return NetworkVersion(nv)
    except ValueError:
        raise UnsupportedNetworkVersion(f"unsupported network version: {nv!r}") from None


def actors_version(nv) -> int:
    """Return the actors version that runs at network version nv."""
    nv = _network_version(nv)
    version = 0
    for start, av in _ACTORS_VERSION_START:
        if nv >= start:
            version = av
    return version


def get_max_sector_expiration_extension(nv) -> int:
    """
    Maximum sector expiration extension, in epochs.

    540 days before actors v12, 1278 days (3.5 years) from v12 on.
    """
    if actors_version(nv) >= 12:
        return 1278 * EPOCHS_IN_DAY
    return 540 * EPOCHS_IN_DAY


def aggregation_limits(nv) -> AggregationLimits:
    """
    Aggregation ceilings at network version nv.

    Raises:
        UnsupportedNetworkVersion: Before aggregation existed (nv < 13)
    """
    nv = _network_version(nv)
    if nv < NetworkVersion.V13:
        raise UnsupportedNetworkVersion(
            f"proof aggregation is not available at network version {int(nv)}"
        )
    return AggregationLimits(
        min_aggregated_sectors=MIN_AGGREGATED_SECTORS,
        max_aggregated_sectors=MAX_AGGREGATED_SECTORS,
        max_pre_commit_batch=PRE_COMMIT_SECTOR_BATCH_MAX_SIZE,
    )


def max_pre_commit_randomness_lookback(nv) -> int:
    """Epochs a PreCommit ticket stays valid (one day plus finality)."""
    _network_version(nv)
    return EPOCHS_IN_DAY + CHAIN_FINALITY


def max_prove_commit_duration(nv) -> int:
    """Epochs between PreCommit and the ProveCommit deadline."""
    if actors_version(nv) >= 5:
        return 30 * EPOCHS_IN_DAY + PRE_COMMIT_CHALLENGE_DELAY
    return EPOCHS_IN_DAY + PRE_COMMIT_CHALLENGE_DELAY


def epochs_to_duration(epochs: int) -> Duration:
    return Duration(epochs * EPOCH_DURATION_SECONDS * SECOND)


def duration_to_epochs(duration: Duration) -> int:
    """Whole epochs covered by a span (truncating)."""
    return duration.nanoseconds // (EPOCH_DURATION_SECONDS * SECOND)
