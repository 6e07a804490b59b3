"""
Config Loader - Overlay user settings on a default tree and check them.

The builders only produce well-formed trees; anything a user supplies is
checked here before the tree reaches the sealing pipeline, the deal
engine or the cluster layer:

1. Field shapes and enum tags (pydantic validation)
2. Cross-field invariants of the batching and deal timing parameters
3. Bounds on counts, capacities and fee caps
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple, TypeVar, Union

from pydantic import ValidationError

from spnode.core.defaults import NodeRole, build_defaults
from spnode.core.duration import Duration
from spnode.core.errors import ConfigError, UnsupportedNetworkVersion
from spnode.core.policy import (
    DEFAULT_CC_LIFETIME_NETWORK_VERSION,
    aggregation_limits,
    duration_to_epochs,
    epochs_to_duration,
    max_pre_commit_randomness_lookback,
    max_prove_commit_duration,
)
from spnode.core.types import (
    Common,
    ConfigModel,
    FullNode,
    RetrievalPricingMode,
    StorageMiner,
    UserRaftConfig,
    to_config_key,
)
from spnode.utils.logger import get_logger
from spnode.core.validation import (
    MAX_INT64,
    validate_amount,
    validate_count,
    validate_duration,
    validate_integer,
    validate_less_than,
    validate_positive,
)

logger = get_logger("loader")

M = TypeVar("M", bound=ConfigModel)


# =============================================================================
# Overlay
# =============================================================================


def to_config_dict(cfg: ConfigModel) -> Dict[str, Any]:
    """Persisted form of a tree: PascalCase keys, spans and amounts as text."""
    return cfg.model_dump(mode="json", by_alias=True)


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if key not in merged and to_config_key(key) in merged:
            key = to_config_key(key)
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _format_errors(error: ValidationError) -> List[str]:
    return [
        ".".join(str(part) for part in err["loc"]) + ": " + err["msg"]
        for err in error.errors()
    ]


def apply_overrides(base: M, overrides: Mapping[str, Any]) -> M:
    """
    Overlay user settings on a tree.

    Args:
        base: Tree to start from; left unchanged
        overrides: Nested mapping keyed by config name or attribute name.
            Sections merge recursively; lists and scalars replace.

    Returns:
        New, validated tree of the same type as base

    Raises:
        ConfigError: If a value has the wrong shape, an enum tag is not
            recognized, or a key does not exist
    """
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"overrides must be a mapping, got {type(overrides).__name__}")

    # Merge over the persisted form so spans and amounts stay text
    merged = _merge(to_config_dict(base), overrides)
    try:
        return type(base).model_validate(merged)
    except ValidationError as e:
        raise ConfigError("invalid configuration", _format_errors(e)) from e


def load_overrides(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read an override document (JSON object).

    Raises:
        ConfigError: If the file is unreadable or not a JSON object
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read overrides from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"overrides in {path} must be a JSON object")
    return data


# =============================================================================
# Invariant Checks
# =============================================================================


def _collect(problems: List[str], result: Tuple[bool, str]):
    valid, err = result
    if not valid:
        problems.append(err)


def check_common(cfg: Common) -> List[str]:
    """Problems in the settings shared by every role."""
    problems: List[str] = []
    libp2p = cfg.libp2p

    _collect(problems, validate_duration(cfg.api.timeout, "API.Timeout", strictly_positive=True))
    _collect(problems, validate_count(libp2p.conn_mgr_low, "Libp2p.ConnMgrLow"))
    _collect(problems, validate_count(libp2p.conn_mgr_high, "Libp2p.ConnMgrHigh"))
    _collect(problems, validate_less_than(
        libp2p.conn_mgr_low, libp2p.conn_mgr_high,
        "Libp2p.ConnMgrLow", "Libp2p.ConnMgrHigh", allow_equal=True,
    ))
    _collect(problems, validate_duration(libp2p.conn_mgr_grace, "Libp2p.ConnMgrGrace", Duration(0)))
    return problems


def check_user_raft_config(cfg: UserRaftConfig, prefix: str = "Cluster") -> List[str]:
    """Problems in consensus-follower tuning."""
    problems: List[str] = []

    _collect(problems, validate_integer(cfg.commit_retries, f"{prefix}.CommitRetries", 0, MAX_INT64))
    _collect(problems, validate_duration(
        cfg.wait_for_leader_timeout, f"{prefix}.WaitForLeaderTimeout", strictly_positive=True
    ))
    _collect(problems, validate_duration(
        cfg.network_timeout, f"{prefix}.NetworkTimeout", strictly_positive=True
    ))
    _collect(problems, validate_duration(cfg.commit_retry_delay, f"{prefix}.CommitRetryDelay", Duration(0)))
    _collect(problems, validate_integer(cfg.backups_rotate, f"{prefix}.BackupsRotate", 0, MAX_INT64))
    return problems


def check_full_node(cfg: FullNode) -> List[str]:
    """Problems in a full node tree."""
    problems = check_common(cfg)
    _collect(problems, validate_amount(cfg.fees.default_max_fee, "Fees.DefaultMaxFee"))
    _collect(problems, validate_count(
        cfg.client.simultaneous_transfers_for_storage, "Client.SimultaneousTransfersForStorage"
    ))
    _collect(problems, validate_count(
        cfg.client.simultaneous_transfers_for_retrieval, "Client.SimultaneousTransfersForRetrieval"
    ))
    problems.extend(check_user_raft_config(cfg.cluster))
    return problems


def _check_sealing(cfg: StorageMiner, network_version) -> List[str]:
    problems: List[str] = []
    sealing = cfg.sealing
    limits = aggregation_limits(network_version)
    ticket_expiration = epochs_to_duration(max_pre_commit_randomness_lookback(network_version))
    prove_commit_window = epochs_to_duration(max_prove_commit_duration(network_version))

    for name in (
        "max_wait_deals_sectors",
        "max_sealing_sectors",
        "max_sealing_sectors_for_deals",
        "terminate_batch_min",
        "terminate_batch_max",
        "max_sector_prove_commits_submitted_per_epoch",
    ):
        _collect(problems, validate_count(getattr(sealing, name), f"Sealing.{to_config_key(name)}"))

    # PreCommit batching: the batch must land before its tickets expire
    _collect(problems, validate_integer(
        sealing.max_pre_commit_batch, "Sealing.MaxPreCommitBatch", 1, limits.max_pre_commit_batch
    ))
    _collect(problems, validate_less_than(
        sealing.pre_commit_batch_slack, sealing.pre_commit_batch_wait,
        "Sealing.PreCommitBatchSlack", "Sealing.PreCommitBatchWait",
    ))
    _collect(problems, validate_less_than(
        sealing.pre_commit_batch_wait, ticket_expiration,
        "Sealing.PreCommitBatchWait", "precommit ticket expiration",
    ))

    # Commit aggregation
    _collect(problems, validate_positive(sealing.min_commit_batch, "Sealing.MinCommitBatch"))
    _collect(problems, validate_less_than(
        sealing.min_commit_batch, sealing.max_commit_batch,
        "Sealing.MinCommitBatch", "Sealing.MaxCommitBatch", allow_equal=True,
    ))
    _collect(problems, validate_less_than(
        sealing.max_commit_batch, limits.max_aggregated_sectors,
        "Sealing.MaxCommitBatch", "protocol aggregation ceiling", allow_equal=True,
    ))
    _collect(problems, validate_less_than(
        sealing.commit_batch_slack, sealing.commit_batch_wait,
        "Sealing.CommitBatchSlack", "Sealing.CommitBatchWait",
    ))
    _collect(problems, validate_less_than(
        sealing.commit_batch_wait, prove_commit_window,
        "Sealing.CommitBatchWait", "prove commit expiration",
    ))

    _collect(problems, validate_less_than(
        sealing.terminate_batch_min, sealing.terminate_batch_max,
        "Sealing.TerminateBatchMin", "Sealing.TerminateBatchMax", allow_equal=True,
    ))

    for name in ("available_balance_buffer", "batch_pre_commit_above_base_fee", "aggregate_above_base_fee"):
        _collect(problems, validate_amount(getattr(sealing, name), f"Sealing.{to_config_key(name)}"))

    _collect(problems, validate_duration(
        sealing.committed_capacity_sector_lifetime, "Sealing.CommittedCapacitySectorLifetime",
        strictly_positive=True,
    ))
    return problems


def _check_dealmaking(cfg: StorageMiner) -> List[str]:
    problems: List[str] = []
    deals = cfg.dealmaking

    for name in (
        "max_deals_per_publish_msg",
        "max_provider_collateral_multiplier",
        "simultaneous_transfers_for_storage",
        "simultaneous_transfers_for_storage_per_client",
        "simultaneous_transfers_for_retrieval",
        "start_epoch_sealing_buffer",
    ):
        _collect(problems, validate_count(getattr(deals, name), f"Dealmaking.{to_config_key(name)}"))

    # A deal must not start before the pipeline can have sealed it
    seal_epochs = duration_to_epochs(deals.expected_seal_duration)
    _collect(problems, validate_less_than(
        deals.start_epoch_sealing_buffer, seal_epochs,
        "Dealmaking.StartEpochSealingBuffer", "Dealmaking.ExpectedSealDuration in epochs",
    ))

    pricing = deals.retrieval_pricing
    if pricing.strategy is RetrievalPricingMode.EXTERNAL and not pricing.external.path:
        problems.append("Dealmaking.RetrievalPricing.External.Path must be set for the external strategy")
    return problems


def check_storage_miner(cfg: StorageMiner, network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION) -> List[str]:
    """
    Problems in a storage miner tree.

    Args:
        cfg: Tree to check
        network_version: Network version whose protocol ceilings and
            expiration windows apply

    Returns:
        One message per violated bound or invariant; empty when valid
    """
    problems = check_common(cfg)
    problems.extend(_check_sealing(cfg, network_version))
    problems.extend(_check_dealmaking(cfg))

    _collect(problems, validate_positive(cfg.proving.parallel_check_limit, "Proving.ParallelCheckLimit"))
    _collect(problems, validate_count(cfg.storage.parallel_fetch_limit, "Storage.ParallelFetchLimit"))

    _collect(problems, validate_positive(
        cfg.index_provider.entries_cache_capacity, "IndexProvider.EntriesCacheCapacity"
    ))
    _collect(problems, validate_positive(
        cfg.index_provider.entries_chunk_size, "IndexProvider.EntriesChunkSize"
    ))

    dag_store = cfg.dag_store
    _collect(problems, validate_positive(dag_store.max_concurrent_index, "DAGStore.MaxConcurrentIndex"))
    _collect(problems, validate_positive(
        dag_store.max_concurrency_storage_calls, "DAGStore.MaxConcurrencyStorageCalls"
    ))
    _collect(problems, validate_positive(dag_store.max_concurrent_unseals, "DAGStore.MaxConcurrentUnseals"))

    fees = cfg.fees
    for name in (
        "max_pre_commit_gas_fee",
        "max_commit_gas_fee",
        "max_terminate_gas_fee",
        "max_window_post_gas_fee",
        "max_publish_deals_fee",
        "max_market_balance_add_fee",
    ):
        _collect(problems, validate_amount(getattr(fees, name), f"Fees.{to_config_key(name)}"))
    for name in ("max_pre_commit_batch_gas_fee", "max_commit_batch_gas_fee"):
        batch = getattr(fees, name)
        _collect(problems, validate_amount(batch.base, f"Fees.{to_config_key(name)}.Base"))
        _collect(problems, validate_amount(batch.per_sector, f"Fees.{to_config_key(name)}.PerSector"))

    return problems


def check_config(cfg: ConfigModel, network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION) -> List[str]:
    """Dispatch to the checks for the tree's role."""
    if isinstance(cfg, StorageMiner):
        return check_storage_miner(cfg, network_version)
    if isinstance(cfg, FullNode):
        return check_full_node(cfg)
    if isinstance(cfg, UserRaftConfig):
        return check_user_raft_config(cfg, prefix="Raft")
    raise TypeError(f"no checks for {type(cfg).__name__}")


def validate_config(cfg: ConfigModel, network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION):
    """
    Reject a tree that violates any bound or invariant.

    Raises:
        ConfigError: Listing every problem found
    """
    problems = check_config(cfg, network_version)
    if problems:
        raise ConfigError(f"invalid {type(cfg).__name__} configuration", problems)
    return cfg


# =============================================================================
# Entry Point
# =============================================================================


def load_config(
    role: Union[NodeRole, str],
    overrides: Union[Mapping[str, Any], str, Path, None] = None,
    network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION,
):
    """
    Build the defaults for a role, overlay user settings and validate.

    Args:
        role: NodeRole or its tag
        overrides: Override mapping, a path to a JSON override document,
            or None for plain defaults
        network_version: Protocol version for the storage miner builder
            and its checks

    Returns:
        Validated config tree, to be treated as read-only from here on

    Raises:
        ConfigError: If the overrides are unreadable, the result invalid,
            or the network version has no miner policy
    """
    role = NodeRole(role)
    try:
        cfg = build_defaults(role, network_version)
    except UnsupportedNetworkVersion as e:
        raise ConfigError(str(e)) from e

    if isinstance(overrides, (str, Path)):
        overrides = load_overrides(overrides)
    if overrides:
        cfg = apply_overrides(cfg, overrides)
        logger.info(f"Applied {len(overrides)} override section(s) to {role.value} config")

    return validate_config(cfg, network_version)
