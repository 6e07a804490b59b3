"""
Config Types - The node configuration tree.

Each role tree (FullNode, StorageMiner) extends the Common block with its
role-specific sections. Attributes are snake_case; the persisted key of
every field is its PascalCase config name (API, MaxPreCommitBatch,
DAGStore, ...). Both spellings are accepted on input.

Nested sections are owned by value: no two trees share a section object.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from spnode.core.duration import Duration
from spnode.core.fil import FIL


# =============================================================================
# Base
# =============================================================================

# Name segments whose config spelling is not plain capitalization
_ACRONYMS = {
    "api": "API",
    "dag": "DAG",
    "gc": "GC",
    "porep": "PoRep",
    "post": "PoSt",
    "rpc": "RPC",
    "ttl": "TTL",
}


def to_config_key(name: str) -> str:
    """Map an attribute name to its persisted key (max_post_fee -> MaxPoStFee)."""
    return "".join(_ACRONYMS.get(part, part.capitalize()) for part in name.split("_"))


class ConfigModel(BaseModel):
    """Base for every config section."""

    model_config = ConfigDict(
        alias_generator=to_config_key,
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
    )


# =============================================================================
# Enums
# =============================================================================


class ResourceFilteringStrategy(str, Enum):
    """How the worker scheduler filters sealing tasks against a worker."""
    # Evaluate CPU/RAM/GPU/disk availability before dispatching a task
    HARDWARE = "hardware"
    # Dispatch any task to the worker unconditionally
    DISABLED = "disabled"


class RetrievalPricingMode(str, Enum):
    """Which retrieval pricing rule the deal engine applies."""
    DEFAULT = "default"
    EXTERNAL = "external"


class Assigner(str, Enum):
    """Task assignment policy across workers."""
    UTILIZATION = "utilization"
    SPREAD = "spread"


# =============================================================================
# Common
# =============================================================================


class API(ConfigModel):
    listen_address: str
    remote_listen_address: str = ""
    timeout: Duration


class Backup(ConfigModel):
    disable_metadata_log: bool


class Logging(ConfigModel):
    subsystem_levels: Dict[str, str]


class Libp2p(ConfigModel):
    listen_addresses: List[str]
    announce_addresses: List[str]
    no_announce_addresses: List[str]

    # Connection manager watermarks
    conn_mgr_low: int
    conn_mgr_high: int
    conn_mgr_grace: Duration


class Pubsub(ConfigModel):
    bootstrapper: bool
    direct_peers: Optional[List[str]] = None


class Common(ConfigModel):
    """Settings shared by every node role."""
    api: API
    backup: Backup
    logging: Logging
    libp2p: Libp2p
    pubsub: Pubsub


# =============================================================================
# Full Node
# =============================================================================


class FeeConfig(ConfigModel):
    default_max_fee: FIL


class Client(ConfigModel):
    simultaneous_transfers_for_storage: int
    simultaneous_transfers_for_retrieval: int


class Splitstore(ConfigModel):
    cold_store_type: str
    hot_store_type: str
    mark_set_type: str

    hot_store_full_gc_frequency: int
    hot_store_max_space_target: int
    hot_store_max_space_threshold: int
    hotstore_max_space_safety_buffer: int


class Chainstore(ConfigModel):
    enable_splitstore: bool
    splitstore: Splitstore


class Events(ConfigModel):
    disable_real_time_filter_api: bool
    disable_historic_filter_api: bool
    filter_ttl: Duration
    max_filters: int
    max_filter_results: int
    max_filter_height_range: int


class FevmConfig(ConfigModel):
    enable_eth_rpc: bool
    eth_tx_hash_mapping_lifetime_days: int
    events: Events


class UserRaftConfig(ConfigModel):
    """Tuning for a node following a raft consensus cluster."""
    cluster_mode_enabled: bool = False
    data_folder: str
    init_peerset_multi_addr: List[str]
    wait_for_leader_timeout: Duration
    network_timeout: Duration
    commit_retries: int
    commit_retry_delay: Duration
    backups_rotate: int
    tracing: bool = False


class FullNode(Common):
    fees: FeeConfig
    client: Client
    chainstore: Chainstore
    cluster: UserRaftConfig
    fevm: FevmConfig


# =============================================================================
# Storage Miner
# =============================================================================


class SealingConfig(ConfigModel):
    """
    Sector sealing and commit batching.

    Batch waits are bounded by on-chain expiration: a PreCommit ticket
    expires after 31.5 hours, so PreCommitBatchWait must stay below that;
    CommitBatchWait can be up to 30 days. The slack values force a batch
    out early when its oldest sector gets that close to expiring.

    BatchPreCommitAboveBaseFee and AggregateAboveBaseFee are base fee
    thresholds: below them messages go out one sector at a time, above
    them the node batches/aggregates to save gas.
    """
    max_wait_deals_sectors: int
    max_sealing_sectors: int
    max_sealing_sectors_for_deals: int
    wait_deals_delay: Duration
    always_keep_unsealed_copy: bool
    finalize_early: bool
    make_new_sector_for_deals: bool

    collateral_from_miner_balance: bool
    available_balance_buffer: FIL
    disable_collateral_fallback: bool

    max_pre_commit_batch: int
    pre_commit_batch_wait: Duration
    pre_commit_batch_slack: Duration

    committed_capacity_sector_lifetime: Duration

    aggregate_commits: bool
    min_commit_batch: int
    max_commit_batch: int
    commit_batch_wait: Duration
    commit_batch_slack: Duration

    batch_pre_commit_above_base_fee: FIL
    aggregate_above_base_fee: FIL

    terminate_batch_min: int
    terminate_batch_max: int
    terminate_batch_wait: Duration
    max_sector_prove_commits_submitted_per_epoch: int
    use_synthetic_porep: bool


class ProvingConfig(ConfigModel):
    parallel_check_limit: int
    partition_check_timeout: Duration
    single_check_timeout: Duration


class SealerConfig(ConfigModel):
    allow_sector_download: bool
    allow_add_piece: bool
    allow_pre_commit1: bool
    allow_pre_commit2: bool
    allow_commit: bool
    allow_unseal: bool
    allow_replica_update: bool
    allow_prove_replica_update2: bool
    allow_regen_sector_key: bool

    parallel_fetch_limit: int
    assigner: Assigner
    resource_filtering: ResourceFilteringStrategy


class RetrievalPricingDefault(ConfigModel):
    verified_deals_free_transfer: bool


class RetrievalPricingExternal(ConfigModel):
    # Script invoked per pricing decision; existence is not checked here
    path: str


class RetrievalPricing(ConfigModel):
    """
    Retrieval pricing selector.

    Strategy picks which of the two parameter blocks is in effect. Both
    blocks are always present so switching the strategy never loses the
    settings of the inactive one.
    """
    strategy: RetrievalPricingMode
    default: RetrievalPricingDefault
    external: RetrievalPricingExternal

    @property
    def active(self) -> Union[RetrievalPricingDefault, RetrievalPricingExternal]:
        """The parameter block selected by strategy."""
        if self.strategy is RetrievalPricingMode.EXTERNAL:
            return self.external
        return self.default


class DealmakingConfig(ConfigModel):
    consider_online_storage_deals: bool
    consider_offline_storage_deals: bool
    consider_online_retrieval_deals: bool
    consider_offline_retrieval_deals: bool
    consider_verified_storage_deals: bool
    consider_unverified_storage_deals: bool
    piece_cid_blocklist: List[str]

    max_deal_start_delay: Duration
    expected_seal_duration: Duration
    publish_msg_period: Duration
    max_deals_per_publish_msg: int
    max_provider_collateral_multiplier: int

    simultaneous_transfers_for_storage: int
    simultaneous_transfers_for_storage_per_client: int
    simultaneous_transfers_for_retrieval: int

    # Epochs between adding a deal to a sector and the sector being sealed
    start_epoch_sealing_buffer: int

    retrieval_pricing: RetrievalPricing


class IndexProviderConfig(ConfigModel):
    enable: bool
    entries_cache_capacity: int
    entries_chunk_size: int
    # Empty means "/indexer/ingest/<network-name>"
    topic_name: str
    purge_cache_on_start: bool


class MinerSubsystemConfig(ConfigModel):
    enable_mining: bool
    enable_sealing: bool
    enable_sector_storage: bool
    enable_markets: bool


class BatchFeeConfig(ConfigModel):
    """Gas fee cap for a batch: Base + PerSector * sectors."""
    base: FIL
    per_sector: FIL

    def fee_for_sectors(self, n_sectors: int) -> FIL:
        return self.base + self.per_sector * n_sectors


class MinerFeeConfig(ConfigModel):
    max_pre_commit_gas_fee: FIL
    max_commit_gas_fee: FIL

    max_pre_commit_batch_gas_fee: BatchFeeConfig
    max_commit_batch_gas_fee: BatchFeeConfig

    max_terminate_gas_fee: FIL
    max_window_post_gas_fee: FIL
    max_publish_deals_fee: FIL
    max_market_balance_add_fee: FIL

    maximize_window_post_fee_cap: bool


class MinerAddressConfig(ConfigModel):
    pre_commit_control: List[str]
    commit_control: List[str]
    terminate_control: List[str]
    deal_publish_control: List[str]


class DAGStoreConfig(ConfigModel):
    max_concurrent_index: int
    max_concurrency_storage_calls: int
    max_concurrent_unseals: int
    gc_interval: Duration


class StorageMiner(Common):
    sealing: SealingConfig
    proving: ProvingConfig
    storage: SealerConfig
    dealmaking: DealmakingConfig
    index_provider: IndexProviderConfig
    subsystems: MinerSubsystemConfig
    fees: MinerFeeConfig
    addresses: MinerAddressConfig
    dag_store: DAGStoreConfig
