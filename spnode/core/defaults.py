"""
Role Defaults - Fully populated config trees for each node role.

Builders are pure: they read no environment and every call returns a
fresh tree, so a caller may overlay user settings on the result without
affecting any other tree. Aggregation ceilings and the committed-capacity
sector lifetime come from the protocol policy of the network version
passed in.
"""

from enum import Enum

from spnode.core.duration import Duration
from spnode.core.fil import FIL, PICO_FIL, must_parse_fil
from spnode.core.policy import (
    DEFAULT_CC_LIFETIME_NETWORK_VERSION,
    EPOCH_DURATION_SECONDS,
    aggregation_limits,
    get_max_sector_expiration_extension,
)
from spnode.core.types import (
    API,
    Assigner,
    Backup,
    BatchFeeConfig,
    Chainstore,
    Client,
    Common,
    DAGStoreConfig,
    DealmakingConfig,
    Events,
    FeeConfig,
    FevmConfig,
    FullNode,
    IndexProviderConfig,
    Libp2p,
    Logging,
    MinerAddressConfig,
    MinerFeeConfig,
    MinerSubsystemConfig,
    ProvingConfig,
    Pubsub,
    ResourceFilteringStrategy,
    RetrievalPricing,
    RetrievalPricingDefault,
    RetrievalPricingExternal,
    RetrievalPricingMode,
    SealerConfig,
    SealingConfig,
    Splitstore,
    StorageMiner,
    UserRaftConfig,
)
from spnode.utils.logger import get_logger

logger = get_logger("defaults")


# =============================================================================
# Constants
# =============================================================================

DEFAULT_DEFAULT_MAX_FEE = must_parse_fil("0.07")
DEFAULT_SIMULTANEOUS_TRANSFERS = 20

FULL_NODE_API_LISTEN_ADDRESS = "/ip4/127.0.0.1/tcp/1234/http"
MINER_API_LISTEN_ADDRESS = "/ip4/127.0.0.1/tcp/2345/http"
MINER_API_REMOTE_LISTEN_ADDRESS = "127.0.0.1:2345"

# Raft follower
DEFAULT_DATA_SUB_FOLDER = "raft"
DEFAULT_WAIT_FOR_LEADER_TIMEOUT = Duration.of(seconds=15)
DEFAULT_COMMIT_RETRIES = 1
DEFAULT_NETWORK_TIMEOUT = Duration.of(seconds=100)
DEFAULT_COMMIT_RETRY_DELAY = Duration.of(milliseconds=200)
DEFAULT_BACKUPS_ROTATE = 6


class NodeRole(str, Enum):
    """Node roles that have a default config tree."""
    FULL_NODE = "full"
    STORAGE_MINER = "miner"
    CLUSTER_FOLLOWER = "raft"


# =============================================================================
# Builders
# =============================================================================


def default_common() -> Common:
    """Settings shared by every role."""
    return Common(
        api=API(
            listen_address=FULL_NODE_API_LISTEN_ADDRESS,
            timeout=Duration.of(seconds=30),
        ),
        logging=Logging(
            subsystem_levels={
                "example-subsystem": "INFO",
            },
        ),
        backup=Backup(
            disable_metadata_log=True,
        ),
        libp2p=Libp2p(
            listen_addresses=[
                "/ip4/0.0.0.0/tcp/0",
                "/ip6/::/tcp/0",
                "/ip4/0.0.0.0/udp/0/quic-v1",
                "/ip6/::/udp/0/quic-v1",
                "/ip4/0.0.0.0/udp/0/quic-v1/webtransport",
                "/ip6/::/udp/0/quic-v1/webtransport",
            ],
            announce_addresses=[],
            no_announce_addresses=[],
            conn_mgr_low=150,
            conn_mgr_high=180,
            conn_mgr_grace=Duration.of(seconds=20),
        ),
        pubsub=Pubsub(
            bootstrapper=False,
            direct_peers=None,
        ),
    )


def _common_fields() -> dict:
    # Field-wise copy so each role tree owns its common sections
    common = default_common()
    return {name: getattr(common, name) for name in Common.model_fields}


def default_user_raft_config() -> UserRaftConfig:
    """Defaults for a consensus-cluster follower."""
    return UserRaftConfig(
        data_folder="",  # empty so it gets omitted
        init_peerset_multi_addr=[],
        wait_for_leader_timeout=DEFAULT_WAIT_FOR_LEADER_TIMEOUT,
        network_timeout=DEFAULT_NETWORK_TIMEOUT,
        commit_retries=DEFAULT_COMMIT_RETRIES,
        commit_retry_delay=DEFAULT_COMMIT_RETRY_DELAY,
        backups_rotate=DEFAULT_BACKUPS_ROTATE,
    )


def default_full_node() -> FullNode:
    """Defaults for a full client node."""
    cfg = FullNode(
        **_common_fields(),
        fees=FeeConfig(
            default_max_fee=DEFAULT_DEFAULT_MAX_FEE,
        ),
        client=Client(
            simultaneous_transfers_for_storage=DEFAULT_SIMULTANEOUS_TRANSFERS,
            simultaneous_transfers_for_retrieval=DEFAULT_SIMULTANEOUS_TRANSFERS,
        ),
        chainstore=Chainstore(
            enable_splitstore=True,
            splitstore=Splitstore(
                cold_store_type="discard",
                hot_store_type="badger",
                mark_set_type="badger",
                hot_store_full_gc_frequency=20,
                hot_store_max_space_target=650_000_000_000,
                hot_store_max_space_threshold=150_000_000_000,
                hotstore_max_space_safety_buffer=50_000_000_000,
            ),
        ),
        cluster=default_user_raft_config(),
        fevm=FevmConfig(
            enable_eth_rpc=False,
            eth_tx_hash_mapping_lifetime_days=0,
            events=Events(
                disable_real_time_filter_api=False,
                disable_historic_filter_api=False,
                filter_ttl=Duration.of(hours=24),
                max_filters=100,
                max_filter_results=10000,
                max_filter_height_range=2880,  # conservative limit of one day
            ),
        ),
    )
    logger.debug("Built full node defaults")
    return cfg


def committed_capacity_sector_lifetime(network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION) -> Duration:
    """Longest sector lifetime the protocol allows at network_version."""
    max_extension = get_max_sector_expiration_extension(network_version)
    return Duration.of(seconds=EPOCH_DURATION_SECONDS * max_extension)


def default_storage_miner(network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION) -> StorageMiner:
    """
    Defaults for a storage-provider node.

    Args:
        network_version: Network version whose protocol policy supplies the
            aggregation ceilings and the committed-capacity sector lifetime

    Returns:
        StorageMiner tree

    Raises:
        UnsupportedNetworkVersion: If the version predates proof aggregation
    """
    limits = aggregation_limits(network_version)
    cc_lifetime = committed_capacity_sector_lifetime(network_version)

    cfg = StorageMiner(
        **_common_fields(),
        sealing=SealingConfig(
            max_wait_deals_sectors=2,  # 64G with 32G sectors
            max_sealing_sectors=0,
            max_sealing_sectors_for_deals=0,
            wait_deals_delay=Duration.of(hours=6),
            always_keep_unsealed_copy=True,
            finalize_early=False,
            make_new_sector_for_deals=True,

            collateral_from_miner_balance=False,
            available_balance_buffer=FIL(0),
            disable_collateral_fallback=False,

            max_pre_commit_batch=limits.max_pre_commit_batch,  # up to 256 sectors
            pre_commit_batch_wait=Duration.of(hours=24),  # below the 31.5h ticket expiration
            pre_commit_batch_slack=Duration.of(hours=3),

            committed_capacity_sector_lifetime=cc_lifetime,

            aggregate_commits=True,
            # 4 is where aggregation starts to beat individual ProveCommit gas
            min_commit_batch=limits.min_aggregated_sectors,
            max_commit_batch=limits.max_aggregated_sectors,
            commit_batch_wait=Duration.of(hours=24),  # can be up to 30 days
            commit_batch_slack=Duration.of(hours=1),

            batch_pre_commit_above_base_fee=PICO_FIL * 320,  # 0.32 nFIL
            aggregate_above_base_fee=PICO_FIL * 320,  # 0.32 nFIL

            terminate_batch_min=1,
            terminate_batch_max=100,
            terminate_batch_wait=Duration.of(minutes=5),
            max_sector_prove_commits_submitted_per_epoch=20,
            use_synthetic_porep=False,
        ),
        proving=ProvingConfig(
            parallel_check_limit=32,
            partition_check_timeout=Duration.of(minutes=20),
            single_check_timeout=Duration.of(minutes=10),
        ),
        storage=SealerConfig(
            allow_sector_download=True,
            allow_add_piece=True,
            allow_pre_commit1=True,
            allow_pre_commit2=True,
            allow_commit=True,
            allow_unseal=True,
            allow_replica_update=True,
            allow_prove_replica_update2=True,
            allow_regen_sector_key=True,

            # Ratio between 10gbit and 1gbit links
            parallel_fetch_limit=10,

            assigner=Assigner.UTILIZATION,
            resource_filtering=ResourceFilteringStrategy.HARDWARE,
        ),
        dealmaking=DealmakingConfig(
            consider_online_storage_deals=True,
            consider_offline_storage_deals=True,
            consider_online_retrieval_deals=True,
            consider_offline_retrieval_deals=True,
            consider_verified_storage_deals=True,
            consider_unverified_storage_deals=True,
            piece_cid_blocklist=[],
            # TODO: derive from sector size once it is part of the miner config
            max_deal_start_delay=Duration.of(hours=24 * 14),
            expected_seal_duration=Duration.of(hours=24),
            publish_msg_period=Duration.of(hours=1),
            max_deals_per_publish_msg=8,
            max_provider_collateral_multiplier=2,

            simultaneous_transfers_for_storage=DEFAULT_SIMULTANEOUS_TRANSFERS,
            simultaneous_transfers_for_storage_per_client=0,
            simultaneous_transfers_for_retrieval=DEFAULT_SIMULTANEOUS_TRANSFERS,

            start_epoch_sealing_buffer=480,  # 4 hours

            retrieval_pricing=RetrievalPricing(
                strategy=RetrievalPricingMode.DEFAULT,
                default=RetrievalPricingDefault(
                    verified_deals_free_transfer=True,
                ),
                external=RetrievalPricingExternal(
                    path="",
                ),
            ),
        ),
        index_provider=IndexProviderConfig(
            enable=True,
            entries_cache_capacity=1024,
            entries_chunk_size=16384,
            topic_name="",
            purge_cache_on_start=False,
        ),
        subsystems=MinerSubsystemConfig(
            enable_mining=True,
            enable_sealing=True,
            enable_sector_storage=True,
            enable_markets=False,
        ),
        fees=MinerFeeConfig(
            max_pre_commit_gas_fee=must_parse_fil("0.025"),
            max_commit_gas_fee=must_parse_fil("0.05"),

            max_pre_commit_batch_gas_fee=BatchFeeConfig(
                base=must_parse_fil("0"),
                per_sector=must_parse_fil("0.02"),
            ),
            max_commit_batch_gas_fee=BatchFeeConfig(
                base=must_parse_fil("0"),
                per_sector=must_parse_fil("0.03"),  # enough for 6 agg and 1nFIL base fee
            ),

            max_terminate_gas_fee=must_parse_fil("0.5"),
            max_window_post_gas_fee=must_parse_fil("5"),
            max_publish_deals_fee=must_parse_fil("0.05"),
            max_market_balance_add_fee=must_parse_fil("0.007"),

            maximize_window_post_fee_cap=True,
        ),
        addresses=MinerAddressConfig(
            pre_commit_control=[],
            commit_control=[],
            terminate_control=[],
            deal_publish_control=[],
        ),
        dag_store=DAGStoreConfig(
            max_concurrent_index=5,
            max_concurrency_storage_calls=100,
            max_concurrent_unseals=5,
            gc_interval=Duration.of(minutes=1),
        ),
    )

    cfg.api.listen_address = MINER_API_LISTEN_ADDRESS
    cfg.api.remote_listen_address = MINER_API_REMOTE_LISTEN_ADDRESS

    logger.debug(
        f"Built storage miner defaults (nv={int(network_version)}, "
        f"cc lifetime={cc_lifetime})"
    )
    return cfg


def build_defaults(role, network_version=DEFAULT_CC_LIFETIME_NETWORK_VERSION):
    """
    Build the default tree for a role.

    Args:
        role: NodeRole or its tag ("full", "miner", "raft")
        network_version: Used by the storage miner builder only

    Raises:
        ValueError: On an unknown role tag
    """
    role = NodeRole(role)
    if role is NodeRole.FULL_NODE:
        return default_full_node()
    if role is NodeRole.STORAGE_MINER:
        return default_storage_miner(network_version)
    return default_user_raft_config()
