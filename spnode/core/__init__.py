"""
spnode Core Module.

Config value types, protocol policy, role default builders and the
override loader.
"""

from spnode.core.duration import (
    Duration,
    format_duration,
    parse_duration,
)

from spnode.core.errors import (
    ConfigError,
    MalformedDuration,
    MalformedTokenAmount,
    UnsupportedNetworkVersion,
)

from spnode.core.fil import (
    FIL,
    parse_fil,
    must_parse_fil,
)

from spnode.core.policy import (
    NetworkVersion,
    DEFAULT_CC_LIFETIME_NETWORK_VERSION,
)

from spnode.core.types import (
    BatchFeeConfig,
    FullNode,
    ResourceFilteringStrategy,
    RetrievalPricing,
    RetrievalPricingMode,
    StorageMiner,
    UserRaftConfig,
)

from spnode.core.defaults import (
    NodeRole,
    build_defaults,
    default_full_node,
    default_storage_miner,
    default_user_raft_config,
)

from spnode.core.traversal import (
    TraversalBudget,
    DEFAULT_MAX_TRAVERSAL_LINKS,
    load_traversal_budget,
)

from spnode.core.loader import (
    apply_overrides,
    check_config,
    load_config,
    to_config_dict,
    validate_config,
)

__all__ = [
    # Values
    "Duration",
    "format_duration",
    "parse_duration",
    "FIL",
    "parse_fil",
    "must_parse_fil",
    # Errors
    "ConfigError",
    "MalformedDuration",
    "MalformedTokenAmount",
    "UnsupportedNetworkVersion",
    # Policy
    "NetworkVersion",
    "DEFAULT_CC_LIFETIME_NETWORK_VERSION",
    # Types
    "BatchFeeConfig",
    "FullNode",
    "ResourceFilteringStrategy",
    "RetrievalPricing",
    "RetrievalPricingMode",
    "StorageMiner",
    "UserRaftConfig",
    # Defaults
    "NodeRole",
    "build_defaults",
    "default_full_node",
    "default_storage_miner",
    "default_user_raft_config",
    # Traversal
    "TraversalBudget",
    "DEFAULT_MAX_TRAVERSAL_LINKS",
    "load_traversal_budget",
    # Loader
    "apply_overrides",
    "check_config",
    "load_config",
    "to_config_dict",
    "validate_config",
]
