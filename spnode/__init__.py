"""
Storage Provider Node Configuration (spnode)

Default configuration trees for the node roles of a proof-of-replication
storage network:
- Full client node
- Storage-provider (miner) node
- Consensus-cluster (raft) follower

Also carries the batch-fee model, duration and token-amount value types,
and the override loader that validates user settings against the defaults.
"""

__version__ = "0.1.0"
