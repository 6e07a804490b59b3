"""
Integration tests for overlaying user settings on role defaults.

Tests cover:
1. Merging overrides by persisted key or attribute name
2. Rejection of malformed values and unknown tags at load time
3. Cross-field invariant checks on the merged tree
4. Override documents on disk
"""

import json

import pytest

from spnode.core.defaults import default_full_node, default_storage_miner
from spnode.core.duration import Duration
from spnode.core.errors import ConfigError
from spnode.core.loader import (
    apply_overrides,
    check_storage_miner,
    load_config,
    load_overrides,
    to_config_dict,
    validate_config,
)
from spnode.core.policy import NetworkVersion
from spnode.core.types import ResourceFilteringStrategy, RetrievalPricingMode


@pytest.fixture
def miner():
    return default_storage_miner()


def _problems(overrides, role="miner"):
    with pytest.raises(ConfigError) as exc_info:
        load_config(role, overrides)
    return "\n".join(exc_info.value.problems)


# =============================================================================
# Merging
# =============================================================================


class TestApplyOverrides:
    """Tests for the overlay step."""

    def test_persisted_keys(self, miner):
        cfg = apply_overrides(miner, {"Sealing": {"CommitBatchWait": "12h"}})
        assert cfg.sealing.commit_batch_wait == Duration.of(hours=12)
        assert cfg.sealing.commit_batch_slack == miner.sealing.commit_batch_slack

    def test_single_field_keeps_rest(self, miner):
        cfg = apply_overrides(miner, {"Sealing": {"CommitBatchWait": "12h"}})
        assert cfg.sealing.commit_batch_wait == Duration.of(hours=12)
        assert cfg.fees == miner.fees
        assert cfg.dealmaking == miner.dealmaking
        assert cfg.sealing.committed_capacity_sector_lifetime == miner.sealing.committed_capacity_sector_lifetime

    def test_load_config_with_override(self):
        cfg = load_config("miner", {"Sealing": {"CommitBatchWait": "12h"}})
        assert cfg.sealing.commit_batch_wait == Duration.of(hours=12)
        assert cfg.sealing.max_commit_batch == 819

    def test_attribute_names(self, miner):
        cfg = apply_overrides(miner, {"sealing": {"commit_batch_wait": "12h"}})
        assert cfg.sealing.commit_batch_wait == Duration.of(hours=12)

    def test_base_untouched(self, miner):
        apply_overrides(miner, {"Sealing": {"MaxCommitBatch": 100}, "Libp2p": {"ListenAddresses": []}})
        assert miner.sealing.max_commit_batch == 819
        assert len(miner.libp2p.listen_addresses) == 6

    def test_lists_replace(self, miner):
        cfg = apply_overrides(miner, {"Libp2p": {"ListenAddresses": ["/ip4/0.0.0.0/tcp/24001"]}})
        assert cfg.libp2p.listen_addresses == ["/ip4/0.0.0.0/tcp/24001"]

    def test_maps_merge(self, miner):
        cfg = apply_overrides(miner, {"Logging": {"SubsystemLevels": {"sealing": "DEBUG"}}})
        assert cfg.logging.subsystem_levels == {"example-subsystem": "INFO", "sealing": "DEBUG"}

    def test_enum_tags(self, miner):
        cfg = apply_overrides(miner, {
            "Storage": {"ResourceFiltering": "disabled"},
            "Dealmaking": {"RetrievalPricing": {"Strategy": "external", "External": {"Path": "/opt/price.sh"}}},
        })
        assert cfg.storage.resource_filtering is ResourceFilteringStrategy.DISABLED
        pricing = cfg.dealmaking.retrieval_pricing
        assert pricing.strategy is RetrievalPricingMode.EXTERNAL
        assert pricing.active.path == "/opt/price.sh"
        assert pricing.default.verified_deals_free_transfer is True

    def test_fee_amounts(self, miner):
        cfg = apply_overrides(miner, {"Fees": {"MaxCommitBatchGasFee": {"PerSector": "0.04"}}})
        assert str(cfg.fees.max_commit_batch_gas_fee.fee_for_sectors(10)) == "0.4 FIL"
        assert str(cfg.fees.max_commit_batch_gas_fee.base) == "0 FIL"

    def test_unknown_tag_rejected(self, miner):
        with pytest.raises(ConfigError) as exc_info:
            apply_overrides(miner, {"Storage": {"ResourceFiltering": "gpu"}})
        assert any("Storage.ResourceFiltering" in p for p in exc_info.value.problems)

    def test_unknown_strategy_rejected(self, miner):
        with pytest.raises(ConfigError):
            apply_overrides(miner, {"Dealmaking": {"RetrievalPricing": {"Strategy": "auction"}}})

    def test_unknown_key_rejected(self, miner):
        with pytest.raises(ConfigError):
            apply_overrides(miner, {"Sealing": {"BatchEverything": True}})

    def test_malformed_duration_rejected(self, miner):
        with pytest.raises(ConfigError) as exc_info:
            apply_overrides(miner, {"Sealing": {"CommitBatchWait": "soon"}})
        assert any("CommitBatchWait" in p for p in exc_info.value.problems)

    def test_malformed_amount_rejected(self, miner):
        with pytest.raises(ConfigError):
            apply_overrides(miner, {"Fees": {"MaxCommitGasFee": "0.5 dollars"}})

    def test_non_mapping_rejected(self, miner):
        with pytest.raises(ConfigError):
            apply_overrides(miner, ["Sealing"])

    def test_persisted_form_reloads(self, miner):
        reloaded = apply_overrides(default_storage_miner(), to_config_dict(miner))
        assert to_config_dict(reloaded) == to_config_dict(miner)

    def test_full_node_persisted_form_reloads(self):
        full = default_full_node()
        reloaded = apply_overrides(default_full_node(), json.loads(json.dumps(to_config_dict(full))))
        assert to_config_dict(reloaded) == to_config_dict(full)


# =============================================================================
# Invariants
# =============================================================================


class TestInvariants:
    """Tests for cross-field checks after the overlay."""

    def test_defaults_valid(self):
        assert load_config("miner") == default_storage_miner()

    def test_min_above_max_commit_batch(self):
        problems = _problems({"Sealing": {"MinCommitBatch": 900}})
        assert "Sealing.MinCommitBatch (900) must be <= Sealing.MaxCommitBatch (819)" in problems

    def test_max_commit_batch_above_ceiling(self):
        problems = _problems({"Sealing": {"MaxCommitBatch": 1000}})
        assert "protocol aggregation ceiling" in problems

    def test_precommit_batch_above_ceiling(self):
        problems = _problems({"Sealing": {"MaxPreCommitBatch": 257}})
        assert "Sealing.MaxPreCommitBatch" in problems

    def test_commit_slack_not_below_wait(self):
        problems = _problems({"Sealing": {"CommitBatchSlack": "48h"}})
        assert "Sealing.CommitBatchSlack (48h0m0s) must be < Sealing.CommitBatchWait (24h0m0s)" in problems

    def test_precommit_wait_past_ticket_expiration(self):
        problems = _problems({"Sealing": {"PreCommitBatchWait": "32h"}})
        assert "precommit ticket expiration" in problems

    def test_commit_wait_past_prove_commit_window(self):
        problems = _problems({"Sealing": {"CommitBatchWait": "800h"}})
        assert "prove commit expiration" in problems

    def test_start_buffer_past_seal_duration(self):
        problems = _problems({"Dealmaking": {"StartEpochSealingBuffer": 3000}})
        assert "Dealmaking.StartEpochSealingBuffer" in problems

    def test_negative_counts(self):
        problems = _problems({"Dealmaking": {"MaxDealsPerPublishMsg": -1}})
        assert "Dealmaking.MaxDealsPerPublishMsg must be >= 0" in problems

    def test_zero_capacity(self):
        problems = _problems({"DAGStore": {"MaxConcurrentIndex": 0}, "IndexProvider": {"EntriesChunkSize": 0}})
        assert "DAGStore.MaxConcurrentIndex" in problems
        assert "IndexProvider.EntriesChunkSize" in problems

    def test_negative_fee(self):
        problems = _problems({"Fees": {"MaxPreCommitBatchGasFee": {"Base": "-1"}}})
        assert "Fees.MaxPreCommitBatchGasFee.Base must not be negative" in problems

    def test_external_pricing_needs_path(self):
        problems = _problems({"Dealmaking": {"RetrievalPricing": {"Strategy": "external"}}})
        assert "External.Path" in problems

    def test_every_problem_reported(self):
        problems = _problems({
            "Sealing": {"MinCommitBatch": 900, "CommitBatchSlack": "48h"},
            "Libp2p": {"ConnMgrLow": 500},
        })
        assert "MinCommitBatch" in problems
        assert "CommitBatchSlack" in problems
        assert "Libp2p.ConnMgrLow" in problems

    def test_network_version_ceiling(self):
        cfg = default_storage_miner(NetworkVersion.V21)
        assert check_storage_miner(cfg, NetworkVersion.V21) == []

    def test_validate_config_returns_tree(self, miner):
        assert validate_config(miner) is miner

    def test_unsupported_network_version(self):
        with pytest.raises(ConfigError) as exc_info:
            load_config("miner", {"Sealing": {"CommitBatchWait": "12h"}}, NetworkVersion.V12)
        assert "network version 12" in str(exc_info.value)

    def test_unknown_network_version(self):
        with pytest.raises(ConfigError):
            load_config("miner", None, 99)


class TestRaftInvariants:
    """Tests for follower tuning checks."""

    def test_negative_retries(self):
        assert "Raft.CommitRetries" in _problems({"CommitRetries": -1}, role="raft")

    def test_zero_timeouts(self):
        problems = _problems({"WaitForLeaderTimeout": "0s", "NetworkTimeout": "-1s"}, role="raft")
        assert "Raft.WaitForLeaderTimeout must be positive" in problems
        assert "Raft.NetworkTimeout must be positive" in problems

    def test_full_node_cluster_section(self):
        problems = _problems({"Cluster": {"CommitRetries": -2}}, role="full")
        assert "Cluster.CommitRetries" in problems

    def test_peer_set(self):
        cfg = load_config("raft", {"InitPeersetMultiAddr": ["/ip4/10.0.0.1/tcp/1347/p2p/12D3KooW"]})
        assert cfg.init_peerset_multi_addr == ["/ip4/10.0.0.1/tcp/1347/p2p/12D3KooW"]


# =============================================================================
# Override Documents
# =============================================================================


class TestOverrideFiles:
    """Tests for override documents on disk."""

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "miner.json"
        path.write_text(json.dumps({"Sealing": {"CommitBatchWait": "6h"}}))
        cfg = load_config("miner", path)
        assert cfg.sealing.commit_batch_wait == Duration.of(hours=6)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "miner.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigError):
            load_overrides(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "miner.json"
        path.write_text("{Sealing:")
        with pytest.raises(ConfigError):
            load_overrides(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_overrides(tmp_path / "absent.json")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
