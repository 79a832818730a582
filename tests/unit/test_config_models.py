"""Unit tests for the pydantic config models and defaults merging."""

import pytest
from pydantic import ValidationError

from cdc_reconciler.config.defaults import load_defaults, merge_configs
from cdc_reconciler.config.models import KafkaConfig, PlatformConfig, TopicSpec


class TestTopicSpec:
    def test_defaults(self):
        spec = TopicSpec(name="cdc.Transaction")
        assert (spec.partitions, spec.replication_factor) == (3, 1)
        assert spec.compression_type == "lz4"

    def test_rejects_zero_partitions(self):
        with pytest.raises(ValidationError):
            TopicSpec(name="t", partitions=0)

    def test_bare_names_expand(self):
        cfg = KafkaConfig(topics=["a", {"name": "b", "partitions": 6}])
        assert [(t.name, t.partitions) for t in cfg.topics] == [("a", 3), ("b", 6)]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="more than once"):
            KafkaConfig(topics=["a", "a"])


class TestPlatformConfig:
    def test_model_defaults_match_builtin_yaml(self):
        from_yaml = PlatformConfig.model_validate(load_defaults("platform"))
        bare = PlatformConfig()
        assert from_yaml.connect == bare.connect
        assert from_yaml.database == bare.database

    def test_missing_defaults_raises(self):
        with pytest.raises(FileNotFoundError, match="nonexistent"):
            load_defaults("nonexistent")


class TestMergeConfigs:
    def test_deep_merge(self):
        base = {"connect": {"connect_url": "http://a", "timeout_seconds": 30}}
        result = merge_configs(base, {"connect": {"connect_url": "http://b"}})
        assert result == {"connect": {"connect_url": "http://b", "timeout_seconds": 30}}

    def test_non_mutating(self):
        base = {"a": {"x": 1}}
        merge_configs(base, {"a": {"y": 2}})
        assert "y" not in base["a"]
