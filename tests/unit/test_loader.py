"""Unit tests for the YAML platform config loader and env var resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from cdc_reconciler.config.loader import load_platform_config, resolve_env_vars
from cdc_reconciler.config.models import DatabaseProbeMode, OnExists

EXAMPLE_PLATFORM = Path(__file__).resolve().parents[2] / "examples" / "platform.yaml"


class TestResolveEnvVars:
    def test_plain_string_unchanged(self):
        assert resolve_env_vars("hello") == "hello"

    def test_substitutes_env_var(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("KAFKA_BROKER", "broker:9092")
        assert resolve_env_vars("${KAFKA_BROKER}") == "broker:9092"

    def test_default_when_var_missing(self):
        assert resolve_env_vars("${MISSING_VAR:-fallback}") == "fallback"

    def test_default_with_colons(self):
        result = resolve_env_vars("${MISSING:-http://localhost:8083}")
        assert result == "http://localhost:8083"

    def test_missing_var_no_default_raises(self):
        with pytest.raises(ValueError, match="UNDEFINED_VAR"):
            resolve_env_vars("${UNDEFINED_VAR}")

    def test_recursive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TOPIC", "cdc.Transaction")
        data = {"kafka": {"topics": ["${TOPIC}", "connect-status"], "port": 9092}}
        assert resolve_env_vars(data) == {
            "kafka": {"topics": ["cdc.Transaction", "connect-status"], "port": 9092}
        }

    def test_missing_var_names_the_key(self):
        data = {"kafka": {"topics": ["ok", "${UNDEFINED_TOPIC}"]}}
        with pytest.raises(ValueError, match=r"kafka\.topics\[1\]"):
            resolve_env_vars(data)

    def test_escaped_brace_in_default(self):
        assert resolve_env_vars("${MISSING:-a\\}b}") == "a}b"


class TestLoadPlatformConfig:
    def test_defaults_when_no_path(self):
        cfg = load_platform_config()
        assert cfg.connect.connect_url == "http://localhost:8083"
        assert cfg.connect.ready.max_attempts == 30
        assert cfg.connect.ready.interval_seconds == 10
        assert cfg.kafka.bootstrap_servers == "localhost:29092"
        assert cfg.kafka.ready.interval_seconds == 5
        assert [t.name for t in cfg.kafka.topics] == [
            "cdc.Transaction",
            "schema-changes.fraud-detection",
            "connect-configs",
            "connect-offsets",
            "connect-status",
        ]
        assert cfg.on_exists == OnExists.ASK

    def test_default_topic_settings(self):
        spec = load_platform_config().kafka.topics[0]
        assert spec.partitions == 3
        assert spec.replication_factor == 1
        assert spec.topic_config() == {
            "retention.ms": "604800000",
            "compression.type": "lz4",
            "segment.ms": "3600000",
        }

    def test_overrides_merge_with_defaults(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text(
            "connect:\n  connect_url: http://connect:8083\n"
            "database:\n  mode: direct\n  port: 1434\n"
        )
        cfg = load_platform_config(path)
        assert cfg.connect.connect_url == "http://connect:8083"
        assert cfg.connect.container == "kafka-connect"
        assert cfg.database.mode == DatabaseProbeMode.DIRECT
        assert cfg.database.port == 1434

    def test_topics_list_replaces_defaults(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("kafka:\n  topics:\n    - only.one\n")
        cfg = load_platform_config(path)
        assert [t.name for t in cfg.kafka.topics] == ["only.one"]

    def test_example_platform_config(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("KAFKA_BROKER", "kafka-broker:9092")
        cfg = load_platform_config(EXAMPLE_PLATFORM)
        assert cfg.kafka.bootstrap_servers == "kafka-broker:9092"
        assert cfg.connect.connector_name == "mssql-fraud-detection-connector"
        schema_topic = next(
            t for t in cfg.kafka.topics if t.name == "schema-changes.fraud-detection"
        )
        assert schema_topic.partitions == 1

    def test_invalid_value_raises(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("on_exists: sometimes\n")
        with pytest.raises(ValueError, match="Invalid platform config"):
            load_platform_config(path)

    def test_unknown_section_rejected(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("sinks: []\n")
        with pytest.raises(ValueError, match="Invalid platform config"):
            load_platform_config(path)

    def test_bad_yaml_reports_location(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("connect:\n  connect_url: [unclosed\n")
        with pytest.raises(ValueError, match="line"):
            load_platform_config(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_platform_config(tmp_path / "absent.yaml")

    def test_top_level_list_rejected(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("- connect\n")
        with pytest.raises(TypeError, match="list"):
            load_platform_config(path)

    def test_unset_variable_in_file(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("kafka:\n  bootstrap_servers: ${NO_SUCH_BROKER}\n")
        with pytest.raises(ValueError, match="kafka.bootstrap_servers"):
            load_platform_config(path)

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "platform.yaml"
        path.write_text("")
        assert load_platform_config(path).kafka.bootstrap_servers == "localhost:29092"
