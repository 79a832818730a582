"""Integration tests: topic provisioning and connector reconciliation.

Run with:
    pytest tests/integration -m integration -v
"""

from __future__ import annotations

import pytest

from cdc_reconciler.config.models import OnExists
from cdc_reconciler.config.validator import validate
from cdc_reconciler.connect.client import ConnectClient
from cdc_reconciler.connect.reconciler import ReconcileState
from cdc_reconciler.pipeline.orchestrator import SetupOrchestrator
from cdc_reconciler.streaming.topics import TopicProvisioner

pytestmark = pytest.mark.integration


class TestTopicProvisioning:
    async def test_create_then_no_op(self, kafka_config):
        provisioner = TopicProvisioner(kafka_config)

        first = await provisioner.ensure_topics()
        assert sorted(first.created) == sorted(t.name for t in kafka_config.topics)
        desc = first.descriptions[kafka_config.topics[0].name]
        assert desc.partitions == 3

        second = await provisioner.ensure_topics()
        assert second.created == []
        assert sorted(second.existed) == sorted(t.name for t in kafka_config.topics)

    async def test_cdc_listing(self, kafka_config):
        provisioner = TopicProvisioner(kafka_config)
        await provisioner.ensure_topics()
        names = await provisioner.list_topics(kafka_config.cdc_topic_prefixes)
        assert names == [kafka_config.topics[0].name]


class TestConnectorReconcile:
    async def test_setup_twice_replaces(self, platform, connector_config_path):
        name = validate(connector_config_path).name
        try:
            first = await SetupOrchestrator(
                platform, on_exists=OnExists.REPLACE
            ).run(connector_config_path)
            assert first.outcome.transitions[-1] in (
                ReconcileState.RUNNING,
                ReconcileState.DEGRADED,
            )

            second = await SetupOrchestrator(
                platform, on_exists=OnExists.REPLACE
            ).run(connector_config_path)
            assert second.outcome.transitions[0] == ReconcileState.EXISTS_REPLACE

            kept = await SetupOrchestrator(platform, on_exists=OnExists.KEEP).run(
                connector_config_path
            )
            assert kept.outcome.kept_existing
        finally:
            async with ConnectClient(platform.connect) as client:
                await client.delete_connector(name)
