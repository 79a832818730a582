"""Fixtures for integration tests against a running Kafka + Connect stack.

The stack is not started here.  Point the tests at it with::

    KAFKA_BROKER=localhost:29092
    KAFKA_CONNECT_URL=http://localhost:8083
    CDC_IT_CONNECTOR_CONFIG=config/kafka/connect-debezium.json  # optional

Tests are skipped when the broker or Connect does not answer.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import httpx
import pytest
from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient

from cdc_reconciler.config.models import (
    ConnectConfig,
    KafkaConfig,
    PlatformConfig,
    ProbePolicy,
)

BOOTSTRAP = os.environ.get("KAFKA_BROKER", "localhost:29092")
CONNECT_URL = os.environ.get("KAFKA_CONNECT_URL", "http://localhost:8083")


def _kafka_up(bootstrap: str) -> bool:
    try:
        meta = AdminClient({"bootstrap.servers": bootstrap}).list_topics(timeout=5)
    except KafkaException:
        return False
    return bool(meta.brokers)


def _connect_up(url: str) -> bool:
    try:
        return httpx.get(f"{url}/", timeout=5).status_code == 200
    except httpx.HTTPError:
        return False


@pytest.fixture(scope="session")
def kafka_available() -> str:
    if not _kafka_up(BOOTSTRAP):
        pytest.skip(f"Kafka not reachable at {BOOTSTRAP}")
    return BOOTSTRAP


@pytest.fixture(scope="session")
def connect_available() -> str:
    if not _connect_up(CONNECT_URL):
        pytest.skip(f"Kafka Connect not reachable at {CONNECT_URL}")
    return CONNECT_URL


@pytest.fixture
def topic_prefix(kafka_available):
    """Unique topic prefix; topics under it are deleted after the test."""
    prefix = f"it-{uuid.uuid4().hex[:8]}."
    yield prefix
    admin = AdminClient({"bootstrap.servers": kafka_available})
    names = [t for t in admin.list_topics(timeout=10).topics if t.startswith(prefix)]
    if names:
        for fut in admin.delete_topics(names, operation_timeout=30).values():
            fut.result()


@pytest.fixture
def kafka_config(kafka_available, topic_prefix) -> KafkaConfig:
    return KafkaConfig(
        bootstrap_servers=kafka_available,
        ready=ProbePolicy(max_attempts=3, interval_seconds=1),
        topics=[f"{topic_prefix}cdc.Transaction", f"{topic_prefix}connect-status"],
        cdc_topic_prefixes=[f"{topic_prefix}cdc."],
    )


@pytest.fixture
def connector_config_path() -> Path:
    raw = os.environ.get("CDC_IT_CONNECTOR_CONFIG")
    if not raw:
        pytest.skip("CDC_IT_CONNECTOR_CONFIG not set")
    return Path(raw)


@pytest.fixture
def platform(connect_available, kafka_config) -> PlatformConfig:
    return PlatformConfig(
        connect=ConnectConfig(
            connect_url=connect_available,
            ready=ProbePolicy(max_attempts=3, interval_seconds=1),
        ),
        kafka=kafka_config,
    )
