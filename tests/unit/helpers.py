"""Builders for connector documents and Connect status payloads."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

CONNECT_URL = "http://connect:8083"
CONNECTOR = "mssql-fraud-detection-connector"


def connector_payload(**overrides: Any) -> dict[str, Any]:
    config = {
        "connector.class": "io.debezium.connector.sqlserver.SqlServerConnector",
        "database.hostname": "host.docker.internal",
        "database.port": "1433",
        "database.user": "sa",
        "database.password": "s3cret",
        "database.names": "FraudDetection",
        "table.include.list": "dbo.Transaction",
    }
    config.update(overrides)
    return {"name": CONNECTOR, "config": config}


def status_payload(
    connector_state: str = "RUNNING", task_states: tuple[str, ...] = ("RUNNING",)
) -> dict[str, Any]:
    tasks: list[dict[str, Any]] = []
    for i, state in enumerate(task_states):
        task: dict[str, Any] = {"id": i, "state": state, "worker_id": "connect:8083"}
        if state == "FAILED":
            task["trace"] = (
                "org.apache.kafka.connect.errors.ConnectException: "
                "Login failed for user 'sa'\n\tat io.debezium..."
            )
        tasks.append(task)
    return {
        "name": CONNECTOR,
        "connector": {"state": connector_state, "worker_id": "connect:8083"},
        "tasks": tasks,
        "type": "source",
    }


def topic_metadata(partitions: int = 3, replicas: int = 1) -> MagicMock:
    """Mimic confluent_kafka TopicMetadata."""
    meta = MagicMock()
    meta.partitions = {
        p: MagicMock(replicas=list(range(replicas))) for p in range(partitions)
    }
    return meta


def cluster_metadata(topics: dict[str, MagicMock]) -> MagicMock:
    """Mimic confluent_kafka ClusterMetadata."""
    return MagicMock(topics=dict(topics), brokers={1: MagicMock()})
