"""Pydantic configuration models for the reconciler."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class OnExists(StrEnum):
    """What to do when the connector is already registered."""

    KEEP = "keep"
    REPLACE = "replace"
    FAIL = "fail"
    ASK = "ask"


class DatabaseProbeMode(StrEnum):
    """How the source database's reachability is verified."""

    CONTAINER = "container"  # ping + nc from inside the Connect container
    DIRECT = "direct"  # TCP connect from this host
    SKIP = "skip"


class ProbePolicy(BaseModel):
    """Bounded polling budget: at most ``max_attempts`` checks, one per interval."""

    max_attempts: int = Field(default=30, ge=1)
    interval_seconds: float = Field(default=10.0, ge=0.0)
    deadline_seconds: float | None = Field(default=None, gt=0)


class TopicSpec(BaseModel):
    """Desired shape of one Kafka topic."""

    name: str = Field(min_length=1)
    partitions: int = Field(default=3, ge=1)
    replication_factor: int = Field(default=1, ge=1)
    retention_ms: int = Field(default=604_800_000, ge=-1)
    compression_type: str = "lz4"
    segment_ms: int = Field(default=3_600_000, ge=1)

    def topic_config(self) -> dict[str, str]:
        """Broker-side topic configuration entries."""
        return {
            "retention.ms": str(self.retention_ms),
            "compression.type": self.compression_type,
            "segment.ms": str(self.segment_ms),
        }


class ConnectConfig(BaseModel):
    """Kafka Connect REST API and connector lifecycle settings."""

    connect_url: str = "http://localhost:8083"
    # Falls back to the "name" field of the connector document when unset.
    connector_name: str | None = None
    # Name of the Connect container, used for diagnostics and log tails.
    container: str | None = "kafka-connect"
    timeout_seconds: float = Field(default=30.0, gt=0)
    ready: ProbePolicy = ProbePolicy(max_attempts=30, interval_seconds=10.0)
    # Upper bounds on the post-delete and post-create polling.
    delete_settle_seconds: float = Field(default=5.0, ge=0.0)
    create_settle_seconds: float = Field(default=10.0, ge=0.0)
    settle_poll_seconds: float = Field(default=1.0, ge=0.0)
    log_tail_lines: int = Field(default=50, ge=0)


class KafkaConfig(BaseModel):
    """Broker address and the fixed topic set to provision."""

    bootstrap_servers: str = "localhost:29092"
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    ready: ProbePolicy = ProbePolicy(max_attempts=30, interval_seconds=5.0)
    topics: list[TopicSpec] = Field(default_factory=list)
    # Prefixes used to pick out CDC topics in the post-setup listing.
    cdc_topic_prefixes: list[str] = Field(default_factory=lambda: ["cdc."])

    @field_validator("topics", mode="before")
    @classmethod
    def expand_topic_names(cls, v: Any) -> Any:
        """Allow a bare topic name as shorthand for a spec with defaults."""
        if isinstance(v, list):
            return [{"name": t} if isinstance(t, str) else t for t in v]
        return v

    @field_validator("topics")
    @classmethod
    def unique_topic_names(cls, v: list[TopicSpec]) -> list[TopicSpec]:
        seen: set[str] = set()
        for spec in v:
            if spec.name in seen:
                msg = f"Topic '{spec.name}' is listed more than once"
                raise ValueError(msg)
            seen.add(spec.name)
        return v


class DatabaseProbeConfig(BaseModel):
    """How to verify that the source database is reachable from Connect."""

    mode: DatabaseProbeMode = DatabaseProbeMode.CONTAINER
    # Overrides database.port from the connector document.
    port: int | None = Field(default=None, ge=1, le=65535)
    ping_count: int = Field(default=2, ge=1)
    exec_timeout_seconds: float = Field(default=30.0, gt=0)
    ready: ProbePolicy = ProbePolicy(max_attempts=1, interval_seconds=5.0)


class ValidationConfig(BaseModel):
    """Sanity checks applied to the connector document before any network call."""

    placeholder_values: list[str] = Field(
        default_factory=lambda: ["YOUR_MSSQL_PASSWORD_HERE"]
    )
    credential_fields: list[str] = Field(
        default_factory=lambda: ["database.password", "database.user"]
    )
    bridge_aliases: list[str] = Field(
        default_factory=lambda: ["host.docker.internal"]
    )
    loopback_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "::1", "0.0.0.0"]
    )


class PlatformConfig(BaseModel, extra="forbid"):
    """Everything the reconciler needs besides the connector document itself."""

    connect: ConnectConfig = ConnectConfig()
    kafka: KafkaConfig = KafkaConfig()
    database: DatabaseProbeConfig = DatabaseProbeConfig()
    validation: ValidationConfig = ValidationConfig()
    on_exists: OnExists = OnExists.ASK
    provision_topics: bool = True
