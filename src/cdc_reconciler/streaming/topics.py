"""Idempotent Kafka topic provisioning."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog
from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic  # type: ignore[attr-defined]

from cdc_reconciler.config.models import KafkaConfig, TopicSpec
from cdc_reconciler.errors import (
    BrokerRequestError,
    BrokerUnavailableError,
    ProbeTimeoutError,
)
from cdc_reconciler.probes.readiness import ProbeResult, ReadinessProbe
from cdc_reconciler.probes.targets import BrokerTarget

logger = structlog.get_logger()


class TopicOutcome(StrEnum):
    CREATED = "created"
    EXISTED = "existed"
    FAILED = "failed"


@dataclass
class TopicDescription:
    name: str
    partitions: int
    replication_factor: int


@dataclass
class TopicResult:
    name: str
    outcome: TopicOutcome
    error: str | None = None
    # Set when an existing topic differs from its spec; reported, never fixed.
    mismatch: str | None = None


@dataclass
class TopicReport:
    results: list[TopicResult] = field(default_factory=list)
    cluster_topics: list[str] = field(default_factory=list)
    descriptions: dict[str, TopicDescription] = field(default_factory=dict)

    def _named(self, outcome: TopicOutcome) -> list[str]:
        return [r.name for r in self.results if r.outcome == outcome]

    @property
    def created(self) -> list[str]:
        return self._named(TopicOutcome.CREATED)

    @property
    def existed(self) -> list[str]:
        return self._named(TopicOutcome.EXISTED)

    @property
    def failed(self) -> list[str]:
        return self._named(TopicOutcome.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed


def describe_metadata(name: str, topic_meta: Any) -> TopicDescription:
    """Build a TopicDescription from confluent_kafka ``TopicMetadata``."""
    partitions = topic_meta.partitions or {}
    replicas = 0
    if partitions:
        first = partitions[min(partitions)]
        replicas = len(first.replicas)
    return TopicDescription(
        name=name, partitions=len(partitions), replication_factor=replicas
    )


def _mismatch(spec: TopicSpec, desc: TopicDescription) -> str | None:
    diffs: list[str] = []
    if desc.partitions != spec.partitions:
        diffs.append(f"partitions {desc.partitions} != {spec.partitions}")
    if desc.replication_factor != spec.replication_factor:
        diffs.append(
            f"replication factor {desc.replication_factor} != "
            f"{spec.replication_factor}"
        )
    return ", ".join(diffs) or None


def _already_exists(exc: BaseException) -> bool:
    if not isinstance(exc, KafkaException) or not exc.args:
        return False
    err = exc.args[0]
    return isinstance(err, KafkaError) and err.code() == KafkaError.TOPIC_ALREADY_EXISTS


class TopicProvisioner:
    """Ensures the fixed topic set exists on the broker.

    Creation is if-not-exists: re-running is a no-op for topics that are
    already present.  A failure on one topic never stops the others.
    """

    def __init__(self, config: KafkaConfig, admin: Any | None = None) -> None:
        self._config = config
        self._admin = admin

    @property
    def admin(self) -> Any:
        if self._admin is None:
            self._admin = AdminClient(
                {"bootstrap.servers": self._config.bootstrap_servers}
            )
        return self._admin

    async def wait_for_broker(self) -> ProbeResult:
        probe = ReadinessProbe.from_policy(self._config.ready)
        target = BrokerTarget(
            self._config.bootstrap_servers,
            timeout_seconds=self._config.request_timeout_seconds,
        )
        try:
            return await probe.await_ready(
                target,
                hints=[
                    "Make sure the Kafka broker is running and "
                    f"{self._config.bootstrap_servers} is reachable from this host",
                ],
            )
        except ProbeTimeoutError as exc:
            raise BrokerUnavailableError(self._config.bootstrap_servers, exc) from exc

    async def _metadata(self) -> Any:
        return await asyncio.to_thread(
            self.admin.list_topics, timeout=self._config.request_timeout_seconds
        )

    async def ensure_topics(
        self, specs: Sequence[TopicSpec] | None = None
    ) -> TopicReport:
        await self.wait_for_broker()
        wanted = list(self._config.topics if specs is None else specs)

        try:
            existing = (await self._metadata()).topics
        except KafkaException as exc:
            raise BrokerRequestError(
                self._config.bootstrap_servers, "metadata request", str(exc)
            ) from exc
        results: dict[str, TopicResult] = {}
        to_create: list[TopicSpec] = []
        for spec in wanted:
            if spec.name in existing:
                desc = describe_metadata(spec.name, existing[spec.name])
                results[spec.name] = TopicResult(
                    spec.name, TopicOutcome.EXISTED, mismatch=_mismatch(spec, desc)
                )
                logger.info("topic.exists", topic=spec.name)
            else:
                to_create.append(spec)

        if to_create:
            try:
                futures = self.admin.create_topics(
                    [
                        NewTopic(
                            spec.name,
                            num_partitions=spec.partitions,
                            replication_factor=spec.replication_factor,
                            config=spec.topic_config(),
                        )
                        for spec in to_create
                    ],
                    operation_timeout=self._config.request_timeout_seconds,
                )
            except KafkaException as exc:
                raise BrokerRequestError(
                    self._config.bootstrap_servers, "create_topics", str(exc)
                ) from exc
            for spec in to_create:
                results[spec.name] = await self._await_creation(
                    spec.name, futures[spec.name]
                )

        report = TopicReport(results=[results[s.name] for s in wanted])
        await self.describe(report, wanted)
        logger.info(
            "topics.provisioned",
            created=len(report.created),
            existed=len(report.existed),
            failed=len(report.failed),
        )
        return report

    async def _await_creation(self, name: str, future: Any) -> TopicResult:
        try:
            await asyncio.to_thread(future.result)
        except Exception as exc:
            if _already_exists(exc):
                logger.info("topic.exists", topic=name)
                return TopicResult(name, TopicOutcome.EXISTED)
            logger.error("topic.create_failed", topic=name, error=str(exc))
            return TopicResult(name, TopicOutcome.FAILED, error=str(exc))
        logger.info("topic.created", topic=name)
        return TopicResult(name, TopicOutcome.CREATED)

    async def describe(self, report: TopicReport, specs: Sequence[TopicSpec]) -> None:
        """Listing pass: record the cluster's final view of the topics."""
        try:
            topics = (await self._metadata()).topics
        except KafkaException as exc:
            logger.warning("topics.list_failed", error=str(exc))
            return
        report.cluster_topics = sorted(topics)
        for spec in specs:
            if spec.name in topics:
                report.descriptions[spec.name] = describe_metadata(
                    spec.name, topics[spec.name]
                )

    async def list_topics(self, prefixes: Sequence[str] | None = None) -> list[str]:
        """Return cluster topic names, optionally filtered by prefix."""
        names = sorted((await self._metadata()).topics)
        if not prefixes:
            return names
        return [n for n in names if any(n.startswith(p) for p in prefixes)]
