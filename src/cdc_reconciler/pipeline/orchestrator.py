"""End-to-end setup: validate, probe, provision topics, reconcile, report.

Each stage gates the next.  Any ReconcilerError aborts the run; the only
soft outcome is a DEGRADED connector after a successful create.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from confluent_kafka import KafkaException

from cdc_reconciler.config.models import DatabaseProbeMode, OnExists, PlatformConfig
from cdc_reconciler.config.validator import ConnectorDocument, validate
from cdc_reconciler.connect.client import ConnectClient
from cdc_reconciler.connect.reconciler import (
    ConnectorReconciler,
    ReconcileOutcome,
    ReconcileState,
)
from cdc_reconciler.errors import InvalidConfigError
from cdc_reconciler.probes.readiness import ProbeResult, ReadinessProbe
from cdc_reconciler.probes.route import RouteCheck, port_hints
from cdc_reconciler.probes.targets import HttpTarget, TcpTarget
from cdc_reconciler.runtime.container import ContainerRuntime
from cdc_reconciler.streaming.topics import TopicProvisioner, TopicReport

logger = structlog.get_logger()

# A DEGRADED connector after a successful create is a warning, not a failure.
SUCCESS_STATES = frozenset(
    {ReconcileState.RUNNING, ReconcileState.DEGRADED, ReconcileState.EXISTS_KEEP}
)


@dataclass
class SetupResult:
    document: ConnectorDocument
    outcome: ReconcileOutcome
    topics: TopicReport | None = None
    cdc_topics: list[str] = field(default_factory=list)
    log_tail: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.outcome.state in SUCCESS_STATES else 1


def resolve_connector_name(platform: PlatformConfig, document: ConnectorDocument) -> str:
    """The configured connector name, defaulting to the document's own name."""
    configured = platform.connect.connector_name
    if configured is None:
        return document.name
    if configured != document.name:
        msg = (
            f"connect.connector_name '{configured}' does not match the "
            f"connector document name '{document.name}'"
        )
        raise InvalidConfigError(msg)
    return configured


class SetupOrchestrator:
    def __init__(
        self,
        platform: PlatformConfig,
        *,
        on_exists: OnExists | None = None,
        confirm: Callable[[str], bool] | None = None,
        runtime: ContainerRuntime | None = None,
        topics: TopicProvisioner | None = None,
        provision_topics: bool | None = None,
    ) -> None:
        self.platform = platform
        self.on_exists = on_exists or platform.on_exists
        self.confirm = confirm
        self.runtime = runtime or ContainerRuntime(
            timeout_seconds=platform.database.exec_timeout_seconds
        )
        self.topics = topics or TopicProvisioner(platform.kafka)
        self.provision_topics = (
            platform.provision_topics if provision_topics is None else provision_topics
        )

    async def wait_for_connect(self) -> ProbeResult:
        url = self.platform.connect.connect_url.rstrip("/")
        probe = ReadinessProbe.from_policy(self.platform.connect.ready)
        return await probe.await_ready(
            HttpTarget(
                "kafka-connect",
                f"{url}/",
                timeout_seconds=self.platform.connect.timeout_seconds,
            ),
            hints=[
                "Make sure the Docker services are running: docker compose up -d",
            ],
        )

    async def check_data_source(self, document: ConnectorDocument) -> ProbeResult | None:
        """Verify the database is reachable the way the connector will reach it."""
        db = self.platform.database
        port = db.port or document.port
        mode = db.mode
        container = self.platform.connect.container
        if mode == DatabaseProbeMode.CONTAINER and container is None:
            logger.warning("database.no_container", fallback="direct")
            mode = DatabaseProbeMode.DIRECT

        probe = ReadinessProbe.from_policy(db.ready)
        if mode == DatabaseProbeMode.SKIP:
            logger.info("database.check_skipped", host=document.hostname, port=port)
            return None
        if mode == DatabaseProbeMode.CONTAINER:
            assert container is not None
            check = RouteCheck(
                self.runtime,
                container,
                document.hostname,
                port,
                ping_count=db.ping_count,
            )
            return await check.verify(probe)
        return await probe.await_ready(
            TcpTarget("database", document.hostname, port),
            hints=port_hints(port),
        )

    async def recent_logs(self) -> list[str]:
        container = self.platform.connect.container
        lines = self.platform.connect.log_tail_lines
        if container is None or lines == 0:
            return []
        return await self.runtime.logs(container, tail=lines)

    async def list_cdc_topics(self) -> list[str]:
        try:
            return await self.topics.list_topics(self.platform.kafka.cdc_topic_prefixes)
        except KafkaException as exc:
            logger.warning("topics.list_failed", error=str(exc))
            return []

    async def run(self, config_path: str | Path) -> SetupResult:
        document = validate(config_path, self.platform.validation)
        name = resolve_connector_name(self.platform, document)
        log = logger.bind(connector=name)

        log.info("setup.stage", stage="connect_ready")
        await self.wait_for_connect()

        log.info("setup.stage", stage="data_source")
        await self.check_data_source(document)

        topic_report = None
        if self.provision_topics:
            log.info("setup.stage", stage="topics")
            topic_report = await self.topics.ensure_topics()
            if not topic_report.ok:
                log.warning("setup.topic_failures", failed=topic_report.failed)

        log.info("setup.stage", stage="reconcile")
        async with ConnectClient(self.platform.connect) as client:
            reconciler = ConnectorReconciler(
                client,
                name,
                self.platform.connect,
                on_exists=self.on_exists,
                confirm=self.confirm,
            )
            outcome = await reconciler.reconcile(document)

        result = SetupResult(
            document=document,
            outcome=outcome,
            topics=topic_report,
            cdc_topics=await self.list_cdc_topics(),
        )
        if outcome.degraded:
            result.log_tail = await self.recent_logs()
        log.info("setup.complete", state=outcome.state.value)
        return result
