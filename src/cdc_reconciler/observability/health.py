"""Single-shot health probes for the pipeline's dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from cdc_reconciler.config.models import PlatformConfig
from cdc_reconciler.probes.readiness import ProbeFailure, ProbeTarget
from cdc_reconciler.probes.targets import BrokerTarget, HttpTarget

logger = structlog.get_logger()


class Status(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    name: str
    status: Status = Status.UNKNOWN
    detail: str = ""


@dataclass
class PlatformHealth:
    components: list[ComponentHealth] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(c.status == Status.HEALTHY for c in self.components)

    @property
    def summary(self) -> dict[str, str]:
        return {c.name: c.status.value for c in self.components}


async def check_target(target: ProbeTarget, detail: str) -> ComponentHealth:
    """Run one readiness check without retrying."""
    try:
        await target.check()
    except ProbeFailure as exc:
        logger.info("health.unhealthy", component=target.name, error=str(exc))
        return ComponentHealth(
            name=target.name, status=Status.UNHEALTHY, detail=str(exc)
        )
    return ComponentHealth(name=target.name, status=Status.HEALTHY, detail=detail)


async def check_platform_health(platform: PlatformConfig | None = None) -> PlatformHealth:
    """Check Kafka Connect and the broker once each and aggregate the result."""
    cfg = platform or PlatformConfig()
    connect_url = cfg.connect.connect_url.rstrip("/")
    components = [
        await check_target(
            HttpTarget("kafka-connect", f"{connect_url}/"), connect_url
        ),
        await check_target(
            BrokerTarget(
                cfg.kafka.bootstrap_servers,
                timeout_seconds=cfg.kafka.request_timeout_seconds,
            ),
            cfg.kafka.bootstrap_servers,
        ),
    ]
    return PlatformHealth(components=components)
