"""Compound reachability check: database as seen from inside Kafka Connect.

The connector runs inside the Connect container, so the database must be
reachable from *that* network namespace.  The check first confirms that the
intermediate hop (typically ``host.docker.internal``) resolves and answers,
then that the database port accepts connections.
"""

from __future__ import annotations

import re

import structlog

from cdc_reconciler.errors import ProbeTimeoutError, UnreachableError
from cdc_reconciler.probes.readiness import ProbeFailure, ProbeResult, ReadinessProbe
from cdc_reconciler.runtime.container import ContainerRuntime

logger = structlog.get_logger()

_PORT_OPEN = re.compile(r"succeeded|open", re.IGNORECASE)

RESOLVE_HINTS = (
    "On Windows/Mac: make sure Docker Desktop is running",
    "On Linux: add --add-host=host.docker.internal:host-gateway to the "
    "Connect service",
)


def port_hints(port: int) -> tuple[str, ...]:
    return (
        "Make sure the database server is running",
        "Make sure TCP/IP is enabled in the database server configuration",
        f"Make sure the firewall allows port {port}",
        f"Make sure the server listens on 0.0.0.0:{port}, not just 127.0.0.1",
    )


class RouteFailure(ProbeFailure):
    def __init__(self, stage: str, detail: str) -> None:
        super().__init__(f"{stage}: {detail}")
        self.stage = stage
        self.detail = detail


class RouteCheck:
    """Resolve the hop, then probe the port, both via ``docker exec``."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        container: str,
        host: str,
        port: int,
        *,
        ping_count: int = 2,
    ) -> None:
        self.runtime = runtime
        self.container = container
        self.host = host
        self.port = port
        self.ping_count = ping_count
        self.name = f"{host}:{port} via {container}"

    async def check(self) -> None:
        resolved = await self.runtime.exec(
            self.container, "ping", "-c", str(self.ping_count), self.host
        )
        if not resolved.ok:
            raise RouteFailure("resolve", resolved.output.strip() or "ping failed")
        logger.info("route.hop_reachable", host=self.host, container=self.container)

        probed = await self.runtime.exec(
            self.container, "nc", "-zv", self.host, str(self.port)
        )
        if not _PORT_OPEN.search(probed.output):
            raise RouteFailure("port", probed.output.strip() or "no response")
        logger.info("route.port_open", host=self.host, port=self.port)

    async def verify(self, probe: ReadinessProbe | None = None) -> ProbeResult:
        """Run the check under *probe*'s budget (one attempt by default)."""
        probe = probe or ReadinessProbe(max_attempts=1, interval_seconds=0)
        try:
            return await probe.await_ready(self)
        except ProbeTimeoutError as exc:
            cause = exc.__cause__
            stage = cause.stage if isinstance(cause, RouteFailure) else "resolve"
            detail = cause.detail if isinstance(cause, RouteFailure) else str(exc)
            if stage == "resolve":
                raise UnreachableError(
                    self.host, stage, detail, hints=RESOLVE_HINTS
                ) from exc
            raise UnreachableError(
                f"{self.host}:{self.port}", stage, detail, hints=port_hints(self.port)
            ) from exc
