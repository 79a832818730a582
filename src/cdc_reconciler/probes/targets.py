"""Concrete readiness targets: HTTP endpoint, TCP port, Kafka broker."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient  # type: ignore[attr-defined]

from cdc_reconciler.probes.readiness import ProbeFailure


class HttpTarget:
    """Ready when ``GET url`` answers with the expected status (200)."""

    def __init__(
        self,
        name: str,
        url: str,
        *,
        timeout_seconds: float = 5.0,
        expected_status: int = 200,
    ) -> None:
        self.name = name
        self.url = url
        self._timeout = timeout_seconds
        self._expected = expected_status

    async def check(self) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self.url)
        except httpx.HTTPError as exc:
            raise ProbeFailure(f"{self.url}: {exc!r}") from exc
        if resp.status_code != self._expected:
            raise ProbeFailure(f"{self.url} returned HTTP {resp.status_code}")


class TcpTarget:
    """Ready when a TCP connection to ``host:port`` succeeds."""

    def __init__(
        self, name: str, host: str, port: int, *, timeout_seconds: float = 5.0
    ) -> None:
        self.name = name
        self.host = host
        self.port = port
        self._timeout = timeout_seconds

    async def check(self) -> None:
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), self._timeout
            )
        except (OSError, TimeoutError) as exc:
            raise ProbeFailure(f"{self.host}:{self.port}: {exc!r}") from exc
        writer.close()
        await writer.wait_closed()


class BrokerTarget:
    """Ready when the broker answers a metadata request."""

    def __init__(
        self,
        bootstrap_servers: str,
        *,
        timeout_seconds: float = 10.0,
        name: str = "kafka",
    ) -> None:
        self.name = name
        self.bootstrap_servers = bootstrap_servers
        self._timeout = timeout_seconds
        self._admin: Any = None

    async def check(self) -> None:
        if self._admin is None:
            self._admin = AdminClient({"bootstrap.servers": self.bootstrap_servers})
        try:
            meta = await asyncio.to_thread(
                self._admin.list_topics, timeout=self._timeout
            )
        except KafkaException as exc:
            raise ProbeFailure(f"{self.bootstrap_servers}: {exc}") from exc
        if not meta.brokers:
            raise ProbeFailure(f"{self.bootstrap_servers}: no brokers in metadata")
