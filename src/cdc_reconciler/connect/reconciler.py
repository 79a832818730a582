"""Converge the connector registered on Kafka Connect with the config file.

States visited by :meth:`ConnectorReconciler.reconcile`::

    ABSENT ─────────────────────────┐
    EXISTS ─┬─ KEEP ──> EXISTS_KEEP │ (terminal, status reported)
            ├─ FAIL ──> ConnectorExistsError
            └─ REPLACE ─> EXISTS_REPLACE (delete, await absence)
                                    ▼
                               CREATING ──> VERIFYING ──> RUNNING | DEGRADED

DEGRADED is a warning outcome: the connector was created but had not
converged to a healthy state within the settle window.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

import structlog
from tenacity import AsyncRetrying, retry_if_result, stop_after_delay, wait_fixed

from cdc_reconciler.config.models import ConnectConfig, OnExists
from cdc_reconciler.config.validator import ConnectorDocument
from cdc_reconciler.connect.client import ConnectClient
from cdc_reconciler.connect.hints import classify_failure, hint_for
from cdc_reconciler.errors import (
    ConnectorExistsError,
    CreateFailedError,
    DeleteFailedError,
    UnreachableError,
)
from cdc_reconciler.reporting.status import StatusReport, summarize

logger = structlog.get_logger()

T = TypeVar("T")


class ReconcileState(StrEnum):
    ABSENT = "absent"
    EXISTS_KEEP = "exists_keep"
    EXISTS_REPLACE = "exists_replace"
    CREATING = "creating"
    VERIFYING = "verifying"
    RUNNING = "running"
    DEGRADED = "degraded"


@dataclass
class ReconcileOutcome:
    name: str
    state: ReconcileState
    transitions: list[ReconcileState] = field(default_factory=list)
    status: StatusReport | None = None
    created: dict[str, Any] | None = None

    @property
    def kept_existing(self) -> bool:
        return self.state == ReconcileState.EXISTS_KEEP

    @property
    def degraded(self) -> bool:
        return self.state == ReconcileState.DEGRADED


class ConnectorReconciler:
    def __init__(
        self,
        client: ConnectClient,
        name: str,
        config: ConnectConfig | None = None,
        *,
        on_exists: OnExists = OnExists.FAIL,
        confirm: Callable[[str], bool] | None = None,
    ) -> None:
        if on_exists == OnExists.ASK and confirm is None:
            msg = "on_exists=ask requires a confirm callback"
            raise ValueError(msg)
        self._client = client
        self.name = name
        self._config = config or ConnectConfig()
        self._on_exists = on_exists
        self._confirm = confirm

    # -- Steps -----------------------------------------------------------------

    async def exists(self) -> bool:
        return await self._client.connector_exists(self.name)

    async def check_status(self) -> StatusReport:
        resp = await self._client.get_status(self.name)
        report = summarize(resp.text)
        if resp.status_code != 200:
            logger.warning(
                "connector.status_unavailable",
                connector=self.name,
                status_code=resp.status_code,
            )
        return report

    async def delete(self) -> None:
        resp = await self._client.delete_connector(self.name)
        if resp.status_code not in (200, 204):
            logger.error(
                "connector.delete_failed",
                connector=self.name,
                status_code=resp.status_code,
            )
            raise DeleteFailedError(self.name, resp.status_code, resp.text)
        logger.info("connector.deleted", connector=self.name)

    async def create(self, document: ConnectorDocument) -> dict[str, Any]:
        resp = await self._client.create_connector(document.to_payload())
        if resp.status_code not in (200, 201):
            category = classify_failure(resp.text)
            hint = hint_for(category)
            logger.error(
                "connector.create_failed",
                connector=self.name,
                status_code=resp.status_code,
                category=category.value,
            )
            raise CreateFailedError(
                self.name,
                resp.status_code,
                resp.text,
                category,
                hints=[hint] if hint else [],
            )
        logger.info("connector.created", connector=self.name)
        try:
            body = resp.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def _poll_until(
        self,
        check: Callable[[], Awaitable[T]],
        done: Callable[[T], bool],
        ceiling: float,
    ) -> T:
        """Poll *check* until *done* holds or *ceiling* seconds have passed.

        Returns the last value observed either way.
        """
        retrying = AsyncRetrying(
            stop=stop_after_delay(ceiling),
            wait=wait_fixed(self._config.settle_poll_seconds),
            retry=retry_if_result(lambda value: not done(value)),
            retry_error_callback=lambda state: state.outcome.result(),  # type: ignore[union-attr]
        )
        return await retrying(check)  # type: ignore[no-any-return]

    async def await_absent(self) -> bool:
        """Wait for an asynchronous delete to become observable."""
        still_there = await self._poll_until(
            self.exists, lambda present: not present, self._config.delete_settle_seconds
        )
        if still_there:
            logger.warning(
                "connector.delete_not_observed",
                connector=self.name,
                settle_seconds=self._config.delete_settle_seconds,
            )
        return not still_there

    async def _status_or_unknown(self) -> StatusReport:
        try:
            return await self.check_status()
        except UnreachableError as exc:
            return summarize(str(exc))

    async def verify(self) -> StatusReport:
        """Poll status until the connector and at least one task run."""
        return await self._poll_until(
            self._status_or_unknown,
            lambda report: report.healthy and bool(report.tasks),
            self._config.create_settle_seconds,
        )

    def _decide(self) -> OnExists:
        if self._on_exists != OnExists.ASK:
            return self._on_exists
        assert self._confirm is not None
        replace = self._confirm(
            f"Connector '{self.name}' already exists. Delete and recreate it?"
        )
        return OnExists.REPLACE if replace else OnExists.KEEP

    # -- Orchestration ---------------------------------------------------------

    async def reconcile(self, document: ConnectorDocument) -> ReconcileOutcome:
        transitions: list[ReconcileState] = []

        if await self.exists():
            logger.info("connector.exists", connector=self.name)
            decision = self._decide()
            if decision == OnExists.FAIL:
                raise ConnectorExistsError(self.name)
            if decision == OnExists.KEEP:
                transitions.append(ReconcileState.EXISTS_KEEP)
                status = await self.check_status()
                logger.info(
                    "connector.kept",
                    connector=self.name,
                    state=status.connector_state.value,
                )
                return ReconcileOutcome(
                    self.name, ReconcileState.EXISTS_KEEP, transitions, status
                )
            transitions.append(ReconcileState.EXISTS_REPLACE)
            await self.delete()
            await self.await_absent()
        else:
            transitions.append(ReconcileState.ABSENT)

        transitions.append(ReconcileState.CREATING)
        created = await self.create(document)

        transitions.append(ReconcileState.VERIFYING)
        status = await self.verify()
        if status.healthy:
            final = ReconcileState.RUNNING
            logger.info("connector.running", connector=self.name)
        else:
            final = ReconcileState.DEGRADED
            logger.warning(
                "connector.degraded",
                connector=self.name,
                state=status.connector_state.value,
                root_cause=status.root_cause,
            )
        transitions.append(final)
        return ReconcileOutcome(self.name, final, transitions, status, created)
