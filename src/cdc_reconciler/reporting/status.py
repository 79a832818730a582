"""Turn Kafka Connect status payloads into a terminal-facing report."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.table import Table


class ConnectorState(StrEnum):
    UNASSIGNED = "UNASSIGNED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FAILED = "FAILED"
    RESTARTING = "RESTARTING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> ConnectorState:
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class TaskStatus:
    id: int | None
    state: ConnectorState
    worker_id: str | None = None
    trace: str | None = None


@dataclass
class StatusReport:
    raw_text: str
    payload: dict[str, Any] | None = None
    connector_state: ConnectorState = ConnectorState.UNKNOWN
    connector_trace: str | None = None
    tasks: list[TaskStatus] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        """Connector RUNNING and every task RUNNING."""
        return self.connector_state == ConnectorState.RUNNING and all(
            t.state == ConnectorState.RUNNING for t in self.tasks
        )

    @property
    def failed_tasks(self) -> list[TaskStatus]:
        return [t for t in self.tasks if t.state == ConnectorState.FAILED]

    @property
    def root_cause(self) -> str | None:
        # A failed task is more specific than a failed connector.
        if self.failed_tasks:
            task = self.failed_tasks[0]
            return f"task {task.id} FAILED: {_first_line(task.trace)}"
        if self.connector_state == ConnectorState.FAILED:
            return f"connector FAILED: {_first_line(self.connector_trace)}"
        if not self.healthy:
            not_running = [t for t in self.tasks if t.state != ConnectorState.RUNNING]
            if self.connector_state == ConnectorState.RUNNING and not_running:
                return f"task {not_running[0].id} {not_running[0].state}"
            return f"connector {self.connector_state}"
        return None


def _first_line(trace: str | None) -> str:
    lines = (trace or "").strip().splitlines()
    return lines[0] if lines else "no trace reported"


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _task(entry: Any) -> TaskStatus:
    if not isinstance(entry, dict):
        return TaskStatus(id=None, state=ConnectorState.UNKNOWN)
    task_id = entry.get("id")
    return TaskStatus(
        id=task_id if isinstance(task_id, int) else None,
        state=ConnectorState.parse(entry.get("state")),
        worker_id=_text(entry.get("worker_id")),
        trace=_text(entry.get("trace")),
    )


def summarize(payload: str | bytes | dict[str, Any] | None) -> StatusReport:
    """Build a StatusReport; unparseable payloads yield an UNKNOWN report."""
    if isinstance(payload, dict):
        data: Any = payload
        raw = json.dumps(payload)
    else:
        if isinstance(payload, bytes):
            raw = payload.decode("utf-8", errors="replace")
        else:
            raw = payload or ""
        try:
            data = json.loads(raw)
        except ValueError:
            return StatusReport(raw_text=raw)

    if not isinstance(data, dict):
        return StatusReport(raw_text=raw)

    connector = data.get("connector")
    connector = connector if isinstance(connector, dict) else {}
    tasks = data.get("tasks")
    return StatusReport(
        raw_text=raw,
        payload=data,
        connector_state=ConnectorState.parse(connector.get("state")),
        connector_trace=_text(connector.get("trace")),
        tasks=[_task(t) for t in tasks] if isinstance(tasks, list) else [],
    )


def render_body(console: Console, body: str) -> None:
    """Pretty-print JSON, or print the text as-is when it is not JSON."""
    try:
        data = json.loads(body)
    except ValueError:
        if body:
            console.print(body, markup=False, highlight=False)
        return
    console.print(JSON.from_data(data))


def render_status(console: Console, report: StatusReport) -> None:
    render_body(console, report.raw_text)

    if report.tasks:
        table = Table(title="Tasks")
        table.add_column("Task", style="cyan")
        table.add_column("State")
        table.add_column("Worker")
        for task in report.tasks:
            style = "green" if task.state == ConnectorState.RUNNING else "red"
            table.add_row(
                str(task.id),
                f"[{style}]{task.state}[/{style}]",
                escape(task.worker_id or ""),
            )
        console.print(table)

    if report.healthy:
        console.print("[green]✓ Connector is RUNNING[/green]")
    else:
        console.print(f"[red]✗ Connector state: {report.connector_state}[/red]")
        if report.root_cause:
            console.print(f"[red]  {escape(report.root_cause)}[/red]")
