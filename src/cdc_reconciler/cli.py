"""Typer CLI for the CDC connector reconciler."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cdc_reconciler.config.loader import load_platform_config
from cdc_reconciler.config.models import OnExists, PlatformConfig
from cdc_reconciler.config.validator import validate as validate_document
from cdc_reconciler.connect.client import ConnectClient
from cdc_reconciler.connect.reconciler import ReconcileState
from cdc_reconciler.errors import (
    ConnectorError,
    CreateFailedError,
    DeleteFailedError,
    ReconcilerError,
)
from cdc_reconciler.observability.health import Status, check_platform_health
from cdc_reconciler.observability.logging import configure_logging
from cdc_reconciler.pipeline.orchestrator import (
    SetupOrchestrator,
    SetupResult,
    resolve_connector_name,
)
from cdc_reconciler.reporting.status import render_body, render_status, summarize
from cdc_reconciler.streaming.topics import TopicOutcome, TopicProvisioner, TopicReport

console = Console()
app = typer.Typer(name="cdc-reconcile", help="Provision and reconcile a CDC connector")

PLATFORM_OPTION = typer.Option(None, "--platform-config", help="Platform YAML")
LOG_JSON_OPTION = typer.Option(False, "--log-json", help="Emit JSON log lines")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Debug logging")


def _load(platform_config: str | None) -> PlatformConfig:
    try:
        return load_platform_config(Path(platform_config) if platform_config else None)
    except (FileNotFoundError, ValueError, TypeError) as exc:
        console.print(f"[red]Platform config error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _fail(exc: ReconcilerError, log_tail: list[str] | None = None) -> None:
    console.print(f"[red]✗ {escape(str(exc))}[/red]")
    if isinstance(exc, (CreateFailedError, DeleteFailedError)):
        render_body(console, exc.body)
    for hint in exc.hints:
        console.print(f"[yellow]Hint: {escape(hint)}[/yellow]")
    if log_tail:
        console.print("[yellow]Recent Kafka Connect logs:[/yellow]")
        for line in log_tail:
            console.print(line, markup=False, highlight=False)


def _render_topics(report: TopicReport) -> None:
    table = Table(title="Topics")
    table.add_column("Topic", style="cyan")
    table.add_column("Outcome")
    table.add_column("Partitions")
    table.add_column("Replication")
    table.add_column("Detail")
    styles = {
        TopicOutcome.CREATED: "green",
        TopicOutcome.EXISTED: "blue",
        TopicOutcome.FAILED: "red",
    }
    for r in report.results:
        desc = report.descriptions.get(r.name)
        style = styles[r.outcome]
        table.add_row(
            r.name,
            f"[{style}]{r.outcome}[/{style}]",
            str(desc.partitions) if desc else "-",
            str(desc.replication_factor) if desc else "-",
            escape(r.error or r.mismatch or ""),
        )
    console.print(table)
    console.print(f"[dim]{len(report.cluster_topics)} topic(s) on the cluster[/dim]")


def _render_setup(result: SetupResult, platform: PlatformConfig) -> None:
    outcome = result.outcome
    if result.topics is not None:
        _render_topics(result.topics)
    if outcome.status is not None:
        render_status(console, outcome.status)

    container = platform.connect.container or "kafka-connect"
    if outcome.state == ReconcileState.RUNNING:
        console.print(f"[green]✓ Connector '{outcome.name}' created and RUNNING[/green]")
    elif outcome.state == ReconcileState.DEGRADED:
        console.print(
            f"[yellow]Warning: connector '{outcome.name}' was created but is not "
            f"running properly yet[/yellow]"
        )
        console.print(f"[yellow]Check logs: docker logs {container}[/yellow]")
        for line in result.log_tail:
            console.print(line, markup=False, highlight=False)
    else:
        state = outcome.status.connector_state if outcome.status else "UNKNOWN"
        console.print(
            f"[yellow]Kept existing connector '{outcome.name}' as found "
            f"(state {state}, health not re-verified)[/yellow]"
        )

    if result.cdc_topics:
        console.print("[cyan]CDC topics:[/cyan]")
        for topic in result.cdc_topics:
            console.print(f"  - {topic}")
    else:
        console.print(
            "[dim]No CDC topics found yet. They will be created when data changes.[/dim]"
        )

    url = platform.connect.connect_url.rstrip("/")
    console.print(f"Monitor: curl {url}/connectors/{outcome.name}/status")


@app.command()
def setup(
    config_path: str = typer.Argument(..., help="Path to the connector JSON"),
    platform_config: str | None = PLATFORM_OPTION,
    on_exists: OnExists | None = typer.Option(
        None,
        "--on-exists",
        case_sensitive=False,
        help="What to do if the connector already exists",
    ),
    skip_topics: bool = typer.Option(
        False, "--skip-topics", help="Do not provision Kafka topics"
    ),
    log_json: bool = LOG_JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Provision topics and create (or replace) the CDC connector."""
    configure_logging(json_output=log_json, verbose=verbose)
    platform = _load(platform_config)
    orchestrator = SetupOrchestrator(
        platform,
        on_exists=on_exists,
        confirm=typer.confirm,
        provision_topics=False if skip_topics else None,
    )
    try:
        result = asyncio.run(orchestrator.run(config_path))
    except ReconcilerError as exc:
        tail: list[str] = []
        if isinstance(exc, ConnectorError):
            tail = asyncio.run(orchestrator.recent_logs())
        _fail(exc, tail)
        raise typer.Exit(1) from exc
    _render_setup(result, platform)
    raise typer.Exit(result.exit_code)


@app.command()
def topics(
    platform_config: str | None = PLATFORM_OPTION,
    log_json: bool = LOG_JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create the configured Kafka topics if they do not exist."""
    configure_logging(json_output=log_json, verbose=verbose)
    platform = _load(platform_config)
    provisioner = TopicProvisioner(platform.kafka)
    try:
        report = asyncio.run(provisioner.ensure_topics())
    except ReconcilerError as exc:
        _fail(exc)
        raise typer.Exit(1) from exc
    _render_topics(report)
    if not report.ok:
        console.print(f"[red]✗ Failed to create: {', '.join(report.failed)}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Kafka topics setup complete[/green]")


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to the connector JSON"),
    platform_config: str | None = PLATFORM_OPTION,
) -> None:
    """Validate a connector configuration file without touching the network."""
    platform = _load(platform_config)
    try:
        document = validate_document(config_path, platform.validation)
        name = resolve_connector_name(platform, document)
    except ReconcilerError as exc:
        _fail(exc)
        raise typer.Exit(1) from exc
    console.print(f"[green]Valid[/green]: connector={name}")
    console.print(f"  class:    {document.connector_class}")
    console.print(f"  database: {document.hostname}:{document.port}")


@app.command()
def status(
    name: str | None = typer.Argument(None, help="Connector name"),
    platform_config: str | None = PLATFORM_OPTION,
) -> None:
    """Show the live status of the connector."""
    platform = _load(platform_config)
    connector = name or platform.connect.connector_name
    if connector is None:
        console.print("[red]No connector name given or configured[/red]")
        raise typer.Exit(1)

    async def _status() -> str:
        async with ConnectClient(platform.connect) as client:
            resp = await client.get_status(connector)
            return resp.text

    try:
        report = summarize(asyncio.run(_status()))
    except ReconcilerError as exc:
        _fail(exc)
        raise typer.Exit(1) from exc
    render_status(console, report)
    if not report.healthy:
        raise typer.Exit(1)


@app.command()
def health(platform_config: str | None = PLATFORM_OPTION) -> None:
    """Check Kafka Connect and the broker once."""
    platform = _load(platform_config)
    result = asyncio.run(check_platform_health(platform))

    table = Table(title="Platform Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    for c in result.components:
        style = "green" if c.status == Status.HEALTHY else "red"
        table.add_row(c.name, f"[{style}]{c.status}[/{style}]", escape(c.detail))

    console.print(table)
    if not result.healthy:
        raise typer.Exit(1)
