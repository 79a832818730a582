"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import structlog

from cdc_reconciler.config.models import ConnectConfig, ProbePolicy
from cdc_reconciler.config.validator import ConnectorDocument

from .helpers import CONNECT_URL, CONNECTOR, connector_payload


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a connector document to disk and return its path."""

    def _write(payload: dict[str, Any] | None = None, **overrides: Any) -> Path:
        path = tmp_path / "connect-debezium.json"
        path.write_text(json.dumps(payload or connector_payload(**overrides)))
        return path

    return _write


@pytest.fixture
def document() -> ConnectorDocument:
    return ConnectorDocument.model_validate(connector_payload())


@pytest.fixture
def connect_config() -> ConnectConfig:
    """Connect settings with every wait set to zero."""
    return ConnectConfig(
        connect_url=CONNECT_URL,
        connector_name=CONNECTOR,
        ready=ProbePolicy(max_attempts=3, interval_seconds=0),
        delete_settle_seconds=0,
        create_settle_seconds=0,
        settle_poll_seconds=0,
    )
