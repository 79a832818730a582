"""Load and sanity-check the connector JSON document before any network call."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Self

import structlog
from pydantic import BaseModel, Field, ValidationError, model_validator

from cdc_reconciler.config.models import ValidationConfig
from cdc_reconciler.errors import (
    ConfigNotFoundError,
    InvalidConfigError,
    LoopbackHostError,
    PlaceholderCredentialError,
)

logger = structlog.get_logger()

REQUIRED_KEYS = ("connector.class", "database.hostname", "database.password")
# Debezium 2.x uses table.include.list; 1.x connectors still accept whitelist.
TABLE_FILTER_KEYS = ("table.include.list", "table.whitelist")
DEFAULT_DATABASE_PORT = 1433


class ConnectorDocument(BaseModel):
    """The connector definition POSTed to ``/connectors``.

    The document is opaque apart from the handful of keys the reconciler needs
    to probe the database and address the connector.
    """

    name: str = Field(min_length=1)
    config: dict[str, Any]

    @model_validator(mode="after")
    def check_required_keys(self) -> Self:
        missing = [k for k in REQUIRED_KEYS if not self.config.get(k)]
        if missing:
            msg = f"config is missing required key(s): {', '.join(missing)}"
            raise ValueError(msg)
        if not any(self.config.get(k) for k in TABLE_FILTER_KEYS):
            msg = f"config needs a table filter ({' or '.join(TABLE_FILTER_KEYS)})"
            raise ValueError(msg)
        port = self.config.get("database.port", DEFAULT_DATABASE_PORT)
        try:
            valid_port = 1 <= int(port) <= 65535
        except (TypeError, ValueError):
            valid_port = False
        if not valid_port:
            msg = f"database.port must be a number between 1 and 65535, got {port!r}"
            raise ValueError(msg)
        return self

    @property
    def connector_class(self) -> str:
        return str(self.config["connector.class"])

    @property
    def hostname(self) -> str:
        return str(self.config["database.hostname"])

    @property
    def port(self) -> int:
        return int(self.config.get("database.port", DEFAULT_DATABASE_PORT))

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "config": dict(self.config)}


def _find_placeholder(
    config: dict[str, Any], settings: ValidationConfig
) -> tuple[str, str] | None:
    for field in settings.credential_fields:
        value = config.get(field)
        if not isinstance(value, str):
            continue
        for placeholder in settings.placeholder_values:
            if placeholder and placeholder in value:
                return field, placeholder
    return None


def validate(
    path: str | Path, settings: ValidationConfig | None = None
) -> ConnectorDocument:
    """Read *path* and return the connector document, or raise a ConfigError.

    Reads the file and nothing else; no network access happens here.
    """
    settings = settings or ValidationConfig()
    p = Path(path)
    if not p.is_file():
        raise ConfigNotFoundError(str(p))

    try:
        raw = json.loads(p.read_text())
    except json.JSONDecodeError as exc:
        msg = f"Failed to parse JSON in {p} at line {exc.lineno}, column {exc.colno}"
        raise InvalidConfigError(msg) from exc
    if not isinstance(raw, dict):
        msg = f"Expected a JSON object at top level in {p}, got {type(raw).__name__}"
        raise InvalidConfigError(msg)

    # Runs before schema validation: a template with a placeholder is
    # reported as such even when other keys are missing.
    config = raw.get("config")
    found = _find_placeholder(config, settings) if isinstance(config, dict) else None
    if found is not None:
        field, placeholder = found
        raise PlaceholderCredentialError(str(p), field, placeholder)

    try:
        document = ConnectorDocument.model_validate(raw)
    except ValidationError as exc:
        msg = f"Invalid connector config ({p}):\n{exc}"
        raise InvalidConfigError(msg) from exc

    host = document.hostname.strip().lower()
    if host in settings.loopback_hosts:
        raise LoopbackHostError(document.hostname)
    if host in settings.bridge_aliases:
        logger.info("config.bridge_alias", hostname=document.hostname)

    logger.info(
        "config.valid",
        path=str(p),
        connector=document.name,
        connector_class=document.connector_class,
    )
    return document
