"""REST API wrapper for Kafka Connect."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from cdc_reconciler.config.models import ConnectConfig
from cdc_reconciler.errors import UnreachableError

logger = structlog.get_logger()


class ConnectClient:
    """Thin async wrapper around the Kafka Connect REST API.

    Status codes are returned to the caller rather than raised, because the
    reconciler branches on them.  Transport failures raise UnreachableError.
    """

    def __init__(self, config: ConnectConfig | None = None) -> None:
        self._config = config or ConnectConfig()
        self._client = httpx.AsyncClient(
            base_url=self._config.connect_url,
            timeout=self._config.timeout_seconds,
        )

    @property
    def url(self) -> str:
        return self._config.connect_url

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ConnectClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise UnreachableError(
                f"{self._config.connect_url}{path}",
                "request",
                repr(exc),
                hints=["Make sure Kafka Connect is running"],
            ) from exc

    # -- Health ----------------------------------------------------------------

    async def ping(self) -> int:
        resp = await self._request("GET", "/")
        return resp.status_code

    # -- Connectors ------------------------------------------------------------

    async def connector_exists(self, name: str) -> bool:
        """200 means the connector exists; any other code is treated as absent."""
        resp = await self._request("GET", f"/connectors/{name}")
        if resp.status_code == 200:
            return True
        if resp.status_code != 404:
            logger.warning(
                "connector.exists_unexpected_status",
                connector=name,
                status_code=resp.status_code,
            )
        return False

    async def get_status(self, name: str) -> httpx.Response:
        return await self._request("GET", f"/connectors/{name}/status")

    async def list_connectors(self) -> list[str]:
        resp = await self._request("GET", "/connectors")
        resp.raise_for_status()
        return resp.json()  # type: ignore[no-any-return]

    async def create_connector(self, payload: dict[str, Any]) -> httpx.Response:
        resp = await self._request("POST", "/connectors", json=payload)
        logger.debug(
            "connector.create_response",
            connector=payload.get("name"),
            status_code=resp.status_code,
        )
        return resp

    async def delete_connector(self, name: str) -> httpx.Response:
        resp = await self._request("DELETE", f"/connectors/{name}")
        logger.debug(
            "connector.delete_response", connector=name, status_code=resp.status_code
        )
        return resp
