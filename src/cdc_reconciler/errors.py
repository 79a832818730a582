"""Error taxonomy for the reconciler.

Every stage raises a subclass of :class:`ReconcilerError`.  The CLI catches the
base class, prints the message plus any operator hints, and exits non-zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cdc_reconciler.connect.hints import FailureCategory
    from cdc_reconciler.probes.readiness import ProbeResult


class ReconcilerError(Exception):
    """Base class for every gating failure."""

    def __init__(self, message: str, *, hints: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.hints: tuple[str, ...] = tuple(hints)


# -- Configuration -------------------------------------------------------------


class ConfigError(ReconcilerError):
    """The connector configuration file cannot be used as-is."""


class ConfigNotFoundError(ConfigError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Configuration file not found: {path}")
        self.path = path


class InvalidConfigError(ConfigError):
    pass


class PlaceholderCredentialError(ConfigError):
    def __init__(self, path: str, field: str, placeholder: str) -> None:
        super().__init__(
            f"Credential field '{field}' in {path} still holds the placeholder "
            f"'{placeholder}'",
            hints=[f"Change '{placeholder}' to the real value in {path}"],
        )
        self.path = path
        self.field = field
        self.placeholder = placeholder


class LoopbackHostError(ConfigError):
    def __init__(self, hostname: str) -> None:
        super().__init__(
            f"database.hostname '{hostname}' is a loopback address; it would "
            f"point at the Kafka Connect container itself",
            hints=[
                "Use host.docker.internal (or the database's routable address) "
                "for a database running on the Docker host",
            ],
        )
        self.hostname = hostname


# -- Dependencies --------------------------------------------------------------


class DependencyError(ReconcilerError):
    """A service the pipeline depends on is not usable."""


class ProbeTimeoutError(DependencyError):
    def __init__(self, result: ProbeResult, *, hints: Sequence[str] = ()) -> None:
        super().__init__(
            f"{result.service_name} is not ready after "
            f"{result.attempts_used} attempt(s): {result.last_error}",
            hints=hints,
        )
        self.result = result


class UnreachableError(DependencyError):
    def __init__(
        self, target: str, stage: str, detail: str, *, hints: Sequence[str] = ()
    ) -> None:
        super().__init__(f"Cannot reach {target} ({stage}): {detail}", hints=hints)
        self.target = target
        self.stage = stage


# -- Broker --------------------------------------------------------------------


class BrokerError(ReconcilerError):
    pass


class BrokerUnavailableError(BrokerError):
    def __init__(self, bootstrap_servers: str, cause: ProbeTimeoutError) -> None:
        super().__init__(
            f"Kafka at {bootstrap_servers} is not ready after "
            f"{cause.result.attempts_used} attempt(s)",
            hints=cause.hints,
        )
        self.bootstrap_servers = bootstrap_servers


class BrokerRequestError(BrokerError):
    def __init__(self, bootstrap_servers: str, operation: str, detail: str) -> None:
        super().__init__(
            f"Kafka at {bootstrap_servers} failed during {operation}: {detail}",
            hints=[
                "The broker answered the readiness check but then failed; "
                "check the broker logs and re-run",
            ],
        )
        self.bootstrap_servers = bootstrap_servers
        self.operation = operation


# -- Connector -----------------------------------------------------------------


class ConnectorError(ReconcilerError):
    pass


class ConnectorExistsError(ConnectorError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Connector '{name}' already exists",
            hints=["Re-run with --on-exists replace or --on-exists keep"],
        )
        self.name = name


class DeleteFailedError(ConnectorError):
    def __init__(self, name: str, http_code: int, body: str) -> None:
        super().__init__(f"Failed to delete connector '{name}' (HTTP {http_code})")
        self.name = name
        self.http_code = http_code
        self.body = body


class CreateFailedError(ConnectorError):
    def __init__(
        self,
        name: str,
        http_code: int,
        body: str,
        category: FailureCategory,
        *,
        hints: Sequence[str] = (),
    ) -> None:
        super().__init__(
            f"Failed to create connector '{name}' (HTTP {http_code})", hints=hints
        )
        self.name = name
        self.http_code = http_code
        self.body = body
        self.category = category
