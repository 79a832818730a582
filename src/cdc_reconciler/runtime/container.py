"""Run diagnostics inside named containers via the docker CLI."""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class ExecResult:
    returncode: int
    # stdout and stderr combined; nc reports on stderr.
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ContainerRuntime:
    """Thin wrapper around ``docker exec`` and ``docker logs``."""

    def __init__(self, binary: str = "docker", timeout_seconds: float = 30.0) -> None:
        self._binary = binary
        self._timeout = timeout_seconds

    def _run(self, args: list[str], timeout: float) -> ExecResult:
        try:
            proc = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError:
            return ExecResult(returncode=127, output=f"{self._binary}: not found")
        except subprocess.TimeoutExpired:
            return ExecResult(returncode=124, output=f"timed out after {timeout}s")
        return ExecResult(
            returncode=proc.returncode,
            output=(proc.stdout or "") + (proc.stderr or ""),
        )

    async def exec(
        self, container: str, *command: str, timeout: float | None = None
    ) -> ExecResult:
        """Run *command* inside *container* and capture its output."""
        args = [self._binary, "exec", container, *command]
        result = await asyncio.to_thread(self._run, args, timeout or self._timeout)
        logger.debug(
            "container.exec",
            container=container,
            command=" ".join(command),
            returncode=result.returncode,
        )
        return result

    async def logs(self, container: str, tail: int = 50) -> list[str]:
        """Return the last *tail* log lines of *container* (empty on failure)."""
        args = [self._binary, "logs", "--tail", str(tail), container]
        result = await asyncio.to_thread(self._run, args, self._timeout)
        if not result.ok:
            logger.warning(
                "container.logs_failed",
                container=container,
                returncode=result.returncode,
                output=result.output.strip(),
            )
            return []
        return result.output.splitlines()
