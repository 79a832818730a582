"""Bounded readiness polling for the services the pipeline depends on."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from cdc_reconciler.config.models import ProbePolicy
from cdc_reconciler.errors import ProbeTimeoutError

logger = structlog.get_logger()


class ProbeFailure(Exception):
    """A single check found the target not (yet) healthy."""


@dataclass
class ProbeResult:
    service_name: str
    reachable: bool
    attempts_used: int
    last_error: str | None = None


@runtime_checkable
class ProbeTarget(Protocol):
    """Anything that can be checked for readiness.

    ``check()`` returns on success and raises :class:`ProbeFailure` when the
    target is not ready.  Any other exception is a bug and propagates.
    """

    name: str

    async def check(self) -> None: ...


class ReadinessProbe:
    """Poll a target once per interval, at most ``max_attempts`` times.

    Returns as soon as a check succeeds.  When the budget (or the optional
    wall-clock deadline) runs out, raises :class:`ProbeTimeoutError`.
    Cancelling the awaiting task aborts the wait immediately.
    """

    def __init__(
        self,
        max_attempts: int = 30,
        interval_seconds: float = 10.0,
        deadline_seconds: float | None = None,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.deadline_seconds = deadline_seconds

    @classmethod
    def from_policy(cls, policy: ProbePolicy) -> ReadinessProbe:
        return cls(
            max_attempts=policy.max_attempts,
            interval_seconds=policy.interval_seconds,
            deadline_seconds=policy.deadline_seconds,
        )

    def _log_wait(self, target: ProbeTarget) -> Callable[[RetryCallState], None]:
        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.info(
                "probe.waiting",
                service=target.name,
                attempt=state.attempt_number,
                max_attempts=self.max_attempts,
                error=str(exc) if exc else None,
            )

        return _before_sleep

    async def await_ready(
        self, target: ProbeTarget, *, hints: Sequence[str] = ()
    ) -> ProbeResult:
        stop = stop_after_attempt(self.max_attempts)
        if self.deadline_seconds is not None:
            stop = stop | stop_after_delay(self.deadline_seconds)

        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop,
                wait=wait_fixed(self.interval_seconds),
                retry=retry_if_exception_type(ProbeFailure),
                before_sleep=self._log_wait(target),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await target.check()
        except ProbeFailure as exc:
            result = ProbeResult(
                service_name=target.name,
                reachable=False,
                attempts_used=attempts,
                last_error=str(exc),
            )
            logger.error(
                "probe.timeout",
                service=target.name,
                attempts=attempts,
                error=result.last_error,
            )
            raise ProbeTimeoutError(result, hints=hints) from exc

        logger.info("probe.ready", service=target.name, attempts=attempts)
        return ProbeResult(
            service_name=target.name, reachable=True, attempts_used=attempts
        )
