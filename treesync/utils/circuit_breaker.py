"""
Circuit breaker that stops hammering the content service after repeated failures.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from treesync.exceptions import TreeSyncError

log = logging.getLogger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""

    CLOSED = "closed"  # Calls pass through
    OPEN = "open"  # Calls are refused
    HALF_OPEN = "half_open"  # Probing whether the service is back


class CircuitOpenError(TreeSyncError):
    """Raised when a call is refused because the circuit is open."""


class CircuitBreaker:
    """
    Async context manager guarding remote calls.

    After `failure_threshold` consecutive failures the circuit opens for
    `recovery_timeout` seconds. The next call is let through as a trial and
    `success_threshold` successful trials close it again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        success_threshold: int = 2,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._trial_successes = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def _maybe_half_open(self) -> None:
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return
        waited = time.monotonic() - self._opened_at
        if waited >= self.recovery_timeout:
            log.info(
                f"[yellow]Content service cooled down for {waited:.0f}s, "
                "trying again.[/yellow]"
            )
            self._state = CircuitState.HALF_OPEN
            self._trial_successes = 0

    async def _record_success(self) -> None:
        async with self._lock:
            self._failures = 0
            if self._state == CircuitState.HALF_OPEN:
                self._trial_successes += 1
                if self._trial_successes >= self.success_threshold:
                    log.info("[green]✓ Content service recovered.[/green]")
                    self._state = CircuitState.CLOSED

    async def _record_failure(self) -> None:
        async with self._lock:
            self._failures += 1
            if self._state == CircuitState.HALF_OPEN:
                log.warning("[yellow]Trial call failed, circuit opened again.[/yellow]")
                self._open()
            elif (
                self._state == CircuitState.CLOSED
                and self._failures >= self.failure_threshold
            ):
                log.error(
                    f"[red]✗ {self._failures} consecutive failures, pausing calls "
                    f"for {self.recovery_timeout:.0f}s.[/red]"
                )
                self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
        self._failures = 0
        self._trial_successes = 0

    async def __aenter__(self):
        async with self._lock:
            self._maybe_half_open()
            if self._state == CircuitState.OPEN:
                raise CircuitOpenError(
                    "Content service is unavailable, retrying in "
                    f"{self.recovery_timeout:.0f} seconds."
                )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            await self._record_failure()
        else:
            await self._record_success()
