"""Tests for the event bus, the circuit breaker and formatting helpers."""

from __future__ import annotations

import pytest

from treesync.utils.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)
from treesync.utils.events import EventBus
from treesync.utils.formatting import format_duration, format_size


class TestEventBus:
    def test_topic_and_wildcard_handlers(self) -> None:
        bus = EventBus()
        exact, everything = [], []
        bus.subscribe("sync:complete", exact.append)
        bus.subscribe("*", everything.append)

        bus.publish("sync:complete", {"success": True})
        bus.publish("other")

        assert exact == [{"topic": "sync:complete", "success": True}]
        assert [e["topic"] for e in everything] == ["sync:complete", "other"]

    def test_failing_handler_does_not_block_others(self) -> None:
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("t", broken)
        bus.subscribe("t", seen.append)
        bus.publish("t")

        assert seen == [{"topic": "t"}]


class TestCircuitBreaker:
    async def _fail(self, breaker: CircuitBreaker) -> None:
        with pytest.raises(OSError):
            async with breaker:
                raise OSError("unreachable")

    async def test_opens_after_threshold(self) -> None:
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        await self._fail(breaker)
        assert breaker.state == CircuitState.CLOSED
        await self._fail(breaker)
        assert breaker.state == CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            async with breaker:
                pass

    async def test_recovers_after_successful_trials(self) -> None:
        breaker = CircuitBreaker(
            failure_threshold=1, recovery_timeout=0, success_threshold=2
        )
        await self._fail(breaker)
        assert breaker.state == CircuitState.OPEN

        async with breaker:
            pass
        assert breaker.state == CircuitState.HALF_OPEN
        async with breaker:
            pass
        assert breaker.state == CircuitState.CLOSED

    async def test_failed_trial_reopens(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        await self._fail(breaker)
        await self._fail(breaker)
        assert breaker.state == CircuitState.OPEN

    async def test_success_resets_failure_count(self) -> None:
        breaker = CircuitBreaker(failure_threshold=2)
        await self._fail(breaker)
        async with breaker:
            pass
        await self._fail(breaker)
        assert breaker.state == CircuitState.CLOSED


class TestFormatting:
    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 B"), (999, "999.0 B"), (1000, "1.0 KB"), (145_300_000, "145.3 MB")],
    )
    def test_format_size(self, size, expected) -> None:
        assert format_size(size) == expected

    @pytest.mark.parametrize(
        "seconds, expected", [(0, "0s"), (61, "1m 1s"), (9252, "2h 34m 12s")]
    )
    def test_format_duration(self, seconds, expected) -> None:
        assert format_duration(seconds) == expected
