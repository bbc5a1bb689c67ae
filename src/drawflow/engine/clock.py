# src/drawflow/engine/clock.py
"""Time source for readiness polling and resource activation.

BuildOrchestrator.await_ready sleeps between polls and LocalExecutionEngine
decides whether a resource is ACTIVE from elapsed time. Both take a Clock,
so a test hands the same MockClock to each and a full build finishes
without waiting.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall-clock implementation backed by the time module."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class MockClock:
    """Manually driven clock.

    sleep() returns at once, moves time forward and appends the duration to
    ``sleeps`` so tests can assert on the polling schedule. advance() moves
    time without recording a sleep, e.g. to simulate an activation delay
    elapsing between calls.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"MockClock cannot advance by a negative amount: {seconds}")
        self._now += seconds


DEFAULT_CLOCK: Clock = SystemClock()
