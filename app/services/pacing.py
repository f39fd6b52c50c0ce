"""
Inter-entity pacing policies for upstream rate limits.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class PacingPolicy(Protocol):
    def start(self) -> None:
        """
        Mark the beginning of a fan-out loop.
        """
        ...

    def pause(self) -> None:
        """
        Block until the next primary entity may be processed.
        """
        ...


class NoPacing:
    def start(self) -> None:
        return None

    def pause(self) -> None:
        return None


class FixedDelayPacing:
    """
    Sleep a fixed delay on every pause.
    """

    def __init__(self, *, delay_seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
        self._delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    def start(self) -> None:
        return None

    def pause(self) -> None:
        if self._delay_seconds > 0:
            self._sleep(self._delay_seconds)


class MinimumIntervalPacing:
    """
    Enforce a minimum interval between the starts of consecutive entities.

    Time already spent fetching counts toward the interval.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval_seconds = max(0.0, interval_seconds)
        self._sleep = sleep
        self._monotonic = monotonic
        self._last_release = 0.0

    def start(self) -> None:
        self._last_release = self._monotonic()

    def pause(self) -> None:
        if self._interval_seconds <= 0:
            return

        elapsed = self._monotonic() - self._last_release
        remaining = self._interval_seconds - elapsed
        if remaining > 0:
            self._sleep(remaining)
        self._last_release = self._monotonic()


def build_pacing_policy(*, strategy: str, seconds: float) -> PacingPolicy:
    normalized = strategy.strip().lower()
    if normalized == "none" or seconds <= 0:
        return NoPacing()
    if normalized == "fixed":
        return FixedDelayPacing(delay_seconds=seconds)
    if normalized == "min_interval":
        return MinimumIntervalPacing(interval_seconds=seconds)
    raise ValueError(f"Unsupported pacing strategy '{strategy}'. Allowed: fixed, min_interval, none.")
