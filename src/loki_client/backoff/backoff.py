"""Exponential backoff with jitter for retrying push requests."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class BackoffConfig:
    """Configuration for the retry backoff."""

    min_period: float = 0.5  # Initial backoff delay (seconds)
    max_period: float = 300.0  # Maximum backoff delay (seconds)
    max_retries: int = 10  # Maximum attempts, 0 retries forever


def _double(delay: float, limit: float) -> float:
    return min(delay * 2, limit)


class Backoff:
    """Tracks retries and sleeps for increasing, jittered intervals.

    Typical use::

        backoff = Backoff(config)
        while backoff.ongoing():
            if attempt():
                break
            backoff.wait()
    """

    def __init__(self, config: BackoffConfig, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self._sleep = sleep
        self._num_retries = 0
        self._next_delay_min = config.min_period
        self._next_delay_max = _double(config.min_period, config.max_period)

    @property
    def num_retries(self) -> int:
        return self._num_retries

    def ongoing(self) -> bool:
        """Return True while the retry budget is not exhausted."""
        return self.config.max_retries == 0 or self._num_retries < self.config.max_retries

    def next_delay(self) -> float:
        """Pick the next sleep duration and grow the window for the one after."""
        if self._next_delay_max > self._next_delay_min:
            delay = random.uniform(self._next_delay_min, self._next_delay_max)
        else:
            delay = self._next_delay_min
        self._next_delay_min = _double(self._next_delay_min, self.config.max_period)
        self._next_delay_max = _double(self._next_delay_max, self.config.max_period)
        return delay

    def wait(self) -> None:
        """Record a failed attempt and sleep if another one is allowed."""
        self._num_retries += 1
        if self.ongoing():
            self._sleep(self.next_delay())
