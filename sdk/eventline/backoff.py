"""Randomized exponential backoff used between delivery attempts."""

from __future__ import annotations

import random

from eventline.config import BackoffConfig, build_config


class BackoffPolicy:
    """Computes increasing, jittered retry intervals in milliseconds.

    Each call to :meth:`next_interval` multiplies the base interval by
    *multiplier* and spreads the result by up to ``randomization_factor``
    in either direction. The result is capped at *max_timeout_ms*; there is
    no lower cap, so an interval may fall slightly below *min_timeout_ms*.
    """

    def __init__(
        self,
        min_timeout_ms: float | None = None,
        max_timeout_ms: float | None = None,
        multiplier: float | None = None,
        randomization_factor: float | None = None,
    ) -> None:
        config = build_config(
            BackoffConfig,
            min_timeout_ms=min_timeout_ms,
            max_timeout_ms=max_timeout_ms,
            multiplier=multiplier,
            randomization_factor=randomization_factor,
        )
        self.min_timeout_ms = config.min_timeout_ms
        self.max_timeout_ms = config.max_timeout_ms
        self.multiplier = config.multiplier
        self.randomization_factor = config.randomization_factor
        self.attempts = 0

    def next_interval(self) -> float:
        """Return the next backoff interval in milliseconds."""
        interval = self.min_timeout_ms * (self.multiplier ** self.attempts)
        interval = self._add_jitter(interval)
        self.attempts += 1
        return min(interval, self.max_timeout_ms)

    def reset(self) -> None:
        self.attempts = 0

    def _add_jitter(self, base: float) -> float:
        r = random.random()
        deviation = base * self.randomization_factor * r
        if r < 0.5:
            return base - deviation
        return base + deviation
