"""Retry policy with exponential backoff and symmetric jitter."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable backoff configuration.

    Out-of-range values are clamped rather than rejected so that a policy
    built from user configuration is always usable.

    Attributes:
        max_attempts: Total attempts including the first call (>= 1).
        initial_delay: Delay in seconds before the first retry (>= 0).
        max_delay: Upper bound on any computed delay (>= initial_delay).
        multiplier: Exponential growth factor per attempt (>= 1.0).
        jitter: Fraction of the delay used as random +/- offset (0.0-1.0).
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        initial_delay = max(0.0, float(self.initial_delay))
        object.__setattr__(self, "max_attempts", max(1, int(self.max_attempts)))
        object.__setattr__(self, "initial_delay", initial_delay)
        object.__setattr__(self, "max_delay", max(initial_delay, float(self.max_delay)))
        object.__setattr__(self, "multiplier", max(1.0, float(self.multiplier)))
        object.__setattr__(self, "jitter", min(1.0, max(0.0, float(self.jitter))))

    def delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """Compute the delay to wait after a failed attempt.

        Delay follows ``initial_delay * multiplier**attempt``, capped at
        ``max_delay``, then offset by a uniform draw in
        ``[-base * jitter, +base * jitter]`` and clamped to ``[0, max_delay]``.

        Args:
            attempt: Zero-based index of the attempt that just failed.
            rng: Optional random source, for deterministic delays in tests.

        Returns:
            Delay in seconds.
        """
        try:
            growth = self.multiplier ** max(0, attempt)
        except OverflowError:
            growth = math.inf
        base = min(self.initial_delay * growth, self.max_delay) if self.initial_delay else 0.0
        spread = base * self.jitter
        offset = (rng or random).uniform(-spread, spread) if spread else 0.0
        return min(self.max_delay, max(0.0, base + offset))


DEFAULT_POLICY = RetryPolicy()

AGGRESSIVE_POLICY = RetryPolicy(max_attempts=5, initial_delay=0.5, multiplier=1.5)

CONSERVATIVE_POLICY = RetryPolicy(max_attempts=2, initial_delay=2.0)
