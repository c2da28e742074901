from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Backend = Literal["redis", "memory"]


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    """Quota of ``max_attempts`` hits per fixed window of ``window_ms``."""

    max_attempts: int
    window_ms: int

    @property
    def window_seconds(self) -> int:
        return max(1, -(-self.window_ms // 1000))


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """
    Verdict for one admission check.

    :param allowed: ``current_count <= max_attempts``.
    :param current_count: Post-increment count for the current window.
    :param backend: Counter that produced the count.
    """

    allowed: bool
    current_count: int
    backend: Backend


@dataclass(frozen=True, slots=True)
class CounterOutcome:
    """
    Result of a shared-store increment.

    ``count`` is ``None`` when the store is missing or failed; the limiter
    then counts in-process instead.
    """

    count: int | None = None


UNAVAILABLE = CounterOutcome()
