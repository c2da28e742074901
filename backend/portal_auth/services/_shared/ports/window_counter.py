from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


def _now_ms() -> int:
    return round(time.time() * 1000)


class WindowCounter(Protocol):
    """
    Fixed-window hit counter keyed by an opaque string.

    ``hit`` returns the post-increment count for the window containing "now";
    the first hit of a window returns exactly 1.
    """

    def hit(self, key: str, window_ms: int) -> int: ...
    def reset(self, key: str) -> None: ...


@dataclass(slots=True)
class _Window:
    count: int
    expiry_ms: int


class InMemoryWindowCounter(WindowCounter):
    """
    Process-local fixed-window counter.

    Used as the rate limiter's fallback. Counts are **per process**: with N
    workers each one enforces the quota on its own, so the effective limit is
    N times the configured one while the shared store is down.

    Expired windows are swept whenever a fresh window is written, so the map
    holds at most the live windows plus the one being created.

    .. note::
       Uses a threading lock so threaded WSGI workers see consistent counts.
    """

    def __init__(self, *, clock: Callable[[], int] | None = None) -> None:
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._clock = clock or _now_ms

    def __len__(self) -> int:
        return len(self._windows)

    # ------------------------- helpers -------------------------

    def _sweep(self, now: int) -> None:
        expired = [k for k, w in self._windows.items() if now > w.expiry_ms]
        for k in expired:
            del self._windows[k]

    # -------------------------- API ----------------------------

    def hit(self, key: str, window_ms: int) -> int:
        now = self._clock()
        with self._lock:
            w = self._windows.get(key)
            if w is None or now > w.expiry_ms:
                self._sweep(now)
                self._windows[key] = _Window(count=1, expiry_ms=now + window_ms)
                return 1
            w.count += 1
            return w.count

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def expiry_of(self, key: str) -> int | None:
        """Return the window expiry (epoch ms) for ``key``, if tracked."""
        w = self._windows.get(key)
        return w.expiry_ms if w else None
