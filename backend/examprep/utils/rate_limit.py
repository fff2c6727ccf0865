"""In-memory rate limiter for the credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable


class SlidingWindowLimiter:
    """Allow at most `max_requests` per key within `window_seconds`.

    Hits are remembered per key. Every check drops expired hits and
    forgets keys with none left, so idle clients do not accumulate.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()

    def hit(self, key: str) -> int:
        """Record a hit for `key`.

        Returns 0 when the hit is allowed, otherwise the number of seconds
        until the oldest hit leaves the window.
        """
        if self.max_requests <= 0:
            return 0
        now = self._clock()
        with self._lock:
            self._prune(now)
            hits = self._hits[key]
            if len(hits) >= self.max_requests:
                return max(1, int(self.window_seconds - (now - hits[0])))
            hits.append(now)
        return 0

    def _prune(self, now: float) -> None:
        """Drop expired hits for every key and forget keys left empty. Caller holds the lock."""
        cutoff = now - self.window_seconds
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)
