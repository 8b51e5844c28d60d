import time
import threading
from typing import Dict, List

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Sliding window limiter kept in process memory.

    Every sweep_every calls, keys with no hit inside their last window are
    dropped so one-off clients do not accumulate.
    """

    def __init__(self, sweep_every: int = 1000) -> None:
        self._store: Dict[str, List[float]] = {}
        self._windows: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._sweep_every = sweep_every
        self._calls = 0

    def _sweep(self, now: float) -> None:
        stale = [k for k, times in self._store.items() if not times or times[-1] <= now - self._windows[k]]
        for k in stale:
            del self._store[k]
            del self._windows[k]

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            self._calls += 1
            if self._calls % self._sweep_every == 0:
                self._sweep(now)
            # prune
            times = [t for t in self._store.get(key, []) if t > window_start]
            self._windows[key] = window_seconds
            if len(times) >= max_requests:
                self._store[key] = times
                return False
            times.append(now)
            self._store[key] = times
            return True

    def __len__(self) -> int:
        return len(self._store)
