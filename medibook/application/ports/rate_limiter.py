from typing import Protocol


class RateLimiter(Protocol):
    """Admission check for a key within a rolling time window."""

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        ...
