import logging

from ...config import settings
from ...application.ports.rate_limiter import RateLimiter
from .memory_rate_limiter import InMemoryRateLimiter

logger = logging.getLogger(__name__)


def build_rate_limiter() -> RateLimiter:
    """Redis-backed limiter when REDIS_URL is configured, in-process otherwise."""
    if settings.REDIS_URL:
        from .redis_rate_limiter import RedisRateLimiter
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()
