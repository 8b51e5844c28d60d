import time
import logging
from typing import Optional
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .config import settings
from .exceptions import create_error_response
from .application.ports.rate_limiter import RateLimiter
from .infrastructure.rate_limit import build_rate_limiter

logger = logging.getLogger(__name__)

# Served without a budget: health checks and static images
UNLIMITED_PREFIXES = ("/health", "/uploads/")


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: Optional[RateLimiter] = None, per_minute: Optional[int] = None):
        super().__init__(app)
        self.limiter = limiter or build_rate_limiter()
        self.per_minute = per_minute or settings.RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(UNLIMITED_PREFIXES):
            return await call_next(request)

        ip = client_ip(request)
        if not self.limiter.allow(ip, self.per_minute, 60):
            logger.warning(f"Rate limit exceeded for {ip} on {request.method} {request.url.path}")
            return JSONResponse(
                status_code=429,
                content=create_error_response("Rate limit exceeded. Please try again later."),
                headers={"Retry-After": "60"},
            )
        return await call_next(request)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per API call, with the handling time echoed back as X-Process-Time."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
        level = logging.WARNING if response.status_code in (401, 403) else logging.INFO
        logger.log(level, f"{request.method} {request.url.path} {response.status_code} {client_ip(request)} {elapsed_ms:.1f}ms")
        return response
