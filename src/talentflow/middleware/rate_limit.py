"""Rate limiting middleware — Redis fixed-window counters per client IP.

Learn: Each request increments "talentflow:rl:{ip}:{bucket}:{minute}".
Endpoints that take a secret (login, register, refresh, forgot-password)
share the 'auth' bucket with a much lower limit, which is what stops
password guessing and reset-mail flooding. Everything else lands in 'api'.

If Redis isn't initialized (tests, local dev) or errors mid-request, the
request goes through unthrottled.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from talentflow.cache import get_redis

logger = structlog.get_logger()

KEY_PREFIX = "talentflow:rl"

AUTH_PATHS = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/auth/refresh",
    "/api/v1/auth/forgot-password",
)


def bucket_for(path: str) -> str:
    return "auth" if path.startswith(AUTH_PATHS) else "api"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.limits = {"api": default_rpm, "auth": auth_rpm}

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = bucket_for(request.url.path)
        limit = self.limits[bucket]
        key = f"{KEY_PREFIX}:{client_ip}:{bucket}:{int(time.time() // 60)}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > limit:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
