"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: No Redis runs in tests, so by default the rate limiter steps
aside. The rate-limit tests swap in a small in-memory counter for the
Redis client to check the limiter's own logic.
"""

import pytest

from talentflow.middleware import rate_limit


class InMemoryCounter:
    """Just enough of the redis.asyncio client for the rate limiter."""

    def __init__(self):
        self.counts: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        bucket = key.rsplit(":", 1)[0]  # ignore the minute window
        self.counts[bucket] = self.counts.get(bucket, 0) + 1
        return self.counts[bucket]

    async def expire(self, key: str, seconds: int) -> bool:
        return True


# ═══════════════════════════════════════════════════════════
# Security headers / request ID
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/v1/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_auth_responses_are_not_cached(client):
    r = await client.post("/api/v1/auth/login", json={"email": "a@b.co", "password": "x"})
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/v1/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


def test_auth_endpoints_share_the_strict_bucket():
    assert rate_limit.bucket_for("/api/v1/auth/login") == "auth"
    assert rate_limit.bucket_for("/api/v1/auth/forgot-password") == "auth"
    assert rate_limit.bucket_for("/api/v1/auth/refresh") == "auth"
    assert rate_limit.bucket_for("/api/v1/auth/me") == "api"
    assert rate_limit.bucket_for("/api/v1/jobs") == "api"


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis(client):
    r = await client.get("/api/v1/health")
    assert "X-RateLimit-Limit" not in r.headers


@pytest.mark.asyncio
async def test_login_rate_limited(client, monkeypatch):
    counter = InMemoryCounter()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: counter)

    body = {"email": "nobody@example.com", "password": "wrong-password"}
    limit = 10  # settings.rate_limit_auth_rpm
    for _ in range(limit):
        r = await client.post("/api/v1/auth/login", json=body)
        assert r.status_code == 401
        assert r.headers["X-RateLimit-Limit"] == str(limit)

    r = await client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"

    # The general bucket is counted separately
    r = await client.get("/api/v1/health")
    assert r.status_code == 200


class WindowCounter(InMemoryCounter):
    """Counts per full key, minute window included."""

    async def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]


class FrozenClock:
    def __init__(self, now: float):
        self.now = now

    def time(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_rate_limit_window_resets_on_the_minute(client, monkeypatch):
    counter = WindowCounter()
    clock = FrozenClock(60 * 28_000_000 + 59.5)
    monkeypatch.setattr(rate_limit, "get_redis", lambda: counter)
    monkeypatch.setattr(rate_limit, "time", clock)

    body = {"email": "nobody@example.com", "password": "wrong-password"}
    for _ in range(10):
        await client.post("/api/v1/auth/login", json=body)
    r = await client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 429

    # Half a second later the next minute starts a fresh count
    clock.now += 0.5
    r = await client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 401
    assert sorted(k.rsplit(":", 1)[1] for k in counter.counts) == ["28000000", "28000001"]
