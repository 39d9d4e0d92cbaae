"""Tests for the rate limiter and the error mapping, on a bare FastAPI app."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from event_marketplace.middleware import RateLimiterMiddleware, marketplace_exception_handler
from event_marketplace.middleware.error_handler import status_code_for
from event_marketplace.utils.exceptions import (
    BookingNotFoundError,
    ConflictError,
    DateUnavailableError,
    EscrowStateError,
    MarketplaceError,
    RateLimitError,
)


class FakePipeline:
    """Records sorted-set calls the way a Redis pipeline queues them."""

    def __init__(self, store):
        self.store = store
        self.ops = []

    def zremrangebyscore(self, key, low, high):
        self.ops.append(lambda: None)

    def zcard(self, key):
        self.ops.append(lambda: len(self.store.setdefault(key, [])))

    def zadd(self, key, mapping):
        self.ops.append(lambda: self.store.setdefault(key, []).extend(mapping.values()))

    def expire(self, key, seconds):
        self.ops.append(lambda: True)

    async def execute(self):
        return [op() for op in self.ops]


class FakeCache:
    def __init__(self):
        self.store = {}

    def pipeline(self):
        return FakePipeline(self.store)

    async def zcard(self, key):
        return len(self.store.get(key, []))

    async def zrange(self, key, start, end, withscores=False):
        scores = sorted(self.store.get(key, []))[start:end + 1 if end >= 0 else None]
        return [(str(score), score) for score in scores]


def build_app(limit=2):
    app = FastAPI()

    @app.get("/api/v1/ping")
    async def ping():
        return {"pong": True}

    @app.get("/api/v1/conflict")
    async def conflict():
        raise ConflictError("Already there")

    app.add_middleware(RateLimiterMiddleware, default_limit=limit, default_window=60, burst_limit=100)
    app.add_exception_handler(MarketplaceError, marketplace_exception_handler)
    return app


@pytest.fixture
def fake_cache(monkeypatch):
    cache = FakeCache()
    monkeypatch.setattr("event_marketplace.middleware.rate_limiter.get_cache", lambda: cache)
    return cache


class TestRateLimiter:
    async def test_blocks_after_limit(self, fake_cache):
        async with AsyncClient(transport=ASGITransport(app=build_app(limit=2)), base_url="http://test") as client:
            first = await client.get("/api/v1/ping")
            await client.get("/api/v1/ping")
            blocked = await client.get("/api/v1/ping")

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert blocked.status_code == 429
        assert blocked.json()["error"]["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert int(blocked.headers["Retry-After"]) >= 1

    async def test_without_redis_everything_passes(self, monkeypatch):
        class Offline:
            def pipeline(self):
                return None

            async def zcard(self, key):
                return 0

        monkeypatch.setattr("event_marketplace.middleware.rate_limiter.get_cache", lambda: Offline())
        async with AsyncClient(transport=ASGITransport(app=build_app(limit=1)), base_url="http://test") as client:
            responses = [await client.get("/api/v1/ping") for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 200]


class TestErrorMapping:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (BookingNotFoundError("x"), 404),
            (ConflictError("dup"), 409),
            (DateUnavailableError("Event center"), 409),
            (EscrowStateError("held"), 400),
            (RateLimitError(5, 60, 30), 429),
            (MarketplaceError("boom"), 500),
        ],
    )
    def test_status_codes(self, exc, expected):
        assert status_code_for(exc) == expected

    async def test_handler_builds_envelope(self, fake_cache):
        async with AsyncClient(transport=ASGITransport(app=build_app(limit=10)), base_url="http://test") as client:
            response = await client.get("/api/v1/conflict")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == {"error_code": "CONFLICT", "message": "Already there"}
        assert set(body) == {"error", "error_id", "timestamp"}
