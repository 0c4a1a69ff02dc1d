"""
Tests for rate limiting.
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request as StarletteRequest

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.rate_limiting import get_rate_limit, get_user_identifier, RATE_LIMITS


def make_request(headers=None, client=("10.0.0.1", 5000)) -> StarletteRequest:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return StarletteRequest({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": raw_headers,
        "client": client,
    })


@pytest.fixture
def client():
    """App with its own in-memory limiter so counters never leak between tests."""
    limiter = Limiter(key_func=get_user_identifier, storage_uri="memory://")
    app = FastAPI()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.get("/test")
    @limiter.limit("3/minute")
    async def limited(request: Request):
        return {"message": "success"}

    return TestClient(app)


def test_get_rate_limit():
    assert get_rate_limit("auth") == "10/minute"
    assert get_rate_limit("write") == RATE_LIMITS["write"]
    assert get_rate_limit("unknown") == RATE_LIMITS["default"]


def test_identifier_uses_token_digest():
    a = get_user_identifier(make_request({"Authorization": "Bearer token-a"}))
    b = get_user_identifier(make_request({"Authorization": "Bearer token-b"}))

    assert a.startswith("user_")
    assert a != b
    assert "token-a" not in a


def test_identifier_falls_back_to_ip():
    assert get_user_identifier(make_request()) == "10.0.0.1"
    assert get_user_identifier(make_request({"Authorization": "Bearer "})) == "10.0.0.1"


def test_rate_limit_allows_within_limit(client):
    for _ in range(3):
        response = client.get("/test")
        assert response.status_code == 200
        assert response.json() == {"message": "success"}


def test_rate_limit_blocks_excess_requests(client):
    for _ in range(3):
        client.get("/test")

    response = client.get("/test")
    assert response.status_code == 429


def test_rate_limit_is_per_token(client):
    for _ in range(3):
        client.get("/test", headers={"Authorization": "Bearer token-a"})

    assert client.get("/test", headers={"Authorization": "Bearer token-a"}).status_code == 429
    assert client.get("/test", headers={"Authorization": "Bearer token-b"}).status_code == 200
