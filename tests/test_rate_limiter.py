"""Tests for fixed-window rate limiting."""

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_gateway.config import GatewayConfig, RateLimitConfig
from chat_gateway.llm import ChatProxy
from chat_gateway.middleware import build_limiter


def make_gateway(max_requests=2, **rate_limit):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"id": "chatcmpl-1", "choices": []})

    config = GatewayConfig()
    config.upstream.api_key = "sk-test"
    config.rate_limit.max_requests = max_requests
    for key, value in rate_limit.items():
        setattr(config.rate_limit, key, value)

    proxy = ChatProxy(config, transport=httpx.MockTransport(handler))
    return proxy, TestClient(proxy.app), calls


def test_limit_string():
    config = RateLimitConfig(max_requests=100, window_seconds=900)
    assert config.limit_string == "100/900 seconds"


def test_invalid_settings():
    with pytest.raises(ValueError):
        build_limiter(RateLimitConfig(max_requests=0))
    with pytest.raises(ValueError):
        build_limiter(RateLimitConfig(window_seconds=0))


def test_cap_plus_one_rejected_before_validation():
    _, client, calls = make_gateway(max_requests=2)
    valid = {"messages": [{"role": "user", "content": "hi"}]}

    assert client.post("/api/chat/completions", json=valid).status_code == 200
    assert client.post("/api/chat/completions", json={}).status_code == 400

    # Over the cap: limiter answers even for a valid payload
    response = client.post("/api/chat/completions", json=valid)
    assert response.status_code == 429
    assert response.json() == {
        "error": {
            "message": "Too many requests, please try again later.",
            "type": "rate_limit_exceeded",
        }
    }
    assert int(response.headers["Retry-After"]) > 0
    assert response.headers["X-RateLimit-Remaining"] == "0"

    # Invalid payload is also rejected by the limiter, not by validation
    response = client.post("/api/chat/completions", json={"messages": "nope"})
    assert response.status_code == 429

    assert len(calls) == 1


def test_rate_limit_headers_on_success():
    _, client, _ = make_gateway(max_requests=5)

    response = client.post("/api/test")

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "5"
    assert response.headers["X-RateLimit-Remaining"] == "4"
    assert "X-RateLimit-Reset" in response.headers


def test_counter_is_shared_across_routes():
    _, client, _ = make_gateway(max_requests=2)
    valid = {"messages": [{"role": "user", "content": "hi"}]}

    assert client.post("/api/test").status_code == 200
    assert client.post("/api/chat/completions", json=valid).status_code == 200
    assert client.post("/api/test").status_code == 429


def test_health_is_exempt():
    _, client, _ = make_gateway(max_requests=1)

    client.post("/api/test")
    assert client.post("/api/test").status_code == 429

    for _ in range(3):
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 200

    assert "X-RateLimit-Limit" not in client.get("/health").headers


def test_rejection_has_security_headers():
    _, client, _ = make_gateway(max_requests=1)
    client.post("/api/test")

    response = client.post("/api/test")
    assert response.status_code == 429
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_forwarded_for_trusted():
    _, client, _ = make_gateway(max_requests=1, trust_forwarded_for=True)

    assert client.post("/api/test", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
    assert client.post("/api/test", headers={"X-Forwarded-For": "2.2.2.2, 10.0.0.1"}).status_code == 200
    assert client.post("/api/test", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 429


def test_forwarded_for_ignored_by_default():
    _, client, _ = make_gateway(max_requests=1)

    assert client.post("/api/test", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
    assert client.post("/api/test", headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 429


def test_disabled_limiter():
    _, client, _ = make_gateway(max_requests=1, enabled=False)

    for _ in range(3):
        response = client.post("/api/test")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


def test_reset_clears_counters():
    proxy, client, _ = make_gateway(max_requests=1)

    client.post("/api/test")
    assert client.post("/api/test").status_code == 429

    proxy.limiter.reset()
    assert client.post("/api/test").status_code == 200


def test_gateways_do_not_share_counters():
    _, first, _ = make_gateway(max_requests=1)
    _, second, _ = make_gateway(max_requests=1)

    assert first.post("/api/test").status_code == 200
    assert second.post("/api/test").status_code == 200
