"""Tests for upstream error classification and the error envelope."""

import pytest

from chat_gateway.errors import (
    InvalidRequestError,
    LocalRateLimitError,
    NotFoundError,
    TransportError,
    UpstreamError,
    classify_upstream_error,
)


def test_quota_from_code():
    error = classify_upstream_error(429, {"error": {
        "message": "You exceeded your current quota",
        "type": "insufficient_quota",
        "code": "insufficient_quota",
    }})

    assert error.status_code == 429
    assert error.error_type == "insufficient_quota"
    assert error.message == "You exceeded your current quota"


def test_quota_wins_over_other_status():
    """Quota exhaustion is checked first, whatever status came with it."""
    error = classify_upstream_error(403, {"error": {"code": "insufficient_quota"}})

    assert error.status_code == 429
    assert error.error_type == "insufficient_quota"
    assert error.message


def test_rate_limit_from_status():
    error = classify_upstream_error(429, {"error": {"message": "slow down", "type": "requests"}})

    assert error.status_code == 429
    assert error.error_type == "rate_limit_exceeded"
    assert error.message == "slow down"


def test_rate_limit_from_code():
    error = classify_upstream_error(400, {"error": {"code": "rate_limit_exceeded"}})

    assert error.status_code == 429
    assert error.error_type == "rate_limit_exceeded"


def test_passthrough():
    error = classify_upstream_error(401, {"error": {
        "message": "Incorrect API key provided",
        "type": "invalid_request_error",
        "code": "invalid_api_key",
    }})

    assert error.status_code == 401
    assert error.to_envelope() == {"error": {
        "message": "Incorrect API key provided",
        "type": "invalid_request_error",
        "code": "invalid_api_key",
    }}


@pytest.mark.parametrize("body", [None, "", [], {"error": None}, {"unexpected": True}])
def test_fallbacks(body):
    error = classify_upstream_error(503, body)

    assert error.status_code == 503
    assert error.error_type == "api_error"
    assert error.message
    assert "code" not in error.to_envelope()["error"]


def test_string_error_body():
    error = classify_upstream_error(500, {"error": "model overloaded"})
    assert error.message == "model overloaded"
    assert error.error_type == "api_error"


def test_numeric_code_is_stringified():
    error = classify_upstream_error(400, {"error": {"message": "bad", "code": 1234}})
    assert error.code == "1234"


def test_envelopes():
    assert InvalidRequestError("bad").to_envelope() == {
        "error": {"message": "bad", "type": "invalid_request_error"}
    }
    assert NotFoundError("/nope").to_envelope()["error"]["type"] == "not_found"

    rate = LocalRateLimitError()
    assert rate.status_code == 429
    assert rate.to_envelope()["error"]["type"] == "rate_limit_exceeded"


def test_transport_error_hides_cause():
    error = TransportError(ConnectionError("10.1.2.3 refused"))

    assert error.status_code == 500
    assert error.to_envelope()["error"]["type"] == "server_error"
    assert "10.1.2.3" not in error.to_envelope()["error"]["message"]


def test_upstream_error_is_gateway_error():
    error = UpstreamError(418)
    assert error.status_code == 418
    assert error.error_type == "api_error"
