"""Tests for provider error classification and user messages"""

import pytest

from studio_core.exceptions import (
    ProviderError,
    ProviderErrorKind,
    classify_error_text,
    kind_from_status,
)
from studio_core.providers import CLIPDROP_MESSAGES, mask_key, user_message


@pytest.mark.parametrize("status,kind", [
    (400, ProviderErrorKind.INVALID_INPUT),
    (401, ProviderErrorKind.UNAUTHORIZED),
    (402, ProviderErrorKind.PAYMENT_REQUIRED),
    (403, ProviderErrorKind.UNAUTHORIZED),
    (404, ProviderErrorKind.NOT_FOUND),
    (422, ProviderErrorKind.INVALID_MODEL),
    (429, ProviderErrorKind.RATE_LIMITED),
    (504, ProviderErrorKind.TIMEOUT),
    (500, ProviderErrorKind.UNKNOWN),
    (503, ProviderErrorKind.UNKNOWN),
])
def test_kind_from_status(status, kind):
    assert kind_from_status(status) is kind


@pytest.mark.parametrize("text,kind", [
    ("ReplicateError: 402 Payment Required", ProviderErrorKind.PAYMENT_REQUIRED),
    ("Request failed: Too Many Requests", ProviderErrorKind.RATE_LIMITED),
    ("Invalid version or not permitted", ProviderErrorKind.INVALID_MODEL),
    ("upstream timed out", ProviderErrorKind.TIMEOUT),
    ("Unauthorized", ProviderErrorKind.UNAUTHORIZED),
    ("model not found", ProviderErrorKind.NOT_FOUND),
    ("CUDA out of memory", ProviderErrorKind.UNKNOWN),
    ("", ProviderErrorKind.UNKNOWN),
])
def test_classify_error_text(text, kind):
    assert classify_error_text(text) is kind


def test_payment_pattern_wins_over_later_patterns():
    assert classify_error_text("402: payment required, model not found") is ProviderErrorKind.PAYMENT_REQUIRED


def test_status_code_follows_kind():
    error = ProviderError(ProviderErrorKind.RATE_LIMITED, "slow down", provider="Replicate")
    assert error.status_code == 429
    assert error.message == "slow down"


def test_from_status_falls_back_to_text():
    error = ProviderError.from_status(500, "500 Internal Server Error: payment required", provider="Replicate")
    assert error.kind is ProviderErrorKind.PAYMENT_REQUIRED
    assert error.status_code == 402
    assert error.provider_status == 500


def test_from_exception_keeps_provider_errors():
    original = ProviderError(ProviderErrorKind.NOT_FOUND, "gone")
    assert ProviderError.from_exception(original) is original

    wrapped = ProviderError.from_exception(ConnectionError("Connection timed out"), provider="Clipdrop")
    assert wrapped.kind is ProviderErrorKind.TIMEOUT
    assert wrapped.provider == "Clipdrop"


def test_user_message_mentions_billing():
    error = ProviderError(ProviderErrorKind.PAYMENT_REQUIRED, "402", provider="Replicate")
    message = user_message(error)
    assert "billing" in message
    assert "Replicate" in message


def test_user_message_overrides():
    error = ProviderError(ProviderErrorKind.PAYMENT_REQUIRED, "402", provider="Clipdrop")
    assert user_message(error, CLIPDROP_MESSAGES) == "No remaining credits"


def test_unknown_message_includes_detail():
    error = ProviderError(ProviderErrorKind.UNKNOWN, "CUDA out of memory", provider="Replicate")
    assert user_message(error) == "Error calling Replicate API: CUDA out of memory"


def test_mask_key():
    assert mask_key("r8_abcdefgh") == "r8_ab..."
    assert mask_key(None) == "<unset>"
