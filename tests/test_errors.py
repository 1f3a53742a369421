"""Tests for remote error classification and user-facing copy."""

import pytest

from adpublish.services.publishing.errors import (
    ErrorKind,
    classify_remote_error,
    suggested_action_for,
    user_message_for,
)


@pytest.mark.parametrize(
    "code, kind, category",
    [
        (4, ErrorKind.API_ERROR, "rate_limit"),
        (17, ErrorKind.API_ERROR, "rate_limit"),
        (613, ErrorKind.API_ERROR, "rate_limit"),
        (100, ErrorKind.VALIDATION_ERROR, "validation"),
        (80004, ErrorKind.VALIDATION_ERROR, "validation"),
        (190, ErrorKind.TOKEN_EXPIRED, "authentication"),
        (102, ErrorKind.TOKEN_EXPIRED, "authentication"),
        (200, ErrorKind.POLICY_VIOLATION, "authorization"),
        (2654, ErrorKind.PAYMENT_REQUIRED, "business_logic"),
        (1487390, ErrorKind.POLICY_VIOLATION, "business_logic"),
        (1, ErrorKind.API_ERROR, "server"),
        (500, ErrorKind.API_ERROR, "server"),
    ],
)
def test_classify_by_code(code, kind, category):
    classified = classify_remote_error(code, "whatever")
    assert classified.kind is kind
    assert classified.category == category


def test_classify_accepts_string_codes():
    assert classify_remote_error("190", None).kind is ErrorKind.TOKEN_EXPIRED


@pytest.mark.parametrize(
    "message, kind",
    [
        ("Request timed out", ErrorKind.NETWORK_ERROR),
        ("network unreachable", ErrorKind.NETWORK_ERROR),
        ("Invalid OAuth access token", ErrorKind.TOKEN_EXPIRED),
        ("No payment method on account", ErrorKind.PAYMENT_REQUIRED),
        ("Ad violates advertising policy", ErrorKind.POLICY_VIOLATION),
        ("Something odd happened", ErrorKind.API_ERROR),
        (None, ErrorKind.API_ERROR),
    ],
)
def test_classify_by_message(message, kind):
    assert classify_remote_error(None, message).kind is kind


def test_every_kind_has_user_copy():
    for kind in ErrorKind:
        assert user_message_for(kind)
        assert suggested_action_for(kind)
