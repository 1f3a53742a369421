"""Tests for remote status translation and the learning display sub-state."""

import pytest

from adpublish.services.publishing.status_translator import (
    AdStatus,
    display_status,
    translate_remote_status,
)


@pytest.mark.parametrize(
    "status, effective, expected",
    [
        ("ACTIVE", "ACTIVE", AdStatus.ACTIVE),
        ("ACTIVE", "CAMPAIGN_PAUSED", AdStatus.ACTIVE),
        ("ACTIVE", "ADSET_PAUSED", AdStatus.ACTIVE),
        ("PAUSED", "ACTIVE", AdStatus.PAUSED),
        ("PAUSED", "ADSET_PAUSED", AdStatus.PAUSED),
        ("ACTIVE", "PENDING_REVIEW", AdStatus.PENDING_REVIEW),
        ("ACTIVE", "IN_PROCESS", AdStatus.PENDING_REVIEW),
        ("ACTIVE", "DISAPPROVED", AdStatus.REJECTED),
        ("ACTIVE", "REJECTED", AdStatus.REJECTED),
        ("ACTIVE", "WITH_ISSUES", AdStatus.REJECTED),
        ("PAUSED", "PAUSED", AdStatus.PAUSED),
        ("ACTIVE", "LEARNING", AdStatus.ACTIVE),
        ("ACTIVE", "LEARNING_LIMITED", AdStatus.ACTIVE),
    ],
)
def test_translate_known_values(status, effective, expected):
    assert translate_remote_status(status, effective) is expected


def test_translate_is_case_insensitive():
    assert translate_remote_status("active", " pending_review ") is AdStatus.PENDING_REVIEW


@pytest.mark.parametrize(
    "status, effective, expected",
    [
        ("ACTIVE", "SOMETHING_NEW", AdStatus.ACTIVE),
        ("PAUSED", "SOMETHING_NEW", AdStatus.PAUSED),
        (None, None, AdStatus.ACTIVE),
        ("", "", AdStatus.ACTIVE),
        ("PAUSED", None, AdStatus.PAUSED),
    ],
)
def test_translate_unknown_values_fall_back_to_configured_status(status, effective, expected):
    assert translate_remote_status(status, effective) is expected


def test_unknown_value_is_logged(caplog):
    with caplog.at_level("WARNING"):
        translate_remote_status("ACTIVE", "BRAND_NEW_STATE")
    assert "BRAND_NEW_STATE" in caplog.text


def test_translate_never_yields_local_only_states():
    local_only = {AdStatus.DRAFT, AdStatus.FAILED}
    for effective in ("ACTIVE", "PAUSED", "DISAPPROVED", "PENDING_REVIEW", "ARCHIVED", "DELETED", "?"):
        for status in ("ACTIVE", "PAUSED", "ARCHIVED"):
            assert translate_remote_status(status, effective) not in local_only


def test_display_status_learning():
    assert display_status(AdStatus.ACTIVE, "LEARNING") == "learning"
    assert display_status("active", "learning_limited") == "learning"


def test_display_status_plain():
    assert display_status(AdStatus.ACTIVE, "ACTIVE") == "active"
    assert display_status("paused", "LEARNING") == "paused"
    assert display_status("draft", None) == "draft"
