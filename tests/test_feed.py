"""Tests for the device feed payload and conditional-request check."""

from datetime import datetime, timezone

import pytest

from epx.feed import DEFAULT_DURATION, Screen, build_feed, feed_etag, is_not_modified

NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def screens():
    return [
        Screen(id="s1", name="Weather", duration=60, bmp_data="Qk0="),
        Screen(id="s2", name="Draft"),
        Screen(id="s3", name="Calendar", bmp_data="Qk1O"),
    ]


def test_screens_without_bitmap_are_skipped(screens):
    feed = build_feed(screens, 400, 300, now=NOW)
    assert [s["id"] for s in feed["screens"]] == ["s1", "s3"]
    assert feed["screens"][0] == {
        "id": "s1", "name": "Weather", "duration": 60,
        "bmpData": "Qk0=", "width": 400, "height": 300,
    }
    assert feed["screens"][1]["duration"] == DEFAULT_DURATION


def test_timestamp_is_utc_iso(screens):
    assert build_feed(screens, 400, 300, now=NOW)["timestamp"] == "2024-05-01T12:30:00Z"


def test_etag_ignores_timestamp(screens):
    a = build_feed(screens, 400, 300, now=NOW)
    b = build_feed(screens, 400, 300)
    assert a["etag"] == b["etag"] == feed_etag(a["screens"])
    assert len(a["etag"]) == 32


def test_etag_changes_with_content(screens):
    before = build_feed(screens, 400, 300, now=NOW)["etag"]
    screens[0].bmp_data = "Qk1P"
    assert build_feed(screens, 400, 300, now=NOW)["etag"] != before
    assert build_feed(screens, 800, 480, now=NOW)["etag"] != before


def test_empty_feed():
    feed = build_feed([], 400, 300, now=NOW)
    assert feed["screens"] == []
    assert feed["etag"] == feed_etag([])


@pytest.mark.parametrize("header, expected", [
    (None, False),
    ("", False),
    ("abc", True),
    ('"abc"', True),
    ('W/"abc"', True),
    ('"xyz", "abc"', True),
    ("*", True),
    ("abd", False),
])
def test_is_not_modified(header, expected):
    assert is_not_modified(header, "abc") is expected
