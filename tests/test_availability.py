"""Tests for the paste availability rules."""
from pastebin.availability import (
    EXPIRED,
    VIEW_LIMIT_EXCEEDED,
    expires_at_ms,
    is_available,
    remaining_views,
)
from pastebin.models import Paste

CREATED = 1_000_000


def make_paste(**overrides) -> Paste:
    fields = {"id": "abc", "content": "hello", "created_at": CREATED}
    fields.update(overrides)
    return Paste(**fields)


def test_unlimited_paste_is_always_available():
    paste = make_paste(current_views=10_000)
    result = is_available(paste, CREATED + 10**12)
    assert result.available
    assert result.reason is None


def test_view_limit_reached():
    paste = make_paste(max_views=3, current_views=3)
    result = is_available(paste, CREATED)
    assert not result.available
    assert result.reason == VIEW_LIMIT_EXCEEDED


def test_view_limit_not_yet_reached():
    assert is_available(make_paste(max_views=3, current_views=2), CREATED).available


def test_ttl_boundary():
    paste = make_paste(ttl_seconds=10)
    assert is_available(paste, CREATED + 9_999).available

    result = is_available(paste, CREATED + 10_000)
    assert not result.available
    assert result.reason == EXPIRED


def test_view_limit_takes_precedence_over_expiry():
    paste = make_paste(ttl_seconds=1, max_views=1, current_views=1)
    result = is_available(paste, CREATED + 60_000)
    assert result.reason == VIEW_LIMIT_EXCEEDED


def test_expires_at_ms():
    assert expires_at_ms(make_paste()) is None
    assert expires_at_ms(make_paste(ttl_seconds=60)) == CREATED + 60_000


def test_remaining_views_is_clamped():
    assert remaining_views(make_paste()) is None
    assert remaining_views(make_paste(max_views=5, current_views=2)) == 3
    # Overshoot from a racing backend never reports a negative count
    assert remaining_views(make_paste(max_views=5, current_views=7)) == 0
