"""
Availability rules for stored pastes.

All functions here are pure: the caller supplies "now" in milliseconds since
the epoch, so test-mode clock overrides and storage-level conditional updates
evaluate exactly the same rules.
"""
from typing import Optional

from pastebin.models import Availability, Paste

VIEW_LIMIT_EXCEEDED = "view_limit_exceeded"
EXPIRED = "expired"


def expires_at_ms(paste: Paste) -> Optional[int]:
    """Absolute expiry time in milliseconds, or None when the paste has no TTL."""
    if paste.ttl_seconds is None:
        return None
    return paste.created_at + paste.ttl_seconds * 1000


def remaining_views(paste: Paste) -> Optional[int]:
    """Views left before the limit is hit, clamped at 0; None when unlimited."""
    if paste.max_views is None:
        return None
    return max(0, paste.max_views - paste.current_views)


def is_available(paste: Paste, now_ms: int) -> Availability:
    """
    Decide whether a paste can be served at ``now_ms``.

    The view limit is checked before the TTL, so a paste that is both
    exhausted and expired reports ``view_limit_exceeded``.

    Args:
        paste: The stored paste record
        now_ms: Reference time in milliseconds since epoch

    Returns:
        Availability with the reason set when the paste is unavailable
    """
    if paste.max_views is not None and paste.current_views >= paste.max_views:
        return Availability(available=False, reason=VIEW_LIMIT_EXCEEDED)

    expiry = expires_at_ms(paste)
    if expiry is not None and now_ms >= expiry:
        return Availability(available=False, reason=EXPIRED)

    return Availability(available=True)
