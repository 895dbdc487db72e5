"""
Paste service: validation, creation and consuming reads.
Sits between the HTTP routes and the storage backend.
"""
import logging
from typing import Optional

from pastebin.availability import expires_at_ms, is_available, remaining_views
from pastebin.database import PasteStorage
from pastebin.exceptions import InvalidInputError, PasteNotFoundError, StorageUnavailableError
from pastebin.models import LIMIT_BOUNDS, PasteView, limit_error_message

logger = logging.getLogger(__name__)


def _validate_limit(name: str, value: Optional[int]) -> None:
    # bool is an int subclass; True must not pass as 1
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1 or value > LIMIT_BOUNDS[name]:
        raise InvalidInputError(limit_error_message(name))


class PasteService:
    """Read/write contract offered to the presentation layer."""

    def __init__(self, storage: PasteStorage):
        self.storage = storage

    def submit(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> str:
        """
        Validate and store a new paste.

        Args:
            content: Text content, stored exactly as given
            ttl_seconds: Optional time-to-live in seconds
            max_views: Optional maximum view count

        Returns:
            The new paste ID

        Raises:
            InvalidInputError: If content is blank or a limit is out of range
            StorageUnavailableError: If the backend cannot be reached
        """
        if not isinstance(content, str) or not content.strip():
            raise InvalidInputError("content is required and must be a non-empty string")
        _validate_limit("ttl_seconds", ttl_seconds)
        _validate_limit("max_views", max_views)

        paste_id = self.storage.create(content, ttl_seconds=ttl_seconds, max_views=max_views)
        logger.info(f"Paste {paste_id} created (ttl_seconds={ttl_seconds}, max_views={max_views})")
        return paste_id

    def consume(self, paste_id: str, now_ms: int) -> PasteView:
        """
        Read a paste and count the view.

        The availability check and the increment are applied as one
        conditional update in storage, so concurrent readers cannot push
        the view count past ``max_views``.

        Raises:
            PasteNotFoundError: If the paste is absent, expired or out of views
            StorageUnavailableError: If the backend cannot be reached
        """
        paste = self.storage.get(paste_id)
        if paste is None:
            raise PasteNotFoundError(paste_id)

        availability = is_available(paste, now_ms)
        if not availability.available:
            logger.info(f"Paste {paste_id} unavailable: {availability.reason}")
            raise PasteNotFoundError(paste_id, availability.reason)

        updated = self.storage.increment_views_if_available(paste_id, now_ms)
        if updated is None:
            # Another reader took the last view, or the TTL ran out in between
            logger.info(f"Paste {paste_id} became unavailable before the view was counted")
            raise PasteNotFoundError(paste_id, "lost_race")

        logger.info(f"View count incremented for paste {paste_id}")
        return PasteView(
            content=updated.content,
            remaining_views=remaining_views(updated),
            expires_at=expires_at_ms(updated),
        )

    def check_health(self) -> bool:
        """True if the storage backend answers a trivial read."""
        try:
            return self.storage.ping()
        except StorageUnavailableError as e:
            logger.error(f"Health check failed: {e}")
            return False
