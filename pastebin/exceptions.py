"""Exceptions for the paste service and storage layers.

Routes translate these into HTTP responses; nothing below the route layer
knows about status codes.
"""
from typing import Optional


class PasteError(Exception):
    """Base exception for all paste-related errors."""
    pass


class InvalidInputError(PasteError):
    """A paste payload is missing a field or holds an out-of-range value."""
    pass


class MalformedRequestBodyError(InvalidInputError):
    """The request body could not be parsed as a paste payload."""
    pass


class PasteNotFoundError(PasteError):
    """Paste is absent, expired, or has used up its views.

    ``reason`` is kept for logging only and is never sent to clients.
    """

    def __init__(self, paste_id: str, reason: Optional[str] = None):
        self.paste_id = paste_id
        self.reason = reason
        super().__init__(f"Paste {paste_id} not available ({reason or 'not_found'})")


class StorageUnavailableError(PasteError):
    """The storage backend could not be reached or initialized."""
    pass
