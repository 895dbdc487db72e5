"""
Paste records plus Pydantic models for request/response validation.
"""
from dataclasses import dataclass
from typing import Optional
from pydantic import BaseModel, Field, StrictInt, StrictStr

# Keeps created_at + ttl inside a datetime and a signed 64-bit column
MAX_TTL_SECONDS = 100 * 365 * 24 * 60 * 60
MAX_VIEWS = 1_000_000_000
LIMIT_BOUNDS = {"ttl_seconds": MAX_TTL_SECONDS, "max_views": MAX_VIEWS}


def limit_error_message(name: str) -> str:
    return f"{name} must be an integer between 1 and {LIMIT_BOUNDS[name]}"


@dataclass(frozen=True)
class Paste:
    """A stored paste as returned by the storage layer."""
    id: str
    content: str
    created_at: int  # milliseconds since epoch
    ttl_seconds: Optional[int] = None
    max_views: Optional[int] = None
    current_views: int = 0


@dataclass(frozen=True)
class Availability:
    """Outcome of the availability policy for one paste."""
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PasteView:
    """What a successful read hands back to the presentation layer."""
    content: str
    remaining_views: Optional[int]
    expires_at: Optional[int]  # milliseconds since epoch


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    content: StrictStr = Field(..., min_length=1, description="Text content (required, non-empty)")
    ttl_seconds: Optional[StrictInt] = Field(None, ge=1, le=MAX_TTL_SECONDS, description="Optional TTL in seconds")
    max_views: Optional[StrictInt] = Field(None, ge=1, le=MAX_VIEWS, description="Optional view limit")


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteFetched(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")


class ErrorResponse(BaseModel):
    """Schema for every error body."""
    error: str
