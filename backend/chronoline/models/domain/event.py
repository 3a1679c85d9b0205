"""Event domain models."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from chronoline.models.base import ApiModel, UtcDatetime


class EventCreate(ApiModel):
    """Payload for creating an event. Title and start date are checked by the service."""
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    color: Optional[str] = None
    image: Optional[str] = Field(default=None, description="Filename of an uploaded image.")
    link: Optional[str] = None
    track: Optional[int] = 0


class EventUpdate(ApiModel):
    """Payload for updating an event. Only fields present in the request are patched."""
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    color: Optional[str] = None
    image: Optional[str] = None
    link: Optional[str] = None
    track: Optional[int] = None


class Event(ApiModel):
    """A titled, dated item placed on a track within a timeline."""
    id: str
    timeline_id: str = Field(exclude=True)
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    color: Optional[str] = None
    image: Optional[str] = None
    link: Optional[str] = None
    track: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
