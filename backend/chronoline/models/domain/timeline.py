"""Timeline domain models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from chronoline.models.base import ApiModel
from chronoline.models.domain.event import Event
from chronoline.models.domain.highlight import Highlight


class TimelineCreate(ApiModel):
    """Payload for creating a timeline."""
    name: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)


class TimelineUpdate(ApiModel):
    """Payload for updating a timeline. Only provided fields are patched."""
    name: Optional[str] = None
    settings: Optional[dict[str, Any]] = None


class Timeline(ApiModel):
    """A named collection of events and highlights owned by one user."""
    id: str
    user_id: str = Field(exclude=True)
    name: str
    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Display settings such as centerDate, pixelsPerDay and theme.",
    )
    created_at: datetime
    updated_at: datetime


class TimelineData(ApiModel):
    """A timeline together with its events and highlights."""
    id: str
    name: str
    events: list[Event] = Field(default_factory=list)
    highlights: list[Highlight] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
