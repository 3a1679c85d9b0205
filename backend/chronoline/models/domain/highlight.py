"""Highlight domain models."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from chronoline.models.base import ApiModel, UtcDatetime

DEFAULT_HIGHLIGHT_COLOR = "rgba(255, 235, 59, 0.25)"


class HighlightCreate(ApiModel):
    """Payload for creating a highlight. Both dates are checked by the service."""
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    color: Optional[str] = None


class HighlightUpdate(ApiModel):
    """Payload for updating a highlight."""
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    color: Optional[str] = None


class Highlight(ApiModel):
    """A labeled date range overlaid on a timeline."""
    id: str
    timeline_id: str = Field(exclude=True)
    start_date: datetime
    end_date: datetime
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    color: str = DEFAULT_HIGHLIGHT_COLOR
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
