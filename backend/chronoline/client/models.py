"""
Client-side timeline models.

These mirror the API's JSON shapes with every date parsed into a UTC
datetime, so callers never handle raw date strings.
"""

from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator

from chronoline.models.base import ApiModel, UtcDatetime, utc_now
from chronoline.models.domain.highlight import DEFAULT_HIGHLIGHT_COLOR

DEFAULT_PIXELS_PER_DAY = 50


class TimelineSettings(ApiModel):
    """Display settings; unknown keys are kept and round-tripped."""

    model_config = ConfigDict(extra="allow")

    center_date: UtcDatetime = Field(default_factory=utc_now)
    pixels_per_day: float = DEFAULT_PIXELS_PER_DAY
    theme: Optional[str] = None

    @field_validator("center_date", mode="before")
    @classmethod
    def _default_center(cls, value: Any) -> Any:
        return utc_now() if value in (None, "") else value

    @field_validator("pixels_per_day", mode="before")
    @classmethod
    def _default_scale(cls, value: Any) -> Any:
        return value or DEFAULT_PIXELS_PER_DAY


class TimelineEvent(ApiModel):
    id: str
    title: str
    start_date: UtcDatetime
    end_date: Optional[UtcDatetime] = None
    description: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    link: Optional[str] = None
    track: int = 0
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class TimelineHighlight(ApiModel):
    id: str
    start_date: UtcDatetime
    end_date: UtcDatetime
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    color: str = DEFAULT_HIGHLIGHT_COLOR


class TimelineData(ApiModel):
    """A whole timeline as held by the client store."""
    id: str
    name: str
    events: list[TimelineEvent] = Field(default_factory=list)
    highlights: list[TimelineHighlight] = Field(default_factory=list)
    settings: TimelineSettings = Field(default_factory=TimelineSettings)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)

    @field_validator("settings", mode="before")
    @classmethod
    def _default_settings(cls, value: Any) -> Any:
        return {} if value is None else value

    def find_event(self, event_id: str) -> Optional[TimelineEvent]:
        return next((e for e in self.events if e.id == event_id), None)

    def find_highlight(self, highlight_id: str) -> Optional[TimelineHighlight]:
        return next((h for h in self.highlights if h.id == highlight_id), None)


class StorageInfo(ApiModel):
    total_timelines: int = 0
    total_images: int = 0
    storage_size: int = 0


def field_names(model_cls: type[ApiModel], data: dict[str, Any]) -> dict[str, Any]:
    """
    Re-key a partial update by Python field name.

    Accepts either camelCase aliases or snake_case names and drops keys the
    model does not know about.
    """
    by_alias = {
        (info.alias or name): name for name, info in model_cls.model_fields.items()
    }
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key in model_cls.model_fields:
            result[key] = value
        elif key in by_alias:
            result[by_alias[key]] = value
    return result

