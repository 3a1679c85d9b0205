"""
Viewport math for the workspace.

The viewport is a visible date window plus a zoom level and a pixel scale.
Offsets are measured in pixels from ``start_date``, with ``pixels_per_unit``
pixels per ``unit`` of time (one day by default).
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from chronoline.models.base import UtcDatetime, utc_now

MIN_ZOOM = 0.125
MAX_ZOOM = 16.0
ZOOM_STEP = 2.0

MIN_PIXELS_PER_UNIT = 2.0
MAX_PIXELS_PER_UNIT = 100.0
SCALE_STEP = 1.5

DEFAULT_ZOOM = 1.0
DEFAULT_PIXELS_PER_UNIT = 15.0
DEFAULT_HALF_SPAN = timedelta(days=365)


def _default_start() -> datetime:
    return utc_now() - DEFAULT_HALF_SPAN


def _default_end() -> datetime:
    return utc_now() + DEFAULT_HALF_SPAN


class Viewport(BaseModel):
    start_date: UtcDatetime = Field(default_factory=_default_start)
    end_date: UtcDatetime = Field(default_factory=_default_end)
    center_date: UtcDatetime = Field(default_factory=utc_now)
    zoom_level: float = DEFAULT_ZOOM
    pixels_per_unit: float = DEFAULT_PIXELS_PER_UNIT
    unit: timedelta = timedelta(days=1)

    @property
    def span(self) -> timedelta:
        return self.end_date - self.start_date

    # ── Zoom ──

    def zoom_in(self) -> None:
        self.zoom_level = min(self.zoom_level * ZOOM_STEP, MAX_ZOOM)
        self.pixels_per_unit = min(self.pixels_per_unit * SCALE_STEP, MAX_PIXELS_PER_UNIT)

    def zoom_out(self) -> None:
        self.zoom_level = max(self.zoom_level / ZOOM_STEP, MIN_ZOOM)
        self.pixels_per_unit = max(self.pixels_per_unit / SCALE_STEP, MIN_PIXELS_PER_UNIT)

    def reset_zoom(self) -> None:
        self.zoom_level = DEFAULT_ZOOM
        self.pixels_per_unit = DEFAULT_PIXELS_PER_UNIT

    # ── Position ──

    def center_on(self, date: datetime) -> None:
        """Move the window so ``date`` sits in the middle, keeping its span."""
        half = self.span / 2
        self.center_date = date
        self.start_date = date - half
        self.end_date = date + half

    def pan_by(self, delta: timedelta) -> None:
        self.start_date += delta
        self.end_date += delta
        self.center_date += delta

    def pan_by_pixels(self, pixels: float) -> None:
        self.pan_by(self.unit * (pixels / self.pixels_per_unit))

    # ── Conversion ──

    def offset_of(self, date: datetime) -> float:
        """Pixel offset of ``date`` from the start of the window."""
        return (date - self.start_date) / self.unit * self.pixels_per_unit

    def date_at(self, offset: float) -> datetime:
        return self.start_date + self.unit * (offset / self.pixels_per_unit)

    def overlaps(self, start: datetime, end: Optional[datetime] = None) -> bool:
        """True if ``[start, end]`` intersects the window; ``end`` defaults to ``start``."""
        return start <= self.end_date and (end or start) >= self.start_date
