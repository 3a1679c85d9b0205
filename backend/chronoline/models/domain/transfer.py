"""Export/import document models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from chronoline.models.base import ApiModel, utc_now
from chronoline.models.domain.timeline import TimelineData

EXPORT_FORMAT_VERSION = "1.0"


class ExportedTimeline(TimelineData):
    """Timeline aggregate stamped with export metadata."""
    exported_at: datetime = Field(default_factory=utc_now)
    version: str = EXPORT_FORMAT_VERSION


class ExportDocument(ApiModel):
    """The ``{timeline, images}`` envelope produced by export."""
    timeline: ExportedTimeline
    images: dict[str, str] = Field(default_factory=dict)


class ImportTimeline(ApiModel):
    """
    Loosely-typed timeline read from an import document.

    Children stay raw so each one can be validated, and skipped,
    individually; an item that is not an object is skipped too.
    """
    name: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)
    events: list[Any] = Field(default_factory=list)
    highlights: list[Any] = Field(default_factory=list)


def split_import_document(document: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """
    Accept either a bare timeline or the full export envelope.

    :return: Tuple of (timeline dict, images by filename)
    :rtype: tuple[dict, dict[str, str]]
    """
    if isinstance(document.get("timeline"), dict) and "images" in document:
        return document["timeline"], dict(document.get("images") or {})
    return document, {}
