"""
Chronoline models.

Usage:
    from chronoline.models import Timeline, TimelineData, Event, EventCreate
    from chronoline.models import ApiModel, UtcDatetime, to_utc_datetime
"""

# --- Enums ---
from chronoline.models.enums import (
    EventStatus, Priority, StorageMode, StoreStatus, normalize_storage_mode,
)

# --- Shared plumbing ---
from chronoline.models.base import ApiModel, UtcDatetime, to_utc_datetime, utc_now

# --- Domain models ---
from chronoline.models.domain import (
    AuthResponse, LoginRequest, RegisterRequest, TokenIdentity, TokenResponse, User,
    Event, EventCreate, EventUpdate,
    DEFAULT_HIGHLIGHT_COLOR, Highlight, HighlightCreate, HighlightUpdate,
    Timeline, TimelineCreate, TimelineData, TimelineUpdate,
    ImageInfo, ImageRecord, ImageUploadResult,
    EXPORT_FORMAT_VERSION, ExportDocument, ExportedTimeline, ImportTimeline,
    split_import_document,
)

__all__ = [
    # Enums
    "EventStatus", "Priority", "StorageMode", "StoreStatus", "normalize_storage_mode",
    # Plumbing
    "ApiModel", "UtcDatetime", "to_utc_datetime", "utc_now",
    # Domain
    "AuthResponse", "LoginRequest", "RegisterRequest", "TokenIdentity", "TokenResponse", "User",
    "Event", "EventCreate", "EventUpdate",
    "DEFAULT_HIGHLIGHT_COLOR", "Highlight", "HighlightCreate", "HighlightUpdate",
    "Timeline", "TimelineCreate", "TimelineData", "TimelineUpdate",
    "ImageInfo", "ImageRecord", "ImageUploadResult",
    "EXPORT_FORMAT_VERSION", "ExportDocument", "ExportedTimeline", "ImportTimeline",
    "split_import_document",
]
