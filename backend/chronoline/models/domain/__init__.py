"""Domain models for users, timelines and their children."""

from chronoline.models.domain.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    TokenIdentity,
    TokenResponse,
    User,
)
from chronoline.models.domain.event import Event, EventCreate, EventUpdate
from chronoline.models.domain.highlight import (
    DEFAULT_HIGHLIGHT_COLOR,
    Highlight,
    HighlightCreate,
    HighlightUpdate,
)
from chronoline.models.domain.timeline import (
    Timeline,
    TimelineCreate,
    TimelineData,
    TimelineUpdate,
)
from chronoline.models.domain.image import ImageInfo, ImageRecord, ImageUploadResult
from chronoline.models.domain.transfer import (
    EXPORT_FORMAT_VERSION,
    ExportDocument,
    ExportedTimeline,
    ImportTimeline,
    split_import_document,
)

__all__ = [
    "AuthResponse", "LoginRequest", "RegisterRequest", "TokenIdentity", "TokenResponse", "User",
    "Event", "EventCreate", "EventUpdate",
    "DEFAULT_HIGHLIGHT_COLOR", "Highlight", "HighlightCreate", "HighlightUpdate",
    "Timeline", "TimelineCreate", "TimelineData", "TimelineUpdate",
    "ImageInfo", "ImageRecord", "ImageUploadResult",
    "EXPORT_FORMAT_VERSION", "ExportDocument", "ExportedTimeline", "ImportTimeline",
    "split_import_document",
]
