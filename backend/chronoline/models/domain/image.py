"""Image models."""

from datetime import datetime
from typing import Optional

from chronoline.models.base import ApiModel


class ImageRecord(ApiModel):
    """A stored image; ``data`` is the full data URL."""
    filename: str
    data: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    created_at: Optional[datetime] = None


class ImageInfo(ApiModel):
    filename: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    created_at: Optional[datetime] = None


class ImageUploadResult(ApiModel):
    filename: str
    original_name: Optional[str] = None
    mime_type: str
    size: int
