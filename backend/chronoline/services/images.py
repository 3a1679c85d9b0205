"""Image service: data-URL image storage keyed by filename."""

import mimetypes
from datetime import datetime, timezone
from pathlib import PurePath
from uuid import uuid4

import aiosqlite

from chronoline.config import settings
from chronoline.data_url import approximate_size, build_data_url, mime_type_of, parse_data_url
from chronoline.errors import ValidationError
from chronoline.logging import get_logger
from chronoline.models import ImageInfo, ImageRecord, ImageUploadResult

logger = get_logger('services.images')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_image(row: dict) -> ImageRecord:
    return ImageRecord(
        filename=row["filename"],
        data=row["data"],
        mime_type=row.get("mime_type"),
        size=row.get("size"),
        created_at=row.get("created_at"),
    )


def generate_image_filename(original_name: str | None, mime_type: str) -> str:
    """Build a collision-free ``event-<uuid>.<ext>`` name for an upload."""
    ext = PurePath(original_name or "").suffix.lower()
    if not ext:
        ext = mimetypes.guess_extension(mime_type) or ".img"
    return f"event-{uuid4()}{ext}"


class ImageService:
    """Stores images as data URLs; filenames are global and unique."""

    def __init__(self, db_path: str, max_bytes: int | None = None):
        self.db_path = db_path
        self.max_bytes = max_bytes or settings.MAX_IMAGE_BYTES

    async def _get_db(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        return db

    async def save_image(
        self,
        filename: str,
        data_url: str,
        mime_type: str | None = None,
        size: int | None = None,
    ) -> ImageRecord:
        """
        Insert or replace the image stored under ``filename``.

        Mime type and size are derived from the data URL when not given.
        """
        mime_type = mime_type or mime_type_of(data_url)
        size = size if size is not None else approximate_size(data_url)
        now = _now()

        db = await self._get_db()
        try:
            await db.execute(
                """INSERT INTO images (id, filename, data, mime_type, size, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(filename) DO UPDATE SET
                       data = excluded.data,
                       mime_type = excluded.mime_type,
                       size = excluded.size""",
                (str(uuid4()), filename, data_url, mime_type, size, now),
            )
            await db.commit()
        finally:
            await db.close()

        return await self.get_image(filename)

    async def get_image(self, filename: str) -> ImageRecord | None:
        db = await self._get_db()
        try:
            cursor = await db.execute("SELECT * FROM images WHERE filename = ?", (filename,))
            row = await cursor.fetchone()
            return _row_to_image(dict(row)) if row else None
        finally:
            await db.close()

    async def get_info(self, filename: str) -> ImageInfo | None:
        image = await self.get_image(filename)
        if not image:
            return None
        return ImageInfo(
            filename=image.filename,
            mime_type=image.mime_type,
            size=image.size,
            created_at=image.created_at,
        )

    async def get_image_bytes(self, filename: str) -> tuple[str, bytes] | None:
        """Return ``(mime type, raw bytes)`` for a stored image."""
        image = await self.get_image(filename)
        if not image:
            return None
        mime_type, payload = parse_data_url(image.data)
        return image.mime_type or mime_type, payload

    async def delete_image(self, filename: str) -> ImageRecord | None:
        db = await self._get_db()
        try:
            cursor = await db.execute("SELECT * FROM images WHERE filename = ?", (filename,))
            row = await cursor.fetchone()
            if not row:
                return None
            await db.execute("DELETE FROM images WHERE filename = ?", (filename,))
            await db.commit()
        finally:
            await db.close()

        logger.info(f"Deleted image {filename}")
        return _row_to_image(dict(row))

    async def upload(
        self,
        content: bytes,
        content_type: str | None,
        original_name: str | None = None,
    ) -> ImageUploadResult:
        """
        Validate and store an uploaded file.

        :raises ValidationError: If the file is empty, not an image, or too large
        """
        if not content:
            raise ValidationError("No image file provided")
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"Image exceeds maximum size of {self.max_bytes // (1024 * 1024)} MB"
            )

        filename = generate_image_filename(original_name, content_type)
        await self.save_image(
            filename,
            build_data_url(content, content_type),
            mime_type=content_type,
            size=len(content),
        )
        logger.info(f"Stored image {filename} ({len(content)} bytes)")
        return ImageUploadResult(
            filename=filename,
            original_name=original_name,
            mime_type=content_type,
            size=len(content),
        )
