"""
Local storage adapters.

Both variants store whole timeline documents as JSON text under
``timeline-data/timelines/<id>.json`` keys and images as data URLs under
``timeline-data/images/<filename>``. They differ only in the key-value
backend: an embedded SQLite file or a plain dict optionally mirrored to a
JSON file.
"""

import json
from abc import abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from chronoline.client.errors import StorageError
from chronoline.client.models import StorageInfo, TimelineData
from chronoline.client.storage.base import StorageAdapter
from chronoline.config import settings
from chronoline.logging import get_logger
from chronoline.models import EXPORT_FORMAT_VERSION, StorageMode, split_import_document

logger = get_logger('client.storage.local')

DATA_DIR = "timeline-data"
TIMELINES_PREFIX = f"{DATA_DIR}/timelines/"
IMAGES_PREFIX = f"{DATA_DIR}/images/"


def timeline_key(timeline_id: str) -> str:
    return f"{TIMELINES_PREFIX}{timeline_id}.json"


def image_key(filename: str) -> str:
    return f"{IMAGES_PREFIX}{filename}"


class LocalStorageAdapter(StorageAdapter):
    """Document storage over a string key-value backend."""

    @abstractmethod
    async def _put(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def _get(self, key: str) -> str | None: ...

    @abstractmethod
    async def _delete(self, key: str) -> None: ...

    @abstractmethod
    async def _items(self, prefix: str) -> list[tuple[str, str]]: ...

    # ── Timelines ──

    async def save_timeline(self, timeline: TimelineData) -> TimelineData:
        await self._put(timeline_key(timeline.id), json.dumps(timeline.to_api(), indent=2))
        return timeline.model_copy(deep=True)

    async def load_timeline(self, timeline_id: str) -> TimelineData:
        raw = await self._get(timeline_key(timeline_id))
        if raw is None:
            raise StorageError(f"Timeline not found: {timeline_id}", 404)
        try:
            return TimelineData.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise StorageError(f"Timeline {timeline_id} is corrupt") from exc

    async def delete_timeline(self, timeline_id: str) -> None:
        await self._delete(timeline_key(timeline_id))

    async def list_timelines(self) -> list[str]:
        ids = []
        for key, _ in await self._items(TIMELINES_PREFIX):
            name = key[len(TIMELINES_PREFIX):]
            if name.endswith(".json"):
                ids.append(name[: -len(".json")])
        return ids

    async def timeline_exists(self, timeline_id: str) -> bool:
        return await self._get(timeline_key(timeline_id)) is not None

    # ── Images ──

    async def save_image(self, filename: str, data_url: str) -> str:
        await self._put(image_key(filename), data_url)
        return filename

    async def load_image(self, filename: str) -> str:
        data = await self._get(image_key(filename))
        if data is None:
            raise StorageError(f"Image not found: {filename}", 404)
        return data

    async def delete_image(self, filename: str) -> None:
        await self._delete(image_key(filename))

    # ── Export / import ──

    async def export_timeline(self, timeline_id: str) -> dict[str, Any]:
        timeline = await self.load_timeline(timeline_id)

        images: dict[str, str] = {}
        for event in timeline.events:
            if not event.image:
                continue
            try:
                images[event.image] = await self.load_image(event.image)
            except StorageError as exc:
                logger.warning(f"Failed to load image {event.image}: {exc.message}")

        exported = timeline.to_api()
        exported["exportedAt"] = datetime.now(timezone.utc).isoformat()
        exported["version"] = EXPORT_FORMAT_VERSION
        return {"timeline": exported, "images": images}

    async def import_timeline(self, document: dict[str, Any]) -> TimelineData:
        """
        Store a copy of an exported timeline under a fresh id.

        Images are imported best-effort before the timeline is saved.
        """
        if not isinstance(document, dict):
            raise StorageError("Invalid timeline data")
        raw_timeline, images = split_import_document(document)

        raw = dict(raw_timeline)
        raw.pop("exportedAt", None)
        raw.pop("version", None)
        raw["id"] = self.generate_id()
        raw["updatedAt"] = datetime.now(timezone.utc).isoformat()
        try:
            timeline = TimelineData.model_validate(raw)
        except PydanticValidationError as exc:
            raise StorageError("Invalid timeline data") from exc

        for filename, data_url in images.items():
            try:
                await self.save_image(filename, data_url)
            except (StorageError, TypeError, aiosqlite.Error) as exc:
                logger.warning(f"Failed to import image {filename}: {exc}")

        return await self.save_timeline(timeline)

    async def get_storage_info(self) -> StorageInfo:
        timelines = await self._items(TIMELINES_PREFIX)
        images = await self._items(IMAGES_PREFIX)
        size = sum(len(value) for _, value in timelines + images)
        return StorageInfo(
            total_timelines=len(timelines),
            total_images=len(images),
            storage_size=size,
        )


MEMORY_DB = ":memory:"

DOCUMENTS_SCHEMA = """CREATE TABLE IF NOT EXISTS documents (
    path TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
)"""


class EmbeddedStorageAdapter(LocalStorageAdapter):
    """
    Keeps documents in a local SQLite file.

    With ``db_path=":memory:"`` a single connection is held until ``close()``,
    since every new in-memory connection starts from an empty database.
    """

    mode = StorageMode.EMBEDDED

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or settings.LOCAL_DATABASE_PATH
        self._ready = False
        self._memory_db: aiosqlite.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY_DB

    async def init(self) -> None:
        if self._ready:
            return
        if self.in_memory:
            self._memory_db = await aiosqlite.connect(MEMORY_DB)
            await self._memory_db.execute(DOCUMENTS_SCHEMA)
            await self._memory_db.commit()
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(DOCUMENTS_SCHEMA)
                await db.commit()
        self._ready = True

    async def close(self) -> None:
        if self._memory_db is not None:
            await self._memory_db.close()
            self._memory_db = None
            self._ready = False

    @asynccontextmanager
    async def _connection(self):
        await self.init()
        if self._memory_db is not None:
            yield self._memory_db
            return
        db = await aiosqlite.connect(self.db_path)
        try:
            yield db
        finally:
            await db.close()

    async def _put(self, key: str, value: str) -> None:
        async with self._connection() as db:
            await db.execute(
                """INSERT INTO documents (path, data, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(path) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at""",
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            await db.commit()

    async def _get(self, key: str) -> str | None:
        async with self._connection() as db:
            cursor = await db.execute("SELECT data FROM documents WHERE path = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def _delete(self, key: str) -> None:
        async with self._connection() as db:
            await db.execute("DELETE FROM documents WHERE path = ?", (key,))
            await db.commit()

    async def _items(self, prefix: str) -> list[tuple[str, str]]:
        async with self._connection() as db:
            cursor = await db.execute(
                "SELECT path, data FROM documents WHERE substr(path, 1, ?) = ? ORDER BY path",
                (len(prefix), prefix),
            )
            rows = await cursor.fetchall()
            return [(r[0], r[1]) for r in rows]


class KeyValueStorageAdapter(LocalStorageAdapter):
    """
    Fallback store: an in-process dict.

    When ``path`` is set the dict is loaded from and written back to that
    JSON file on every change; otherwise data lives only as long as the
    adapter.
    """

    mode = StorageMode.KEY_VALUE

    def __init__(self, path: str | None = None):
        path = path if path is not None else settings.KEY_VALUE_PATH
        self.path = Path(path) if path else None
        self._data: dict[str, str] = {}
        self._loaded = False

    async def init(self) -> None:
        if self._loaded:
            return
        if self.path and self.path.exists():
            self._data = json.loads(self.path.read_text(encoding="utf-8"))
        self._loaded = True

    def _flush(self) -> None:
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data), encoding="utf-8")

    async def _put(self, key: str, value: str) -> None:
        await self.init()
        self._data[key] = value
        self._flush()

    async def _get(self, key: str) -> str | None:
        await self.init()
        return self._data.get(key)

    async def _delete(self, key: str) -> None:
        await self.init()
        if self._data.pop(key, None) is not None:
            self._flush()

    async def _items(self, prefix: str) -> list[tuple[str, str]]:
        await self.init()
        return sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
