"""Timeline service for timeline, event and highlight persistence."""

import json
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import aiosqlite

from chronoline.errors import ValidationError
from chronoline.logging import get_logger
from chronoline.models import (
    DEFAULT_HIGHLIGHT_COLOR,
    Event,
    EventCreate,
    EventUpdate,
    Highlight,
    HighlightCreate,
    HighlightUpdate,
    Timeline,
    TimelineCreate,
    TimelineData,
    TimelineUpdate,
)

logger = get_logger('services.timeline')

# API field name -> storage column
EVENT_COLUMNS = {
    "title": "title",
    "description": "description",
    "start_date": "start_date",
    "end_date": "end_date",
    "color": "color",
    "image": "image_filename",
    "link": "link",
    "track": "track",
}
HIGHLIGHT_COLUMNS = {
    "start_date": "start_date",
    "end_date": "end_date",
    "start_label": "start_label",
    "end_label": "end_label",
    "color": "color",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _parse(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    parsed = datetime.fromisoformat(str(raw))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _load_json(raw: str | None, fallback: Any) -> Any:
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return fallback


def _check_date_order(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and _parse(end) < _parse(start):
        raise ValidationError("End date must not be before start date")


def _row_to_timeline(row: dict) -> Timeline:
    return Timeline(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        settings=_load_json(row.get("settings"), {}),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_event(row: dict) -> Event:
    return Event(
        id=row["id"],
        timeline_id=row["timeline_id"],
        title=row["title"],
        description=row.get("description"),
        start_date=row["start_date"],
        end_date=row.get("end_date"),
        color=row.get("color"),
        image=row.get("image_filename"),
        link=row.get("link"),
        track=row.get("track") or 0,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _row_to_highlight(row: dict) -> Highlight:
    return Highlight(
        id=row["id"],
        timeline_id=row["timeline_id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        start_label=row.get("start_label"),
        end_label=row.get("end_label"),
        color=row.get("color") or DEFAULT_HIGHLIGHT_COLOR,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class TimelineService:
    """
    Data access for timelines and their children.

    Timeline reads and writes are scoped by owning user id; event and
    highlight writes are scoped by timeline id. Routers are expected to load
    the parent timeline for the caller before touching its children.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def _get_db(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        return db

    async def _fetch_one(self, query: str, params: tuple) -> dict | None:
        db = await self._get_db()
        try:
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
            return dict(row) if row else None
        finally:
            await db.close()

    async def _fetch_all(self, query: str, params: tuple) -> list[dict]:
        db = await self._get_db()
        try:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(r) for r in rows]
        finally:
            await db.close()

    async def _delete_returning(self, table: str, row_id: str, scope_column: str, scope_id: str) -> dict | None:
        db = await self._get_db()
        try:
            cursor = await db.execute(
                f"SELECT * FROM {table} WHERE id = ? AND {scope_column} = ?",
                (row_id, scope_id),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            await db.execute(
                f"DELETE FROM {table} WHERE id = ? AND {scope_column} = ?",
                (row_id, scope_id),
            )
            await db.commit()
            return dict(row)
        finally:
            await db.close()

    async def _apply_update(
        self,
        table: str,
        fields: dict[str, Any],
        row_id: str,
        scope_column: str,
        scope_id: str,
    ) -> None:
        fields["updated_at"] = _now()
        set_clause = ", ".join(f"{key} = ?" for key in fields)
        params = list(fields.values()) + [row_id, scope_id]

        db = await self._get_db()
        try:
            await db.execute(
                f"UPDATE {table} SET {set_clause} WHERE id = ? AND {scope_column} = ?",
                params,
            )
            await db.commit()
        finally:
            await db.close()

    # ── Timelines ──

    async def list_timelines(self, user_id: str) -> list[Timeline]:
        rows = await self._fetch_all(
            "SELECT * FROM timelines WHERE user_id = ? ORDER BY updated_at DESC, created_at DESC",
            (user_id,),
        )
        return [_row_to_timeline(r) for r in rows]

    async def get_timeline(self, timeline_id: str, user_id: str) -> Timeline | None:
        row = await self._fetch_one(
            "SELECT * FROM timelines WHERE id = ? AND user_id = ?",
            (timeline_id, user_id),
        )
        return _row_to_timeline(row) if row else None

    async def create_timeline(self, user_id: str, data: TimelineCreate) -> Timeline:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Timeline name is required")

        now = _now()
        timeline = Timeline(
            id=str(uuid4()),
            user_id=user_id,
            name=name,
            settings=data.settings or {},
            created_at=now,
            updated_at=now,
        )

        db = await self._get_db()
        try:
            await db.execute(
                """INSERT INTO timelines (id, user_id, name, settings, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (timeline.id, user_id, timeline.name, json.dumps(timeline.settings), now, now),
            )
            await db.commit()
        finally:
            await db.close()

        logger.info(f"Created timeline: {timeline.name} ({timeline.id[:8]})")
        return timeline

    async def update_timeline(
        self,
        timeline_id: str,
        user_id: str,
        data: TimelineUpdate,
    ) -> Timeline | None:
        existing = await self.get_timeline(timeline_id, user_id)
        if not existing:
            return None

        changes = data.model_dump(exclude_unset=True)
        fields: dict[str, Any] = {}
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Timeline name cannot be empty")
            fields["name"] = name
        if "settings" in changes:
            fields["settings"] = json.dumps(changes["settings"] or {})

        if not fields:
            return existing

        await self._apply_update("timelines", fields, timeline_id, "user_id", user_id)
        return await self.get_timeline(timeline_id, user_id)

    async def delete_timeline(self, timeline_id: str, user_id: str) -> Timeline | None:
        row = await self._delete_returning("timelines", timeline_id, "user_id", user_id)
        if not row:
            return None
        logger.info(f"Deleted timeline {timeline_id[:8]} and all associated data")
        return _row_to_timeline(row)

    async def get_full_timeline_data(self, timeline_id: str, user_id: str) -> TimelineData | None:
        timeline = await self.get_timeline(timeline_id, user_id)
        if not timeline:
            return None

        events = await self.list_events(timeline_id)
        highlights = await self.list_highlights(timeline_id)
        return TimelineData(
            id=timeline.id,
            name=timeline.name,
            events=events,
            highlights=highlights,
            settings=timeline.settings,
            created_at=timeline.created_at,
            updated_at=timeline.updated_at,
        )

    # ── Events ──

    async def list_events(self, timeline_id: str) -> list[Event]:
        rows = await self._fetch_all(
            "SELECT * FROM events WHERE timeline_id = ? ORDER BY start_date ASC, created_at ASC",
            (timeline_id,),
        )
        return [_row_to_event(r) for r in rows]

    async def get_event(self, timeline_id: str, event_id: str) -> Event | None:
        row = await self._fetch_one(
            "SELECT * FROM events WHERE id = ? AND timeline_id = ?",
            (event_id, timeline_id),
        )
        return _row_to_event(row) if row else None

    async def create_event(self, timeline_id: str, data: EventCreate) -> Event:
        title = (data.title or "").strip()
        if not title or data.start_date is None:
            raise ValidationError("Title and start date are required")
        _check_date_order(data.start_date, data.end_date)

        now = _now()
        event_id = str(uuid4())
        db = await self._get_db()
        try:
            await db.execute(
                """INSERT INTO events
                   (id, timeline_id, title, description, start_date, end_date, color, image_filename, link, track, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    timeline_id,
                    title,
                    data.description,
                    _iso(data.start_date),
                    _iso(data.end_date),
                    data.color,
                    data.image,
                    data.link,
                    data.track or 0,
                    now,
                    now,
                ),
            )
            await db.commit()
        finally:
            await db.close()

        event = await self.get_event(timeline_id, event_id)
        if not event:
            raise ValueError("Failed to create event")
        return event

    async def update_event(
        self,
        timeline_id: str,
        event_id: str,
        data: EventUpdate,
    ) -> Event | None:
        existing = await self.get_event(timeline_id, event_id)
        if not existing:
            return None

        changes = data.model_dump(exclude_unset=True)
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Title cannot be empty")
        if "start_date" in changes and changes["start_date"] is None:
            raise ValidationError("Start date cannot be empty")
        _check_date_order(
            changes.get("start_date", existing.start_date),
            changes.get("end_date", existing.end_date),
        )

        fields: dict[str, Any] = {}
        for key, value in changes.items():
            column = EVENT_COLUMNS.get(key)
            if column is None:
                continue
            if key in ("start_date", "end_date"):
                value = _iso(value)
            elif key == "track":
                value = value or 0
            elif key == "title":
                value = value.strip()
            fields[column] = value

        if not fields:
            return existing

        await self._apply_update("events", fields, event_id, "timeline_id", timeline_id)
        return await self.get_event(timeline_id, event_id)

    async def delete_event(self, timeline_id: str, event_id: str) -> Event | None:
        row = await self._delete_returning("events", event_id, "timeline_id", timeline_id)
        return _row_to_event(row) if row else None

    # ── Highlights ──

    async def list_highlights(self, timeline_id: str) -> list[Highlight]:
        rows = await self._fetch_all(
            "SELECT * FROM highlights WHERE timeline_id = ? ORDER BY start_date ASC, created_at ASC",
            (timeline_id,),
        )
        return [_row_to_highlight(r) for r in rows]

    async def get_highlight(self, timeline_id: str, highlight_id: str) -> Highlight | None:
        row = await self._fetch_one(
            "SELECT * FROM highlights WHERE id = ? AND timeline_id = ?",
            (highlight_id, timeline_id),
        )
        return _row_to_highlight(row) if row else None

    async def create_highlight(self, timeline_id: str, data: HighlightCreate) -> Highlight:
        if data.start_date is None or data.end_date is None:
            raise ValidationError("Start date and end date are required")
        _check_date_order(data.start_date, data.end_date)

        now = _now()
        highlight_id = str(uuid4())
        db = await self._get_db()
        try:
            await db.execute(
                """INSERT INTO highlights
                   (id, timeline_id, start_date, end_date, start_label, end_label, color, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    highlight_id,
                    timeline_id,
                    _iso(data.start_date),
                    _iso(data.end_date),
                    data.start_label,
                    data.end_label,
                    data.color or DEFAULT_HIGHLIGHT_COLOR,
                    now,
                    now,
                ),
            )
            await db.commit()
        finally:
            await db.close()

        highlight = await self.get_highlight(timeline_id, highlight_id)
        if not highlight:
            raise ValueError("Failed to create highlight")
        return highlight

    async def update_highlight(
        self,
        timeline_id: str,
        highlight_id: str,
        data: HighlightUpdate,
    ) -> Highlight | None:
        existing = await self.get_highlight(timeline_id, highlight_id)
        if not existing:
            return None

        changes = data.model_dump(exclude_unset=True)
        for key in ("start_date", "end_date"):
            if key in changes and changes[key] is None:
                raise ValidationError("Start date and end date cannot be empty")
        _check_date_order(
            changes.get("start_date", existing.start_date),
            changes.get("end_date", existing.end_date),
        )

        fields: dict[str, Any] = {}
        for key, value in changes.items():
            column = HIGHLIGHT_COLUMNS.get(key)
            if column is None:
                continue
            if key in ("start_date", "end_date"):
                value = _iso(value)
            elif key == "color":
                value = value or DEFAULT_HIGHLIGHT_COLOR
            fields[column] = value

        if not fields:
            return existing

        await self._apply_update("highlights", fields, highlight_id, "timeline_id", timeline_id)
        return await self.get_highlight(timeline_id, highlight_id)

    async def delete_highlight(self, timeline_id: str, highlight_id: str) -> Highlight | None:
        row = await self._delete_returning("highlights", highlight_id, "timeline_id", timeline_id)
        return _row_to_highlight(row) if row else None
