"""
Timeline client store.

Holds the current timeline and the list of available timeline ids, and
persists every mutation immediately through a storage adapter. Failures are
recorded on ``error`` as ``"Failed to <action>: <message>"`` and re-raised.
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import PurePath
from typing import Any, Callable, Optional

from chronoline.client.models import (
    TimelineData,
    TimelineEvent,
    TimelineHighlight,
    TimelineSettings,
    field_names,
)
from chronoline.client.storage.base import StorageAdapter
from chronoline.config import settings as app_settings
from chronoline.data_url import DEFAULT_MIME_TYPE, build_data_url
from chronoline.logging import get_logger
from chronoline.models import StoreStatus
from chronoline.models.base import utc_now

logger = get_logger('client.store')

DEFAULT_TIMELINE_NAME = "My Timeline"
FALLBACK_TIMELINE_NAME = "Default Timeline"
DELETE_TIMED_OUT = "Timeline deletion timed out"

Listener = Callable[["TimelineStore"], None]


class TimelineStore:
    """State container for the user's timelines."""

    def __init__(self, adapter: StorageAdapter, delete_timeout: float | None = None):
        self.adapter = adapter
        self.delete_timeout = delete_timeout or app_settings.DELETE_TIMEOUT_SECONDS
        self.current_timeline: Optional[TimelineData] = None
        self.available_timelines: list[str] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.status = StoreStatus.UNINITIALIZED
        self._listeners: list[Listener] = []
        self._depth = 0

    # ── Derived ──

    @property
    def is_initialized(self) -> bool:
        return self.status is StoreStatus.READY

    @property
    def events(self) -> list[TimelineEvent]:
        return self.current_timeline.events if self.current_timeline else []

    @property
    def highlights(self) -> list[TimelineHighlight]:
        return self.current_timeline.highlights if self.current_timeline else []

    @property
    def settings(self) -> TimelineSettings:
        return self.current_timeline.settings if self.current_timeline else TimelineSettings()

    # ── Change listeners ──

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @asynccontextmanager
    async def _operation(self, action: str):
        """
        Loading/error bookkeeping around one store action.

        Actions nest (creating a timeline reloads the id list); only the
        outermost one toggles ``is_loading`` and notifies, and the innermost
        failure keeps its message.
        """
        outermost = self._depth == 0
        if outermost:
            self.is_loading = True
            self.error = None
            self._notify()
        self._depth += 1
        try:
            yield
        except Exception as exc:
            if self.error is None:
                self.error = f"Failed to {action}: {exc}"
                logger.error(self.error)
            raise
        finally:
            self._depth -= 1
            if outermost:
                self.is_loading = False
                self._notify()

    # ── Lifecycle ──

    async def initialize(self, user_id: str | None) -> None:
        """
        Load the user's first timeline, creating one if they have none.

        A no-op without a user id or once the store has left UNINITIALIZED.
        """
        if not user_id:
            logger.info("No authenticated user, skipping timeline initialization")
            return
        if self.status is not StoreStatus.UNINITIALIZED:
            return

        logger.info(f"Initializing timeline store for user {user_id[:8]}")
        self.status = StoreStatus.INITIALIZING
        try:
            await self.adapter.init()
            await self.load_available_timelines()
            if not self.available_timelines:
                await self.create_timeline(DEFAULT_TIMELINE_NAME)
            else:
                await self.load_timeline(self.available_timelines[0])
        except Exception:
            self.status = StoreStatus.UNINITIALIZED
            raise

        self.status = StoreStatus.READY
        self._notify()

    def reset(self) -> None:
        self.current_timeline = None
        self.available_timelines = []
        self.is_loading = False
        self.error = None
        self.status = StoreStatus.UNINITIALIZED
        self._notify()

    # ── Timelines ──

    async def create_timeline(self, name: str) -> TimelineData:
        async with self._operation("create timeline"):
            now = utc_now()
            timeline = TimelineData(
                id=self.adapter.generate_id(),
                name=name,
                settings=TimelineSettings(center_date=now),
                created_at=now,
                updated_at=now,
            )
            self.current_timeline = await self.adapter.save_timeline(timeline)
            await self.load_available_timelines()
            return self.current_timeline

    async def load_timeline(self, timeline_id: str) -> TimelineData:
        async with self._operation("load timeline"):
            self.current_timeline = await self.adapter.load_timeline(timeline_id)
            return self.current_timeline

    async def save_current_timeline(self) -> None:
        if not self.current_timeline:
            return
        async with self._operation("save timeline"):
            self.current_timeline.updated_at = utc_now()
            # The adapter's snapshot carries any ids the backend assigned.
            self.current_timeline = await self.adapter.save_timeline(self.current_timeline)

    async def load_available_timelines(self) -> list[str]:
        async with self._operation("load available timelines"):
            self.available_timelines = await self.adapter.list_timelines()
            return self.available_timelines

    async def delete_timeline(self, timeline_id: str) -> None:
        """
        Delete a timeline, waiting at most ``delete_timeout`` seconds.

        If the active timeline is deleted the first remaining one is loaded,
        or a fallback timeline is created when none remain.

        :raises TimeoutError: If the deletion does not finish in time
        """
        try:
            async with self._operation("delete timeline"):
                await asyncio.wait_for(self._delete_and_replace(timeline_id), self.delete_timeout)
        except TimeoutError as exc:
            self.error = DELETE_TIMED_OUT
            self._notify()
            raise TimeoutError(DELETE_TIMED_OUT) from exc

        logger.info(f"Deleted timeline {timeline_id[:8]}")

    async def _delete_and_replace(self, timeline_id: str) -> None:
        was_current = self.current_timeline is not None and self.current_timeline.id == timeline_id
        await self.adapter.delete_timeline(timeline_id)
        await self.load_available_timelines()

        if not was_current:
            return
        if self.available_timelines:
            await self.load_timeline(self.available_timelines[0])
        else:
            await self.create_timeline(FALLBACK_TIMELINE_NAME)

    # ── Events ──

    async def add_event(self, **fields: Any) -> None:
        if not self.current_timeline:
            return
        values = field_names(TimelineEvent, fields)
        values["id"] = self.adapter.generate_id()
        self.current_timeline.events.append(TimelineEvent.model_validate(values))
        await self.save_current_timeline()

    async def update_event(self, event_id: str, **updates: Any) -> None:
        if not self.current_timeline:
            return
        index = _index_of(self.current_timeline.events, event_id)
        if index is None:
            return
        existing = self.current_timeline.events[index]
        changes = field_names(TimelineEvent, updates)
        changes.pop("id", None)
        self.current_timeline.events[index] = TimelineEvent.model_validate(
            {**existing.model_dump(), **changes}
        )
        await self.save_current_timeline()

    async def delete_event(self, event_id: str) -> None:
        if not self.current_timeline:
            return
        index = _index_of(self.current_timeline.events, event_id)
        if index is None:
            return

        event = self.current_timeline.events[index]
        if event.image:
            async with self._operation("delete image"):
                await self.adapter.delete_image(event.image)

        self.current_timeline.events.pop(index)
        await self.save_current_timeline()

    # ── Highlights ──

    async def add_highlight(self, **fields: Any) -> None:
        if not self.current_timeline:
            return
        values = field_names(TimelineHighlight, fields)
        values["id"] = self.adapter.generate_id()
        if values.get("color") is None:
            values.pop("color", None)
        self.current_timeline.highlights.append(TimelineHighlight.model_validate(values))
        await self.save_current_timeline()

    async def update_highlight(self, highlight_id: str, **updates: Any) -> None:
        if not self.current_timeline:
            return
        index = _index_of(self.current_timeline.highlights, highlight_id)
        if index is None:
            return
        existing = self.current_timeline.highlights[index]
        changes = field_names(TimelineHighlight, updates)
        changes.pop("id", None)
        self.current_timeline.highlights[index] = TimelineHighlight.model_validate(
            {**existing.model_dump(), **changes}
        )
        await self.save_current_timeline()

    async def delete_highlight(self, highlight_id: str) -> None:
        if not self.current_timeline:
            return
        index = _index_of(self.current_timeline.highlights, highlight_id)
        if index is None:
            return
        self.current_timeline.highlights.pop(index)
        await self.save_current_timeline()

    # ── Images ──

    async def save_image(
        self,
        content: bytes,
        original_name: str,
        mime_type: str | None = None,
    ) -> str:
        """
        Store an image file and return the filename to put on an event.

        The name is ``event-<id>.<ext>``; a backend may substitute its own.
        """
        async with self._operation("save image"):
            extension = PurePath(original_name).suffix.lstrip(".") or "jpg"
            filename = f"event-{self.adapter.generate_id()}.{extension}"
            data_url = build_data_url(content, mime_type or DEFAULT_MIME_TYPE)
            return await self.adapter.save_image(filename, data_url)

    # ── Export / import ──

    async def export_timeline(self, timeline_id: str | None = None) -> dict[str, Any]:
        target = timeline_id or (self.current_timeline.id if self.current_timeline else None)
        if not target:
            raise ValueError("No timeline to export")
        async with self._operation("export timeline"):
            return await self.adapter.export_timeline(target)

    async def import_timeline(self, document: dict[str, Any]) -> TimelineData:
        async with self._operation("import timeline"):
            self.current_timeline = await self.adapter.import_timeline(document)
            await self.load_available_timelines()
            return self.current_timeline


def _index_of(items: list, item_id: str) -> Optional[int]:
    return next((i for i, item in enumerate(items) if item.id == item_id), None)
