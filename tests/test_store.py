"""
Timeline Store Tests
====================

Lifecycle, immediate persistence, image cleanup, delete timeout and
fallback, and error reporting, all against an in-memory key-value store.
"""

import asyncio

import pytest

from chronoline.client.errors import StorageError
from chronoline.client.storage.local import KeyValueStorageAdapter
from chronoline.client.store import (
    DEFAULT_TIMELINE_NAME,
    DELETE_TIMED_OUT,
    FALLBACK_TIMELINE_NAME,
    TimelineStore,
)
from chronoline.models import StoreStatus


class RecordingAdapter(KeyValueStorageAdapter):
    """In-memory adapter that records image deletions and can stall deletes."""

    def __init__(self, delete_delay=0.0):
        super().__init__(path="")
        self.deleted_images = []
        self.delete_delay = delete_delay

    async def delete_image(self, filename):
        self.deleted_images.append(filename)
        await super().delete_image(filename)

    async def delete_timeline(self, timeline_id):
        if self.delete_delay:
            await asyncio.sleep(self.delete_delay)
        await super().delete_timeline(timeline_id)


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
async def store(adapter):
    store = TimelineStore(adapter)
    await store.initialize("user-1234567890")
    return store


class TestInitialize:
    async def test_creates_default_timeline(self, store, adapter):
        assert store.status is StoreStatus.READY
        assert store.is_initialized
        assert store.current_timeline.name == DEFAULT_TIMELINE_NAME
        assert store.available_timelines == [store.current_timeline.id]
        assert await adapter.timeline_exists(store.current_timeline.id)

    async def test_loads_existing_timeline(self, store, adapter):
        existing = store.current_timeline.id

        second = TimelineStore(adapter)
        await second.initialize("user-1234567890")
        assert second.current_timeline.id == existing

    async def test_without_user_is_a_noop(self, adapter):
        store = TimelineStore(adapter)
        await store.initialize(None)

        assert store.status is StoreStatus.UNINITIALIZED
        assert await adapter.list_timelines() == []

    async def test_second_call_is_ignored(self, store, adapter):
        await store.initialize("user-1234567890")
        assert len(await adapter.list_timelines()) == 1

    async def test_reset(self, store):
        store.reset()
        assert store.status is StoreStatus.UNINITIALIZED
        assert store.current_timeline is None
        assert store.events == []


class TestEvents:
    async def test_add_event_normalizes_dates_and_persists(self, store, adapter):
        await store.add_event(title="Departure", start_date="2024-01-01")

        event = store.events[0]
        assert event.start_date.isoformat() == "2024-01-01T00:00:00+00:00"
        stored = await adapter.load_timeline(store.current_timeline.id)
        assert [e.title for e in stored.events] == ["Departure"]

    async def test_update_event_accepts_camel_case(self, store):
        await store.add_event(title="Departure", start_date="2024-01-01")
        event_id = store.events[0].id

        await store.update_event(event_id, endDate="2024-01-03", id="ignored")

        event = store.events[0]
        assert event.id == event_id
        assert event.end_date.day == 3
        assert event.title == "Departure"

    async def test_unknown_event_is_ignored(self, store):
        await store.update_event("missing", title="x")
        await store.delete_event("missing")
        assert store.events == []

    async def test_delete_event_without_image(self, store, adapter):
        await store.add_event(title="Plain", start_date="2024-01-01")
        await store.delete_event(store.events[0].id)

        assert store.events == []
        assert adapter.deleted_images == []

    async def test_delete_event_removes_its_image(self, store, adapter):
        filename = await store.save_image(b"png", "photo.png", "image/png")
        await store.add_event(title="Photo", start_date="2024-01-01", image=filename)

        await store.delete_event(store.events[0].id)

        assert adapter.deleted_images == [filename]
        with pytest.raises(StorageError):
            await adapter.load_image(filename)


class TestHighlights:
    async def test_add_update_delete(self, store):
        await store.add_highlight(start_date="2024-01-01", end_date="2024-01-05", color=None)
        highlight = store.highlights[0]
        assert highlight.color

        await store.update_highlight(highlight.id, start_label="Start")
        assert store.highlights[0].start_label == "Start"

        await store.delete_highlight(highlight.id)
        assert store.highlights == []


class TestImages:
    async def test_save_image_names_file(self, store, adapter):
        filename = await store.save_image(b"gif", "anim.gif", "image/gif")

        assert filename.startswith("event-")
        assert filename.endswith(".gif")
        assert (await adapter.load_image(filename)).startswith("data:image/gif;base64,")


class TestDeleteTimeline:
    async def test_deleting_current_loads_a_remaining_one(self, store):
        first = store.current_timeline.id
        second = (await store.create_timeline("Second")).id

        await store.delete_timeline(second)

        assert store.current_timeline.id == first
        assert store.available_timelines == [first]

    async def test_deleting_last_creates_fallback(self, store):
        only = store.current_timeline.id

        await store.delete_timeline(only)

        assert store.current_timeline.name == FALLBACK_TIMELINE_NAME
        assert store.current_timeline.id != only
        assert store.available_timelines == [store.current_timeline.id]

    async def test_deleting_other_keeps_current(self, store):
        current = store.current_timeline.id
        other = (await store.create_timeline("Other")).id
        await store.load_timeline(current)

        await store.delete_timeline(other)
        assert store.current_timeline.id == current

    async def test_timeout(self, adapter):
        store = TimelineStore(adapter, delete_timeout=0.05)
        await store.initialize("user-1234567890")
        adapter.delete_delay = 1

        with pytest.raises(TimeoutError, match=DELETE_TIMED_OUT):
            await store.delete_timeline(store.current_timeline.id)

        assert store.error == DELETE_TIMED_OUT
        assert store.is_loading is False


class TestErrorsAndListeners:
    async def test_failure_is_recorded_and_raised(self, store):
        with pytest.raises(StorageError):
            await store.load_timeline("missing")

        assert store.error.startswith("Failed to load timeline: ")
        assert "missing" in store.error
        assert store.is_loading is False

    async def test_error_cleared_by_next_operation(self, store):
        with pytest.raises(StorageError):
            await store.load_timeline("missing")
        await store.load_available_timelines()
        assert store.error is None

    async def test_subscribe_and_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(s.is_loading))

        await store.load_available_timelines()
        assert seen == [True, False]

        unsubscribe()
        await store.load_available_timelines()
        assert len(seen) == 2

    async def test_nested_actions_stay_loading_until_done(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(s.is_loading))

        await store.create_timeline("Second")
        assert seen == [True, False]

        seen.clear()
        await store.delete_timeline(store.current_timeline.id)
        assert seen == [True, False]

    async def test_inner_failure_message_is_kept(self, store, adapter):
        async def broken_list():
            raise StorageError("listing unavailable")

        adapter.list_timelines = broken_list
        with pytest.raises(StorageError):
            await store.create_timeline("Second")

        assert store.error == "Failed to load available timelines: listing unavailable"
        assert store.is_loading is False

    async def test_export_requires_a_timeline(self, adapter):
        store = TimelineStore(adapter)
        with pytest.raises(ValueError, match="No timeline to export"):
            await store.export_timeline()


class TestTransfer:
    async def test_export_then_import_creates_copy(self, store):
        await store.add_event(title="Departure", start_date="2024-01-01")
        original = store.current_timeline

        document = await store.export_timeline()
        imported = await store.import_timeline(document)

        assert imported.id != original.id
        assert store.current_timeline.id == imported.id
        assert [e.title for e in imported.events] == ["Departure"]
        assert sorted(store.available_timelines) == sorted([original.id, imported.id])
