"""
Local Storage Adapter Tests
===========================

Embedded SQLite (file and in-memory) and key-value adapters share one
document layout; all are exercised through the same cases.
"""

import re

import pytest

from chronoline.client.errors import StorageError
from chronoline.client.models import TimelineData
from chronoline.client.storage.api import ApiStorageAdapter
from chronoline.client.storage.base import create_storage_adapter, generate_id
from chronoline.client.storage.local import (
    EmbeddedStorageAdapter,
    KeyValueStorageAdapter,
    timeline_key,
)
from chronoline.data_url import build_data_url
from chronoline.models import StorageMode


@pytest.fixture(params=["embedded", "embedded_memory", "key_value"])
async def adapter(request, tmp_path):
    if request.param == "embedded":
        store = EmbeddedStorageAdapter(db_path=str(tmp_path / "local.db"))
    elif request.param == "embedded_memory":
        store = EmbeddedStorageAdapter(db_path=":memory:")
    else:
        store = KeyValueStorageAdapter(path="")
    await store.init()
    yield store
    await store.close()


def _timeline(timeline_id="t1", image=None):
    return TimelineData.model_validate({
        "id": timeline_id,
        "name": "Trip",
        "events": [{"id": "e1", "title": "Departure", "startDate": "2024-01-01", "image": image}],
        "highlights": [{"id": "h1", "startDate": "2024-01-01", "endDate": "2024-01-03"}],
        "settings": {"pixelsPerDay": 30, "showGrid": True},
    })


class TestTimelines:
    async def test_save_load_roundtrip(self, adapter):
        await adapter.save_timeline(_timeline())
        loaded = await adapter.load_timeline("t1")

        assert loaded.name == "Trip"
        assert loaded.events[0].start_date.isoformat() == "2024-01-01T00:00:00+00:00"
        assert loaded.settings.pixels_per_day == 30
        assert loaded.settings.model_extra == {"showGrid": True}

    async def test_list_exists_delete(self, adapter):
        await adapter.save_timeline(_timeline("a"))
        await adapter.save_timeline(_timeline("b"))

        assert sorted(await adapter.list_timelines()) == ["a", "b"]
        assert await adapter.timeline_exists("a")

        await adapter.delete_timeline("a")
        assert not await adapter.timeline_exists("a")
        assert await adapter.list_timelines() == ["b"]

    async def test_missing_timeline(self, adapter):
        with pytest.raises(StorageError) as exc_info:
            await adapter.load_timeline("nope")
        assert exc_info.value.status_code == 404

    async def test_storage_info(self, adapter):
        await adapter.save_timeline(_timeline())
        await adapter.save_image("a.png", build_data_url(b"x", "image/png"))

        info = await adapter.get_storage_info()
        assert info.total_timelines == 1
        assert info.total_images == 1
        assert info.storage_size > 0
        assert set(info.to_api()) == {"totalTimelines", "totalImages", "storageSize"}


class TestImagesAndTransfer:
    async def test_images(self, adapter):
        data_url = build_data_url(b"img", "image/png")
        assert await adapter.save_image("a.png", data_url) == "a.png"
        assert await adapter.load_image("a.png") == data_url

        await adapter.delete_image("a.png")
        with pytest.raises(StorageError):
            await adapter.load_image("a.png")

    async def test_export_includes_images(self, adapter):
        data_url = build_data_url(b"img", "image/png")
        await adapter.save_image("a.png", data_url)
        await adapter.save_timeline(_timeline(image="a.png"))

        document = await adapter.export_timeline("t1")
        assert document["timeline"]["version"] == "1.0"
        assert document["timeline"]["exportedAt"]
        assert document["images"] == {"a.png": data_url}

    async def test_import_assigns_new_id(self, adapter):
        document = {
            "timeline": {**_timeline().to_api(), "version": "1.0"},
            "images": {"b.png": build_data_url(b"b", "image/png")},
        }

        imported = await adapter.import_timeline(document)
        assert imported.id != "t1"
        assert imported.events[0].title == "Departure"
        assert await adapter.timeline_exists(imported.id)
        assert await adapter.load_image("b.png")

    async def test_import_bare_timeline(self, adapter):
        imported = await adapter.import_timeline(_timeline().to_api())
        assert imported.name == "Trip"

    async def test_invalid_import(self, adapter):
        with pytest.raises(StorageError):
            await adapter.import_timeline({"name": "No events", "events": [{"title": 1}]})


class TestKeyValuePersistence:
    async def test_file_backed_store_survives_reopen(self, tmp_path):
        path = tmp_path / "kv.json"
        first = KeyValueStorageAdapter(path=str(path))
        await first.save_timeline(_timeline())

        second = KeyValueStorageAdapter(path=str(path))
        await second.init()
        assert await second.list_timelines() == ["t1"]
        assert timeline_key("t1") == "timeline-data/timelines/t1.json"


class TestEmbeddedInMemory:
    async def test_documents_live_until_close(self):
        store = EmbeddedStorageAdapter(db_path=":memory:")
        await store.init()
        await store.save_timeline(_timeline())

        assert await store.list_timelines() == ["t1"]
        assert (await store.load_timeline("t1")).name == "Trip"

        await store.close()
        await store.init()
        assert await store.list_timelines() == []
        await store.close()


class TestFactory:
    def test_generate_id_format(self):
        assert re.fullmatch(r"\d{13}-[0-9a-z]{9}", generate_id())
        assert generate_id() != generate_id()

    def test_modes(self, tmp_path):
        assert isinstance(create_storage_adapter("api", base_url="http://x/api"), ApiStorageAdapter)
        assert isinstance(
            create_storage_adapter(StorageMode.EMBEDDED, db_path=str(tmp_path / "x.db")),
            EmbeddedStorageAdapter,
        )
        assert isinstance(create_storage_adapter("key-value", path=""), KeyValueStorageAdapter)
