"""
Image API Tests
===============

Upload, retrieval, info and deletion, plus cleanup on event delete.
"""

import re

from chronoline.data_url import build_data_url, parse_data_url
from chronoline.database.db import init_db
from chronoline.services.images import ImageService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(client, headers, content=PNG_BYTES, name="photo.png", content_type="image/png"):
    return client.post(
        "/api/images/upload",
        files={"image": (name, content, content_type)},
        headers=headers,
    )


class TestUpload:
    def test_upload_generates_filename(self, client, alice):
        response = _upload(client, alice)

        assert response.status_code == 200
        body = response.json()
        assert re.fullmatch(r"event-[0-9a-f-]{36}\.png", body["filename"])
        assert body["originalName"] == "photo.png"
        assert body["mimeType"] == "image/png"
        assert body["size"] == len(PNG_BYTES)

    def test_non_image_is_rejected(self, client, alice):
        response = _upload(client, alice, content=b"hello", name="notes.txt", content_type="text/plain")
        assert response.status_code == 400
        assert response.json() == {"error": "Only image files are allowed"}

    def test_size_cap(self, client, alice, app):
        app.state.image_service.max_bytes = 16
        response = _upload(client, alice)
        assert response.status_code == 400

    def test_oversized_body_is_not_fully_read(self, client, alice, app):
        service = app.state.image_service
        service.max_bytes = 16
        received = []
        original_upload = service.upload

        async def recording_upload(content, content_type, original_name=None):
            received.append(len(content))
            return await original_upload(content, content_type, original_name)

        service.upload = recording_upload
        response = _upload(client, alice, content=b"x" * 4096)

        assert response.status_code == 400
        assert received == [17]

    def test_requires_auth(self, client):
        assert _upload(client, {}).status_code == 401


class TestRetrieve:
    def test_get_bytes_and_info(self, client, alice):
        filename = _upload(client, alice).json()["filename"]

        raw = client.get(f"/api/images/{filename}", headers=alice)
        assert raw.status_code == 200
        assert raw.content == PNG_BYTES
        assert raw.headers["content-type"].startswith("image/png")
        assert "max-age" in raw.headers["cache-control"]

        info = client.get(f"/api/images/{filename}/info", headers=alice).json()
        assert info["filename"] == filename
        assert info["mimeType"] == "image/png"
        assert info["size"] == len(PNG_BYTES)
        assert info["createdAt"]

    def test_missing_image(self, client, alice):
        assert client.get("/api/images/nope.png", headers=alice).json() == {"error": "Image not found"}
        assert client.get("/api/images/nope.png/info", headers=alice).status_code == 404
        assert client.delete("/api/images/nope.png", headers=alice).status_code == 404

    def test_delete(self, client, alice):
        filename = _upload(client, alice).json()["filename"]
        assert client.delete(f"/api/images/{filename}", headers=alice).status_code == 200
        assert client.get(f"/api/images/{filename}", headers=alice).status_code == 404


class TestEventImageCleanup:
    def test_deleting_event_deletes_its_image(self, client, alice, timeline):
        filename = _upload(client, alice).json()["filename"]
        event = client.post(
            f"/api/timelines/{timeline['id']}/events",
            json={"title": "Photo", "startDate": "2024-01-01", "image": filename},
            headers=alice,
        ).json()
        assert event["image"] == filename

        client.delete(f"/api/timelines/{timeline['id']}/events/{event['id']}", headers=alice)
        assert client.get(f"/api/images/{filename}", headers=alice).status_code == 404


class TestImageService:
    async def test_save_image_upserts(self, db_path):
        await init_db(db_path)
        service = ImageService(db_path)

        await service.save_image("a.png", build_data_url(b"one", "image/png"))
        await service.save_image("a.png", build_data_url(b"two", "image/gif"))

        stored = await service.get_image("a.png")
        assert stored.mime_type == "image/gif"
        assert parse_data_url(stored.data) == ("image/gif", b"two")

    async def test_delete_returns_deleted_record(self, db_path):
        await init_db(db_path)
        service = ImageService(db_path)
        await service.save_image("a.png", build_data_url(b"x", "image/png"))

        deleted = await service.delete_image("a.png")
        assert deleted.filename == "a.png"
        assert await service.delete_image("a.png") is None
