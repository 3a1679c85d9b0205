"""
Remote API storage adapter.

Talks to the Chronoline REST API over ``httpx``. Saving an existing timeline
diffs its events and highlights against the server copy and issues one call
per changed child instead of replacing the whole timeline.
"""

from typing import Any

import httpx
from pydantic import BaseModel, Field

from chronoline.client.errors import StorageError
from chronoline.client.models import StorageInfo, TimelineData
from chronoline.client.storage.base import StorageAdapter
from chronoline.config import settings
from chronoline.data_url import DEFAULT_MIME_TYPE, build_data_url, parse_data_url
from chronoline.logging import get_logger
from chronoline.models import StorageMode

logger = get_logger('client.storage.api')

_CHILD_FIELDS_EXCLUDED = {"id", "created_at", "updated_at"}


class SyncPlan(BaseModel):
    """Child ids to delete, update and create, per collection."""
    event_deletes: list[str] = Field(default_factory=list)
    event_updates: list[str] = Field(default_factory=list)
    event_creates: list[str] = Field(default_factory=list)
    highlight_deletes: list[str] = Field(default_factory=list)
    highlight_updates: list[str] = Field(default_factory=list)
    highlight_creates: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)


def _diff_ids(old_ids: list[str], new_ids: list[str]) -> tuple[list[str], list[str], list[str]]:
    old_set, new_set = set(old_ids), set(new_ids)
    deletes = [i for i in old_ids if i not in new_set]
    updates = [i for i in new_ids if i in old_set]
    creates = [i for i in new_ids if i not in old_set]
    return deletes, updates, creates


def plan_sync(timeline: TimelineData, previous: TimelineData) -> SyncPlan:
    """
    Compare a local snapshot with the server's.

    Ids only in ``previous`` are deleted, ids in both are updated and ids
    only in ``timeline`` are created. Order within each list follows the
    source collections.
    """
    e_del, e_upd, e_new = _diff_ids(
        [e.id for e in previous.events], [e.id for e in timeline.events]
    )
    h_del, h_upd, h_new = _diff_ids(
        [h.id for h in previous.highlights], [h.id for h in timeline.highlights]
    )
    return SyncPlan(
        event_deletes=e_del,
        event_updates=e_upd,
        event_creates=e_new,
        highlight_deletes=h_del,
        highlight_updates=h_upd,
        highlight_creates=h_new,
    )


class ApiStorageAdapter(StorageAdapter):
    """Storage backed by the REST API, authenticated with a bearer token."""

    mode = StorageMode.API

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        token: str | None = None,
        timeout: float = 30.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout,
        )
        self._token = token

    def set_auth_token(self, token: str | None) -> None:
        self._token = token

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise StorageError(_error_message(response), response.status_code)
        return response

    # ── Timelines ──

    async def save_timeline(self, timeline: TimelineData) -> TimelineData:
        """
        Create or update ``timeline`` on the server.

        :return: The server's copy after saving, carrying server-assigned ids
        :rtype: TimelineData
        """
        previous = await self._load_if_exists(timeline.id) if timeline.id else None
        if previous is None:
            response = await self._request("POST", "/timelines/import", json=timeline.to_api())
            created = TimelineData.model_validate(response.json())
            logger.debug(f"Created remote timeline {created.id[:8]} from local {timeline.id[:8]}")
            return created

        await self._request(
            "PUT",
            f"/timelines/{timeline.id}",
            json={"name": timeline.name, "settings": timeline.settings.to_api()},
        )
        await self.sync_timeline_data(timeline, previous)
        return await self.load_timeline(timeline.id)

    async def _load_if_exists(self, timeline_id: str) -> TimelineData | None:
        try:
            return await self.load_timeline(timeline_id)
        except StorageError as exc:
            if exc.status_code == 404:
                return None
            raise

    async def load_timeline(self, timeline_id: str) -> TimelineData:
        response = await self._request("GET", f"/timelines/{timeline_id}")
        return TimelineData.model_validate(response.json())

    async def delete_timeline(self, timeline_id: str) -> None:
        await self._request("DELETE", f"/timelines/{timeline_id}")

    async def list_timelines(self) -> list[str]:
        response = await self._request("GET", "/timelines")
        return [item["id"] for item in response.json()]

    async def timeline_exists(self, timeline_id: str) -> bool:
        return await self._load_if_exists(timeline_id) is not None

    async def sync_timeline_data(
        self,
        timeline: TimelineData,
        previous: TimelineData | None = None,
    ) -> SyncPlan:
        """
        Push child changes of ``timeline`` to the server.

        Calls go out as deletes, then updates, then creates; events first,
        then highlights. Nothing is rolled back if a call fails part way.
        """
        if previous is None:
            previous = await self.load_timeline(timeline.id)
        plan = plan_sync(timeline, previous)
        base = f"/timelines/{timeline.id}"

        for event_id in plan.event_deletes:
            await self._request("DELETE", f"{base}/events/{event_id}")
        for event_id in plan.event_updates:
            event = timeline.find_event(event_id)
            await self._request(
                "PUT", f"{base}/events/{event_id}",
                json=event.to_api(exclude=_CHILD_FIELDS_EXCLUDED),
            )
        for event_id in plan.event_creates:
            event = timeline.find_event(event_id)
            await self._request(
                "POST", f"{base}/events",
                json=event.to_api(exclude=_CHILD_FIELDS_EXCLUDED),
            )

        for highlight_id in plan.highlight_deletes:
            await self._request("DELETE", f"{base}/highlights/{highlight_id}")
        for highlight_id in plan.highlight_updates:
            highlight = timeline.find_highlight(highlight_id)
            await self._request(
                "PUT", f"{base}/highlights/{highlight_id}",
                json=highlight.to_api(exclude={"id"}),
            )
        for highlight_id in plan.highlight_creates:
            highlight = timeline.find_highlight(highlight_id)
            await self._request(
                "POST", f"{base}/highlights",
                json=highlight.to_api(exclude={"id"}),
            )

        if not plan.is_empty:
            logger.debug(f"Synced timeline {timeline.id[:8]}: {plan.model_dump()}")
        return plan

    # ── Images ──

    async def save_image(self, filename: str, data_url: str) -> str:
        try:
            mime_type, payload = parse_data_url(data_url)
        except ValueError as exc:
            raise StorageError(str(exc)) from exc

        response = await self._request(
            "POST",
            "/images/upload",
            files={"image": (filename, payload, mime_type)},
        )
        return response.json()["filename"]

    async def load_image(self, filename: str) -> str:
        response = await self._request("GET", f"/images/{filename}")
        content_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        return build_data_url(response.content, content_type.split(";")[0].strip())

    async def delete_image(self, filename: str) -> None:
        await self._request("DELETE", f"/images/{filename}")

    # ── Export / import ──

    async def export_timeline(self, timeline_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/timelines/{timeline_id}/export")
        return response.json()

    async def import_timeline(self, document: dict[str, Any]) -> TimelineData:
        response = await self._request("POST", "/timelines/import", json=document)
        return TimelineData.model_validate(response.json())

    async def get_storage_info(self) -> StorageInfo:
        # The API exposes no image totals.
        timeline_ids = await self.list_timelines()
        return StorageInfo(total_timelines=len(timeline_ids))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
