"""Timeline, event and highlight endpoints."""

import re
from typing import Any

import aiosqlite
from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from chronoline.dependencies import (
    CurrentUserDep,
    ImageServiceDep,
    OwnedTimelineDep,
    TimelineServiceDep,
    TransferServiceDep,
)
from chronoline.errors import NotFoundError
from chronoline.logging import get_logger
from chronoline.models import (
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

logger = get_logger('routers.timelines')

router = APIRouter()


def _attachment_name(name: str) -> str:
    safe = re.sub(r"[^\w .-]", "_", name, flags=re.ASCII).strip() or "timeline"
    return f"{safe}.json"


@router.get("", response_model=list[Timeline])
async def list_timelines(user: CurrentUserDep, service: TimelineServiceDep):
    return await service.list_timelines(user.id)


@router.post("", response_model=Timeline, status_code=201)
async def create_timeline(body: TimelineCreate, user: CurrentUserDep, service: TimelineServiceDep):
    return await service.create_timeline(user.id, body)


# Registered before the "/{timeline_id}" routes.
@router.post("/import", response_model=TimelineData, status_code=201)
async def import_timeline(
    user: CurrentUserDep,
    transfer: TransferServiceDep,
    document: Any = Body(...),
):
    return await transfer.import_timeline(user.id, document)


@router.get("/{timeline_id}", response_model=TimelineData)
async def get_timeline(timeline: OwnedTimelineDep, user: CurrentUserDep, service: TimelineServiceDep):
    data = await service.get_full_timeline_data(timeline.id, user.id)
    if not data:
        raise NotFoundError("Timeline not found")
    return data


@router.put("/{timeline_id}", response_model=Timeline)
async def update_timeline(
    body: TimelineUpdate,
    timeline: OwnedTimelineDep,
    user: CurrentUserDep,
    service: TimelineServiceDep,
):
    updated = await service.update_timeline(timeline.id, user.id, body)
    if not updated:
        raise NotFoundError("Timeline not found")
    return updated


@router.delete("/{timeline_id}")
async def delete_timeline(timeline: OwnedTimelineDep, user: CurrentUserDep, service: TimelineServiceDep):
    deleted = await service.delete_timeline(timeline.id, user.id)
    if not deleted:
        raise NotFoundError("Timeline not found")
    return {"message": "Timeline deleted successfully"}


@router.get("/{timeline_id}/export")
async def export_timeline(timeline: OwnedTimelineDep, user: CurrentUserDep, transfer: TransferServiceDep):
    document = await transfer.export_timeline(timeline.id, user.id)
    if not document:
        raise NotFoundError("Timeline not found")
    return JSONResponse(
        content=document.to_api(),
        headers={"Content-Disposition": f'attachment; filename="{_attachment_name(timeline.name)}"'},
    )


# ── Events ──

@router.post("/{timeline_id}/events", response_model=Event, status_code=201)
async def create_event(body: EventCreate, timeline: OwnedTimelineDep, service: TimelineServiceDep):
    return await service.create_event(timeline.id, body)


@router.put("/{timeline_id}/events/{event_id}", response_model=Event)
async def update_event(
    event_id: str,
    body: EventUpdate,
    timeline: OwnedTimelineDep,
    service: TimelineServiceDep,
):
    event = await service.update_event(timeline.id, event_id, body)
    if not event:
        raise NotFoundError("Event not found")
    return event


@router.delete("/{timeline_id}/events/{event_id}")
async def delete_event(
    event_id: str,
    timeline: OwnedTimelineDep,
    service: TimelineServiceDep,
    images: ImageServiceDep,
):
    event = await service.delete_event(timeline.id, event_id)
    if not event:
        raise NotFoundError("Event not found")

    if event.image:
        try:
            await images.delete_image(event.image)
        except aiosqlite.Error as exc:
            logger.warning(f"Failed to delete image {event.image} for event {event_id[:8]}: {exc}")

    return {"message": "Event deleted successfully"}


# ── Highlights ──

@router.post("/{timeline_id}/highlights", response_model=Highlight, status_code=201)
async def create_highlight(body: HighlightCreate, timeline: OwnedTimelineDep, service: TimelineServiceDep):
    return await service.create_highlight(timeline.id, body)


@router.put("/{timeline_id}/highlights/{highlight_id}", response_model=Highlight)
async def update_highlight(
    highlight_id: str,
    body: HighlightUpdate,
    timeline: OwnedTimelineDep,
    service: TimelineServiceDep,
):
    highlight = await service.update_highlight(timeline.id, highlight_id, body)
    if not highlight:
        raise NotFoundError("Highlight not found")
    return highlight


@router.delete("/{timeline_id}/highlights/{highlight_id}")
async def delete_highlight(highlight_id: str, timeline: OwnedTimelineDep, service: TimelineServiceDep):
    highlight = await service.delete_highlight(timeline.id, highlight_id)
    if not highlight:
        raise NotFoundError("Highlight not found")
    return {"message": "Highlight deleted successfully"}
