"""
Timeline export/import.

Export bundles a timeline aggregate with the images its events reference.
Import is best-effort: the timeline itself must be valid, but individual
images, events and highlights that fail are logged and skipped.
"""

from typing import Any

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from chronoline.errors import ValidationError
from chronoline.logging import get_logger
from chronoline.models import (
    EventCreate,
    ExportDocument,
    ExportedTimeline,
    HighlightCreate,
    ImportTimeline,
    TimelineCreate,
    TimelineData,
    split_import_document,
)
from chronoline.services.images import ImageService
from chronoline.services.timeline import TimelineService

logger = get_logger('services.transfer')


class TimelineTransferService:
    """Builds export documents and replays them into new timelines."""

    def __init__(self, timeline_service: TimelineService, image_service: ImageService):
        self.timelines = timeline_service
        self.images = image_service

    async def export_timeline(self, timeline_id: str, user_id: str) -> ExportDocument | None:
        data = await self.timelines.get_full_timeline_data(timeline_id, user_id)
        if not data:
            return None

        images: dict[str, str] = {}
        for event in data.events:
            if not event.image or event.image in images:
                continue
            image = await self.images.get_image(event.image)
            if image is None:
                logger.warning(f"Image {event.image} referenced by event {event.id[:8]} is missing; skipped")
                continue
            images[event.image] = image.data

        exported = ExportedTimeline(
            id=data.id,
            name=data.name,
            events=data.events,
            highlights=data.highlights,
            settings=data.settings,
            created_at=data.created_at,
            updated_at=data.updated_at,
        )
        return ExportDocument(timeline=exported, images=images)

    async def import_timeline(self, user_id: str, document: dict[str, Any]) -> TimelineData:
        """
        Create a new timeline for ``user_id`` from an export document.

        :param document: Either the ``{timeline, images}`` envelope or a bare timeline
        :type document: dict
        :return: The newly created timeline with fresh ids
        :rtype: TimelineData
        :raises ValidationError: If the document has no usable timeline name
        """
        if not isinstance(document, dict):
            raise ValidationError("Invalid timeline data")
        raw_timeline, images = split_import_document(document)

        try:
            source = ImportTimeline.model_validate(raw_timeline)
        except PydanticValidationError as exc:
            raise ValidationError("Invalid timeline data") from exc
        if not (source.name or "").strip():
            raise ValidationError("Timeline name is required")

        timeline = await self.timelines.create_timeline(
            user_id,
            TimelineCreate(name=source.name, settings=source.settings),
        )

        for filename, data_url in images.items():
            if not isinstance(data_url, str):
                logger.warning(f"Failed to import image {filename}: not a data URL")
                continue
            try:
                await self.images.save_image(filename, data_url)
            except (ValueError, aiosqlite.Error) as exc:
                logger.warning(f"Failed to import image {filename}: {exc}")

        for raw_event in source.events:
            if not isinstance(raw_event, dict):
                logger.warning(f"Failed to import event {raw_event!r}: not an object")
                continue
            try:
                await self.timelines.create_event(timeline.id, EventCreate.model_validate(raw_event))
            except (ValueError, aiosqlite.Error) as exc:
                logger.warning(f"Failed to import event {raw_event.get('title')!r}: {exc}")

        for raw_highlight in source.highlights:
            if not isinstance(raw_highlight, dict):
                logger.warning(f"Failed to import highlight {raw_highlight!r}: not an object")
                continue
            try:
                await self.timelines.create_highlight(
                    timeline.id, HighlightCreate.model_validate(raw_highlight)
                )
            except (ValueError, aiosqlite.Error) as exc:
                logger.warning(f"Failed to import highlight: {exc}")

        logger.info(f"Imported timeline {timeline.name} ({timeline.id[:8]})")
        return await self.timelines.get_full_timeline_data(timeline.id, user_id)
