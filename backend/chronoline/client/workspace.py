"""
In-memory workspace model.

A richer, unpersisted view over events: lanes, categories, an ANDed
filter, a viewport and a bounded undo/redo history. Only event and lane
edits are recorded; filter, selection and viewport changes are not.
"""

import csv
import io
import json
from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from chronoline.client.history import History, HistoryEntry
from chronoline.client.models import TimelineData, field_names
from chronoline.client.storage.base import generate_id
from chronoline.client.viewport import Viewport
from chronoline.logging import get_logger
from chronoline.models import EventStatus, Priority
from chronoline.models.base import ApiModel, UtcDatetime, utc_now

logger = get_logger('client.workspace')

MAIN_LANE_ID = "main"
DEFAULT_LANE_HEIGHT = 120

CSV_HEADERS = [
    "Title",
    "Start Date",
    "End Date",
    "Description",
    "Link",
    "Category",
    "Priority",
    "Status",
]


class WorkspaceEvent(ApiModel):
    id: str = Field(default_factory=generate_id)
    title: str
    start_date: UtcDatetime
    end_date: Optional[UtcDatetime] = None
    description: Optional[str] = None
    color: Optional[str] = None
    link: Optional[str] = None
    category: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    lane: str = MAIN_LANE_ID
    status: EventStatus = EventStatus.PLANNED
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class Lane(ApiModel):
    id: str = Field(default_factory=generate_id)
    name: str
    color: Optional[str] = None
    height: int = DEFAULT_LANE_HEIGHT
    collapsed: bool = False
    order: int = 0


class Category(ApiModel):
    id: str
    name: str
    color: str
    icon: Optional[str] = None
    description: Optional[str] = None


class DateRange(BaseModel):
    start: UtcDatetime
    end: UtcDatetime


class WorkspaceFilter(BaseModel):
    """Empty criteria match everything; non-empty ones are ANDed."""
    search_text: str = ""
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    priorities: list[Priority] = Field(default_factory=list)
    lanes: list[str] = Field(default_factory=list)
    statuses: list[EventStatus] = Field(default_factory=list)
    date_range: Optional[DateRange] = None

    def matches(self, event: WorkspaceEvent) -> bool:
        if self.search_text:
            needle = self.search_text.lower()
            haystack = [event.title, event.description or "", *event.tags]
            if not any(needle in text.lower() for text in haystack):
                return False
        if self.categories and (event.category or "") not in self.categories:
            return False
        if self.priorities and event.priority not in self.priorities:
            return False
        if self.lanes and event.lane not in self.lanes:
            return False
        if self.statuses and event.status not in self.statuses:
            return False
        if self.date_range and not (self.date_range.start <= event.start_date <= self.date_range.end):
            return False
        if self.tags and not any(tag in self.tags for tag in event.tags):
            return False
        return True


def default_lanes() -> list[Lane]:
    return [Lane(id=MAIN_LANE_ID, name="Main Timeline", color="#3498db", order=0)]


def default_categories() -> list[Category]:
    return [
        Category(id="work", name="Work", color="#3498db", icon="💼"),
        Category(id="personal", name="Personal", color="#2ecc71", icon="🏠"),
        Category(id="milestone", name="Milestone", color="#f39c12", icon="🎯"),
        Category(id="deadline", name="Deadline", color="#e74c3c", icon="⏰"),
        Category(id="meeting", name="Meeting", color="#9b59b6", icon="🤝"),
        Category(id="travel", name="Travel", color="#1abc9c", icon="✈️"),
        Category(id="education", name="Education", color="#34495e", icon="📚"),
        Category(id="health", name="Health", color="#e67e22", icon="🏥"),
    ]


class Workspace:
    """Lanes, categories, filter, viewport and undo/redo over workspace events."""

    def __init__(self, history_capacity: int = 100):
        self.events: list[WorkspaceEvent] = []
        self.lanes: list[Lane] = default_lanes()
        self.categories: list[Category] = default_categories()
        self.selected_events: list[str] = []
        self.selected_lanes: list[str] = []
        self.filter = WorkspaceFilter()
        self.viewport = Viewport()
        self.history = History(capacity=history_capacity)

    # ── Derived ──

    @property
    def filtered_events(self) -> list[WorkspaceEvent]:
        return [e for e in self.events if self.filter.matches(e)]

    @property
    def visible_events(self) -> list[WorkspaceEvent]:
        return [
            e for e in self.filtered_events
            if self.viewport.overlaps(e.start_date, e.end_date)
        ]

    @property
    def events_by_lane(self) -> dict[str, list[WorkspaceEvent]]:
        visible = self.visible_events
        return {lane.id: [e for e in visible if e.lane == lane.id] for lane in self.lanes}

    @property
    def total_timespan(self) -> timedelta:
        dates = [d for e in self.events for d in (e.start_date, e.end_date) if d is not None]
        if not dates:
            return timedelta(0)
        return max(dates) - min(dates)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def get_event(self, event_id: str) -> Optional[WorkspaceEvent]:
        return next((e for e in self.events if e.id == event_id), None)

    def get_lane(self, lane_id: str) -> Optional[Lane]:
        return next((lane for lane in self.lanes if lane.id == lane_id), None)

    # ── Events ──

    def add_event(self, **fields: Any) -> WorkspaceEvent:
        now = utc_now()
        fields = field_names(WorkspaceEvent, fields)
        fields.pop("id", None)
        event = WorkspaceEvent(**{**fields, "created_at": now, "updated_at": now})
        self.events.append(event)
        self.history.record("add_event", {"event": event.model_copy(deep=True)})
        return event

    def update_event(self, event_id: str, **updates: Any) -> Optional[WorkspaceEvent]:
        index = self._event_index(event_id)
        if index is None:
            return None

        old = self.events[index]
        changes = field_names(WorkspaceEvent, updates)
        changes.pop("id", None)
        merged = {**old.model_dump(), **changes, "updated_at": utc_now()}
        new = WorkspaceEvent.model_validate(merged)
        self.events[index] = new
        self.history.record(
            "update_event",
            {"old": old.model_copy(deep=True), "new": new.model_copy(deep=True)},
        )
        return new

    def delete_event(self, event_id: str) -> Optional[WorkspaceEvent]:
        index = self._event_index(event_id)
        if index is None:
            return None
        event = self.events.pop(index)
        self.selected_events = [eid for eid in self.selected_events if eid != event_id]
        self.history.record("delete_event", {"event": event.model_copy(deep=True), "index": index})
        return event

    def duplicate_event(self, event_id: str) -> Optional[WorkspaceEvent]:
        """Copy an event one day later; recorded as an ordinary add."""
        original = self.get_event(event_id)
        if not original:
            return None
        one_day = timedelta(days=1)
        copy = original.model_dump(exclude={"id", "created_at", "updated_at"})
        copy["title"] = f"{original.title} (Copy)"
        copy["start_date"] = original.start_date + one_day
        copy["end_date"] = original.end_date + one_day if original.end_date else None
        return self.add_event(**copy)

    def _event_index(self, event_id: str) -> Optional[int]:
        return next((i for i, e in enumerate(self.events) if e.id == event_id), None)

    # ── Lanes ──

    def add_lane(self, name: str, **fields: Any) -> Lane:
        fields = field_names(Lane, fields)
        fields.pop("id", None)
        fields["order"] = len(self.lanes)
        lane = Lane(name=name, **fields)
        self.lanes.append(lane)
        self.history.record("add_lane", {"lane": lane.model_copy(deep=True)})
        return lane

    def update_lane(self, lane_id: str, **updates: Any) -> Optional[Lane]:
        index = self._lane_index(lane_id)
        if index is None:
            return None
        old = self.lanes[index]
        changes = field_names(Lane, updates)
        changes.pop("id", None)
        new = Lane.model_validate({**old.model_dump(), **changes})
        self.lanes[index] = new
        self.history.record(
            "update_lane",
            {"old": old.model_copy(deep=True), "new": new.model_copy(deep=True)},
        )
        return new

    def delete_lane(self, lane_id: str) -> Optional[Lane]:
        """Remove a lane and move its events to ``main``. The main lane stays."""
        if lane_id == MAIN_LANE_ID or len(self.lanes) <= 1:
            return None
        index = self._lane_index(lane_id)
        if index is None:
            return None

        lane = self.lanes.pop(index)
        moved = [e.id for e in self.events if e.lane == lane_id]
        for event in self.events:
            if event.lane == lane_id:
                event.lane = MAIN_LANE_ID
        self.selected_lanes = [lid for lid in self.selected_lanes if lid != lane_id]
        self.history.record(
            "delete_lane",
            {"lane": lane.model_copy(deep=True), "index": index, "moved_events": moved},
        )
        return lane

    def _lane_index(self, lane_id: str) -> Optional[int]:
        return next((i for i, lane in enumerate(self.lanes) if lane.id == lane_id), None)

    # ── Categories ──

    def add_category(self, category_id: str, name: str, color: str, **fields: Any) -> Category:
        category = Category(id=category_id, name=name, color=color, **field_names(Category, fields))
        self.categories.append(category)
        return category

    # ── Filter & selection ──

    def set_filter(self, **criteria: Any) -> None:
        self.filter = WorkspaceFilter.model_validate({**self.filter.model_dump(), **criteria})

    def clear_filter(self) -> None:
        self.filter = WorkspaceFilter()

    def select_event(self, event_id: str, multi: bool = False) -> None:
        if not multi:
            self.selected_events = [event_id]
        elif event_id in self.selected_events:
            self.selected_events = [eid for eid in self.selected_events if eid != event_id]
        else:
            self.selected_events.append(event_id)

    def clear_selection(self) -> None:
        self.selected_events = []
        self.selected_lanes = []

    # ── Viewport ──

    def set_viewport(self, **fields: Any) -> None:
        self.viewport = Viewport.model_validate({**self.viewport.model_dump(), **fields})

    def center_on_event(self, event_id: str) -> None:
        event = self.get_event(event_id)
        if event:
            self.viewport.center_on(event.start_date)

    # ── Undo / redo ──

    def undo(self) -> bool:
        entry = self.history.undo()
        if entry is None:
            return False
        self._replay(entry, undo=True)
        return True

    def redo(self) -> bool:
        entry = self.history.redo()
        if entry is None:
            return False
        self._replay(entry, undo=False)
        return True

    def _replay(self, entry: HistoryEntry, undo: bool) -> None:
        data = entry.data
        action = entry.action

        if action == "add_event":
            event = data["event"]
            if undo:
                self._remove_event(event.id)
            else:
                self.events.append(event.model_copy(deep=True))
        elif action == "delete_event":
            event = data["event"]
            if undo:
                self.events.insert(min(data["index"], len(self.events)), event.model_copy(deep=True))
            else:
                self._remove_event(event.id)
        elif action == "update_event":
            target = data["old"] if undo else data["new"]
            index = self._event_index(target.id)
            if index is not None:
                self.events[index] = target.model_copy(deep=True)
        elif action == "add_lane":
            lane = data["lane"]
            if undo:
                self._remove_lane(lane.id)
            else:
                self.lanes.append(lane.model_copy(deep=True))
        elif action == "delete_lane":
            lane = data["lane"]
            moved = set(data["moved_events"])
            if undo:
                self.lanes.insert(min(data["index"], len(self.lanes)), lane.model_copy(deep=True))
                new_lane = lane.id
            else:
                self._remove_lane(lane.id)
                new_lane = MAIN_LANE_ID
            for event in self.events:
                if event.id in moved:
                    event.lane = new_lane
        elif action == "update_lane":
            target = data["old"] if undo else data["new"]
            index = self._lane_index(target.id)
            if index is not None:
                self.lanes[index] = target.model_copy(deep=True)
        else:
            logger.warning(f"No replay for history action {action!r}")

    def _remove_event(self, event_id: str) -> None:
        self.events = [e for e in self.events if e.id != event_id]
        self.selected_events = [eid for eid in self.selected_events if eid != event_id]

    def _remove_lane(self, lane_id: str) -> None:
        self.lanes = [lane for lane in self.lanes if lane.id != lane_id]

    # ── Import / export ──

    def load_timeline(self, timeline: TimelineData) -> None:
        """Replace workspace events with a stored timeline's events; clears history."""
        self.events = [
            WorkspaceEvent(
                id=e.id,
                title=e.title,
                start_date=e.start_date,
                end_date=e.end_date,
                description=e.description,
                color=e.color,
                link=e.link,
                created_at=e.created_at,
                updated_at=e.updated_at,
            )
            for e in timeline.events
        ]
        self.selected_events = []
        self.history.clear()
        self.viewport.center_on(timeline.settings.center_date)

    def export(self, format: str = "json") -> str:
        if format == "csv":
            return self._to_csv(self.filtered_events)
        document = {
            "events": [e.to_api() for e in self.filtered_events],
            "lanes": [lane.to_api() for lane in self.lanes],
            "categories": [c.to_api() for c in self.categories],
            "exportedAt": utc_now().isoformat(),
        }
        return json.dumps(document, indent=2, ensure_ascii=False)

    def import_data(self, data: str) -> None:
        """
        Replace events, lanes and categories present in a JSON export.

        :raises ValueError: If ``data`` is not a valid workspace document
        """
        try:
            document = json.loads(data)
            if not isinstance(document, dict):
                raise ValueError("expected a JSON object")
            events = [WorkspaceEvent.model_validate(e) for e in document["events"]] if "events" in document else None
            lanes = [Lane.model_validate(lane) for lane in document["lanes"]] if "lanes" in document else None
            categories = (
                [Category.model_validate(c) for c in document["categories"]]
                if "categories" in document else None
            )
        except (ValueError, TypeError, PydanticValidationError) as exc:
            logger.error(f"Failed to import timeline data: {exc}")
            raise ValueError("Invalid timeline data format") from exc

        if events is not None:
            self.events = events
        if lanes is not None:
            if not any(lane.id == MAIN_LANE_ID for lane in lanes):
                lanes = default_lanes() + lanes
            self.lanes = lanes
        if categories is not None:
            self.categories = categories

    @staticmethod
    def _to_csv(events: list[WorkspaceEvent]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for event in events:
            writer.writerow([
                event.title,
                _iso(event.start_date),
                _iso(event.end_date),
                event.description or "",
                event.link or "",
                event.category or "",
                event.priority.value,
                event.status.value,
            ])
        return buffer.getvalue().rstrip("\n")


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""
