"""Calendar task and plant read types"""
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Mapping

from calendar_sync.domain.occurrence_id import task_ref_for
from calendar_sync.domain.task_ref import TaskRef

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class Task:
    """
    A task as fetched for the calendar. Immutable; a fetch replaces the whole list.

    due_at_local is an ISO-8601 datetime string, with or without an offset.
    ref is derived from id/metadata/timezone once, on construction.
    """
    id: str
    due_at_local: str
    timezone: str | None = None
    plant_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    title: str = ""
    series_id: str | None = None
    status: str = STATUS_PENDING
    ref: TaskRef | None = field(default=None, compare=False)

    def __post_init__(self):
        if self.ref is None:
            object.__setattr__(self, "ref", task_ref_for(self.id, self.metadata, self.timezone))


@dataclass(frozen=True)
class PlantRecord:
    """Plant row as returned by the plant repository"""
    id: str
    name: str
    image_url: str | None = None


@dataclass(frozen=True)
class PlantProjection:
    id: str
    name: str
    image_url: str | None = None


def parse_due(value: str, zone: tzinfo) -> datetime:
    """
    Parse a due_at_local string. Naive values are read as wall time in zone.

    Raises:
        ValueError: if value is not an ISO-8601 datetime
    """
    due = datetime.fromisoformat(value)
    if due.tzinfo is None:
        due = due.replace(tzinfo=zone)
    return due
