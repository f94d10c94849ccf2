"""
TaskRef - what a completion request points at.

ConcreteRef   - a persisted task row, completed by id
OccurrenceRef - a not-yet-materialized occurrence of a recurring series,
                completed by (series_id, occurrence instant)
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class ConcreteRef:
    task_id: str


@dataclass(frozen=True)
class OccurrenceRef:
    series_id: str
    local_date: date
    timezone: str | None = None

    def occurrence_instant(self, default_timezone: str = "UTC") -> datetime:
        """Local midnight of local_date in the occurrence timezone."""
        zone = ZoneInfo(self.timezone or default_timezone)
        return datetime.combine(self.local_date, time.min, tzinfo=zone)


TaskRef = ConcreteRef | OccurrenceRef
