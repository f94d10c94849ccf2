"""
Task aggregation for the calendar view.

- build_task_counts: indicator counts per yyyy-MM-dd over the whole window
- filter_tasks_for_day: tasks due within [day_start, day_end], both inclusive
- aggregate: both of the above for one selected day

Pure functions; a malformed due_at_local raises ValueError to the caller.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Iterable, Sequence

from calendar_sync.domain.task import Task, parse_due
from calendar_sync.domain.window import day_bounds

DATE_KEY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class DayAggregate:
    counts: dict[str, int] = field(default_factory=dict)
    day_pending: tuple[Task, ...] = ()
    day_completed: tuple[Task, ...] = ()


def date_key(task: Task, zone: tzinfo) -> str:
    # read in the calendar zone, as filter_tasks_for_day does
    return parse_due(task.due_at_local, zone).astimezone(zone).strftime(DATE_KEY_FORMAT)


def build_task_counts(tasks: Iterable[Task], zone: tzinfo) -> dict[str, int]:
    return dict(Counter(date_key(t, zone) for t in tasks))


def filter_tasks_for_day(tasks: Iterable[Task], day: date | datetime, zone: tzinfo) -> tuple[Task, ...]:
    day_start, day_end = day_bounds(day, zone)
    return tuple(t for t in tasks if day_start <= parse_due(t.due_at_local, zone) <= day_end)


def plant_ids_for_tasks(tasks: Iterable[Task]) -> set[str]:
    return {t.plant_id for t in tasks if t.plant_id}


def aggregate(
    pending: Sequence[Task],
    completed: Sequence[Task],
    selected_day: date | datetime,
    zone: tzinfo,
) -> DayAggregate:
    return DayAggregate(
        counts=build_task_counts([*pending, *completed], zone),
        day_pending=filter_tasks_for_day(pending, selected_day, zone),
        day_completed=filter_tasks_for_day(completed, selected_day, zone),
    )
