"""
SQLAlchemy-backed collaborators for calendar sync.

- SqlTaskRepository      pending/completed tasks by date range, merged with
                         ephemeral series occurrences
- SqlCompletionService   complete a stored task or a series occurrence
- SqlPlantRepository     batched plant lookup

Queries are blocking, so each call runs in a worker thread with its own
session. Range bounds are normalized to UTC before they reach the database.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import AbstractSet, Iterable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, sessionmaker

from calendar_sync.application.ports import CompletionService, PlantRepository, TaskRepository
from calendar_sync.domain.occurrence_id import OccurrenceIdError, encode
from calendar_sync.domain.task import STATUS_COMPLETED, STATUS_PENDING, PlantRecord, Task
from calendar_sync.infrastructure.db.models import (
    OccurrenceOverrideModel,
    PlantModel,
    SeriesModel,
    TaskModel,
)

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    pass


class SeriesNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class SeriesRecord:
    id: str
    title: str
    dtstart_local: str
    timezone: str
    rrule: str | None = None
    plant_id: str | None = None
    description: str | None = None


class OccurrenceExpander(ABC):
    """Expands a series into local occurrence datetimes within [start, end]."""

    @abstractmethod
    def expand(self, series: SeriesRecord, start: datetime, end: datetime) -> Iterable[datetime]:
        ...


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _local_day(due_at_local: str) -> date:
    return datetime.fromisoformat(due_at_local).date()


def _to_task(row: TaskModel) -> Task:
    return Task(
        id=row.id,
        due_at_local=row.due_at_local,
        timezone=row.timezone,
        plant_id=row.plant_id,
        metadata=dict(row.metadata_json or {}),
        title=row.title,
        series_id=row.series_id,
        status=row.status,
    )


def _to_series(row: SeriesModel) -> SeriesRecord:
    return SeriesRecord(
        id=row.id,
        title=row.title,
        dtstart_local=row.dtstart_local,
        timezone=row.timezone,
        rrule=row.rrule,
        plant_id=row.plant_id,
        description=row.description,
    )


class SqlTaskRepository(TaskRepository):
    def __init__(self, session_factory: sessionmaker, expander: OccurrenceExpander | None = None):
        self.session_factory = session_factory
        self.expander = expander

    async def get_tasks_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        return await asyncio.to_thread(self._pending_in_range, start, end)

    async def get_completed_tasks_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        return await asyncio.to_thread(self._completed_in_range, start, end)

    def _query_range(self, db: Session, status: str, start: datetime, end: datetime):
        return db.query(TaskModel).filter(
            TaskModel.status == status,
            TaskModel.deleted_at.is_(None),
            TaskModel.due_at_utc >= _utc(start),
            TaskModel.due_at_utc <= _utc(end),
        )

    def _completed_in_range(self, start: datetime, end: datetime) -> list[Task]:
        # by due date, not completion date, so tasks stay in their scheduled day
        db = self.session_factory()
        try:
            rows = self._query_range(db, STATUS_COMPLETED, start, end).order_by(
                TaskModel.completed_at.desc()
            ).all()
            return [_to_task(r) for r in rows]
        finally:
            db.close()

    def _pending_in_range(self, start: datetime, end: datetime) -> list[Task]:
        db = self.session_factory()
        try:
            materialized = [_to_task(r) for r in self._query_range(db, STATUS_PENDING, start, end).all()]
            visible = list(materialized)

            if self.expander is not None:
                series_rows = db.query(SeriesModel).filter(SeriesModel.deleted_at.is_(None)).all()
                overridden = {
                    (o.series_id, o.occurrence_local_date)
                    for o in db.query(OccurrenceOverrideModel).filter(
                        OccurrenceOverrideModel.series_id.in_([s.id for s in series_rows])
                    ).all()
                }
                for series_row in series_rows:
                    # dedupe per series: another series' task on the same day must not hide ours
                    own = [t for t in materialized if t.series_id == series_row.id]
                    visible.extend(
                        self._visible_for_series(_to_series(series_row), own, overridden, start, end)
                    )
        finally:
            db.close()

        return sorted(visible, key=lambda t: t.due_at_local)

    def _visible_for_series(
        self,
        series: SeriesRecord,
        materialized: list[Task],
        overridden: set[tuple[str, str]],
        start: datetime,
        end: datetime,
    ) -> list[Task]:
        taken = {_local_day(t.due_at_local) for t in materialized}
        out: list[Task] = []
        for local in self.expander.expand(series, start, end):
            day = local.date()
            if day in taken or (series.id, day.isoformat()) in overridden:
                continue
            try:
                task_id = encode(series.id, day)
            except OccurrenceIdError:
                logger.warning("Skipping series %r: id cannot be encoded as an occurrence id", series.id)
                return []
            out.append(Task(
                id=task_id,
                due_at_local=local.isoformat(),
                timezone=series.timezone,
                plant_id=series.plant_id,
                metadata={"ephemeral": True},
                title=series.title,
                series_id=series.id,
            ))
        return out


class SqlCompletionService(CompletionService):
    """
    Completion writes. Both operations are idempotent: completing something
    already completed changes nothing.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def complete_task(self, task_id: str) -> None:
        await asyncio.to_thread(self._complete_task, task_id)

    async def complete_recurring_instance(self, series_id: str, occurrence: datetime) -> None:
        await asyncio.to_thread(self._complete_recurring_instance, series_id, occurrence)

    def _complete_task(self, task_id: str) -> None:
        db = self.session_factory()
        try:
            task = db.get(TaskModel, task_id)
            if task is None or task.deleted_at is not None:
                raise TaskNotFoundError(f"Task {task_id} not found")
            if task.status == STATUS_COMPLETED:
                return
            now = _now()
            task.status = STATUS_COMPLETED
            task.completed_at = now
            task.updated_at = now
            db.commit()
        finally:
            db.close()

    def _complete_recurring_instance(self, series_id: str, occurrence: datetime) -> None:
        db = self.session_factory()
        try:
            series = db.get(SeriesModel, series_id)
            if series is None or series.deleted_at is not None:
                raise SeriesNotFoundError(f"Series {series_id} not found")

            zone = ZoneInfo(series.timezone)
            day = _utc(occurrence).astimezone(zone).date()
            # occurrence keeps the series' time of day
            time_of_day = datetime.fromisoformat(series.dtstart_local).time()
            local = datetime.combine(day, time_of_day, tzinfo=zone)
            now = _now()

            existing = next(
                (
                    t for t in db.query(TaskModel).filter(
                        TaskModel.series_id == series_id,
                        TaskModel.deleted_at.is_(None),
                    ).all()
                    if _local_day(t.due_at_local) == day
                ),
                None,
            )
            if existing is None:
                db.add(TaskModel(
                    id=uuid.uuid4().hex,
                    series_id=series_id,
                    plant_id=series.plant_id,
                    title=series.title,
                    description=series.description,
                    due_at_local=local.isoformat(),
                    due_at_utc=_utc(local),
                    timezone=series.timezone,
                    status=STATUS_COMPLETED,
                    metadata_json={},
                    completed_at=now,
                    updated_at=now,
                ))
            elif existing.status != STATUS_COMPLETED:
                existing.status = STATUS_COMPLETED
                existing.completed_at = now
                existing.updated_at = now

            override = db.query(OccurrenceOverrideModel).filter(
                OccurrenceOverrideModel.series_id == series_id,
                OccurrenceOverrideModel.occurrence_local_date == day.isoformat(),
            ).first()
            if override is None:
                db.add(OccurrenceOverrideModel(
                    series_id=series_id,
                    occurrence_local_date=day.isoformat(),
                    status=STATUS_COMPLETED,
                    updated_at=now,
                ))
            else:
                override.status = STATUS_COMPLETED
                override.updated_at = now

            db.commit()
        finally:
            db.close()


class SqlPlantRepository(PlantRepository):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def query_by_ids(self, plant_ids: AbstractSet[str]) -> list[PlantRecord]:
        return await asyncio.to_thread(self._query_by_ids, plant_ids)

    def _query_by_ids(self, plant_ids: AbstractSet[str]) -> list[PlantRecord]:
        db = self.session_factory()
        try:
            rows = db.query(PlantModel).filter(PlantModel.id.in_(sorted(plant_ids))).all()
            return [PlantRecord(id=r.id, name=r.name, image_url=r.image_url) for r in rows]
        finally:
            db.close()
