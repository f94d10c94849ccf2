"""
Calendar session - the surface the calendar screen talks to.

Reads come from the orchestrator; completions go through the router and are
followed by a refetch. A failed completion is logged and re-raised so the
screen can offer a retry; nothing is rolled back here.
"""
import asyncio
import logging
from datetime import date, datetime
from typing import Callable

from calendar_sync.application.completion_router import CompletionRouter
from calendar_sync.application.fetch_orchestrator import (
    CalendarFetchOrchestrator,
    CalendarSnapshot,
    FetchOutcome,
    Listener,
)
from calendar_sync.domain.task import PlantProjection, Task

logger = logging.getLogger(__name__)


class CalendarSession:
    def __init__(self, orchestrator: CalendarFetchOrchestrator, router: CompletionRouter):
        self.orchestrator = orchestrator
        self.router = router

    @property
    def snapshot(self) -> CalendarSnapshot:
        return self.orchestrator.snapshot

    @property
    def day_pending_tasks(self) -> tuple[Task, ...]:
        return self.orchestrator.day_pending_tasks

    @property
    def day_completed_tasks(self) -> tuple[Task, ...]:
        return self.orchestrator.day_completed_tasks

    @property
    def task_counts(self) -> dict[str, int]:
        return self.orchestrator.task_counts

    @property
    def plant_map(self) -> dict[str, PlantProjection]:
        return self.orchestrator.plant_map

    @property
    def is_loading(self) -> bool:
        return self.orchestrator.is_loading

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.orchestrator.subscribe(listener)

    def start(self) -> asyncio.Task | None:
        return self.orchestrator.start()

    def select_date(self, day: date | datetime) -> asyncio.Task | None:
        return self.orchestrator.select_date(day)

    def set_enabled(self, enabled: bool) -> asyncio.Task | None:
        return self.orchestrator.set_enabled(enabled)

    async def refetch(self) -> FetchOutcome:
        return await self.orchestrator.refetch()

    async def complete_task(self, task: Task) -> FetchOutcome:
        try:
            await self.router.complete(task)
        except Exception:
            logger.error("Failed to complete task %s", task.id, exc_info=True)
            raise
        return await self.orchestrator.refetch()

    def close(self) -> None:
        self.orchestrator.close()
