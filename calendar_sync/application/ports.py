"""
Collaborator interfaces consumed by the calendar sync engine.

Implementations must tolerate being called for windows whose results end up
discarded: the orchestrator never assumes a fetch is applied exactly once.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import AbstractSet, Sequence

from calendar_sync.domain.task import PlantRecord, Task


class TaskRepository(ABC):
    @abstractmethod
    async def get_tasks_by_date_range(self, start: datetime, end: datetime) -> Sequence[Task]:
        """Pending tasks (stored and ephemeral) due within [start, end]."""

    @abstractmethod
    async def get_completed_tasks_by_date_range(self, start: datetime, end: datetime) -> Sequence[Task]:
        """Completed tasks due within [start, end]."""


class CompletionService(ABC):
    """
    Completion calls are expected to be safe to retry; the router does not
    deduplicate.
    """

    @abstractmethod
    async def complete_task(self, task_id: str) -> None:
        ...

    @abstractmethod
    async def complete_recurring_instance(self, series_id: str, occurrence: datetime) -> None:
        ...


class PlantRepository(ABC):
    @abstractmethod
    async def query_by_ids(self, plant_ids: AbstractSet[str]) -> Sequence[PlantRecord]:
        ...
