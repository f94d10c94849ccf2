"""
Pytest fixtures for testing
"""
import asyncio

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from calendar_sync.application.ports import CompletionService, PlantRepository, TaskRepository
from calendar_sync.infrastructure.db.session import Base
import calendar_sync.infrastructure.db.models  # noqa: F401  registers tables on Base


class FakeTaskRepository(TaskRepository):
    """
    In-memory task source. Data is captured when a call starts, so a held
    call returns what was current at the time it was issued.
    """

    def __init__(self, pending=(), completed=()):
        self.pending = list(pending)
        self.completed = list(completed)
        self.error: Exception | None = None
        self.windows: list[tuple] = []
        self.hold_next = False
        self.gates: dict[int, asyncio.Event] = {}
        self.blocked = asyncio.Event()

    async def get_tasks_by_date_range(self, start, end):
        self.windows.append((start, end))
        call_number = len(self.windows)
        pending, error = list(self.pending), self.error
        if self.hold_next:
            self.hold_next = False
            gate = self.gates[call_number] = asyncio.Event()
            self.blocked.set()
            await gate.wait()
        if error is not None:
            raise error
        return pending

    async def get_completed_tasks_by_date_range(self, start, end):
        return list(self.completed)

    def release(self, call_number: int) -> None:
        self.gates[call_number].set()


class FakePlantRepository(PlantRepository):
    def __init__(self, records=()):
        self.records = {r.id: r for r in records}
        self.calls: list[frozenset] = []
        self.error: Exception | None = None
        self.hold_next = False
        self.gate: asyncio.Event | None = None
        self.blocked = asyncio.Event()

    async def query_by_ids(self, plant_ids):
        self.calls.append(frozenset(plant_ids))
        records = [self.records[i] for i in sorted(plant_ids) if i in self.records]
        if self.hold_next:
            self.hold_next = False
            self.gate = asyncio.Event()
            self.blocked.set()
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return records


class FakeCompletionService(CompletionService):
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.completed_tasks: list[str] = []
        self.completed_instances: list[tuple] = []

    async def complete_task(self, task_id):
        self.completed_tasks.append(task_id)
        if self.error is not None:
            raise self.error

    async def complete_recurring_instance(self, series_id, occurrence):
        self.completed_instances.append((series_id, occurrence))
        if self.error is not None:
            raise self.error


@pytest.fixture
def task_repository_factory():
    return FakeTaskRepository


@pytest.fixture
def plant_repository_factory():
    return FakePlantRepository


@pytest.fixture
def completion_service_factory():
    return FakeCompletionService


@pytest.fixture
def db_engine(tmp_path):
    """SQLite file engine; a file (not :memory:) so worker threads share the data."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'calendar.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
