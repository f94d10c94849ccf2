"""Tests for the calendar session surface (complete + refetch)"""
import asyncio
from datetime import date

import pytest

from calendar_sync.application.calendar_session import CalendarSession
from calendar_sync.application.completion_router import CompletionRouter
from calendar_sync.application.fetch_orchestrator import CalendarFetchOrchestrator, FetchOutcome
from calendar_sync.application.plant_projection import PlantProjectionCache
from calendar_sync.domain.task import Task


def _session(task_repo, plant_repo, service):
    orchestrator = CalendarFetchOrchestrator(
        task_repo,
        PlantProjectionCache(plant_repo),
        timezone="UTC",
        debounce_seconds=0,
        selected_date=date(2025, 1, 15),
    )
    return CalendarSession(orchestrator, CompletionRouter(service))


class TestCompleteTask:
    def test_completion_is_followed_by_refetch(
        self, task_repository_factory, plant_repository_factory, completion_service_factory
    ):
        async def scenario():
            repo = task_repository_factory(pending=[Task(id="t1", due_at_local="2025-01-15T09:00:00")])
            service = completion_service_factory()
            session = _session(repo, plant_repository_factory(), service)
            await session.refetch()

            repo.completed, repo.pending = repo.pending, []
            outcome = await session.complete_task(session.day_pending_tasks[0])
            return session, service, repo, outcome

        session, service, repo, outcome = asyncio.run(scenario())
        assert outcome is FetchOutcome.PUBLISHED
        assert service.completed_tasks == ["t1"]
        assert len(repo.windows) == 2
        assert session.day_pending_tasks == ()
        assert [t.id for t in session.day_completed_tasks] == ["t1"]
        assert session.task_counts == {"2025-01-15": 1}

    def test_failure_is_logged_and_reraised(
        self, task_repository_factory, plant_repository_factory, completion_service_factory, caplog
    ):
        repo = task_repository_factory()
        service = completion_service_factory(error=PermissionError("read only"))
        session = _session(repo, plant_repository_factory(), service)
        task = Task(id="series:abc:2025-01-15", due_at_local="2025-01-15T00:00:00")

        with pytest.raises(PermissionError):
            asyncio.run(session.complete_task(task))
        assert repo.windows == []
        assert "Failed to complete task series:abc:2025-01-15" in caplog.text


class TestSurface:
    def test_select_and_visibility_delegate(
        self, task_repository_factory, plant_repository_factory, completion_service_factory
    ):
        async def scenario():
            repo = task_repository_factory()
            session = _session(repo, plant_repository_factory(), completion_service_factory())
            await session.select_date(date(2025, 1, 16))
            session.set_enabled(False)
            return session, repo

        session, repo = asyncio.run(scenario())
        assert session.snapshot.selected_date == date(2025, 1, 16)
        assert len(repo.windows) == 1
        assert not session.is_loading
        assert session.plant_map == {}
