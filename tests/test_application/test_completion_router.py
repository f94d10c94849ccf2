"""Tests for routing completions to stored tasks or series occurrences"""
import asyncio
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from calendar_sync.application.completion_router import CompletionRouter
from calendar_sync.domain.task import Task
from calendar_sync.domain.task_ref import ConcreteRef, OccurrenceRef


def _task(task_id, timezone=None, metadata=None):
    return Task(id=task_id, due_at_local="2025-01-15T00:00:00", timezone=timezone, metadata=metadata or {})


class TestCompletionRouter:
    def test_occurrence_completed_at_local_midnight(self, completion_service_factory):
        service = completion_service_factory()
        router = CompletionRouter(service)
        ref = asyncio.run(router.complete(_task("series:abc123:2025-01-15", "America/New_York")))

        assert isinstance(ref, OccurrenceRef)
        assert service.completed_tasks == []
        (series_id, occurrence), = service.completed_instances
        assert series_id == "abc123"
        assert occurrence == datetime(2025, 1, 15, tzinfo=ZoneInfo("America/New_York"))
        assert occurrence.utcoffset() == timedelta(hours=-5)

    def test_occurrence_without_timezone_uses_utc(self, completion_service_factory):
        service = completion_service_factory()
        asyncio.run(CompletionRouter(service).complete(_task("series:abc:2025-01-15")))
        (_, occurrence), = service.completed_instances
        assert occurrence == datetime(2025, 1, 15, tzinfo=ZoneInfo("UTC"))

    def test_configured_default_timezone(self, completion_service_factory):
        service = completion_service_factory()
        router = CompletionRouter(service, default_timezone="Europe/Berlin")
        asyncio.run(router.complete(_task("series:abc:2025-01-15")))
        (_, occurrence), = service.completed_instances
        assert occurrence.utcoffset() == timedelta(hours=1)

    def test_malformed_id_completed_directly(self, completion_service_factory, caplog):
        service = completion_service_factory()
        with caplog.at_level(logging.WARNING):
            ref = asyncio.run(CompletionRouter(service).complete(_task("series:abc")))
        assert ref == ConcreteRef("series:abc")
        assert service.completed_tasks == ["series:abc"]
        assert service.completed_instances == []
        assert "Malformed occurrence id 'series:abc'" in caplog.text

    def test_flagged_ephemeral_with_plain_id(self, completion_service_factory, caplog):
        service = completion_service_factory()
        with caplog.at_level(logging.WARNING):
            asyncio.run(CompletionRouter(service).complete(_task("t1", metadata={"ephemeral": True})))
        assert service.completed_tasks == ["t1"]
        assert "Malformed occurrence id 't1'" in caplog.text

    def test_stored_task(self, completion_service_factory, caplog):
        service = completion_service_factory()
        with caplog.at_level(logging.WARNING):
            asyncio.run(CompletionRouter(service).complete(_task("t1")))
        assert service.completed_tasks == ["t1"]
        assert caplog.records == []

    def test_failure_propagates_without_retry(self, completion_service_factory):
        error = ConnectionError("offline")
        service = completion_service_factory(error=error)
        with pytest.raises(ConnectionError) as exc_info:
            asyncio.run(CompletionRouter(service).complete(_task("t1")))
        assert exc_info.value is error
        assert service.completed_tasks == ["t1"]
