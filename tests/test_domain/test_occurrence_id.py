"""Tests for ephemeral occurrence ids and TaskRef resolution"""
import logging
from datetime import date

import pytest

from calendar_sync.domain.occurrence_id import (
    OccurrenceId, OccurrenceIdError, decode, encode, is_ephemeral, task_ref_for,
)
from calendar_sync.domain.task import Task
from calendar_sync.domain.task_ref import ConcreteRef, OccurrenceRef


class TestDecode:
    def test_valid_id(self):
        assert decode("series:abc123:2025-01-15") == OccurrenceId("abc123", "2025-01-15")

    def test_two_segments_is_malformed(self):
        assert decode("series:abc") is None

    def test_four_segments_is_malformed(self):
        assert decode("series:a:b:2025-01-15") is None

    def test_plain_id(self):
        assert decode("4f1c2e") is None

    def test_prefix_is_case_sensitive(self):
        assert decode("Series:abc:2025-01-15") is None


class TestEncode:
    @pytest.mark.parametrize("series_id", ["abc123", "0b6e-44c1", "", "series", "x y"])
    def test_decode_inverts_encode(self, series_id):
        assert decode(encode(series_id, "2025-01-15")) == OccurrenceId(series_id, "2025-01-15")

    def test_accepts_date(self):
        assert encode("abc", date(2025, 1, 5)) == "series:abc:2025-01-05"

    def test_rejects_colon_in_series_id(self):
        with pytest.raises(OccurrenceIdError):
            encode("a:b", "2025-01-15")


class TestIsEphemeral:
    def test_series_prefix(self):
        assert is_ephemeral(Task(id="series:abc:2025-01-15", due_at_local="2025-01-15T00:00:00"))

    def test_metadata_flag(self):
        assert is_ephemeral(Task(id="t1", due_at_local="2025-01-15T00:00:00", metadata={"ephemeral": True}))

    def test_truthy_but_not_true_flag(self):
        assert not is_ephemeral(Task(id="t1", due_at_local="2025-01-15T00:00:00", metadata={"ephemeral": "yes"}))

    def test_stored_task(self):
        assert not is_ephemeral(Task(id="t1", due_at_local="2025-01-15T00:00:00"))


class TestTaskRef:
    def test_occurrence(self):
        ref = task_ref_for("series:abc:2025-01-15", timezone="Europe/Berlin")
        assert ref == OccurrenceRef("abc", date(2025, 1, 15), "Europe/Berlin")

    def test_concrete(self):
        assert task_ref_for("t1") == ConcreteRef("t1")

    def test_malformed_falls_back_to_concrete(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert task_ref_for("series:abc") == ConcreteRef("series:abc")
        # building the ref is quiet; the warning belongs to completion
        assert caplog.records == []

    def test_flagged_stored_task_builds_quietly(self, caplog):
        with caplog.at_level(logging.WARNING):
            task = Task(id="t1", due_at_local="2025-01-15T00:00:00", metadata={"ephemeral": True})
        assert task.ref == ConcreteRef("t1")
        assert caplog.records == []

    def test_bad_date_falls_back_to_concrete(self):
        assert task_ref_for("series:abc:tomorrow") == ConcreteRef("series:abc:tomorrow")

    def test_flagged_plain_id_is_concrete(self):
        assert task_ref_for("t1", {"ephemeral": True}) == ConcreteRef("t1")

    def test_task_builds_ref_once(self):
        task = Task(id="series:abc:2025-01-15", due_at_local="2025-01-15T00:00:00", timezone="UTC")
        assert task.ref == OccurrenceRef("abc", date(2025, 1, 15), "UTC")
