"""Tests for the domain models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from llamaproctor.domain.models import Observation, StudentRecord, TrackedEntity


class TestObservation:
    @pytest.mark.parametrize("raw_score", [-1, 6, 10])
    def test_rejects_out_of_range_score(self, raw_score: int) -> None:
        with pytest.raises(ValidationError):
            Observation(raw_score=raw_score, description="x", short_description="x")

    def test_accepts_boundaries(self) -> None:
        assert Observation(raw_score=0, description="x", short_description="x").raw_score == 0
        assert Observation(raw_score=5, description="x", short_description="x").raw_score == 5

    def test_is_frozen(self) -> None:
        obs = Observation(raw_score=3, description="x", short_description="x")
        with pytest.raises(ValidationError):
            obs.raw_score = 4  # type: ignore[misc]


class TestTrackedEntity:
    def test_defaults(self) -> None:
        entity = TrackedEntity(id="1")
        assert entity.focus_score == 10
        assert entity.history == []
        assert entity.active is False
        assert entity.last_observation is None

    def test_focus_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            TrackedEntity(id="1", focus_score=11)


class TestStudentRecord:
    def test_document_uses_camel_case(self, stored_record: StudentRecord) -> None:
        doc = stored_record.to_document()
        assert doc["focusScore"] == 6
        assert doc["shortDescription"] == "Editing essay"
        assert "lastUpdated" in doc
        assert "modelSuggestion" in doc
        assert "focus_score" not in doc

    def test_document_omits_missing_screenshot(self, stored_record: StudentRecord) -> None:
        assert "screenshot" not in stored_record.to_document()

    def test_from_document_ignores_driver_fields(self) -> None:
        doc = {
            "_id": "665f1c2e9b1e8a3d4c2b1a00",
            "id": "1",
            "focusScore": 4,
            "history": ["Reading"],
            "active": True,
            "lastUpdated": datetime(2025, 6, 21, tzinfo=timezone.utc),
        }
        record = StudentRecord.from_document(doc)
        assert record.id == "1"
        assert record.focus_score == 4
        assert record.history == ["Reading"]
        assert record.active is True

    def test_from_partial_document_uses_defaults(self) -> None:
        record = StudentRecord.from_document({"id": "7", "active": False})
        assert record.focus_score == 10
        assert record.history == []

    def test_populate_by_field_name(self) -> None:
        record = StudentRecord(id="1", focus_score=3, short_description="chat")
        assert record.focus_score == 3

    def test_from_dashboard_document_is_lenient(self) -> None:
        doc = {
            "id": 3,
            "name": None,
            "classroom": 1,
            "focusScore": None,
            "history": ["Reading", None],
            "suggestion": None,
            "active": None,
            "lastUpdated": None,
        }
        record = StudentRecord.from_document(doc)
        assert record.id == "3"
        assert record.name == ""
        assert record.classroom == "1"
        assert record.focus_score == 10
        assert record.history == ["Reading"]
        assert record.suggestion == ""
        assert record.active is False
        assert record.last_updated.tzinfo is not None

    @pytest.mark.parametrize(
        "stored, expected",
        [(4.0, 4), ("seven", 10), (6.5, 10), (True, 10), (42, 10), (-3, 0)],
    )
    def test_stored_focus_score_is_normalized(self, stored: object, expected: int) -> None:
        record = StudentRecord.from_document({"id": "1", "focusScore": stored})
        assert record.focus_score == expected
