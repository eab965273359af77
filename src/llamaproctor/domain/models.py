"""Core domain models for the llamaproctor system.

These models represent the data flowing through the monitor: captured
screen frames, per-capture observations from the vision model, the
tracked focus state of each student, and the document persisted for
the teacher dashboard.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_FOCUS_SCORE = 0
MAX_FOCUS_SCORE = 10
DEFAULT_FOCUS_SCORE = MAX_FOCUS_SCORE
HISTORY_LIMIT = 60

MIN_RAW_SCORE = 0
MAX_RAW_SCORE = 5


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Suggestion(str, enum.Enum):
    """Teacher-facing label derived from a student's focus score."""

    ON_TASK = "on-task"
    NEEDS_REMINDER = "needs-reminder"
    AMBIGUOUS = "sussy"  # Not clearly on or off task


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class CapturedFrame(BaseModel):
    """A single frame grabbed from the student's screen."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: np.ndarray = Field(description="Raw image data as BGR numpy array (OpenCV format)")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the frame was captured")
    frame_number: int = Field(ge=0, description="Sequential frame counter")
    source_device: str = Field(default="screen", description="Identifier for the capture source")


# ---------------------------------------------------------------------------
# Analysis Models
# ---------------------------------------------------------------------------


class Observation(BaseModel):
    """One analysis result from the vision model for one capture cycle.

    The raw score is validated here, at the boundary, so the focus
    tracker only ever sees scores in [0, 5].
    """

    model_config = ConfigDict(frozen=True)

    raw_score: int = Field(
        ge=MIN_RAW_SCORE,
        le=MAX_RAW_SCORE,
        description="Relevance of the visible activity to the assignment (0-5)",
    )
    description: str = Field(description="One sentence summary of what the student is doing")
    short_description: str = Field(description="A few words naming the activity")
    advice: str = Field(default="", description="The model's free-text suggestion for the teacher")
    raw_response: str = Field(default="", description="The raw text response from the model")
    timestamp: datetime = Field(default_factory=datetime.now)
    frame_number: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Focus Tracking Models
# ---------------------------------------------------------------------------


class LastObservation(BaseModel):
    """The most recent (description, short description, suggestion) triple."""

    model_config = ConfigDict(frozen=True)

    description: str
    short_description: str
    suggestion: Suggestion


class TrackedEntity(BaseModel):
    """Focus state for one monitored student or session."""

    id: str = Field(description="Stable identifier of the student/session")
    focus_score: int = Field(
        default=DEFAULT_FOCUS_SCORE, ge=MIN_FOCUS_SCORE, le=MAX_FOCUS_SCORE
    )
    history: list[str] = Field(
        default_factory=list, description="Activity descriptions, newest first"
    )
    last_observation: LastObservation | None = Field(default=None)
    active: bool = Field(default=False, description="Whether monitoring is running")


class FocusUpdate(BaseModel):
    """Result of applying one observation to an entity."""

    model_config = ConfigDict(frozen=True)

    focus_score: int = Field(ge=MIN_FOCUS_SCORE, le=MAX_FOCUS_SCORE)
    history: list[str]


# ---------------------------------------------------------------------------
# Persistence Models
# ---------------------------------------------------------------------------


class StudentRecord(BaseModel):
    """The per-student document kept in the store.

    Field names are camelCase in the stored document so existing
    dashboards reading the ``students`` collection keep working.
    Documents may also be written by the dashboard, so decoding is
    lenient: nulls and wrongly typed values fall back to the defaults.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
        coerce_numbers_to_str=True,
    )

    id: str
    name: str = ""
    focus_score: int = Field(
        default=DEFAULT_FOCUS_SCORE, ge=MIN_FOCUS_SCORE, le=MAX_FOCUS_SCORE
    )
    description: str = ""
    short_description: str = ""
    history: list[str] = Field(default_factory=list)
    suggestion: str = ""
    model_suggestion: str = ""
    classroom: str = ""
    active: bool = False
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    screenshot: str | None = Field(default=None, description="Base64 PNG of the last capture")

    @field_validator(
        "name", "description", "short_description", "suggestion",
        "model_suggestion", "classroom",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("focus_score", mode="before")
    @classmethod
    def _lenient_focus_score(cls, value: Any) -> int:
        """Missing or non-integer scores read as the default; others are clamped."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return DEFAULT_FOCUS_SCORE
        if isinstance(value, float) and not value.is_integer():
            return DEFAULT_FOCUS_SCORE
        return min(MAX_FOCUS_SCORE, max(MIN_FOCUS_SCORE, int(value)))

    @field_validator("history", mode="before")
    @classmethod
    def _lenient_history(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(entry) for entry in value if entry is not None]
        return value

    @field_validator("active", mode="before")
    @classmethod
    def _null_as_inactive(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("last_updated", mode="before")
    @classmethod
    def _null_as_now(cls, value: Any) -> Any:
        return datetime.now(timezone.utc) if value is None else value

    def to_document(self) -> dict:
        """Serialize to the stored (camelCase) document shape."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: dict) -> StudentRecord:
        """Build a record from a stored document, ignoring driver fields like ``_id``."""
        return cls.model_validate(document)


# ---------------------------------------------------------------------------
# Monitor Models
# ---------------------------------------------------------------------------


class MonitorSummary(BaseModel):
    """Outcome of one monitoring run."""

    student_id: str
    started_at: datetime
    ended_at: datetime | None = None
    captures: int = 0
    dropped_captures: int = 0
    cycles: int = 0
    persisted: int = 0
    failures: int = 0
    aborted: bool = False
    final_focus_score: int | None = None
    final_suggestion: Suggestion | None = None
