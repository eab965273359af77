"""Domain models for llamaproctor.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from llamaproctor.domain.models import (
    CapturedFrame,
    FocusUpdate,
    LastObservation,
    MonitorSummary,
    Observation,
    StudentRecord,
    Suggestion,
    TrackedEntity,
)

__all__ = [
    "CapturedFrame",
    "FocusUpdate",
    "LastObservation",
    "MonitorSummary",
    "Observation",
    "StudentRecord",
    "Suggestion",
    "TrackedEntity",
]
