"""Focus score and rolling history bookkeeping.

Converts the stream of per-capture relevance scores (0-5) coming from
the vision model into a bounded 0-10 focus score per student, and keeps
the newest-first history of activity descriptions capped at
``HISTORY_LIMIT`` entries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from llamaproctor.domain.models import (
    DEFAULT_FOCUS_SCORE,
    HISTORY_LIMIT,
    MAX_FOCUS_SCORE,
    MIN_FOCUS_SCORE,
    FocusUpdate,
    LastObservation,
    Suggestion,
    TrackedEntity,
)

logger = logging.getLogger(__name__)

OFF_TASK_MAX_RAW = 2
ON_TASK_MIN_RAW = 4

ON_TASK_MIN_FOCUS = 7
NEEDS_REMINDER_MAX_FOCUS = 3


def next_focus_score(current_score: int, raw_score: int) -> int:
    """Apply one raw relevance score to the current focus score.

    Scores of 2 or less cost a point, 4 or more earn a point, and 3 is
    neutral. The result saturates at the 0 and 10 bounds.
    """
    if raw_score <= OFF_TASK_MAX_RAW:
        return max(MIN_FOCUS_SCORE, current_score - 1)
    if raw_score >= ON_TASK_MIN_RAW:
        return min(MAX_FOCUS_SCORE, current_score + 1)
    return current_score


def push_history(history: Sequence[str], description: str) -> list[str]:
    """Return a new history with ``description`` first, capped at the limit."""
    return [description, *history][:HISTORY_LIMIT]


def apply_observation(
    current_score: int,
    history: Sequence[str],
    raw_score: int,
    description: str,
) -> FocusUpdate:
    """Compute the next focus state without touching any tracker."""
    return FocusUpdate(
        focus_score=next_focus_score(current_score, raw_score),
        history=push_history(history, description),
    )


def derive_suggestion(focus_score: int) -> Suggestion:
    """Classify a focus score into the teacher-facing suggestion label."""
    if focus_score >= ON_TASK_MIN_FOCUS:
        return Suggestion.ON_TASK
    if focus_score <= NEEDS_REMINDER_MAX_FOCUS:
        return Suggestion.NEEDS_REMINDER
    return Suggestion.AMBIGUOUS


class FocusTracker:
    """Owns the focus state of every monitored entity.

    ``record_observation`` never suspends, so within one event loop a
    single call is atomic. Callers that wrap it with I/O (loading the
    prior state, persisting the result) must hold ``lock(entity_id)``
    across the whole read-modify-write so two observations for the
    same entity cannot interleave.

    Example usage::

        tracker = FocusTracker()
        async with tracker.lock("1"):
            update = tracker.record_observation("1", 5, "reading text", "reading")
    """

    def __init__(self) -> None:
        self._entities: dict[str, TrackedEntity] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._entities

    @property
    def entities(self) -> list[TrackedEntity]:
        return list(self._entities.values())

    def get(self, entity_id: str) -> TrackedEntity | None:
        """Return the tracked state for ``entity_id``, if any."""
        return self._entities.get(entity_id)

    def lock(self, entity_id: str) -> asyncio.Lock:
        """Return the lock serializing updates for ``entity_id``."""
        lock = self._locks.get(entity_id)
        if lock is None:
            lock = self._locks[entity_id] = asyncio.Lock()
        return lock

    def seed(
        self,
        entity_id: str,
        focus_score: int = DEFAULT_FOCUS_SCORE,
        history: Sequence[str] = (),
        active: bool | None = None,
    ) -> TrackedEntity:
        """Load previously persisted state for an entity.

        Replaces whatever the tracker currently holds for ``entity_id``;
        the liveness flag is kept unless ``active`` is given.
        """
        existing = self._entities.get(entity_id)
        if active is None:
            active = existing.active if existing is not None else False
        entity = TrackedEntity(
            id=entity_id,
            focus_score=focus_score,
            history=list(history)[:HISTORY_LIMIT],
            last_observation=existing.last_observation if existing is not None else None,
            active=active,
        )
        self._entities[entity_id] = entity
        logger.debug(
            "Seeded %s with focus score %d and %d history entries",
            entity_id, entity.focus_score, len(entity.history),
        )
        return entity

    def record_observation(
        self,
        entity_id: str,
        raw_score: int,
        description: str,
        short_description: str,
    ) -> FocusUpdate:
        """Apply one observation to an entity and return its new state.

        An entity seen for the first time starts from a focus score of
        10 with an empty history.
        """
        entity = self._entities.get(entity_id)
        if entity is None:
            entity = TrackedEntity(id=entity_id)
            self._entities[entity_id] = entity

        update = apply_observation(
            entity.focus_score, entity.history, raw_score, description
        )
        entity.focus_score = update.focus_score
        entity.history = list(update.history)
        entity.last_observation = LastObservation(
            description=description,
            short_description=short_description,
            suggestion=derive_suggestion(update.focus_score),
        )
        logger.debug(
            "Entity %s: raw=%d focus=%d history=%d",
            entity_id, raw_score, update.focus_score, len(update.history),
        )
        return update

    def set_active(self, entity_id: str, active: bool) -> TrackedEntity:
        """Mark an entity's monitoring as started or stopped."""
        entity = self._entities.get(entity_id)
        if entity is None:
            entity = TrackedEntity(id=entity_id)
            self._entities[entity_id] = entity
        entity.active = active
        return entity
