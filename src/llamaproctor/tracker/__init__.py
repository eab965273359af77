"""Focus tracking core for llamaproctor.

Public API:
    FocusTracker -- Per-entity focus score and history state
    apply_observation -- Pure focus update from (score, history, observation)
    derive_suggestion -- Focus score to teacher-facing label
"""

from llamaproctor.tracker.focus import (
    FocusTracker,
    apply_observation,
    derive_suggestion,
    next_focus_score,
    push_history,
)

__all__ = [
    "FocusTracker",
    "apply_observation",
    "derive_suggestion",
    "next_focus_score",
    "push_history",
]
