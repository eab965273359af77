"""Shared test fixtures for the llamaproctor test suite.

Provides common fixtures used across unit tests: sample frames, sample
observations, stub capture sources, analyzers and stores.
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock

import numpy as np
import pytest
import pytest_asyncio

from llamaproctor.domain.models import CapturedFrame, Observation, StudentRecord
from llamaproctor.storage.memory import InMemoryStudentStore


# ---------------------------------------------------------------------------
# Frame Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_image() -> np.ndarray:
    """A minimal 100x100 black image for testing."""
    return np.zeros((100, 100, 3), dtype=np.uint8)


@pytest.fixture
def sample_frame(sample_image: np.ndarray) -> CapturedFrame:
    """A CapturedFrame with a sample image."""
    return CapturedFrame(
        image=sample_image,
        timestamp=datetime(2025, 6, 21, 9, 0, 0),
        frame_number=1,
        source_device="test",
    )


# ---------------------------------------------------------------------------
# Observation Fixtures
# ---------------------------------------------------------------------------


def make_observation(raw_score: int = 5, description: str = "reading text") -> Observation:
    return Observation(
        raw_score=raw_score,
        description=description,
        short_description=description.split()[0],
        advice="Student is on-task.",
        frame_number=1,
    )


@pytest.fixture
def observation_factory():
    """Build observations with a given raw score and description."""
    return make_observation


@pytest.fixture
def on_task_observation() -> Observation:
    return make_observation(5, "Reading the assigned chapter on photosynthesis")


@pytest.fixture
def off_task_observation() -> Observation:
    return make_observation(0, "Watching a gaming video on YouTube")


@pytest.fixture
def stored_record() -> StudentRecord:
    """A record as it would be stored after a few cycles."""
    return StudentRecord(
        id="1",
        name="Kevin",
        focus_score=6,
        description="Editing an essay in a word processor",
        short_description="Editing essay",
        history=["Editing an essay in a word processor", "Browsing news"],
        suggestion="sussy",
        classroom="1",
        active=False,
    )


# ---------------------------------------------------------------------------
# Stub Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_capture_source(sample_frame: CapturedFrame) -> AsyncMock:
    """A mock CaptureSource returning the sample frame."""
    mock = AsyncMock()
    mock.is_open = True
    mock.capture_frame.return_value = sample_frame
    mock.__aenter__.return_value = mock
    mock.__aexit__.return_value = None
    return mock


@pytest.fixture
def mock_analyzer(on_task_observation: Observation) -> AsyncMock:
    """A mock ActivityAnalyzer that always reports an on-task observation."""
    mock = AsyncMock()
    mock.model = "mock-model"
    mock.analyze.return_value = on_task_observation
    return mock


@pytest_asyncio.fixture
async def memory_store() -> InMemoryStudentStore:
    """A connected in-memory store with an assignment for classroom 1."""
    store = InMemoryStudentStore(assignments={"1": "Read chapter 3 of the biology textbook"})
    await store.connect()
    return store
