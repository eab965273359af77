"""Abstract base class for screen capture sources.

All capture implementations must conform to this interface, enabling
the monitor to swap between a live desktop grab and file-based test
sources without changing the rest of the pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from llamaproctor.domain.models import CapturedFrame

logger = logging.getLogger(__name__)


class CaptureSource(ABC):
    """Abstract interface for capturing frames from a visual source.

    Example usage::

        async with ScreenCapture(monitor_index=1) as capture:
            frame = await capture.capture_frame()
    """

    def __init__(self) -> None:
        self._frame_counter: int = 0
        self._is_open: bool = False

    @property
    def is_open(self) -> bool:
        """Whether the capture source is currently open and ready."""
        return self._is_open

    @property
    def frame_count(self) -> int:
        return self._frame_counter

    @abstractmethod
    async def open(self) -> None:
        """Open and initialize the capture source.

        Raises:
            CaptureError: If the source cannot be opened.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the capture source. Safe to call multiple times."""
        ...

    @abstractmethod
    async def capture_frame(self) -> CapturedFrame:
        """Capture a single frame from the source.

        Raises:
            CaptureError: If frame capture fails.
        """
        ...

    async def __aenter__(self) -> CaptureSource:
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class CaptureError(Exception):
    """Raised when frame capture fails."""
