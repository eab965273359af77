"""Desktop screen capture implementation using mss.

Grabs one monitor of the local display and converts it to the BGR
numpy layout the rest of the pipeline expects.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import mss
from mss.exception import ScreenShotError
import numpy as np

from llamaproctor.capture.base import CaptureError, CaptureSource
from llamaproctor.domain.models import CapturedFrame
from llamaproctor.utils.imaging import bgra_to_bgr

logger = logging.getLogger(__name__)


class ScreenCapture(CaptureSource):
    """Captures the desktop with mss.

    mss handles are not shareable across threads, so every grab opens
    its own handle inside the thread pool executor.
    """

    def __init__(self, monitor_index: int = 1) -> None:
        super().__init__()
        self._monitor_index = monitor_index
        self._monitor: dict[str, int] | None = None

    async def open(self) -> None:
        """Resolve the monitor geometry to capture."""
        loop = asyncio.get_running_loop()
        self._monitor = await loop.run_in_executor(None, self._resolve_monitor)
        self._is_open = True
        logger.info(
            "Opened screen capture on monitor %d (%dx%d)",
            self._monitor_index, self._monitor["width"], self._monitor["height"],
        )

    async def close(self) -> None:
        if self._is_open:
            logger.info("Closed screen capture on monitor %d", self._monitor_index)
        self._monitor = None
        self._is_open = False

    async def capture_frame(self) -> CapturedFrame:
        """Grab a single frame of the configured monitor."""
        if not self._is_open or self._monitor is None:
            raise CaptureError("Screen capture is not open")
        loop = asyncio.get_running_loop()
        image = await loop.run_in_executor(None, self._grab_sync)
        self._frame_counter += 1
        return CapturedFrame(
            image=image,
            timestamp=datetime.now(),
            frame_number=self._frame_counter,
            source_device=f"screen:{self._monitor_index}",
        )

    def _resolve_monitor(self) -> dict[str, int]:
        with mss.mss() as sct:
            monitors = sct.monitors
        if self._monitor_index >= len(monitors):
            raise CaptureError(
                f"Monitor {self._monitor_index} not found ({len(monitors) - 1} available)"
            )
        return dict(monitors[self._monitor_index])

    def _grab_sync(self) -> np.ndarray:
        """Synchronous grab (runs in thread pool)."""
        try:
            with mss.mss() as sct:
                shot = sct.grab(self._monitor)
                image = np.array(shot)
        except ScreenShotError as e:
            raise CaptureError(f"Failed to grab screen: {e}") from e
        if image.size == 0 or image.shape[0] == 0 or image.shape[1] == 0:
            raise CaptureError(f"Invalid screen grab dimensions: {image.shape}")
        return bgra_to_bgr(image)
