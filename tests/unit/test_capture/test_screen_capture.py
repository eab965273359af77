"""Tests for the mss-backed ScreenCapture."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from mss.exception import ScreenShotError

from llamaproctor.capture.base import CaptureError
from llamaproctor.capture.screen import ScreenCapture

MONITORS = [
    {"left": 0, "top": 0, "width": 3840, "height": 1080},
    {"left": 0, "top": 0, "width": 1920, "height": 1080},
    {"left": 1920, "top": 0, "width": 1920, "height": 1080},
]


def fake_mss(grab_result=None, grab_error=None) -> MagicMock:
    """Build a patched ``mss.mss`` factory whose handle is a context manager."""
    sct = MagicMock()
    sct.monitors = MONITORS
    if grab_error is not None:
        sct.grab.side_effect = grab_error
    else:
        sct.grab.return_value = grab_result
    factory = MagicMock()
    factory.return_value.__enter__.return_value = sct
    factory.return_value.__exit__.return_value = False
    return factory


class TestScreenCapture:
    def test_init_defaults(self) -> None:
        capture = ScreenCapture()
        assert capture._monitor_index == 1
        assert capture.is_open is False
        assert capture.frame_count == 0

    @pytest.mark.asyncio
    async def test_open_resolves_monitor(self) -> None:
        with patch("llamaproctor.capture.screen.mss.mss", fake_mss()):
            capture = ScreenCapture(monitor_index=2)
            await capture.open()
        assert capture.is_open is True
        assert capture._monitor == MONITORS[2]

    @pytest.mark.asyncio
    async def test_open_rejects_missing_monitor(self) -> None:
        with patch("llamaproctor.capture.screen.mss.mss", fake_mss()):
            capture = ScreenCapture(monitor_index=5)
            with pytest.raises(CaptureError, match="Monitor 5 not found"):
                await capture.open()
        assert capture.is_open is False

    @pytest.mark.asyncio
    async def test_capture_requires_open(self) -> None:
        with pytest.raises(CaptureError, match="not open"):
            await ScreenCapture().capture_frame()

    @pytest.mark.asyncio
    async def test_capture_frame_converts_bgra(self) -> None:
        bgra = np.zeros((10, 20, 4), dtype=np.uint8)
        bgra[..., 0] = 255
        with patch("llamaproctor.capture.screen.mss.mss", fake_mss(grab_result=bgra)):
            async with ScreenCapture() as capture:
                first = await capture.capture_frame()
                second = await capture.capture_frame()

        assert first.image.shape == (10, 20, 3)
        assert first.image[0, 0, 0] == 255
        assert first.frame_number == 1
        assert second.frame_number == 2
        assert first.source_device == "screen:1"
        assert capture.is_open is False

    @pytest.mark.asyncio
    async def test_empty_grab_raises(self) -> None:
        empty = np.zeros((0, 0, 4), dtype=np.uint8)
        with patch("llamaproctor.capture.screen.mss.mss", fake_mss(grab_result=empty)):
            async with ScreenCapture() as capture:
                with pytest.raises(CaptureError, match="Invalid screen grab"):
                    await capture.capture_frame()

    @pytest.mark.asyncio
    async def test_grab_error_is_wrapped(self) -> None:
        factory = fake_mss(grab_error=ScreenShotError("XGetImage() failed"))
        with patch("llamaproctor.capture.screen.mss.mss", factory):
            async with ScreenCapture() as capture:
                with pytest.raises(CaptureError, match="Failed to grab screen"):
                    await capture.capture_frame()
