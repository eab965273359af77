"""Screen capture module for llamaproctor.

Provides periodic screen capture behind an abstract interface so the
monitor can be driven by alternative sources (e.g. file-based testing).

Public API:
    CaptureSource -- Abstract base class
    ScreenCapture -- mss desktop screen implementation
"""

from llamaproctor.capture.base import CaptureError, CaptureSource

__all__ = ["CaptureSource", "CaptureError", "ScreenCapture"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "ScreenCapture":
        from llamaproctor.capture.screen import ScreenCapture
        return ScreenCapture
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
