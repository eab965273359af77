"""Image processing utilities for llamaproctor.

Shared image encoding and resizing functions used by the capture,
analyzer and storage modules.
"""

from __future__ import annotations

import base64
import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def numpy_to_base64_png(image: np.ndarray) -> str:
    """Convert a numpy image array (BGR, OpenCV format) to base64 PNG."""
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise ValueError("Failed to encode image to PNG")
    return base64.b64encode(buffer.tobytes()).decode("utf-8")


def bgra_to_bgr(image: np.ndarray) -> np.ndarray:
    """Drop the alpha channel of a BGRA screen grab."""
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def resize_for_mllm(image: np.ndarray, max_dimension: int = 1568) -> np.ndarray:
    """Downscale an image so its largest side fits the vision model.

    Preserves aspect ratio. Screen captures are never upscaled since
    on-screen text is already rendered at native resolution.
    """
    h, w = image.shape[:2]
    largest = max(h, w)

    if largest > max_dimension:
        scale = max_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

    return image
