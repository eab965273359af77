"""Abstract base class for student activity analyzers.

An analyzer sends a screen capture plus the teacher's current task to a
vision-language model and turns the reply into an ``Observation``. All
providers share the prompt and the response parsing defined here.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from pydantic import ValidationError

from llamaproctor.domain.models import MAX_RAW_SCORE, MIN_RAW_SCORE, CapturedFrame, Observation
from llamaproctor.utils.imaging import numpy_to_base64_png, resize_for_mllm

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_PROMPT = """You are an AI assistant helping teachers monitor student activity during class. Analyze the student's screen activity and compare it to the teacher's intended task.

Provide:
1. A score from 0 to 5 for how relevant the student's activity is to the teacher's task
2. A short one sentence summary of what the student seems to be doing
3. A few words naming the activity (e.g. "reading lecture notes")
4. A short one sentence suggestion for the teacher. If the student is on-task, say so. If the activity is not obviously relevant, infer how it may be related and advise. If the student is truly off-task, advise a gentle reminder.

Respond ONLY with valid JSON in the following format (no markdown, no explanation):
{
    "score": 0 to 5,
    "description": "...",
    "short_description": "...",
    "suggestion": "..."
}
"""

RESPONSE_SCHEMA = {
    "name": "StudentActivityAnalysis",
    "schema": {
        "type": "object",
        "properties": {
            "score": {
                "type": "integer",
                "description": "Score from 0 to 5 for how relevant the student's activity is to the teacher's task",
            },
            "description": {
                "type": "string",
                "description": "A short 1 sentence summary of what the student seems to be doing",
            },
            "short_description": {
                "type": "string",
                "description": "A few words naming the student's activity",
            },
            "suggestion": {
                "type": "string",
                "description": "A short 1 sentence suggestion for the teacher",
            },
        },
        "required": ["score", "description", "short_description", "suggestion"],
    },
}


def build_user_prompt(task: str, windows: Sequence[str] = ()) -> str:
    """Text part of the user message sent alongside the screenshot."""
    window_list = ", ".join(windows) if windows else "unknown"
    return (
        f"Teacher's Task: {task}\n\n"
        f"Active Windows: {window_list}\n\n"
        "Please analyze this student's activity and provide insights."
    )


class ActivityAnalyzer(ABC):
    """Abstract interface for vision-model activity analyzers."""

    def __init__(
        self,
        model: str,
        system_prompt: str | None = None,
        max_dimension: int = 1568,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._max_dimension = max_dimension

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    async def analyze(
        self,
        frame: CapturedFrame,
        task: str,
        windows: Sequence[str] = (),
    ) -> Observation:
        """Score how relevant the captured screen is to ``task``.

        Raises:
            AnalysisError: If the API call fails or the reply is unusable.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable and authenticated."""
        ...

    def _encode_frame_to_base64(self, frame: CapturedFrame) -> str:
        """Downscale a frame and encode it as a base64 PNG string."""
        resized = resize_for_mllm(frame.image, max_dimension=self._max_dimension)
        return numpy_to_base64_png(resized)

    def _parse_response(self, raw_response: str, frame: CapturedFrame) -> Observation:
        """Parse a raw model reply into an Observation."""
        provider = type(self).__name__
        json_str = (raw_response or "").strip()

        # Remove markdown code block if present
        match = re.search(r"```(?:json)?\s*(.*?)```", json_str, re.DOTALL)
        if match:
            json_str = match.group(1).strip()

        brace_match = re.search(r"\{.*\}", json_str, re.DOTALL)
        if brace_match:
            json_str = brace_match.group(0)

        data = None
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError:
            try:
                # Fix invalid escape sequences by replacing lone backslashes
                fixed = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", json_str)
                data = json.loads(fixed)
            except json.JSONDecodeError:
                pass

        if not isinstance(data, dict):
            raise AnalysisError(
                "Failed to parse model response as JSON",
                provider=provider,
                raw_response=raw_response,
            )

        raw_score = self._coerce_score(data.get("score"), provider, raw_response)

        description = str(data.get("description") or "").strip()
        if not description:
            raise AnalysisError(
                "Model response has no description",
                provider=provider,
                raw_response=raw_response,
            )
        short_description = str(data.get("short_description") or "").strip() or description

        try:
            return Observation(
                raw_score=raw_score,
                description=description,
                short_description=short_description,
                advice=str(data.get("suggestion") or "").strip(),
                raw_response=raw_response,
                timestamp=datetime.now(),
                frame_number=frame.frame_number,
            )
        except ValidationError as e:
            raise AnalysisError(
                f"Failed to build Observation from parsed data: {e}",
                provider=provider,
                raw_response=raw_response,
            ) from e

    @staticmethod
    def _coerce_score(value: object, provider: str, raw_response: str) -> int:
        """Validate the model's relevance score; out-of-range scores are rejected."""
        if isinstance(value, bool):
            value = None
        try:
            score = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise AnalysisError(
                f"Model returned a non-numeric score: {value!r}",
                provider=provider,
                raw_response=raw_response,
            ) from None
        if not score.is_integer() or not MIN_RAW_SCORE <= score <= MAX_RAW_SCORE:
            raise AnalysisError(
                f"Model score {value!r} is outside {MIN_RAW_SCORE}-{MAX_RAW_SCORE}",
                provider=provider,
                raw_response=raw_response,
            )
        return int(score)


class AnalysisError(Exception):
    """Raised when activity analysis fails."""

    def __init__(self, message: str, provider: str = "", raw_response: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.raw_response = raw_response
