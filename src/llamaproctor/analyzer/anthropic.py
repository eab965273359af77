"""Anthropic Claude activity analyzer.

Uses the Anthropic Python SDK to send screen captures to Claude models
with vision capability.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from llamaproctor.analyzer.base import ActivityAnalyzer, AnalysisError, build_user_prompt
from llamaproctor.domain.models import CapturedFrame, Observation

logger = logging.getLogger(__name__)


class AnthropicAnalyzer(ActivityAnalyzer):
    """Activity analyzer using Anthropic's Messages API.

    Example usage::

        analyzer = AnthropicAnalyzer(api_key="sk-ant-...")
        observation = await analyzer.analyze(frame, task="Read chapter 3")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        system_prompt: str | None = None,
        max_tokens: int = 512,
        max_dimension: int = 1568,
    ) -> None:
        super().__init__(model=model, system_prompt=system_prompt, max_dimension=max_dimension)
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the Anthropic async client."""
        if self._client is not None:
            return
        import anthropic
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        logger.info("Initialized Anthropic client (model=%s)", self._model)

    async def analyze(
        self,
        frame: CapturedFrame,
        task: str,
        windows: Sequence[str] = (),
    ) -> Observation:
        """Score a screen capture against the teacher's task."""
        await self._ensure_client()
        b64_image = self._encode_frame_to_base64(frame)

        content = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/png", "data": b64_image},
            },
            {"type": "text", "text": build_user_prompt(task, windows)},
        ]

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=self._system_prompt,
                messages=[{"role": "user", "content": content}],
            )
            raw_text = "".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            )
        except Exception as e:
            raise AnalysisError(
                f"Anthropic API call failed: {e}",
                provider="anthropic",
            ) from e

        logger.debug("Model raw response: %s", raw_text[:200])
        return self._parse_response(raw_text, frame)

    async def health_check(self) -> bool:
        """Check if the API key is accepted."""
        try:
            await self._ensure_client()
            await self._client.models.list(limit=1)
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
