"""OpenAI-compatible activity analyzer.

Works with the Llama API's OpenAI-compatible endpoint, OpenAI,
OpenRouter, and any other chat completions API by setting a custom
base_url.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from llamaproctor.analyzer.base import (
    RESPONSE_SCHEMA,
    ActivityAnalyzer,
    AnalysisError,
    build_user_prompt,
)
from llamaproctor.domain.models import CapturedFrame, Observation

logger = logging.getLogger(__name__)


class OpenAIAnalyzer(ActivityAnalyzer):
    """Activity analyzer using the chat completions API.

    Requests a ``json_schema`` structured response unless
    ``structured_output`` is disabled for endpoints that reject it; the
    prompt asks for the same JSON either way.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "Llama-4-Scout-17B-16E-Instruct-FP8",
        base_url: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int = 512,
        max_dimension: int = 1568,
        structured_output: bool = True,
    ) -> None:
        super().__init__(model=model, system_prompt=system_prompt, max_dimension=max_dimension)
        self._api_key = api_key
        self._base_url = base_url
        self._max_tokens = max_tokens
        self._structured_output = structured_output
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        from openai import AsyncOpenAI
        kwargs = {"api_key": self._api_key}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)

    async def analyze(
        self,
        frame: CapturedFrame,
        task: str,
        windows: Sequence[str] = (),
    ) -> Observation:
        """Score a screen capture against the teacher's task."""
        await self._ensure_client()
        b64_image = self._encode_frame_to_base64(frame)

        messages = [
            {"role": "system", "content": self._system_prompt},
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": build_user_prompt(task, windows),
                    },
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/png;base64,{b64_image}"},
                    },
                ],
            },
        ]
        kwargs = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": messages,
        }
        if self._structured_output:
            kwargs["response_format"] = {"type": "json_schema", "json_schema": RESPONSE_SCHEMA}

        logger.debug(
            "Analyzing frame %d (task=%r, windows=%d)",
            frame.frame_number, task[:80], len(windows),
        )
        try:
            response = await self._client.chat.completions.create(**kwargs)
            raw_text = response.choices[0].message.content or ""
        except Exception as e:
            raise AnalysisError(
                f"OpenAI API call failed: {e}",
                provider="openai",
            ) from e

        logger.debug("Model raw response: %s", raw_text[:200])
        return self._parse_response(raw_text, frame)

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self._ensure_client()
            await self._client.models.list()
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
