"""Story continuation through an OpenAI-compatible chat completions API.

The service posts to ``{ai.base_url}/chat/completions`` with the configured
model and returns the first choice's text. It talks HTTP directly through
httpx so that any compatible endpoint (OpenAI, a local gateway, ...) works.
"""
import logging
from typing import Optional

import httpx

from storychain.config import AppConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a creative writing partner in a collaborative storytelling game. "
    "Continue the story in one or two vivid sentences, matching its tone and "
    "tense. Reply with the continuation only, no preamble or quotes."
)

# Only the tail of long stories is sent upstream
MAX_CONTEXT_CHARS = 4000


class AIUnavailableError(Exception):
    """AI continuation is disabled or has no API key configured."""


class AIUpstreamError(Exception):
    """The completion endpoint failed or returned an unusable response."""


class StoryContinuationService:
    """Generates a short continuation for a story so far.

    Args:
        config: Application config (``ai`` settings and ``secrets.ai.api_key``).
        transport: Optional httpx transport, used by tests to fake the endpoint.
    """

    def __init__(
        self,
        config: AppConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = config.ai
        self.api_key = config.secrets.ai.api_key
        self._transport = transport

    @property
    def available(self) -> bool:
        return self.settings.enabled and bool(self.api_key)

    def _build_payload(self, story_context: str) -> dict:
        return {
            "model": self.settings.model,
            "max_tokens": self.settings.max_tokens,
            "temperature": 0.9,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": story_context[-MAX_CONTEXT_CHARS:]},
            ],
        }

    async def continue_story(self, story_context: str) -> str:
        """Return a continuation for ``story_context``.

        Raises:
            AIUnavailableError: Disabled or missing API key.
            AIUpstreamError: Network error, non-2xx status or malformed body.
        """
        if not self.available:
            raise AIUnavailableError("AI story continuation is not configured")

        url = f"{self.settings.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(url, json=self._build_payload(story_context), headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[AI] Completion endpoint returned {e.response.status_code}")
            raise AIUpstreamError(f"AI provider returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[AI] Completion request failed: {e}")
            raise AIUpstreamError("AI provider request failed") from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIUpstreamError("AI provider returned an unexpected response") from e

        text = (text or "").strip().strip('"').strip()
        if not text:
            raise AIUpstreamError("AI provider returned an empty continuation")
        logger.info(f"[AI] Generated continuation ({len(text)} chars)")
        return text
