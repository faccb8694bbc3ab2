from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from ..config import ConfigurationError, Settings
from ..models import Message
from .prompts import STORYBOARD_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class ChatConfigurationError(ConfigurationError):
    pass


class ChatServiceError(Exception):
    pass


def build_chat_messages(messages: Sequence[Message], system_prompt: str = STORYBOARD_SYSTEM_PROMPT) -> List[Dict[str, str]]:
    payload = [{"role": "system", "content": system_prompt}]
    payload.extend({"role": message.role.value, "content": message.content} for message in messages)
    return payload


class ChatClient:
    """Streams storyboard assistant replies from the OpenAI chat API."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", max_tokens: int = 4096) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatClient":
        return cls(api_key=settings.openai_api_key, model=settings.chat_model, max_tokens=settings.chat_max_tokens)

    def ensure_configured(self) -> None:
        self._get_client()

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ChatConfigurationError("OPENAI_API_KEY not set")

            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def stream_reply(self, messages: Sequence[Message]) -> AsyncIterator[str]:
        client = self._get_client()
        logger.info("Requesting reply from %s for %d messages", self.model, len(messages))
        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=build_chat_messages(messages),
                max_tokens=self.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except Exception as exc:  # pragma: no cover - network path
            raise ChatServiceError(f"Chat completion failed: {exc}") from exc
