"""
Bilidash Chat Service — streamed completions from an OpenAI-compatible API.

The reply is exposed as a lazy async iterator of text fragments. Consumers
concatenate fragments as they arrive; closing the iterator early (client
disconnect) closes the upstream HTTP stream without buffering the rest.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Optional, Sequence

from openai import AsyncOpenAI
from prometheus_client import Counter

from bilidash.core.config import Settings
from bilidash.services.chat.prompt import ChatMessage

logger = logging.getLogger(__name__)

CHAT_REQUESTS = Counter(
    "bilidash_chat_requests_total",
    "Chat completions started, by outcome",
    ["outcome"],
)


class ChatUnavailableError(Exception):
    """No API key is configured for the chat backend."""


def create_chat_client(settings: Settings) -> Optional[AsyncOpenAI]:
    if not settings.deepseek_api_key:
        logger.warning("BILIDASH_DEEPSEEK_API_KEY not set — chat endpoint disabled")
        return None
    return AsyncOpenAI(api_key=settings.deepseek_api_key, base_url=settings.deepseek_base_url)


class ChatService:
    """Wraps one chat client for the lifetime of the application."""

    def __init__(self, client: Optional[Any], model: str = "deepseek-chat", temperature: float = 0.2):
        self.client = client
        self.model = model
        self.temperature = temperature

    @property
    def available(self) -> bool:
        return self.client is not None

    async def stream_reply(
        self, system_prompt: str, messages: Sequence[ChatMessage]
    ) -> AsyncIterator[str]:
        """
        Open a streamed completion and return its fragment iterator.

        Errors raised while opening the stream propagate from this call;
        later errors propagate from the iterator, which still closes the
        upstream stream.
        """
        if self.client is None:
            raise ChatUnavailableError("未配置 DEEPSEEK_API_KEY")

        payload: List[dict] = [{"role": "system", "content": system_prompt}]
        payload.extend(message.to_dict() for message in messages)

        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=self.temperature,
                stream=True,
            )
        except Exception:
            CHAT_REQUESTS.labels(outcome="error").inc()
            raise
        CHAT_REQUESTS.labels(outcome="started").inc()
        return self._fragments(stream)

    async def _fragments(self, stream: Any) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            await stream.close()

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
