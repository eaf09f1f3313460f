"""OpenAI SDK wrapper for a local chat-completion server."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ..config import BackendConfig
from ..errors import BackendError, RequestTimeoutError, ResponseFormatError

logger = logging.getLogger(__name__)


def extract_reply(response: Any) -> str:
    """Pull ``choices[0].message.content`` out of a completion response.

    Local servers are not always faithful to the OpenAI schema, so every
    step is checked instead of trusting the SDK's lazily built objects.
    """
    choices = getattr(response, "choices", None)
    if not choices:
        raise ResponseFormatError("Response contained no choices")
    message = getattr(choices[0], "message", None)
    if message is None:
        raise ResponseFormatError("First choice has no message")
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        raise ResponseFormatError("First choice message has no text content")
    return content


class AIService:
    def __init__(self, config: BackendConfig, client: AsyncOpenAI | None = None) -> None:
        self.config = config
        self.client = client or AsyncOpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.request_timeout,
            max_retries=0,
        )

    async def list_models(self) -> list[str]:
        try:
            models = await asyncio.wait_for(self.client.models.list(), self.config.request_timeout)
        except (openai.APITimeoutError, asyncio.TimeoutError) as e:
            raise RequestTimeoutError(self.config.request_timeout) from e
        except openai.APIStatusError as e:
            raise BackendError(f"Model listing failed with status {e.status_code}", e.status_code) from e
        except openai.APIError as e:
            raise BackendError(f"Model listing failed: {e}") from e
        data = getattr(models, "data", None) or []
        return [m.id for m in data if getattr(m, "id", None)]

    async def complete(self, model: str, prompt: str) -> str:
        try:
            # The SDK timeout applies per read; this bounds the whole request.
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                ),
                self.config.request_timeout,
            )
        except (openai.APITimeoutError, asyncio.TimeoutError) as e:
            raise RequestTimeoutError(self.config.request_timeout) from e
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else e.message
            raise BackendError(f"API request failed with status {e.status_code}: {body}", e.status_code) from e
        except openai.APIError as e:
            raise BackendError(str(e)) from e
        return extract_reply(response)

    async def validate_connection(self) -> tuple[bool, str, list[str]]:
        try:
            model_ids = await self.list_models()
            return True, "Connected successfully", model_ids
        except BackendError as e:
            logger.error("Model server validation failed: %s", e)
            return False, f"Connection to {self.config.base_url} failed", []
