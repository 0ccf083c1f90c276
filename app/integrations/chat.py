"""
Minimal client for an OpenAI-compatible /chat/completions endpoint.

Used by the extractor and the fraud scorer. Every call is bounded by the
configured timeout; any transport error, timeout, non-2xx answer or empty
completion raises ChatCompletionError.
"""
import logging
from typing import Optional

import httpx

from app import config

logger = logging.getLogger(__name__)


class ChatCompletionError(Exception):
    pass


class ChatCompletionsClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or config.AI_API_URL
        self.api_key = api_key if api_key is not None else config.AI_API_KEY
        self.model = model or config.AI_MODEL
        self.timeout = timeout if timeout is not None else config.EXTERNAL_CALL_TIMEOUT
        self._transport = transport

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300) -> str:
        """Return the stripped text of the first completion choice."""
        if not self.api_key:
            raise ChatCompletionError("AI API key is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.1,
            "max_tokens": max_tokens,
        }
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    "/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise ChatCompletionError("AI request timed out") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ChatCompletionError(f"AI request failed: {exc}") from exc

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ChatCompletionError("AI response had no completion") from exc
        if not content or not content.strip():
            raise ChatCompletionError("AI response was empty")
        return content.strip()
