"""Chat-completion client for the optional AI answers.

Speaks the OpenAI ``/chat/completions`` protocol over httpx. Every failure
(missing key, timeout, network error, non-2xx, unusable body) surfaces as
``LLMError`` so callers have a single thing to fall back on.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ...config import get_llm_timeout, get_openai_api_key, get_openai_base_url, get_openai_model

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """A chat-completion call that did not produce usable content."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def is_llm_configured() -> bool:
    return get_openai_api_key() is not None


class ChatCompletionClient:
    """Thin async client for one chat-completion request at a time."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or get_openai_api_key()
        self._model = model or get_openai_model()
        self._base_url = (base_url or get_openai_base_url()).rstrip("/")
        self._timeout = timeout if timeout is not None else get_llm_timeout()
        self._temperature = temperature
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def complete(self, messages: List[Dict[str, str]], json_mode: bool = False) -> str:
        """Send one chat-completion request and return the reply text.

        The whole call, connect to last byte, is bounded by the client
        timeout.
        """
        if not self._api_key:
            raise LLMError("OPENAI_API_KEY is not configured")
        try:
            return await asyncio.wait_for(self._post(messages, json_mode), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"[LLM] Request timed out after {self._timeout}s")
            raise LLMError("LLM request timed out") from e

    async def _post(self, messages: List[Dict[str, str]], json_mode: bool) -> str:
        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(f"{self._base_url}/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200] if e.response.text else ""
            logger.error(f"[LLM] HTTP error: {e.response.status_code} - {detail}")
            raise LLMError(f"LLM error {e.response.status_code}: {detail}", e.response.status_code) from e
        except httpx.TimeoutException as e:
            logger.warning(f"[LLM] Timeout: {e}")
            raise LLMError("LLM request timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"[LLM] Network error: {e}")
            raise LLMError(f"LLM request failed: {e}") from e
        except ValueError as e:
            logger.warning(f"[LLM] Response was not JSON: {e}")
            raise LLMError("LLM response was not JSON") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        content = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise LLMError("LLM returned no content")
        return content
