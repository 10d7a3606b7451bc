"""
LLM service for OpenAI-compatible chat completion providers (DeepSeek, OpenAI).
"""

import time
from typing import Dict, List, Optional, Tuple

import httpx
from loguru import logger
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from octree.core.config import settings
from octree.core.logging import log_service_call
from octree.utils.exceptions import LLMServiceError

PROVIDERS = ("deepseek", "openai")


class LLMService:
    """Service for chat completions against hosted LLM providers."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS

    def _provider_config(self, provider: str) -> Tuple[str, str]:
        """Return (base_url, api_key) for a provider. Raises if the key is missing."""
        if provider == "deepseek":
            base_url, api_key = settings.DEEPSEEK_BASE_URL, settings.DEEPSEEK_API_KEY
        elif provider == "openai":
            base_url, api_key = settings.OPENAI_BASE_URL, settings.OPENAI_API_KEY
        else:
            raise LLMServiceError(f"Unknown provider: {provider}")
        if not api_key:
            raise LLMServiceError(f"{provider} API key not configured")
        return base_url.rstrip("/"), api_key

    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        provider: str = "deepseek",
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> str:
        """
        Run one chat completion and return the assistant text.

        Args:
            messages: OpenAI-style messages (role/content)
            model: Model name on the provider
            provider: "deepseek" or "openai"
            temperature: Sampling temperature
            max_tokens: Completion token cap

        Returns:
            Assistant message content

        Raises:
            LLMServiceError: If the provider is misconfigured or the request fails
        """
        base_url, api_key = self._provider_config(provider)
        started = time.monotonic()
        try:
            text = await self._make_chat_request(
                base_url=base_url,
                api_key=api_key,
                payload={
                    "model": model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                    "stream": False,
                },
            )
        except LLMServiceError:
            log_service_call("LLMService", "chat", (time.monotonic() - started) * 1000, success=False, model=model)
            raise
        except (httpx.HTTPError, httpx.TimeoutException) as e:
            log_service_call("LLMService", "chat", (time.monotonic() - started) * 1000, success=False, model=model)
            raise LLMServiceError(f"Request error: {e}")

        log_service_call("LLMService", "chat", (time.monotonic() - started) * 1000, model=model, provider=provider)
        return text

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException)),
        reraise=True
    )
    async def _make_chat_request(self, *, base_url: str, api_key: str, payload: dict) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"LLM API error: {e.response.status_code} - {e.response.text[:500]}")
            raise LLMServiceError(f"API error: {e.response.status_code}")

        try:
            choices = response.json().get("choices") or []
            if not choices:
                raise LLMServiceError("Empty completion")
            content = (choices[0]["message"].get("content") or "").strip()
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed LLM response: {response.text[:500]}")
            raise LLMServiceError("Malformed completion response", str(e))
        return content


llm_service = LLMService()
