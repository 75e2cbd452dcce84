"""LiteLLM provider implementation."""

import asyncio
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from council.config.schema import DEFAULT_MODEL
from council.providers.base import LLMProvider, LLMResponse
from council.providers.errors import ProviderError

_HARM_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HARASSMENT",
)

# Errors worth another attempt when max_attempts > 1.
_TRANSIENT_ERRORS = (
    litellm.RateLimitError,
    litellm.APIConnectionError,
    litellm.Timeout,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)


class LiteLLMProvider(LLMProvider):
    """
    Provider that routes requests through LiteLLM.

    Gemini models receive explicit safety settings. A request timeout is
    always applied; retries with exponential backoff happen only for
    transient errors and only when max_attempts > 1.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        max_attempts: int = 1,
        backoff_base: float = 1.0,
        safety_threshold: str | None = "BLOCK_ONLY_HIGH",
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.safety_threshold = safety_threshold

    def get_default_model(self) -> str:
        return self.default_model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        model = model or self.default_model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.safety_threshold and self._is_gemini(model):
            kwargs["safety_settings"] = self._safety_settings()

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await acompletion(**kwargs)
                return self._parse_response(response)
            except _TRANSIENT_ERRORS as e:
                if attempt >= self.max_attempts:
                    raise ProviderError(str(e)) from e
                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.warning(
                    "Transient error from {} (attempt {}/{}), retrying in {}s: {}",
                    model, attempt, self.max_attempts, delay, e,
                )
                await asyncio.sleep(delay)
            except Exception as e:
                raise ProviderError(str(e)) from e

        raise ProviderError("Unexpected error in chat")

    def _safety_settings(self) -> list[dict[str, str]]:
        return [{"category": c, "threshold": self.safety_threshold} for c in _HARM_CATEGORIES]

    @staticmethod
    def _is_gemini(model: str) -> bool:
        return model.startswith(("gemini/", "vertex_ai/")) or "gemini" in model.lower()

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choices = getattr(response, "choices", None) or []
        finish_reason = getattr(choices[0], "finish_reason", None) if choices else None

        usage: dict[str, int] = {}
        raw_usage = getattr(response, "usage", None)
        if raw_usage is not None:
            usage = {
                "prompt_tokens": getattr(raw_usage, "prompt_tokens", 0) or 0,
                "completion_tokens": getattr(raw_usage, "completion_tokens", 0) or 0,
                "total_tokens": getattr(raw_usage, "total_tokens", 0) or 0,
            }

        return LLMResponse(
            content=self._extract_text(choices),
            finish_reason=finish_reason,
            usage=usage,
        )

    @staticmethod
    def _extract_text(choices: list[Any]) -> str | None:
        """Pull text out of a response, even a truncated one.

        The primary accessor is the first choice's string content. Responses
        cut short can leave it empty while still carrying content segments,
        so every choice's segments are searched next.
        """
        if not choices:
            return None

        primary = getattr(getattr(choices[0], "message", None), "content", None)
        if isinstance(primary, str) and primary.strip():
            return primary

        for choice in choices:
            content = getattr(getattr(choice, "message", None), "content", None)
            if isinstance(content, str) and content.strip():
                return content
            if isinstance(content, list):
                parts = []
                for segment in content:
                    text = segment.get("text") if isinstance(segment, dict) else getattr(segment, "text", None)
                    if text:
                        parts.append(text)
                if parts:
                    return "".join(parts)
        return None
