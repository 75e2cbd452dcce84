"""Shared provider factory: turns config plus credentials into a ready client."""

from __future__ import annotations

from typing import Callable

from council.config.schema import Config
from council.providers.base import LLMProvider
from council.providers.credentials import CredentialResolver
from council.providers.litellm_provider import LiteLLMProvider

ProviderFactory = Callable[[], LLMProvider]


def make_provider_factory(config: Config, resolver: CredentialResolver) -> ProviderFactory:
    """Build a zero-argument factory that produces a usable provider, or fails.

    The key is resolved on every call so that a key stored mid-debate is picked
    up by the next turn.

    Raises (from the returned factory):
        MissingCredentialError: If no key can be resolved.
    """
    settings = config.provider

    def _factory() -> LLMProvider:
        key = resolver.resolve()
        return LiteLLMProvider(
            api_key=key.value,
            api_base=settings.api_base,
            default_model=settings.model,
            timeout=settings.request_timeout,
            max_attempts=settings.max_attempts,
            safety_threshold=settings.safety_threshold,
        )

    return _factory
