"""LLM provider abstraction module."""

from council.providers.base import LLMProvider, LLMResponse
from council.providers.credentials import CredentialResolver, KeyStore, ResolvedKey
from council.providers.errors import InvalidKeyError, MissingCredentialError, ProviderError
from council.providers.factory import make_provider_factory
from council.providers.litellm_provider import LiteLLMProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "CredentialResolver",
    "KeyStore",
    "ResolvedKey",
    "ProviderError",
    "MissingCredentialError",
    "InvalidKeyError",
    "make_provider_factory",
]
