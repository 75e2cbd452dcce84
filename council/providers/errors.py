"""Exceptions raised by the provider layer."""


class ProviderError(Exception):
    """Base exception for generation provider failures."""
    pass


class MissingCredentialError(ProviderError):
    """Raised when no API key can be resolved from any source."""

    def __init__(self, message: str = "API key is missing. Set one with 'council key set'."):
        super().__init__(message)


class InvalidKeyError(ProviderError, ValueError):
    """Raised when a key offered for storage does not look like a Gemini key."""

    def __init__(self, message: str = "Invalid API key format (expected a key starting with 'AIza')."):
        super().__init__(message)
