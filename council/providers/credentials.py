"""API key storage and resolution."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from loguru import logger

from council.config.loader import get_data_dir
from council.providers.errors import InvalidKeyError, MissingCredentialError

# Fixed well-known key under which the single credential is persisted.
STORE_KEY = "gemini_api_key"
KEY_PREFIX = "AIza"

KeySelector = Callable[[], str | None]


def validate_key(key: str) -> str:
    """Return the stripped key, or raise InvalidKeyError if it is malformed."""
    key = key.strip()
    if not key.startswith(KEY_PREFIX):
        raise InvalidKeyError()
    return key


class KeyStore:
    """Persists at most one API key in a private JSON file."""

    def __init__(self, path: Path | None = None):
        self.path = path or get_data_dir() / "credentials.json"

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable credential file {}: {}", self.path, e)
            return None
        value = data.get(STORE_KEY) if isinstance(data, dict) else None
        return value or None

    def save(self, key: str) -> str:
        """Validate and persist *key*, replacing any stored one.

        Raises:
            InvalidKeyError: If the key does not look like a Gemini key.
        """
        key = validate_key(key)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({STORE_KEY: key}), encoding="utf-8")
        self.path.chmod(0o600)
        logger.info("Stored API key in {}", self.path)
        return key

    def clear(self) -> bool:
        """Remove the stored key. Returns False if there was nothing to remove."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info("Removed stored API key {}", self.path)
        return True


@dataclass(frozen=True)
class ResolvedKey:
    value: str
    source: str  # "stored" | "selector" | "env:<NAME>"


class CredentialResolver:
    """
    Resolves the API key to use for generation.

    Order: key saved in the KeyStore, then a host-provided key selector, then
    environment variables. The selector is consulted at most once per resolver,
    and a key it returns is remembered for the resolver's lifetime.
    """

    def __init__(
        self,
        store: KeyStore | None = None,
        selector: KeySelector | None = None,
        env_vars: tuple[str, ...] | list[str] = ("GEMINI_API_KEY", "API_KEY"),
    ):
        self.store = store or KeyStore()
        self.selector = selector
        self.env_vars = tuple(env_vars)
        self._selected: str | None = None
        self._asked = False

    def resolve(self) -> ResolvedKey:
        """
        Find a usable key.

        Raises:
            MissingCredentialError: If no source provides one.
        """
        stored = self.store.load()
        if stored:
            return ResolvedKey(stored, "stored")

        if not self._asked and self.selector is not None:
            self._asked = True
            try:
                picked = self.selector()
            except Exception as e:
                logger.warning("Key selector failed: {}", e)
                picked = None
            if picked and picked.strip():
                self._selected = picked.strip()
        if self._selected:
            return ResolvedKey(self._selected, "selector")

        env = self._from_env()
        if env:
            return env

        raise MissingCredentialError()

    def describe(self) -> str | None:
        """Name the source that would supply a key, without prompting anyone."""
        if self.store.load():
            return "stored"
        if self._selected:
            return "selector"
        env = self._from_env()
        return env.source if env else None

    def _from_env(self) -> ResolvedKey | None:
        for name in self.env_vars:
            value = os.environ.get(name)
            if value:
                return ResolvedKey(value, f"env:{name}")
        return None
