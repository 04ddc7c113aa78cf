"""Signing key provider.

The HMAC secret is read once per process from the configured source and kept
read-only afterwards. Loading is guarded by a lock so that concurrent first
requests fetch it only once; later reads take no lock.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

import config
from core.exceptions import ConfigurationError, SecretUnavailableError

logger = logging.getLogger(__name__)

# HS256 keys shorter than the hash output weaken the MAC
RECOMMENDED_KEY_BYTES = 32

SecretFetcher = Callable[[], Optional[str]]


def env_secret_fetcher(var_name: str = config.JWT_SECRET_ENV_VAR) -> SecretFetcher:
    """Build a fetcher reading the secret from an environment variable."""

    def fetch() -> Optional[str]:
        return os.getenv(var_name)

    return fetch


def file_secret_fetcher(path: Optional[str]) -> SecretFetcher:
    """Build a fetcher reading the secret from a mounted file.

    Args:
        path: Path of the secret file.

    Raises:
        ConfigurationError: If no path is configured.
    """
    if not path:
        raise ConfigurationError("JWT_SECRET_FILE must be set when JWT_SECRET_SOURCE=file")

    def fetch() -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise SecretUnavailableError(f"Cannot read signing key file: {e}") from e

    return fetch


def build_secret_fetcher(source: str = config.JWT_SECRET_SOURCE) -> SecretFetcher:
    if source == "env":
        return env_secret_fetcher()
    if source == "file":
        return file_secret_fetcher(config.JWT_SECRET_FILE)
    raise ConfigurationError(f"Unknown JWT_SECRET_SOURCE '{source}'")


class SigningKeyCache:
    """Lazily loaded, read-only signing key."""

    def __init__(self, fetch: SecretFetcher):
        """Initialize SigningKeyCache.

        Args:
            fetch: Callable returning the raw secret, or None when unset.
        """
        self._fetch = fetch
        self._key: Optional[str] = None
        self._lock = threading.Lock()

    def get(self) -> str:
        """Return the signing key, loading it on first use.

        Returns:
            The secret as a string.

        Raises:
            SecretUnavailableError: If the secret is missing, empty or
                unreadable. Nothing is cached in that case.
        """
        key = self._key
        if key is not None:
            return key
        with self._lock:
            if self._key is None:
                self._key = self._load()
            return self._key

    def _load(self) -> str:
        try:
            raw = self._fetch()
        except SecretUnavailableError:
            logger.error("Failed to retrieve signing key")
            raise
        key = (raw or "").strip()
        if not key:
            logger.error("Signing key is not configured")
            raise SecretUnavailableError("Signing key is not configured")
        if len(key.encode("utf-8")) < RECOMMENDED_KEY_BYTES:
            logger.warning(
                "Signing key is shorter than %d bytes; use a longer random secret",
                RECOMMENDED_KEY_BYTES,
            )
        logger.info("Signing key loaded")
        return key

    @property
    def loaded(self) -> bool:
        return self._key is not None


# Global key cache (shared by issuer and verifier)
_signing_key_cache: Optional[SigningKeyCache] = None
_cache_lock = threading.Lock()


def get_signing_key_cache() -> SigningKeyCache:
    """Get global signing key cache (singleton pattern).

    Returns:
        Global SigningKeyCache instance.
    """
    global _signing_key_cache
    if _signing_key_cache is None:
        with _cache_lock:
            if _signing_key_cache is None:
                _signing_key_cache = SigningKeyCache(build_secret_fetcher())
    return _signing_key_cache


def reset_signing_key_cache() -> None:
    """Drop the global cache so the next call reloads the secret."""
    global _signing_key_cache
    with _cache_lock:
        _signing_key_cache = None
