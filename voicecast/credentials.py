"""Secure credential storage helpers for Voicecast.

Responsibilities:
- Persist provider API keys in an OS-backed secure credential store.
- Provide deterministic read/write/delete operations per provider.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.backends.fail import Keyring as FailKeyring
from keyring.errors import KeyringError

_DEFAULT_SERVICE_NAME = "voicecast"
CREDENTIAL_PROVIDERS = ("openai", "anthropic", "perplexity")


def _account_name(provider: str) -> str:
    """Return the keyring account name for a provider, validating the id."""

    if provider not in CREDENTIAL_PROVIDERS:
        supported = ", ".join(CREDENTIAL_PROVIDERS)
        raise ValueError(f"Unsupported credential provider `{provider}`; supported: {supported}.")
    return f"{provider}_api_key"


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self, provider: str) -> str | None:
        """Load the stored API key for a provider, when available."""

        raise NotImplementedError

    def set_api_key(self, provider: str, api_key: str) -> None:
        """Persist an API key for a provider."""

        raise NotImplementedError

    def clear_api_key(self, provider: str) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError

    def load_all(self) -> dict[str, str]:
        """Return every stored provider key, keyed by provider id."""

        stored: dict[str, str] = {}
        for provider in CREDENTIAL_PROVIDERS:
            value = self.get_api_key(provider)
            if value is not None:
                stored[provider] = value
        return stored


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME

    def is_available(self) -> bool:
        """Return `True` when a usable keyring backend is configured."""

        return not isinstance(keyring.get_keyring(), FailKeyring)

    def get_api_key(self, provider: str) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        account = _account_name(provider)
        if not self.is_available():
            return None
        value = keyring.get_password(self.service_name, account)
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    def set_api_key(self, provider: str, api_key: str) -> None:
        """Persist a normalized API key in keyring or raise when unavailable."""

        account = _account_name(provider)
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        if not self.is_available():
            raise RuntimeError(
                "Secure credential storage is unavailable because no keyring backend is "
                "configured on this system."
            )
        keyring.set_password(self.service_name, account, normalized)

    def clear_api_key(self, provider: str) -> bool:
        """Remove the stored API key from keyring and report if one was present."""

        account = _account_name(provider)
        if self.get_api_key(provider) is None:
            return False
        try:
            keyring.delete_password(self.service_name, account)
        except KeyringError as exc:
            raise RuntimeError(f"Failed to delete stored `{provider}` API key: {exc}") from exc
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
