"""Credential resolution for provider API keys."""

from collections.abc import Mapping
from typing import Optional, Protocol

from models.image_generation import ProviderId

# Config key holding each provider's API key
CREDENTIAL_CONFIG_KEYS = {
    ProviderId.STABILITY: "stability_api_key",
    ProviderId.GOOGLE_IMAGEN: "google_ai_api_key",
    ProviderId.REPLICATE: "replicate_api_key",
}


class CredentialResolver(Protocol):
    """Anything that can hand out a provider API key."""

    def resolve(self, provider_id: ProviderId) -> Optional[str]:
        ...


class EnvCredentialStore:
    """Read-only credential store, filled once at startup and never mutated."""

    def __init__(self, keys: Mapping[ProviderId, Optional[str]]):
        self._keys = {
            provider_id: key.strip()
            for provider_id, key in keys.items()
            if isinstance(key, str) and key.strip()
        }

    @classmethod
    def from_config(cls, config: dict) -> "EnvCredentialStore":
        return cls(
            {
                provider_id: config.get(config_key)
                for provider_id, config_key in CREDENTIAL_CONFIG_KEYS.items()
            }
        )

    def resolve(self, provider_id: ProviderId) -> Optional[str]:
        return self._keys.get(provider_id)

    def __repr__(self) -> str:
        # Never print key values
        configured = ", ".join(p.value for p in self._keys)
        return f"EnvCredentialStore(configured=[{configured}])"
