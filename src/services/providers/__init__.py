"""Image generation providers package."""

import httpx

from models.image_generation import ProviderId
from services.providers.base import (
    AsyncProviderAdapter,
    ProviderAdapter,
    SyncProviderAdapter,
)
from services.providers.google_imagen import (
    GOOGLE_AI_API_BASE,
    GOOGLE_IMAGEN_DEFAULT_MODEL,
    GoogleImagenAdapter,
)
from services.providers.replicate import (
    REPLICATE_API_BASE,
    REPLICATE_DEFAULT_VERSION,
    ReplicateAdapter,
)
from services.providers.stability import (
    STABILITY_API_BASE,
    STABILITY_DEFAULT_ENGINE,
    StabilityAdapter,
)

__all__ = [
    "ProviderAdapter",
    "SyncProviderAdapter",
    "AsyncProviderAdapter",
    "StabilityAdapter",
    "GoogleImagenAdapter",
    "ReplicateAdapter",
    "build_adapters",
]


def build_adapters(config: dict, client: httpx.AsyncClient) -> dict[ProviderId, ProviderAdapter]:
    """Create one adapter per provider, all sharing ``client``.

    The caller owns ``client`` and closes it on shutdown.

    Args:
        config: Configuration dict from ``utils.config.load_config``
        client: HTTP client shared by every adapter

    Returns:
        Mapping of provider id to adapter
    """
    timeout = config.get("request_timeout", 120.0)

    return {
        ProviderId.STABILITY: StabilityAdapter(
            client=client,
            max_prompt_length=config.get("stability_max_prompt_length"),
            request_timeout=timeout,
            base_url=config.get("stability_api_base") or STABILITY_API_BASE,
            engine=config.get("stability_engine") or STABILITY_DEFAULT_ENGINE,
        ),
        ProviderId.GOOGLE_IMAGEN: GoogleImagenAdapter(
            client=client,
            max_prompt_length=config.get("google_imagen_max_prompt_length"),
            request_timeout=timeout,
            base_url=config.get("google_ai_api_base") or GOOGLE_AI_API_BASE,
            model=config.get("google_imagen_model") or GOOGLE_IMAGEN_DEFAULT_MODEL,
        ),
        ProviderId.REPLICATE: ReplicateAdapter(
            client=client,
            max_prompt_length=config.get("replicate_max_prompt_length"),
            request_timeout=timeout,
            base_url=config.get("replicate_api_base") or REPLICATE_API_BASE,
            version=config.get("replicate_model_version") or REPLICATE_DEFAULT_VERSION,
        ),
    }
