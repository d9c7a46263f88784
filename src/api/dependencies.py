"""Service singletons and dependency injection for the image generation API."""

import httpx

from models.image_generation import ProviderId
from services.credentials import EnvCredentialStore
from services.job_poller import JobPoller
from services.orchestrator import ImageGenerationOrchestrator
from services.providers import build_adapters
from utils.config import load_config
from utils.logging import get_logger

logger = get_logger(__name__)

# Service singletons
_http_client: httpx.AsyncClient | None = None
_orchestrator: ImageGenerationOrchestrator | None = None


def _default_provider(config: dict) -> ProviderId:
    """Configured default provider, falling back to Stability when unknown."""
    try:
        return ProviderId(config["default_provider"])
    except ValueError:
        logger.warning(
            "config.unknown_default_provider",
            configured=config["default_provider"],
            fallback=ProviderId.STABILITY.value,
        )
        return ProviderId.STABILITY


def get_orchestrator() -> ImageGenerationOrchestrator:
    """Get or create the generation orchestrator instance."""
    global _http_client, _orchestrator
    if _orchestrator is None:
        config = load_config()
        _http_client = httpx.AsyncClient(timeout=config["request_timeout"])
        _orchestrator = ImageGenerationOrchestrator(
            adapters=build_adapters(config, _http_client),
            credentials=EnvCredentialStore.from_config(config),
            poller=JobPoller(interval=config["poll_interval"]),
            default_provider=_default_provider(config),
            poll_timeout=config["poll_timeout"],
        )
        logger.info(
            "orchestrator.created",
            default_provider=_orchestrator.default_provider.value,
            providers=_orchestrator.provider_status(),
        )
    return _orchestrator


async def shutdown_services() -> None:
    """Close shared HTTP resources."""
    global _http_client, _orchestrator
    if _orchestrator is not None:
        await _orchestrator.close()
        _orchestrator = None
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
