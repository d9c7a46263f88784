"""Generation orchestrator - validate, dispatch, poll and normalize one request.

Each request walks a linear state machine:

    VALIDATING -> DISPATCHING -> (SYNC_COMPLETED | POLLING) -> COMPLETED | FAILED

Every failure leaves the orchestrator as a GenerationError; nothing is retried
here. Cancellation (client disconnect) is never converted and propagates.
"""

import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from models.image_generation import (
    ErrorKind,
    GenerationError,
    GenerationResult,
    ProviderId,
)
from services.credentials import CredentialResolver
from services.job_poller import JobPoller
from services.providers.base import AsyncProviderAdapter, ProviderAdapter, SyncProviderAdapter
from services.request_validator import parse_provider_hint, validate_request
from utils.logging import bind_provider, clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)

DEFAULT_POLL_TIMEOUT = 300.0


class OrchestrationState(str, Enum):
    """States of one generation request."""

    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    SYNC_COMPLETED = "sync_completed"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


class ImageGenerationOrchestrator:
    """Routes a raw generation request to one provider and returns one canonical result."""

    def __init__(
        self,
        adapters: Mapping[ProviderId, ProviderAdapter],
        credentials: CredentialResolver,
        poller: JobPoller | None = None,
        default_provider: ProviderId = ProviderId.STABILITY,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
    ):
        """Initialize the orchestrator.

        Args:
            adapters: One adapter per supported provider
            credentials: Read-only credential resolver
            poller: Job poller for asynchronous providers
            default_provider: Provider used when a request has no hint
            poll_timeout: Seconds an asynchronous job may take before Timeout
        """
        self.adapters = dict(adapters)
        self.credentials = credentials
        self.poller = poller or JobPoller()
        self.default_provider = default_provider
        self.poll_timeout = poll_timeout

    def provider_status(self) -> dict[str, dict]:
        """Configuration status of every provider (never includes key values)."""
        return {
            provider_id.value: {
                "configured": self.credentials.resolve(provider_id) is not None,
                "mode": "async" if adapter.is_async else "sync",
                "max_prompt_length": adapter.max_prompt_length,
            }
            for provider_id, adapter in self.adapters.items()
        }

    async def generate(self, raw: Any) -> GenerationResult:
        """Run one generation request end to end.

        Args:
            raw: Untyped request body (as parsed from JSON)

        Returns:
            GenerationResult

        Raises:
            GenerationError: The canonical failure for anything that went wrong
        """
        request_id = uuid.uuid4().hex[:12]
        set_request_context(request_id)
        log = logger.bind(request_id=request_id)
        state = OrchestrationState.VALIDATING

        def transition(new_state: OrchestrationState, **fields: Any) -> OrchestrationState:
            log.info("generation.state", state=new_state.value, **fields)
            return new_state

        try:
            transition(state)
            provider_id = parse_provider_hint(raw, self.default_provider)
            bind_provider(provider_id.value)
            adapter = self.adapters.get(provider_id)
            if adapter is None:
                raise GenerationError.invalid_request(
                    "Unknown provider", f"Provider {provider_id.value} is not enabled"
                )
            request = validate_request(raw, adapter.max_prompt_length, provider_id)

            state = transition(
                OrchestrationState.DISPATCHING,
                provider=provider_id.value,
                prompt_preview=request.prompt[:120],
            )
            credential = self.credentials.resolve(provider_id)
            if not credential:
                log.error("provider.credential_missing", credential=adapter.credential_name)
                raise GenerationError(
                    ErrorKind.INTERNAL,
                    "Server configuration error",
                    "API key not configured. Please contact support.",
                    provider_id=provider_id,
                )

            if isinstance(adapter, SyncProviderAdapter):
                result = await adapter.generate(request, credential)
                state = transition(OrchestrationState.SYNC_COMPLETED)
            elif isinstance(adapter, AsyncProviderAdapter):
                job = await adapter.submit(request, credential)
                state = transition(
                    OrchestrationState.POLLING,
                    provider_job_id=job.id,
                    status=job.status.value,
                )
                deadline = self.poller.deadline_after(self.poll_timeout)
                result = await self.poller.poll(adapter, job, credential, deadline)
            else:
                raise TypeError(f"Unsupported adapter type: {type(adapter).__name__}")

            state = transition(OrchestrationState.COMPLETED, provider=result.provider_id.value)
            return result

        except GenerationError as e:
            transition(
                OrchestrationState.FAILED,
                previous=state.value,
                kind=e.kind.value,
                http_status=e.http_status,
                upstream_status=e.upstream_status,
                provider_detail=e.provider_detail,
            )
            raise
        except Exception as e:
            log.exception("generation.internal_error", previous=state.value)
            transition(OrchestrationState.FAILED, previous=state.value, kind=ErrorKind.INTERNAL.value)
            raise GenerationError(
                ErrorKind.INTERNAL,
                "Internal server error",
                "An unexpected error occurred while generating the image",
                provider_detail=str(e),
            ) from e
        finally:
            clear_request_context()

    async def close(self) -> None:
        """Close every adapter's HTTP client."""
        for adapter in self.adapters.values():
            await adapter.close()
