"""Base abstraction for image generation providers."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from models.image_generation import (
    ErrorKind,
    GenerationError,
    GenerationRequest,
    GenerationResult,
    ProviderId,
    ProviderJob,
)

logger = logging.getLogger(__name__)

# Long timeout for image generation (can take a while)
DEFAULT_REQUEST_TIMEOUT = 120.0

# Upstream bodies kept for server-side logs
MAX_PROVIDER_DETAIL_CHARS = 1000


def extract_error_detail(response: httpx.Response) -> str:
    """Best-effort human readable detail from an upstream error response."""
    try:
        error_data = response.json()
    except ValueError:
        return (response.text or f"HTTP {response.status_code}")[:MAX_PROVIDER_DETAIL_CHARS]

    if isinstance(error_data, dict):
        message = error_data.get("message") or error_data.get("detail")
        error = error_data.get("error")
        if isinstance(error, dict):
            message = message or error.get("message")
        elif isinstance(error, str):
            message = message or error
        if isinstance(message, str) and message:
            return message[:MAX_PROVIDER_DETAIL_CHARS]

    return json.dumps(error_data)[:MAX_PROVIDER_DETAIL_CHARS]


class ProviderAdapter(ABC):
    """Abstract base class for providers (Stability, Google Imagen, Replicate).

    Subclasses pick a capability by deriving from ``SyncProviderAdapter`` or
    ``AsyncProviderAdapter``. Every outbound call goes through ``_send`` so
    HTTP and transport failures map onto the same error kinds everywhere.
    """

    provider_id: ProviderId
    credential_name: str = ""
    display_name: str = ""
    default_max_prompt_length: int = 2000

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_prompt_length: Optional[int] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the adapter.

        Args:
            client: Shared HTTP client; a private one is created when omitted
            max_prompt_length: Prompt bound for this provider
            request_timeout: Timeout for each outbound call, in seconds
        """
        self.max_prompt_length = max_prompt_length or self.default_max_prompt_length
        self.request_timeout = request_timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=request_timeout)

    @property
    def is_async(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return self.display_name or self.provider_id.value

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.client.aclose()

    def _error(self, kind: ErrorKind, message: str, details: Optional[str] = None, **kwargs) -> GenerationError:
        return GenerationError(kind, message, details, provider_id=self.provider_id, **kwargs)

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map a non-2xx upstream response onto the canonical error kinds."""
        status = response.status_code
        if 200 <= status < 300:
            return

        detail = extract_error_detail(response)

        if status in (401, 403):
            logger.error(f"{self.name} rejected credentials (HTTP {status}): {detail}")
            raise self._error(
                ErrorKind.PROVIDER_AUTH_FAILED,
                "API authentication failed",
                "Invalid API key. Please contact support.",
                provider_detail=detail,
                upstream_status=status,
            )

        if status == 429:
            logger.warning(f"{self.name} rate limit exceeded")
            raise self._error(
                ErrorKind.RATE_LIMITED,
                "Rate limit exceeded",
                "Too many requests. Please try again later.",
                provider_detail=detail,
                upstream_status=status,
            )

        logger.error(f"{self.name} API error (HTTP {status}): {detail}")
        raise self._error(
            ErrorKind.UNEXPECTED_RESPONSE,
            "Image generation failed",
            f"{self.name} returned HTTP {status}",
            provider_detail=detail,
            upstream_status=status,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue exactly one outbound call. Transport failures are reported, not retried."""
        kwargs.setdefault("timeout", self.request_timeout)
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            raise self._error(
                ErrorKind.TIMEOUT,
                "Image generation timed out",
                f"{self.name} did not respond in time. Try again in a few seconds.",
            )
        except httpx.RequestError as e:
            raise self._error(
                ErrorKind.PROVIDER_UNAVAILABLE,
                "Image generation failed",
                f"Could not reach {self.name}",
                provider_detail=str(e),
            )

        self._raise_for_status(response)
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise self._error(
                ErrorKind.UNEXPECTED_RESPONSE,
                "Image generation failed",
                f"{self.name} returned an unreadable response",
                provider_detail=response.text[:MAX_PROVIDER_DETAIL_CHARS],
                upstream_status=response.status_code,
            )


class SyncProviderAdapter(ProviderAdapter):
    """Provider that returns the final image within one HTTP call."""

    @abstractmethod
    async def generate(self, request: GenerationRequest, credential: str) -> GenerationResult:
        """Generate an image with a single outbound call.

        Args:
            request: Validated generation request
            credential: Provider API key

        Returns:
            GenerationResult

        Raises:
            GenerationError: On any upstream or transport failure
        """


class AsyncProviderAdapter(ProviderAdapter):
    """Provider that needs a submit call followed by status polling."""

    @property
    def is_async(self) -> bool:
        return True

    @abstractmethod
    async def submit(self, request: GenerationRequest, credential: str) -> ProviderJob:
        """Submit a generation job.

        Returns:
            ProviderJob carrying the provider-assigned id and initial status
        """

    @abstractmethod
    async def poll_status(self, job: ProviderJob, credential: str) -> ProviderJob:
        """Fetch the job's current status with one outbound call.

        Returns:
            A new ProviderJob snapshot; ``job`` itself is left untouched
        """
