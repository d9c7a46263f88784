"""Models for prompt-to-image generation (Stability, Google Imagen, Replicate)."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ProviderId(str, Enum):
    """Supported image generation providers."""

    STABILITY = "stability"            # sync, inline base64
    GOOGLE_IMAGEN = "google-imagen"    # sync, base64 or URL
    REPLICATE = "replicate"            # async, submit + poll


class JobStatus(str, Enum):
    """Status of an asynchronous provider job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        """Position in the PENDING -> RUNNING -> terminal progression."""
        if self is JobStatus.PENDING:
            return 0
        if self is JobStatus.RUNNING:
            return 1
        return 2


class ErrorKind(str, Enum):
    """Canonical failure kinds shared by every provider."""

    INVALID_REQUEST = "invalid_request"
    PROVIDER_AUTH_FAILED = "provider_auth_failed"
    RATE_LIMITED = "rate_limited"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    TIMEOUT = "timeout"
    UNEXPECTED_RESPONSE = "unexpected_response"
    INTERNAL = "internal"


# Auth failures are a server misconfiguration, never client-actionable
DEFAULT_HTTP_STATUS = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.PROVIDER_AUTH_FAILED: 500,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.PROVIDER_UNAVAILABLE: 500,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.UNEXPECTED_RESPONSE: 500,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class GenerationRequest:
    """Validated request for text-to-image generation."""

    prompt: str
    width: int = 1024
    height: int = 1024
    steps: int = 30
    cfg_scale: float = 7.0
    sample_count: int = 1
    aspect_ratio: str = "1:1"
    negative_prompt: Optional[str] = None
    provider: Optional[ProviderId] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and debugging."""
        return {
            "prompt": self.prompt,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "cfg_scale": self.cfg_scale,
            "sample_count": self.sample_count,
            "aspect_ratio": self.aspect_ratio,
            "negative_prompt": self.negative_prompt,
            "provider": self.provider.value if self.provider else None,
        }


@dataclass(frozen=True)
class GenerationResult:
    """Canonical success payload, regardless of which provider served it."""

    image_url: str  # data:image/png;base64,... or http(s) URL
    provider_id: ProviderId

    @property
    def is_data_uri(self) -> bool:
        return self.image_url.startswith("data:")

    @property
    def base64_payload(self) -> Optional[str]:
        """Raw base64 part of a data URI, or None for URL results."""
        if not self.is_data_uri:
            return None
        _, _, payload = self.image_url.partition(",")
        return payload

    def to_dict(self) -> dict:
        """Convert to the wire response shape."""
        return {"imageUrl": self.image_url, "success": True}

    def to_base64_dict(self) -> dict:
        """Raw-base64 response variant (falls back to imageUrl for URL results)."""
        payload = self.base64_payload
        if payload is None:
            return self.to_dict()
        return {"image": payload, "success": True}


@dataclass
class ProviderJob:
    """An in-flight asynchronous generation owned by the job poller."""

    id: str
    provider_id: ProviderId
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    output: Any = None
    error: Optional[str] = None
    status_url: Optional[str] = None

    def advanced(
        self,
        status: JobStatus,
        output: Any = None,
        error: Optional[str] = None,
    ) -> "ProviderJob":
        """Return a new snapshot moved forward to ``status``.

        Regressions (e.g. RUNNING back to PENDING) keep the current status so
        the observed sequence never goes backwards.
        """
        if status.rank < self.status.rank:
            status = self.status
        return replace(self, status=status, output=output, error=error)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "id": self.id,
            "provider_id": self.provider_id.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "error": self.error,
        }


class GenerationError(Exception):
    """Canonical failure payload.

    ``message`` and ``details`` are safe to send to clients. ``provider_detail``
    may hold raw upstream text and is only meant for server-side logs.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[str] = None,
        *,
        http_status: Optional[int] = None,
        provider_detail: Optional[str] = None,
        upstream_status: Optional[int] = None,
        provider_id: Optional[ProviderId] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details
        self.http_status = http_status or DEFAULT_HTTP_STATUS[kind]
        self.provider_detail = provider_detail
        self.upstream_status = upstream_status
        self.provider_id = provider_id

    def __repr__(self) -> str:
        return (
            f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, "
            f"http_status={self.http_status})"
        )

    def to_dict(self) -> dict:
        """Convert to the wire error shape."""
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body

    @classmethod
    def invalid_request(cls, message: str, details: Optional[str] = None) -> "GenerationError":
        return cls(ErrorKind.INVALID_REQUEST, message, details)
