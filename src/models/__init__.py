# Data models for the image generation router
from .image_generation import (
    DEFAULT_HTTP_STATUS,
    ErrorKind,
    GenerationError,
    GenerationRequest,
    GenerationResult,
    JobStatus,
    ProviderId,
    ProviderJob,
)

__all__ = [
    "DEFAULT_HTTP_STATUS",
    "ErrorKind",
    "GenerationError",
    "GenerationRequest",
    "GenerationResult",
    "JobStatus",
    "ProviderId",
    "ProviderJob",
]
