"""Pydantic response models for the image generation API.

Request bodies are validated by ``services.request_validator`` rather than by
pydantic so every defect maps to the same ``{error, details}`` shape.
"""

from pydantic import BaseModel


class RootResponse(BaseModel):
    """API root response."""

    status: str
    message: str
    version: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


class ImageGenerateResponse(BaseModel):
    """Successful image generation."""

    imageUrl: str
    success: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"imageUrl": "data:image/png;base64,iVBORw0KGgo...", "success": True}
            ]
        }
    }


class ImageBase64Response(BaseModel):
    """Raw-base64 variant of a successful image generation."""

    image: str | None = None
    imageUrl: str | None = None
    success: bool = True


class ErrorResponse(BaseModel):
    """Canonical error body."""

    error: str
    details: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"error": "Prompt is required", "details": "Prompt must be a non-empty string"}
            ]
        }
    }


class ProviderStatusResponse(BaseModel):
    """Configuration status of one provider."""

    configured: bool
    mode: str
    max_prompt_length: int


class ImageStatusResponse(BaseModel):
    """Status of every provider."""

    default_provider: str
    providers: dict[str, ProviderStatusResponse]
