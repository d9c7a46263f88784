"""Image generation routes (Stability, Google Imagen, Replicate)."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

from api.dependencies import get_orchestrator
from api.schemas import ErrorResponse, ImageBase64Response, ImageGenerateResponse, ImageStatusResponse
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from models.image_generation import GenerationError, GenerationResult
from services.orchestrator import ImageGenerationOrchestrator
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Image Generation"])

# How often a pending generation checks whether the client is still there
DISCONNECT_CHECK_INTERVAL = 0.5

# Non-standard "client closed request" status; nobody is left to read it
CLIENT_CLOSED_REQUEST = 499

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    429: {"model": ErrorResponse, "description": "Provider rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Provider or server failure"},
    504: {"model": ErrorResponse, "description": "Generation timed out"},
}


async def _read_body(request: Request) -> Any:
    """Parse the JSON body; anything unparseable becomes None (InvalidRequest downstream)."""
    try:
        return await request.json()
    except ValueError:
        # Also covers integer literals past the int digit limit
        return None


async def _generate_until_disconnect(
    request: Request,
    generate: Callable[[], Awaitable[GenerationResult]],
) -> GenerationResult | None:
    """Run ``generate``, cancelling it if the client disconnects first.

    Returns:
        The result, or None when the client went away
    """
    task = asyncio.ensure_future(generate())
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_CHECK_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("generation.client_disconnected")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                return None
    finally:
        if not task.done():
            task.cancel()


async def _run(
    request: Request,
    orchestrator: ImageGenerationOrchestrator,
    render: Callable[[GenerationResult], dict],
) -> Response | dict:
    payload = await _read_body(request)
    try:
        result = await _generate_until_disconnect(request, lambda: orchestrator.generate(payload))
    except GenerationError as e:
        return JSONResponse(status_code=e.http_status, content=e.to_dict())

    if result is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return render(result)


@router.post(
    "/api/generate-image",
    response_model=ImageGenerateResponse,
    responses=ERROR_RESPONSES,
    summary="Generate image",
    description="Generate an image from a text prompt. Optional 'provider' selects stability, google-imagen or replicate.",
)
async def generate_image(
    request: Request,
    orchestrator: ImageGenerationOrchestrator = Depends(get_orchestrator),
):
    """Generate an image and return it as a URL or data URI."""
    return await _run(request, orchestrator, GenerationResult.to_dict)


@router.post(
    "/api/generate-image/base64",
    response_model=ImageBase64Response,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    summary="Generate image (raw base64)",
    description="Same as /api/generate-image but returns the bare base64 payload when the provider produced inline bytes.",
)
async def generate_image_base64(
    request: Request,
    orchestrator: ImageGenerationOrchestrator = Depends(get_orchestrator),
):
    """Generate an image and return the raw base64 payload."""
    return await _run(request, orchestrator, GenerationResult.to_base64_dict)


@router.options("/api/generate-image", include_in_schema=False)
@router.options("/api/generate-image/base64", include_in_schema=False)
async def generate_image_preflight() -> Response:
    """Preflight without CORS request headers."""
    return Response(status_code=204)


@router.get(
    "/api/image/status",
    response_model=ImageStatusResponse,
    summary="Image provider status",
    description="Check which image generation providers are configured.",
)
async def get_image_status(
    orchestrator: ImageGenerationOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Combined status for all image generation providers."""
    return {
        "default_provider": orchestrator.default_provider.value,
        "providers": orchestrator.provider_status(),
    }
