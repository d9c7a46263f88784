"""Result normalization - maps every provider's success payload to one GenerationResult."""

import base64
import binascii
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from models.image_generation import ErrorKind, GenerationError, GenerationResult, ProviderId

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/png;base64,"

# Where each provider puts its image, tried in order.
# Keys are dict keys, ints are list indexes.
OUTPUT_SHAPES: dict[ProviderId, tuple[tuple[str | int, ...], ...]] = {
    ProviderId.STABILITY: (
        ("artifacts", 0, "base64"),
    ),
    ProviderId.GOOGLE_IMAGEN: (
        ("predictions", 0, "bytesBase64Encoded"),
        ("predictions", 0, "image", "uri"),
        ("predictions", 0, "image", "b64"),
    ),
    ProviderId.REPLICATE: (
        (0,),
        ("output", 0),
        ("output",),
    ),
}


def _lookup(payload: Any, path: tuple[str | int, ...]) -> Any:
    """Walk ``path`` through nested dicts/lists, returning None on any miss."""
    node = payload
    for key in path:
        if isinstance(key, int):
            if isinstance(node, (str, bytes)) or not isinstance(node, Sequence):
                return None
            if len(node) <= key:
                return None
            node = node[key]
        else:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        if node is None:
            return None
    return node


def _unexpected(provider_id: ProviderId, details: str) -> GenerationError:
    return GenerationError(
        ErrorKind.UNEXPECTED_RESPONSE,
        "Image generation failed",
        details,
        provider_id=provider_id,
    )


def to_image_url(value: Any, provider_id: ProviderId) -> str:
    """Turn one output reference into an ``imageUrl`` string.

    URLs and data URIs pass through unchanged; anything else must be base64
    and is wrapped as a PNG data URI.
    """
    if not isinstance(value, str) or not value.strip():
        raise _unexpected(provider_id, "No image data returned by AI service")

    value = value.strip()
    if value.startswith(("http://", "https://", "data:image/")):
        return value

    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise _unexpected(provider_id, "AI service returned malformed image data")

    return f"{DATA_URI_PREFIX}{value}"


def normalize(payload: Any, provider_id: ProviderId) -> GenerationResult:
    """Produce a GenerationResult from a provider-specific success payload.

    Args:
        payload: Raw response body, a bare output reference (str), a list of
            references, or an already-normalized GenerationResult
        provider_id: Provider that produced the payload

    Returns:
        GenerationResult (the input itself if it already is one)

    Raises:
        GenerationError: UnexpectedResponse when no recognized field holds a
            usable image reference
    """
    if isinstance(payload, GenerationResult):
        return payload

    if isinstance(payload, str):
        return GenerationResult(image_url=to_image_url(payload, provider_id), provider_id=provider_id)

    for path in OUTPUT_SHAPES.get(provider_id, ()):
        value = _lookup(payload, path)
        if value is None:
            continue
        if isinstance(value, str):
            return GenerationResult(
                image_url=to_image_url(value, provider_id), provider_id=provider_id
            )
        # A recognized key holding a non-string is malformed, not absent
        raise _unexpected(provider_id, "AI service returned malformed image data")

    logger.error(f"No recognized image field in {provider_id.value} response")
    raise _unexpected(provider_id, "No image data returned by AI service")
