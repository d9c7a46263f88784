"""Request validation - turns an untyped JSON body into a GenerationRequest."""

import math
import re
from collections.abc import Mapping
from typing import Any, Optional

from models.image_generation import GenerationError, GenerationRequest, ProviderId

DEFAULT_MAX_PROMPT_LENGTH = 2000

# JSON field -> (GenerationRequest attribute, integer?, default)
NUMERIC_FIELDS = {
    "width": ("width", True, 1024),
    "height": ("height", True, 1024),
    "steps": ("steps", True, 30),
    "cfgScale": ("cfg_scale", False, 7.0),
    "sampleCount": ("sample_count", True, 1),
}

ASPECT_RATIO_PATTERN = re.compile(r"^\s*([1-9]\d*)\s*:\s*([1-9]\d*)\s*$")


def parse_provider_hint(raw: Any, default: ProviderId) -> ProviderId:
    """Read the optional ``provider`` hint from a raw body.

    Args:
        raw: Raw request body (anything json.loads can produce)
        default: Provider used when the body carries no hint

    Returns:
        The requested provider id

    Raises:
        GenerationError: InvalidRequest for an unknown provider name
    """
    if not isinstance(raw, Mapping):
        return default

    hint = raw.get("provider")
    if hint is None or hint == "":
        return default

    if isinstance(hint, str):
        try:
            return ProviderId(hint.strip().lower())
        except ValueError:
            pass

    known = ", ".join(p.value for p in ProviderId)
    raise GenerationError.invalid_request(
        "Unknown provider", f"provider must be one of: {known}"
    )


def _coerce_number(name: str, value: Any, integer: bool) -> float | int:
    """Coerce a serialized numeric parameter, rejecting anything not finite and positive."""
    number = None
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (ValueError, OverflowError):
            # Integers beyond float range overflow
            number = None

    if number is None or not math.isfinite(number) or number <= 0:
        raise GenerationError.invalid_request(
            "Invalid parameter", f"{name} must be a finite positive number"
        )

    if integer:
        if not number.is_integer():
            raise GenerationError.invalid_request(
                "Invalid parameter", f"{name} must be a whole number"
            )
        return int(number)
    return number


def validate_request(
    raw: Any,
    max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH,
    provider: Optional[ProviderId] = None,
) -> GenerationRequest:
    """Validate and normalize an inbound generation request.

    No side effects; nothing here touches the network.

    Args:
        raw: Raw request body
        max_prompt_length: Provider-specific prompt length bound
        provider: Provider the request will be dispatched to

    Returns:
        GenerationRequest with defaults applied

    Raises:
        GenerationError: InvalidRequest describing the first defect found
    """
    if not isinstance(raw, Mapping):
        raise GenerationError.invalid_request(
            "Invalid request format", "Request body must be a JSON object"
        )

    prompt = raw.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise GenerationError.invalid_request(
            "Prompt is required", "Prompt must be a non-empty string"
        )
    prompt = prompt.strip()

    if len(prompt) > max_prompt_length:
        raise GenerationError.invalid_request(
            "Prompt too long",
            f"Prompt must be at most {max_prompt_length} characters",
        )

    numbers = {}
    for json_name, (attr, integer, default) in NUMERIC_FIELDS.items():
        value = raw.get(json_name)
        numbers[attr] = default if value is None else _coerce_number(json_name, value, integer)

    aspect_ratio = raw.get("aspectRatio")
    if aspect_ratio is None:
        aspect_ratio = "1:1"
    else:
        match = ASPECT_RATIO_PATTERN.match(aspect_ratio) if isinstance(aspect_ratio, str) else None
        if not match:
            raise GenerationError.invalid_request(
                "Invalid parameter", "aspectRatio must look like W:H, e.g. 16:9"
            )
        aspect_ratio = f"{match.group(1)}:{match.group(2)}"

    negative_prompt = raw.get("negativePrompt")
    if negative_prompt is not None and not isinstance(negative_prompt, str):
        raise GenerationError.invalid_request(
            "Invalid parameter", "negativePrompt must be a string"
        )
    negative_prompt = negative_prompt.strip() if negative_prompt else None

    return GenerationRequest(
        prompt=prompt,
        aspect_ratio=aspect_ratio,
        negative_prompt=negative_prompt or None,
        provider=provider,
        **numbers,
    )
