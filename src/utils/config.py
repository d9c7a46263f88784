"""Configuration loading and validation for the image generation router."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

SUPPORTED_PROVIDERS = ("stability", "google-imagen", "replicate")


def _optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


def load_config() -> dict:
    """Load configuration from environment variables."""

    config = {
        # Provider credentials (resolved once at startup)
        "stability_api_key": os.getenv("STABILITY_API_KEY"),
        "google_ai_api_key": os.getenv("GOOGLE_AI_API_KEY")
        or os.getenv("GOOGLE_AI_STUDIO_API_KEY"),
        "replicate_api_key": os.getenv("REPLICATE_API_KEY")
        or os.getenv("REPLICATE_API_TOKEN"),
        # Provider used when a request carries no provider hint
        "default_provider": os.getenv("DEFAULT_IMAGE_PROVIDER", "stability").strip().lower(),
        # Timing (seconds)
        "request_timeout": float(os.getenv("PROVIDER_REQUEST_TIMEOUT", "120")),
        "poll_interval": float(os.getenv("POLL_INTERVAL_SECONDS", "1")),
        "poll_timeout": float(os.getenv("POLL_TIMEOUT_SECONDS", "300")),
        # Prompt limits differ per provider; unset means the provider default
        "stability_max_prompt_length": _optional_int("STABILITY_MAX_PROMPT_LENGTH"),
        "google_imagen_max_prompt_length": _optional_int("GOOGLE_IMAGEN_MAX_PROMPT_LENGTH"),
        "replicate_max_prompt_length": _optional_int("REPLICATE_MAX_PROMPT_LENGTH"),
        # Provider endpoints and models
        "stability_api_base": os.getenv("STABILITY_API_BASE"),
        "stability_engine": os.getenv("STABILITY_ENGINE"),
        "google_ai_api_base": os.getenv("GOOGLE_AI_API_BASE"),
        "google_imagen_model": os.getenv("GOOGLE_IMAGEN_MODEL"),
        "replicate_api_base": os.getenv("REPLICATE_API_BASE"),
        "replicate_model_version": os.getenv("REPLICATE_MODEL_VERSION"),
        # Server
        "port": int(os.getenv("PORT", "10000")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.get("default_provider") not in SUPPORTED_PROVIDERS:
        errors.append(
            f"DEFAULT_IMAGE_PROVIDER must be one of: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    for key, env_name in (
        ("request_timeout", "PROVIDER_REQUEST_TIMEOUT"),
        ("poll_interval", "POLL_INTERVAL_SECONDS"),
        ("poll_timeout", "POLL_TIMEOUT_SECONDS"),
    ):
        if config.get(key, 0) <= 0:
            errors.append(f"{env_name} must be positive")

    for key in (
        "stability_max_prompt_length",
        "google_imagen_max_prompt_length",
        "replicate_max_prompt_length",
    ):
        value = config.get(key)
        if value is not None and value <= 0:
            errors.append(f"{key.upper()} must be positive")

    # Requests to an unconfigured provider fail individually; warn if none can work
    if not any(
        config.get(key)
        for key in ("stability_api_key", "google_ai_api_key", "replicate_api_key")
    ):
        errors.append(
            "No provider API key configured: set STABILITY_API_KEY, GOOGLE_AI_API_KEY or REPLICATE_API_KEY"
        )

    return errors
