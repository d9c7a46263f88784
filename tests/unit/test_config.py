"""Unit tests for configuration loading and validation."""

import pytest

from utils.config import load_config, validate_config

ENV_NAMES = [
    "STABILITY_API_KEY",
    "GOOGLE_AI_API_KEY",
    "GOOGLE_AI_STUDIO_API_KEY",
    "REPLICATE_API_KEY",
    "REPLICATE_API_TOKEN",
    "DEFAULT_IMAGE_PROVIDER",
    "POLL_TIMEOUT_SECONDS",
    "GOOGLE_IMAGEN_MAX_PROMPT_LENGTH",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults(self, clean_env):
        config = load_config()

        assert config["default_provider"] == "stability"
        assert config["poll_interval"] == 1.0
        assert config["poll_timeout"] == 300.0
        assert config["google_imagen_max_prompt_length"] is None
        assert config["stability_api_key"] is None

    def test_alternate_credential_names(self, clean_env):
        clean_env.setenv("GOOGLE_AI_STUDIO_API_KEY", "g-key")
        clean_env.setenv("REPLICATE_API_TOKEN", "r-token")

        config = load_config()

        assert config["google_ai_api_key"] == "g-key"
        assert config["replicate_api_key"] == "r-token"

    def test_overrides(self, clean_env):
        clean_env.setenv("DEFAULT_IMAGE_PROVIDER", " Replicate ")
        clean_env.setenv("POLL_TIMEOUT_SECONDS", "60")
        clean_env.setenv("GOOGLE_IMAGEN_MAX_PROMPT_LENGTH", "480")

        config = load_config()

        assert config["default_provider"] == "replicate"
        assert config["poll_timeout"] == 60.0
        assert config["google_imagen_max_prompt_length"] == 480


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_valid(self, sample_config):
        assert validate_config(sample_config) == []

    def test_unknown_default_provider(self, sample_config):
        sample_config["default_provider"] = "dall-e"
        errors = validate_config(sample_config)
        assert any("DEFAULT_IMAGE_PROVIDER" in e for e in errors)

    def test_no_credentials(self, sample_config):
        for key in ("stability_api_key", "google_ai_api_key", "replicate_api_key"):
            sample_config[key] = None
        errors = validate_config(sample_config)
        assert any("No provider API key" in e for e in errors)

    def test_non_positive_timing(self, sample_config):
        sample_config["poll_timeout"] = 0
        sample_config["replicate_max_prompt_length"] = -1
        errors = validate_config(sample_config)
        assert "POLL_TIMEOUT_SECONDS must be positive" in errors
        assert "REPLICATE_MAX_PROMPT_LENGTH must be positive" in errors
