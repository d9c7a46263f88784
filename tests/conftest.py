"""Shared pytest fixtures for image generation router tests."""

import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from models.image_generation import ProviderId  # noqa: E402
from services.credentials import EnvCredentialStore  # noqa: E402


class FakeClock:
    """Deterministic clock/sleep pair; sleeping advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingTransport:
    """Scripted httpx transport that records every outbound request.

    ``routes`` maps (method, path) to a list of responses served in order;
    the last response repeats once the script runs out.
    """

    def __init__(self, routes: dict[tuple[str, str], list[httpx.Response]]):
        self.routes = {key: list(responses) for key, responses in routes.items()}
        self.requests: list[httpx.Request] = []
        self.on_request: Callable[[httpx.Request], None] | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request:
            self.on_request(request)
        script = self.routes.get((request.method, request.url.path))
        if not script:
            return httpx.Response(404, json={"message": "no scripted response"})
        return script.pop(0) if len(script) > 1 else script[0]

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fake monotonic clock starting at zero."""
    return FakeClock()


@pytest.fixture
def credentials() -> EnvCredentialStore:
    """Credential store with every provider configured."""
    return EnvCredentialStore(
        {
            ProviderId.STABILITY: "test_stability_key",
            ProviderId.GOOGLE_IMAGEN: "test_google_key",
            ProviderId.REPLICATE: "test_replicate_key",
        }
    )


@pytest.fixture
def sample_config() -> dict:
    """Sample configuration for testing."""
    return {
        "stability_api_key": "test_stability_key",
        "google_ai_api_key": "test_google_key",
        "replicate_api_key": "test_replicate_key",
        "default_provider": "stability",
        "request_timeout": 120.0,
        "poll_interval": 1.0,
        "poll_timeout": 300.0,
        "stability_max_prompt_length": None,
        "google_imagen_max_prompt_length": None,
        "replicate_max_prompt_length": None,
        "port": 10000,
        "log_level": "INFO",
        "log_json": False,
    }


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory for scripted transports."""
    return RecordingTransport
