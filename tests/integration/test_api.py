"""Integration tests for the HTTP surface (FastAPI app over faked providers)."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from api import dependencies
from api.dependencies import get_orchestrator
from api.routers import images
from api.server import create_app
from models.image_generation import ProviderId
from services.job_poller import JobPoller
from services.orchestrator import ImageGenerationOrchestrator
from services.providers.google_imagen import GoogleImagenAdapter
from services.providers.replicate import ReplicateAdapter
from services.providers.stability import StabilityAdapter

pytestmark = pytest.mark.integration

STABILITY_PATH = "/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"


@pytest.fixture
def transport(make_transport):
    return make_transport(
        {
            ("POST", STABILITY_PATH): [httpx.Response(200, json={"artifacts": [{"base64": "Zm9v"}]})],
            ("POST", "/v1/predictions"): [
                httpx.Response(201, json={"id": "pred-1", "status": "succeeded", "output": ["https://x/y.png"]})
            ],
        }
    )


@pytest.fixture
def client(transport, credentials, fake_clock):
    http_client = transport.client()
    orchestrator = ImageGenerationOrchestrator(
        adapters={
            ProviderId.STABILITY: StabilityAdapter(client=http_client),
            ProviderId.GOOGLE_IMAGEN: GoogleImagenAdapter(client=http_client),
            ProviderId.REPLICATE: ReplicateAdapter(client=http_client),
        },
        credentials=credentials,
        poller=JobPoller(sleep=fake_clock.sleep, clock=fake_clock),
    )
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


class TestGenerateImage:
    """Tests for POST /api/generate-image."""

    def test_success(self, client):
        response = client.post("/api/generate-image", json={"prompt": "a cat"})

        assert response.status_code == 200
        assert response.json() == {"imageUrl": "data:image/png;base64,Zm9v", "success": True}

    def test_cors_header_on_response(self, client):
        response = client.post(
            "/api/generate-image",
            json={"prompt": "a cat"},
            headers={"Origin": "https://app.example"},
        )
        assert response.headers["access-control-allow-origin"] == "*"

    def test_async_provider_already_done_at_submit(self, client, transport):
        response = client.post("/api/generate-image", json={"prompt": "a cat", "provider": "replicate"})

        assert response.status_code == 200
        assert response.json()["imageUrl"] == "https://x/y.png"
        assert transport.calls("GET", "/v1/predictions/pred-1") == []

    def test_empty_prompt(self, client, transport):
        response = client.post("/api/generate-image", json={"prompt": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "Prompt is required"
        assert transport.requests == []

    def test_invalid_json(self, client):
        response = client.post(
            "/api/generate-image",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request format"

    def test_integer_literal_past_digit_limit(self, client, transport):
        body = b'{"prompt": "a cat", "width": ' + b"9" * 5000 + b"}"

        response = client.post(
            "/api/generate-image",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.headers["content-type"] == "application/json"
        assert "error" in response.json()
        assert transport.requests == []

    def test_number_beyond_float_range(self, client, transport):
        response = client.post("/api/generate-image", json={"prompt": "a cat", "width": 10**400})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid parameter"
        assert transport.requests == []

    def test_rate_limited(self, client, transport):
        transport.routes[("POST", STABILITY_PATH)] = [httpx.Response(429, json={"message": "slow down"})]

        response = client.post("/api/generate-image", json={"prompt": "a cat"})

        assert response.status_code == 429
        assert response.json()["error"] == "Rate limit exceeded"
        assert "slow down" not in response.text

    def test_auth_failure_hides_upstream_detail(self, client, transport):
        transport.routes[("POST", STABILITY_PATH)] = [httpx.Response(401, json={"message": "key sk-123 revoked"})]

        response = client.post("/api/generate-image", json={"prompt": "a cat"})

        assert response.status_code == 500
        assert response.json()["error"] == "API authentication failed"
        assert "sk-123" not in response.text


class TestGenerateImageBase64:
    """Tests for POST /api/generate-image/base64."""

    def test_returns_raw_payload(self, client):
        response = client.post("/api/generate-image/base64", json={"prompt": "a cat"})

        assert response.status_code == 200
        assert response.json() == {"image": "Zm9v", "success": True}

    def test_url_result_falls_back_to_image_url(self, client):
        response = client.post(
            "/api/generate-image/base64", json={"prompt": "a cat", "provider": "replicate"}
        )

        assert response.status_code == 200
        assert response.json() == {"imageUrl": "https://x/y.png", "success": True}


class TestPreflightAndRouting:
    """Tests for OPTIONS, 404 and informational routes."""

    def test_cors_preflight_is_204(self, client):
        response = client.options(
            "/api/generate-image",
            headers={
                "Origin": "https://app.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_plain_options_is_204(self, client):
        response = client.options("/api/generate-image")

        assert response.status_code == 204
        assert response.content == b""

    def test_unknown_path(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found", "details": "Endpoint not found"}

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "API is running"
        assert response.json()["version"] == "1.0.0"

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_image_status(self, client):
        response = client.get("/api/image/status")

        assert response.status_code == 200
        body = response.json()
        assert body["default_provider"] == "stability"
        assert body["providers"]["replicate"]["mode"] == "async"
        assert "test_replicate_key" not in response.text


class HangingOrchestrator:
    """Orchestrator whose generation never finishes on its own."""

    default_provider = ProviderId.STABILITY

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def generate(self, raw):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class TestClientDisconnect:
    """A client that goes away cancels its in-flight generation."""

    @pytest.mark.asyncio
    async def test_disconnect_cancels_generation(self, monkeypatch):
        monkeypatch.setattr(images, "DISCONNECT_CHECK_INTERVAL", 0.01)
        orchestrator = HangingOrchestrator()
        app = create_app()
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        body_sent = False

        async def receive():
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": b'{"prompt": "a cat"}', "more_body": False}
            # Body consumed; the connection is gone from here on
            return {"type": "http.disconnect"}

        sent = []

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "POST",
            "scheme": "http",
            "path": "/api/generate-image",
            "raw_path": b"/api/generate-image",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"content-type", b"application/json")],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

        await asyncio.wait_for(app(scope, receive, send), timeout=5)

        assert orchestrator.started.is_set()
        assert orchestrator.cancelled
        start = next(m for m in sent if m["type"] == "http.response.start")
        assert start["status"] == images.CLIENT_CLOSED_REQUEST


class TestDefaultProviderConfig:
    """Configuration problems never surface as raw 500s."""

    def test_unknown_default_provider_falls_back_to_stability(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_IMAGE_PROVIDER", "dalle")
        monkeypatch.setenv("STABILITY_API_KEY", "test_stability_key")
        monkeypatch.setattr(dependencies, "_orchestrator", None)
        monkeypatch.setattr(dependencies, "_http_client", None)

        with TestClient(create_app()) as client:
            status = client.get("/api/image/status")
            response = client.post("/api/generate-image", json={"prompt": ""})

        assert status.status_code == 200
        assert status.json()["default_provider"] == "stability"
        assert response.status_code == 400
        assert response.json()["error"] == "Prompt is required"
        assert dependencies._orchestrator is None
