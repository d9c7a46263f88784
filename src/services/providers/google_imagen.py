"""Google Imagen provider via the Generative Language API (synchronous)."""

import logging
import time
from typing import Optional

import httpx

from models.image_generation import GenerationRequest, GenerationResult, ProviderId
from services import result_normalizer
from services.providers.base import DEFAULT_REQUEST_TIMEOUT, SyncProviderAdapter

logger = logging.getLogger(__name__)

GOOGLE_AI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GOOGLE_IMAGEN_DEFAULT_MODEL = "imagen-3.0-generate-001"


class GoogleImagenAdapter(SyncProviderAdapter):
    """Google Imagen text-to-image.

    The API key travels as the ``key`` query parameter, so request URLs must
    never be logged.
    """

    provider_id = ProviderId.GOOGLE_IMAGEN
    credential_name = "GOOGLE_AI_API_KEY"
    display_name = "Google Imagen"
    default_max_prompt_length = 1000

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_prompt_length: Optional[int] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        base_url: str = GOOGLE_AI_API_BASE,
        model: str = GOOGLE_IMAGEN_DEFAULT_MODEL,
    ):
        super().__init__(client, max_prompt_length, request_timeout)
        self.base_url = base_url.rstrip("/")
        self.model = model

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:predict"

    def build_payload(self, request: GenerationRequest) -> dict:
        instance: dict = {"prompt": request.prompt}
        if request.negative_prompt:
            instance["negativePrompt"] = request.negative_prompt

        return {
            "instances": [instance],
            "parameters": {
                "sampleCount": request.sample_count,
                "aspectRatio": request.aspect_ratio,
            },
        }

    async def generate(self, request: GenerationRequest, credential: str) -> GenerationResult:
        logger.info(f"Generating image with {self.display_name} {self.model} (aspect={request.aspect_ratio})")
        start_time = time.time()

        response = await self._send(
            "POST",
            self.url,
            params={"key": credential},
            headers={"Content-Type": "application/json"},
            json=self.build_payload(request),
        )
        result = result_normalizer.normalize(self._json(response), self.provider_id)

        logger.info(
            f"{self.display_name} generated image in {int((time.time() - start_time) * 1000)}ms"
        )
        return result
