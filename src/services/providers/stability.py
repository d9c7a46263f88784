"""Stability AI text-to-image provider (synchronous, inline base64)."""

import logging
import time
from typing import Optional

import httpx

from models.image_generation import GenerationRequest, GenerationResult, ProviderId
from services import result_normalizer
from services.providers.base import DEFAULT_REQUEST_TIMEOUT, SyncProviderAdapter

logger = logging.getLogger(__name__)

STABILITY_API_BASE = "https://api.stability.ai/v1"
STABILITY_DEFAULT_ENGINE = "stable-diffusion-xl-1024-v1-0"


class StabilityAdapter(SyncProviderAdapter):
    """Stability AI SDXL text-to-image.

    API format:
      text_prompts: [{text, weight}] - negative prompts use weight -1
      cfg_scale, width, height, steps, samples
      response: artifacts[0].base64
    """

    provider_id = ProviderId.STABILITY
    credential_name = "STABILITY_API_KEY"
    display_name = "Stability AI"
    default_max_prompt_length = 2000

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_prompt_length: Optional[int] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        base_url: str = STABILITY_API_BASE,
        engine: str = STABILITY_DEFAULT_ENGINE,
    ):
        super().__init__(client, max_prompt_length, request_timeout)
        self.base_url = base_url.rstrip("/")
        self.engine = engine

    @property
    def url(self) -> str:
        return f"{self.base_url}/generation/{self.engine}/text-to-image"

    def build_payload(self, request: GenerationRequest) -> dict:
        text_prompts = [{"text": request.prompt, "weight": 1}]
        if request.negative_prompt:
            text_prompts.append({"text": request.negative_prompt, "weight": -1})

        return {
            "text_prompts": text_prompts,
            "cfg_scale": request.cfg_scale,
            "height": request.height,
            "width": request.width,
            "steps": request.steps,
            "samples": request.sample_count,
        }

    async def generate(self, request: GenerationRequest, credential: str) -> GenerationResult:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {credential}",
        }

        logger.info(
            f"Generating image with {self.display_name} {self.engine} "
            f"({request.width}x{request.height}, {request.steps} steps)"
        )
        start_time = time.time()

        response = await self._send("POST", self.url, headers=headers, json=self.build_payload(request))
        result = result_normalizer.normalize(self._json(response), self.provider_id)

        logger.info(
            f"{self.display_name} generated image in {int((time.time() - start_time) * 1000)}ms"
        )
        return result
