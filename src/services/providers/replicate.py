"""Replicate predictions provider (asynchronous submit + poll)."""

import logging
from typing import Any, Optional

import httpx

from models.image_generation import ErrorKind, GenerationRequest, JobStatus, ProviderId, ProviderJob
from services.providers.base import DEFAULT_REQUEST_TIMEOUT, AsyncProviderAdapter

logger = logging.getLogger(__name__)

REPLICATE_API_BASE = "https://api.replicate.com/v1"
REPLICATE_DEFAULT_VERSION = "5599ed30703defd1d160a25a63321b4dec97101d98b4674bcc56e41f62f35637"

# Replicate prediction status -> job status
REPLICATE_STATUSES = {
    "starting": JobStatus.PENDING,
    "processing": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
}


class ReplicateAdapter(AsyncProviderAdapter):
    """Replicate-hosted model run as a prediction job.

    API format:
      POST /predictions {version, input: {prompt, aspect_ratio, negative_prompt}}
      GET  /predictions/{id} -> {id, status, output: [url, ...], error}
    """

    provider_id = ProviderId.REPLICATE
    credential_name = "REPLICATE_API_KEY"
    display_name = "Replicate"
    default_max_prompt_length = 2000

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_prompt_length: Optional[int] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        base_url: str = REPLICATE_API_BASE,
        version: str = REPLICATE_DEFAULT_VERSION,
    ):
        super().__init__(client, max_prompt_length, request_timeout)
        self.base_url = base_url.rstrip("/")
        self.version = version

    @staticmethod
    def _headers(credential: str) -> dict:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: GenerationRequest) -> dict:
        model_input: dict = {
            "prompt": request.prompt,
            "aspect_ratio": request.aspect_ratio,
        }
        if request.negative_prompt:
            model_input["negative_prompt"] = request.negative_prompt
        return {"version": self.version, "input": model_input}

    def _map_status(self, prediction: dict) -> JobStatus:
        raw_status = prediction.get("status")
        status = REPLICATE_STATUSES.get(raw_status)
        if status is None:
            logger.warning(f"Unexpected Replicate status: {raw_status}")
            return JobStatus.RUNNING
        return status

    @staticmethod
    def _failure_detail(prediction: dict) -> Optional[str]:
        if prediction.get("status") == "canceled":
            return "Prediction was canceled"
        error: Any = prediction.get("error")
        if error is None:
            return None
        return error if isinstance(error, str) else str(error)

    def _prediction(self, data: Any) -> dict:
        if not isinstance(data, dict):
            raise self._error(
                ErrorKind.UNEXPECTED_RESPONSE,
                "Image generation failed",
                "Replicate returned an unexpected prediction payload",
            )
        return data

    async def submit(self, request: GenerationRequest, credential: str) -> ProviderJob:
        response = await self._send(
            "POST",
            f"{self.base_url}/predictions",
            headers=self._headers(credential),
            json=self.build_payload(request),
        )
        prediction = self._prediction(self._json(response))

        job_id = prediction.get("id")
        if not job_id or not isinstance(job_id, str):
            raise self._error(
                ErrorKind.UNEXPECTED_RESPONSE,
                "Image generation failed",
                "Replicate did not return a prediction id",
            )

        status_url = (prediction.get("urls") or {}).get("get")
        job = ProviderJob(
            id=job_id,
            provider_id=self.provider_id,
            status_url=status_url if isinstance(status_url, str) else None,
        ).advanced(
            self._map_status(prediction),
            output=prediction.get("output"),
            error=self._failure_detail(prediction),
        )

        logger.info(f"Replicate prediction submitted: {job.id} (status: {job.status.value})")
        return job

    def _status_url(self, job: ProviderJob) -> str:
        """Status URL for ``job``; the credential is only ever sent under ``base_url``."""
        if job.status_url and job.status_url.startswith(f"{self.base_url}/"):
            return job.status_url
        if job.status_url:
            logger.warning(f"Ignoring Replicate status URL outside {self.base_url}: {job.status_url}")
        return f"{self.base_url}/predictions/{job.id}"

    async def poll_status(self, job: ProviderJob, credential: str) -> ProviderJob:
        response = await self._send("GET", self._status_url(job), headers=self._headers(credential))
        prediction = self._prediction(self._json(response))

        return job.advanced(
            self._map_status(prediction),
            output=prediction.get("output"),
            error=self._failure_detail(prediction),
        )
