"""Job poller - drives an asynchronous provider job to a terminal status.

Polling is strictly sequential: the next status fetch is never issued before
the previous one has answered. A wall-clock deadline bounds the whole loop;
running out of time is a local, non-retried Timeout. The clock and sleep
primitives are injected so the cadence can be tested without real delays.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from models.image_generation import (
    ErrorKind,
    GenerationError,
    GenerationResult,
    JobStatus,
    ProviderJob,
)
from services import result_normalizer
from services.providers.base import AsyncProviderAdapter
from utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


class JobPoller:
    """Polls a submitted job at a fixed cadence until it succeeds, fails or times out.

    Holds no per-request state, so one instance can serve every request.
    """

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the poller.

        Args:
            interval: Seconds between status fetches
            sleep: Awaitable sleep primitive
            clock: Monotonic clock returning seconds
        """
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def deadline_after(self, seconds: float) -> float:
        """Absolute deadline ``seconds`` from now on this poller's clock."""
        return self.now() + seconds

    def _timeout(self, job: ProviderJob) -> GenerationError:
        return GenerationError(
            ErrorKind.TIMEOUT,
            "Image generation timed out",
            "The image was not ready in time. Please try again.",
            provider_id=job.provider_id,
            provider_detail=f"job {job.id} still {job.status.value} at deadline",
        )

    async def poll(
        self,
        adapter: AsyncProviderAdapter,
        job: ProviderJob,
        credential: str,
        deadline: float,
    ) -> GenerationResult:
        """Poll ``job`` until it reaches a terminal status or ``deadline`` passes.

        Args:
            adapter: Provider adapter that submitted the job
            job: Job as returned by submit
            credential: Provider API key
            deadline: Absolute time on this poller's clock

        Returns:
            GenerationResult built from the job's output

        Raises:
            GenerationError: Timeout at the deadline, ProviderUnavailable when
                the provider reports failure, UnexpectedResponse when a
                succeeded job carries no usable output
        """
        log = logger.bind(provider=job.provider_id.value, provider_job_id=job.id)
        polls = 0

        while not job.status.is_terminal:
            remaining = deadline - self.now()
            if remaining <= 0:
                log.warning("job.poll_timeout", polls=polls, status=job.status.value)
                raise self._timeout(job)

            await self._sleep(min(self.interval, remaining))

            # No poll may start once the deadline has passed
            remaining = deadline - self.now()
            if remaining <= 0:
                log.warning("job.poll_timeout", polls=polls, status=job.status.value)
                raise self._timeout(job)

            polls += 1
            try:
                # Abandon (cancel) an in-flight fetch at the deadline; its
                # snapshot is discarded so it cannot touch returned state
                snapshot = await asyncio.wait_for(
                    adapter.poll_status(job, credential), timeout=remaining
                )
            except asyncio.TimeoutError:
                log.warning("job.poll_timeout", polls=polls, status=job.status.value)
                raise self._timeout(job)
            except GenerationError as e:
                if e.kind is ErrorKind.RATE_LIMITED:
                    log.info("job.poll_rate_limited", polls=polls)
                    continue
                raise

            if snapshot.status is not job.status:
                log.debug("job.status", status=snapshot.status.value, polls=polls)
            job = snapshot

        if job.status is JobStatus.FAILED:
            log.error("job.failed", polls=polls, provider_detail=job.error)
            raise GenerationError(
                ErrorKind.PROVIDER_UNAVAILABLE,
                "Image generation failed",
                (job.error or "The AI service reported a failure")[:500],
                provider_id=job.provider_id,
                provider_detail=job.error,
            )

        log.info("job.succeeded", polls=polls)
        return result_normalizer.normalize(job.output, job.provider_id)
