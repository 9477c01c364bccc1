"""
Fire-and-forget usage counters.

Counters are sent to a statsv beacon (`GET <url>?<namespace>.<event>=1c`).
Delivery is best-effort: a slow or failing beacon never fails or delays the
request that emitted the metric beyond `metrics_timeout`.
"""

from typing import Protocol

import httpx

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)

# Event names
REQUEST_EVENT = "mismatch_request"
REVIEW_EVENT = "mismatch_review"


class MetricsRecorder(Protocol):
    """Sink for usage counters."""

    async def record(self, event: str) -> None:
        """Count one occurrence of an event. Must never raise."""
        ...


async def record_request(metrics: MetricsRecorder) -> None:
    """Count one read request."""
    await metrics.record(REQUEST_EVENT)


async def record_review(metrics: MetricsRecorder) -> None:
    """Count one applied review decision."""
    await metrics.record(REVIEW_EVENT)


class NullMetricsRecorder:
    """Recorder used when metrics are disabled."""

    async def record(self, event: str) -> None:
        pass


class StatsvMetricsRecorder:
    """
    Counter sink backed by a statsv HTTP beacon.

    Usage:
        async with StatsvMetricsRecorder() as metrics:
            await metrics.record("mismatch_request")
    """

    def __init__(
        self,
        url: str | None = None,
        namespace: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url or settings.statsv_url
        self.namespace = namespace or settings.statsv_namespace
        self.timeout = timeout or settings.metrics_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "StatsvMetricsRecorder":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def record(self, event: str) -> None:
        """Send a counter increment; failures are logged and dropped."""
        if self._client is None:
            logger.warning("Metrics recorder not started, dropping event", metric=event)
            return

        try:
            response = await self._client.get(
                self.url,
                params={f"{self.namespace}.{event}": "1c"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to record metric", metric=event, error=str(e))
