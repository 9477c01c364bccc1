"""
Wikibase Action API async client.

Implements the `ReferenceDataSource` capability against a Wikibase
installation (Wikidata by default).

Features:
- Async HTTP requests with httpx
- Retry logic with exponential backoff for transient failures
- Id batching within the API's per-request limit
- Bounded concurrency for per-value formatting calls

API modules used:
- wbgetentities: property datatypes and labels
- wbparsevalue: raw strings to data values
- wbformatvalue: data values to localized text
"""

import asyncio
import json
from collections.abc import Collection, Mapping, Sequence
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import settings
from src.core.logging import get_logger
from src.services.reference import ParsedValue, ReferenceDataError

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Unit separator: MediaWiki's alternative multi-value delimiter for values containing "|"
MULTIVALUE_SEPARATOR = "\x1f"

# Parallel wbformatvalue requests per format_values() call
MAX_CONCURRENT_REQUESTS = 5


# =============================================================================
# Exceptions
# =============================================================================


class WikibaseError(ReferenceDataError):
    """Base exception for Wikibase client errors."""

    pass


class WikibaseRateLimitError(WikibaseError):
    """Raised when throttled by the API (HTTP 429 or maxlag)."""

    pass


class WikibaseUnavailableError(WikibaseError):
    """Raised when the API cannot be reached after retries."""

    pass


class WikibaseAPIError(WikibaseError):
    """Raised when the API returns an error response."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


# =============================================================================
# Helpers
# =============================================================================


def _batched(ids: Sequence[str], size: int) -> list[list[str]]:
    """Split ids into lists of at most `size` elements."""
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


def join_values(values: Sequence[str]) -> str:
    """
    Join values for a multi-value API parameter.

    Falls back to the unit separator form when any value contains a pipe.
    """
    if any("|" in value for value in values):
        return MULTIVALUE_SEPARATOR + MULTIVALUE_SEPARATOR.join(values)
    return "|".join(values)


# =============================================================================
# Wikibase Client
# =============================================================================


class WikibaseClient:
    """
    Async client for the Wikibase Action API.

    Usage:
        async with WikibaseClient() as wikidata:
            datatypes = await wikidata.get_property_datatypes({"P569", "P31"})
            labels = await wikidata.get_labels({"Q42"}, "en")
    """

    def __init__(
        self,
        api_url: str | None = None,
        user_agent: str | None = None,
        batch_size: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Wikibase client.

        Args:
            api_url: api.php endpoint
            user_agent: User-Agent header (required by Wikimedia API etiquette)
            batch_size: Maximum ids per wbgetentities request
            timeout: HTTP request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_url = api_url or settings.wikibase_api_url
        self.user_agent = user_agent or settings.wikibase_user_agent
        self.batch_size = batch_size or settings.wikibase_batch_size
        self.timeout = timeout or settings.wikibase_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "WikibaseClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError(
                "WikibaseClient must be used as async context manager: "
                "async with WikibaseClient() as client: ..."
            )
        return self._client

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, WikibaseRateLimitError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        """
        Make an API request with retry logic.

        Raises:
            WikibaseRateLimitError: If throttled (retried)
            WikibaseAPIError: If the API answers with an error
        """
        query = {"format": "json", "formatversion": "2", **params}

        logger.debug("Wikibase API request", action=params.get("action"))

        response = await self.client.get(self.api_url, params=query)

        if response.status_code == 429:
            logger.warning("Wikibase rate limit hit, will retry")
            raise WikibaseRateLimitError("Rate limit exceeded")

        if response.status_code != 200:
            logger.error(
                "Wikibase API error",
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise WikibaseAPIError(f"API returned status {response.status_code}")

        data = response.json()

        if "error" in data:
            error = data["error"]
            code = error.get("code")
            if code == "maxlag":
                raise WikibaseRateLimitError(error.get("info", "maxlag"))
            logger.error("Wikibase API error", code=code, info=error.get("info"))
            raise WikibaseAPIError(error.get("info", "Unknown API error"), code=code)

        return data

    async def _api(self, params: dict[str, str]) -> dict[str, Any]:
        """Call the API, surfacing exhausted transport retries as WikibaseUnavailableError."""
        try:
            return await self._request(params)
        except httpx.HTTPError as e:
            logger.error("Wikibase API unreachable", action=params.get("action"), error=str(e))
            raise WikibaseUnavailableError(f"Wikibase API unreachable: {e}") from e

    async def _get_entities(self, ids: Collection[str], **params: str) -> dict[str, Any]:
        """Fetch entities in batches; missing entities are dropped."""
        entities: dict[str, Any] = {}
        for batch in _batched(sorted(ids), self.batch_size):
            data = await self._api(
                {"action": "wbgetentities", "ids": "|".join(batch), **params}
            )
            for entity_id, entity in data.get("entities", {}).items():
                if not entity or "missing" in entity:
                    continue
                entities[entity_id] = entity
        return entities

    # =========================================================================
    # ReferenceDataSource
    # =========================================================================

    async def get_property_datatypes(self, property_ids: Collection[str]) -> dict[str, str]:
        """Map each property id to its datatype, e.g. {"P569": "time"}."""
        if not property_ids:
            return {}

        entities = await self._get_entities(property_ids, props="datatype")
        return {
            entity_id: entity["datatype"]
            for entity_id, entity in entities.items()
            if "datatype" in entity
        }

    async def get_labels(self, entity_ids: Collection[str], locale: str) -> dict[str, str]:
        """Map each entity id to its label, using language fallback."""
        if not entity_ids:
            return {}

        entities = await self._get_entities(
            entity_ids,
            props="labels",
            languages=locale,
            languagefallback="1",
        )
        labels = {}
        for entity_id, entity in entities.items():
            label = entity.get("labels", {}).get(locale)
            if label:
                labels[entity_id] = label["value"]
        return labels

    async def parse_values(
        self,
        values_by_property: Mapping[str, Sequence[str]],
    ) -> dict[str, dict[str, ParsedValue]]:
        """Parse raw strings into data values, one request per property."""
        parsed: dict[str, dict[str, ParsedValue]] = {}

        for property_id, values in values_by_property.items():
            unique_values = list(dict.fromkeys(values))
            if not unique_values:
                continue

            data = await self._api(
                {
                    "action": "wbparsevalue",
                    "property": property_id,
                    "values": join_values(unique_values),
                    "validate": "1",
                }
            )
            parsed[property_id] = {
                result["raw"]: {"value": result["value"], "type": result["type"]}
                for result in data.get("results", [])
            }

        logger.debug("Parsed values", properties=len(parsed))
        return parsed

    async def format_values(
        self,
        values_by_property: Mapping[str, Mapping[str, ParsedValue]],
        locale: str,
    ) -> dict[str, dict[str, str]]:
        """Format data values as plain text in the given locale."""
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)

        async def format_one(property_id: str, datavalue: ParsedValue) -> str:
            async with semaphore:
                data = await self._api(
                    {
                        "action": "wbformatvalue",
                        "generate": "text/plain",
                        "datavalue": json.dumps(datavalue),
                        "property": property_id,
                        "uselang": locale,
                    }
                )
            return data["result"]

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [
                    (property_id, key, tg.create_task(format_one(property_id, datavalue)))
                    for property_id, values in values_by_property.items()
                    for key, datavalue in values.items()
                ]
        except ExceptionGroup as group:
            # First failure cancels the siblings; surface it unwrapped
            raise group.exceptions[0] from None

        formatted: dict[str, dict[str, str]] = {}
        for property_id, key, task in tasks:
            formatted.setdefault(property_id, {})[key] = task.result()
        return formatted
