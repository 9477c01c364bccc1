"""Unit tests for the Wikibase API client and the metrics recorder."""

import asyncio
import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest
from tenacity import wait_none

from src.services.metrics import (
    REQUEST_EVENT,
    REVIEW_EVENT,
    NullMetricsRecorder,
    StatsvMetricsRecorder,
    record_request,
    record_review,
)
from src.services.wikibase import (
    MULTIVALUE_SEPARATOR,
    WikibaseAPIError,
    WikibaseClient,
    WikibaseUnavailableError,
    join_values,
)

pytestmark = pytest.mark.asyncio


def params_of(request: httpx.Request) -> dict[str, str]:
    """Flatten the query string of a request."""
    return {key: values[0] for key, values in parse_qs(request.url.query.decode()).items()}


def client_for(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> WikibaseClient:
    return WikibaseClient(
        api_url="https://wikibase.test/w/api.php",
        user_agent="MismatchFinderTests/1.0",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retry immediately in tests."""
    monkeypatch.setattr(WikibaseClient._request.retry, "wait", wait_none())


# =============================================================================
# Wikibase Client Tests
# =============================================================================


class TestWikibaseEntities:
    """Tests for wbgetentities based lookups."""

    async def test_property_datatypes(self) -> None:
        """Test datatypes are read from wbgetentities."""
        seen: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(params_of(request))
            return httpx.Response(
                200,
                json={
                    "entities": {
                        "P569": {"id": "P569", "datatype": "time"},
                        "P31": {"id": "P31", "datatype": "wikibase-item"},
                    }
                },
            )

        async with client_for(handler) as client:
            datatypes = await client.get_property_datatypes({"P569", "P31"})

        assert datatypes == {"P569": "time", "P31": "wikibase-item"}
        assert seen[0]["action"] == "wbgetentities"
        assert seen[0]["props"] == "datatype"
        assert seen[0]["format"] == "json"

    async def test_ids_are_batched(self) -> None:
        """Test ids are split into batches of batch_size."""
        batches: list[list[str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            ids = params_of(request)["ids"].split("|")
            batches.append(ids)
            return httpx.Response(
                200,
                json={"entities": {i: {"id": i, "labels": {"en": {"value": i.lower()}}} for i in ids}},
            )

        ids = {f"Q{n}" for n in range(1, 6)}
        async with client_for(handler, batch_size=2) as client:
            labels = await client.get_labels(ids, "en")

        assert [len(batch) for batch in batches] == [2, 2, 1]
        assert labels == {i: i.lower() for i in ids}

    async def test_missing_entities_are_dropped(self) -> None:
        """Test entities reported missing get no label."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "entities": {
                        "Q1": {"id": "Q1", "labels": {"de": {"language": "de", "value": "Universum"}}},
                        "Q999999999": {"id": "Q999999999", "missing": ""},
                    }
                },
            )

        async with client_for(handler) as client:
            labels = await client.get_labels({"Q1", "Q999999999"}, "de")

        assert labels == {"Q1": "Universum"}

    async def test_empty_ids_make_no_request(self) -> None:
        """Test lookups with no ids never reach the API."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        async with client_for(handler) as client:
            assert await client.get_labels(set(), "en") == {}
            assert await client.get_property_datatypes(set()) == {}

    async def test_client_requires_context_manager(self) -> None:
        """Test using the client outside `async with` fails loudly."""
        client = WikibaseClient()
        with pytest.raises(RuntimeError):
            await client.get_labels({"Q1"}, "en")


class TestWikibaseValues:
    """Tests for wbparsevalue and wbformatvalue."""

    async def test_parse_values_deduplicates(self) -> None:
        """Test each property is parsed once with distinct values."""
        seen: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            params = params_of(request)
            seen.append(params)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "raw": raw,
                            "value": {"time": raw, "precision": 11},
                            "type": "time",
                        }
                        for raw in params["values"].split("|")
                    ]
                },
            )

        raw = "+2020-01-01T00:00:00Z"
        async with client_for(handler) as client:
            parsed = await client.parse_values({"P1": [raw, raw]})

        assert len(seen) == 1
        assert seen[0]["action"] == "wbparsevalue"
        assert seen[0]["property"] == "P1"
        assert seen[0]["values"] == raw
        assert parsed == {"P1": {raw: {"value": {"time": raw, "precision": 11}, "type": "time"}}}

    async def test_format_values(self) -> None:
        """Test each value is formatted in the request language."""
        seen: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            params = params_of(request)
            seen.append(params)
            datavalue = json.loads(params["datavalue"])
            return httpx.Response(200, json={"result": f"{datavalue['value']['time']}@{params['uselang']}"})

        values = {
            "P1": {
                "|+2020-01-01T00:00:00Z": {"value": {"time": "+2020-01-01T00:00:00Z"}, "type": "time"},
                "Q1985786|+1700-03-01T00:00:00Z": {"value": {"time": "+1700-03-01T00:00:00Z"}, "type": "time"},
            }
        }
        async with client_for(handler) as client:
            formatted = await client.format_values(values, "fr")

        assert formatted == {
            "P1": {
                "|+2020-01-01T00:00:00Z": "+2020-01-01T00:00:00Z@fr",
                "Q1985786|+1700-03-01T00:00:00Z": "+1700-03-01T00:00:00Z@fr",
            }
        }
        assert {params["generate"] for params in seen} == {"text/plain"}

    async def test_join_values_with_pipe(self) -> None:
        """Test values containing a pipe switch to the unit separator."""
        assert join_values(["a", "b"]) == "a|b"
        assert join_values(["a|b", "c"]) == f"{MULTIVALUE_SEPARATOR}a|b{MULTIVALUE_SEPARATOR}c"


class TestWikibaseErrors:
    """Tests for error handling."""

    async def test_api_error(self) -> None:
        """Test an error payload raises WikibaseAPIError with its code."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": {"code": "no-such-entity", "info": "Bad id"}})

        async with client_for(handler) as client:
            with pytest.raises(WikibaseAPIError) as exc_info:
                await client.get_labels({"Q1"}, "en")

        assert exc_info.value.code == "no-such-entity"

    async def test_format_failure_cancels_pending(self) -> None:
        """Test a failed format request cancels the requests still in flight."""
        completed: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            time = json.loads(params_of(request)["datavalue"])["value"]["time"]
            if time == "bad":
                return httpx.Response(200, json={"error": {"code": "invalid-time", "info": "Bad time"}})
            await asyncio.sleep(0.1)
            completed.append(time)
            return httpx.Response(200, json={"result": time})

        values = {
            "P1": {
                "bad": {"value": {"time": "bad"}, "type": "time"},
                **{f"slow{n}": {"value": {"time": f"slow{n}"}, "type": "time"} for n in range(3)},
            }
        }
        async with client_for(handler) as client:
            with pytest.raises(WikibaseAPIError) as exc_info:
                await client.format_values(values, "en")

            await asyncio.sleep(0.3)

        assert exc_info.value.code == "invalid-time"
        assert completed == []

    async def test_rate_limit_is_retried(self) -> None:
        """Test a 429 answer is retried."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"entities": {"P1": {"id": "P1", "datatype": "time"}}})

        async with client_for(handler) as client:
            datatypes = await client.get_property_datatypes({"P1"})

        assert attempts == 2
        assert datatypes == {"P1": "time"}

    async def test_unreachable_after_retries(self) -> None:
        """Test transport failures surface as WikibaseUnavailableError."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(WikibaseUnavailableError):
                await client.get_labels({"Q1"}, "en")

        assert attempts == 3


# =============================================================================
# Metrics Tests
# =============================================================================


class TestStatsvMetricsRecorder:
    """Tests for the statsv metrics recorder."""

    async def test_sends_counter(self) -> None:
        """Test an event becomes a counter increment on the beacon."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        recorder = StatsvMetricsRecorder(
            url="https://beacon.test/statsv",
            namespace="Test.mismatchStats",
            transport=httpx.MockTransport(handler),
        )
        async with recorder as metrics:
            await record_request(metrics)
            await record_review(metrics)

        assert [params_of(r) for r in seen] == [
            {f"Test.mismatchStats.{REQUEST_EVENT}": "1c"},
            {f"Test.mismatchStats.{REVIEW_EVENT}": "1c"},
        ]

    async def test_failures_are_swallowed(self) -> None:
        """Test beacon errors never propagate."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("beacon down", request=request)

        async with StatsvMetricsRecorder(transport=httpx.MockTransport(handler)) as metrics:
            await metrics.record(REQUEST_EVENT)

    async def test_server_errors_are_swallowed(self) -> None:
        """Test non-2xx beacon answers never propagate."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with StatsvMetricsRecorder(transport=httpx.MockTransport(handler)) as metrics:
            await metrics.record(REVIEW_EVENT)

    async def test_not_started_is_dropped(self) -> None:
        """Test recording before startup is a logged no-op."""
        await StatsvMetricsRecorder().record(REQUEST_EVENT)

    async def test_null_recorder(self) -> None:
        """Test the null recorder accepts events."""
        await NullMetricsRecorder().record(REQUEST_EVENT)
