"""
Guarded HTTP Client Tests
=========================
Status mapping and guarded requests against a mock transport.
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest
from pydantic import BaseModel

from outreach_core.errors import (
    AuthenticationError,
    DependencyError,
    ConnectionFailedError,
    NotFoundError,
    ServerError,
    TransientOverloadError,
    ValidationError,
)
from outreach_core.http import GuardedClient, parse_retry_after
from outreach_core.invoker import DependencyPolicy, ResilientInvoker
from outreach_core.retry import RetryExhaustedError, RetryPolicy


class Place(BaseModel):
    place_id: str
    name: str


@pytest.fixture
def invoker(registry, clock):
    invoker = ResilientInvoker(registry=registry, sleep=clock.sleep)
    invoker.register(
        "places-api",
        DependencyPolicy(retry=RetryPolicy(max_retries=2, base_delay=0.1, max_delay=5.0)),
    )
    return invoker


def make_client(invoker, responses):
    """Client whose transport replays responses (or raises exceptions) in order."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        item = responses[min(len(requests), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    client = GuardedClient(
        "https://places.example.com/v1/",
        "places-api",
        invoker,
        api_key="test-key",
        transport=httpx.MockTransport(handler),
    )
    return client, requests


class TestGuardedRequests:
    """Tests for requests routed through the invoker."""

    @pytest.mark.asyncio
    async def test_retries_server_error(self, invoker, clock):
        """A 503 followed by a 200 returns the decoded body."""
        client, requests = make_client(
            invoker,
            [httpx.Response(503, text="unavailable"), httpx.Response(200, json={"results": []})],
        )
        async with client:
            body = await client.get("/search", params={"q": "coffee"})

        assert body == {"results": []}
        assert len(requests) == 2
        assert requests[0].url.params["q"] == "coffee"
        assert requests[0].headers["Authorization"] == "Bearer test-key"
        assert clock.sleeps == [pytest.approx(0.1)]

    @pytest.mark.asyncio
    async def test_response_model(self, invoker):
        """Bodies are validated into the requested pydantic model."""
        client, _ = make_client(
            invoker,
            [httpx.Response(200, json={"place_id": "p1", "name": "Blue Bottle"})],
        )
        async with client:
            place = await client.get("/places/p1", response_model=Place)

        assert place == Place(place_id="p1", name="Blue Bottle")

    @pytest.mark.asyncio
    async def test_no_content(self, invoker):
        """A 204 returns None."""
        client, _ = make_client(invoker, [httpx.Response(204)])
        async with client:
            assert await client.delete("/places/p1") is None

    @pytest.mark.asyncio
    async def test_unauthorized_not_retried(self, invoker):
        """401 maps to AuthenticationError and is not retried."""
        client, requests = make_client(invoker, [httpx.Response(401)])
        async with client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.get("/search")

        assert exc_info.value.status_code == 401
        assert exc_info.value.service == "places-api"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limited_honours_retry_after(self, invoker, clock):
        """429 is retried after the provider's Retry-After delay."""
        client, requests = make_client(
            invoker,
            [
                httpx.Response(429, headers={"Retry-After": "2"}),
                httpx.Response(200, json={"ok": True}),
            ],
        )
        async with client:
            assert await client.post("/batch", json={"ids": [1, 2]}) == {"ok": True}

        assert len(requests) == 2
        assert clock.sleeps == [pytest.approx(2.0)]

    @pytest.mark.asyncio
    async def test_overload_exhausts_retries(self, invoker):
        """Repeated 529s end in RetryExhaustedError wrapping the overload."""
        client, requests = make_client(invoker, [httpx.Response(529, text="overloaded")])
        async with client:
            with pytest.raises(RetryExhaustedError) as exc_info:
                await client.get("/search")

        assert len(requests) == 3
        assert isinstance(exc_info.value.last_error, TransientOverloadError)

    @pytest.mark.asyncio
    async def test_connect_error_mapped(self, invoker):
        """Transport failures become ConnectionFailedError and are retried."""
        client, requests = make_client(invoker, [httpx.ConnectError("connection refused")])
        async with client:
            with pytest.raises(RetryExhaustedError) as exc_info:
                await client.get("/search")

        assert len(requests) == 3
        last_error = exc_info.value.last_error
        assert isinstance(last_error, ConnectionFailedError)
        assert isinstance(last_error.__cause__, httpx.ConnectError)


class TestStatusMapping:
    """Tests for _map_response."""

    @pytest.fixture
    def client(self, invoker):
        client, _ = make_client(invoker, [httpx.Response(200)])
        return client

    @pytest.mark.parametrize(
        "status,text,expected",
        [
            (500, "boom", ServerError),
            (502, "bad gateway", ServerError),
            (503, "Overloaded, try later", TransientOverloadError),
            (529, "", TransientOverloadError),
            (403, "", AuthenticationError),
            (404, "", NotFoundError),
            (400, "missing field", ValidationError),
            (422, "bad value", ValidationError),
        ],
    )
    def test_mapping(self, client, status, text, expected):
        error = client._map_response(httpx.Response(status, text=text))
        assert type(error) is expected
        assert error.status_code == status

    def test_unknown_status(self, client):
        """Unlisted 4xx codes map to the base DependencyError."""
        error = client._map_response(httpx.Response(409))
        assert type(error) is DependencyError


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_seconds(self):
        assert parse_retry_after("3") == 3.0
        assert parse_retry_after(" 1.5 ") == 1.5

    def test_negative_clamped(self):
        assert parse_retry_after("-5") == 0.0

    def test_missing_or_garbage(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None
        assert parse_retry_after("soon") is None

    def test_http_date(self):
        """An HTTP date is converted to seconds from now."""
        when = datetime.now(timezone.utc) + timedelta(seconds=30)
        seconds = parse_retry_after(format_datetime(when, usegmt=True))
        assert seconds == pytest.approx(30, abs=2)

    def test_http_date_without_zone(self):
        """A "-0000" date is read as UTC, not local time."""
        when = datetime.now(timezone.utc) + timedelta(seconds=30)
        header = format_datetime(when.replace(tzinfo=None))

        assert header.endswith("-0000")
        assert parse_retry_after(header) == pytest.approx(30, abs=2)
