"""
Test SevDesk API Client

Uses httpx.MockTransport so requests never leave the process.
"""

import json

import httpx
import pytest

from stripe_sevdesk.auth.secret_provider import EnvironmentSecretProvider, SecretProvider
from stripe_sevdesk.config import settings
from stripe_sevdesk.services.sevdesk_service import SevDeskClient, sevdesk_client
from stripe_sevdesk.utils.exceptions import SevDeskAPIException

BASE_URL = "https://my.sevdesk.de/api/v1"


def make_client(handler) -> SevDeskClient:
    return SevDeskClient(
        base_url=BASE_URL,
        api_key="sevdesk_key",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_request_url_and_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"objects": {"id": "7001"}})

    async with make_client(handler) as client:
        result = await client.post("/Contact", {"name": "Muster GmbH"})

    assert result == {"id": "7001"}
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/Contact"
    assert request.headers["Authorization"] == "sevdesk_key"
    assert json.loads(request.content) == {"name": "Muster GmbH"}


@pytest.mark.asyncio
async def test_nested_path_and_query_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"objects": []})

    async with make_client(handler) as client:
        result = await client.get("/Invoice", params={"invoiceNumber": "ABC-0001"})

    assert result == []
    assert seen[0].url.path == "/api/v1/Invoice"
    assert seen[0].url.params["invoiceNumber"] == "ABC-0001"


@pytest.mark.asyncio
async def test_body_without_envelope_is_returned_as_is():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "1", "objectName": "Invoice"})

    async with make_client(handler) as client:
        result = await client.put("/Invoice/1/bookAmount", {"amount": 1.0})

    assert result == {"id": "1", "objectName": "Invoice"}


@pytest.mark.asyncio
async def test_no_content_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    async with make_client(handler) as client:
        assert await client.post("/Invoice/1/cancelInvoice") is None


@pytest.mark.asyncio
async def test_error_status_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Authentication required"}})

    async with make_client(handler) as client:
        with pytest.raises(SevDeskAPIException) as exc_info:
            await client.get("/Contact/1")

    assert exc_info.value.status_code == 401
    assert exc_info.value.details["endpoint"] == "Contact/1"
    assert exc_info.value.error_code == "SEVDESK_ERROR"


@pytest.mark.asyncio
async def test_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with make_client(handler) as client:
        with pytest.raises(SevDeskAPIException) as exc_info:
            await client.get("/Contact")

    assert exc_info.value.status_code == 502
    assert exc_info.value.details["error"] == {"message": "Bad Gateway"}


@pytest.mark.asyncio
async def test_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(SevDeskAPIException) as exc_info:
            await client.get("/Contact")

    assert exc_info.value.status_code is None
    assert "connection refused" in exc_info.value.message


class CountingProvider(SecretProvider):
    def __init__(self):
        self.calls = 0

    async def resolve(self, reference: str) -> str:
        self.calls += 1
        return f"key-{self.calls}\n"


@pytest.mark.asyncio
async def test_secret_is_resolved_per_client():
    """Each client build reads the key again, so rotation needs no restart"""
    provider = CountingProvider()
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"objects": []})

    transport = httpx.MockTransport(handler)

    for _ in range(2):
        async with await sevdesk_client(settings, provider, transport=transport) as client:
            await client.get("/Contact")

    assert provider.calls == 2
    assert seen == ["key-1", "key-2"]


@pytest.mark.asyncio
async def test_environment_provider_builds_client():
    async with await sevdesk_client(settings, EnvironmentSecretProvider()) as client:
        assert client.base_url == BASE_URL
        assert client._http_client.headers["Authorization"] == "sevdesk_test_key"
