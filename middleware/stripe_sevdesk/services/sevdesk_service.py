"""
SevDesk REST API Service

Thin async client for the SevDesk API. A client is bound to one API key;
build a new one per webhook with sevdesk_client() so the key is always read
fresh from the secret store.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from stripe_sevdesk.auth.secret_provider import SecretProvider, get_secret_provider
from stripe_sevdesk.config import Settings
from stripe_sevdesk.utils.exceptions import SevDeskAPIException
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)


class SevDeskClient:
    """
    Client for the SevDesk REST API.

    Exposes generic verb methods against paths relative to the versioned
    base URL. Responses are returned as parsed JSON with SevDesk's
    {"objects": ...} envelope removed.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            base_url=f"{self.base_url}/",
            headers={
                "Authorization": api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SevDeskClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("POST", path, json_data=json_data)

    async def put(self, path: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("PUT", path, json_data=json_data)

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an authenticated HTTP request to the SevDesk API.

        Args:
            method: HTTP method (GET, POST, PUT)
            path: Resource path, e.g. "/Contact"
            json_data: Optional JSON body
            params: Optional query parameters

        Returns:
            Parsed response body, or None for 204 responses

        Raises:
            SevDeskAPIException: On transport errors and HTTP status >= 400
        """
        endpoint = path.lstrip("/")

        try:
            response = await self._http_client.request(
                method=method,
                url=endpoint,
                json=json_data,
                params=params,
            )
        except httpx.RequestError as e:
            logger.error(
                f"Network error calling SevDesk API: {e}",
                extra={"method": method, "endpoint": endpoint},
            )
            raise SevDeskAPIException(
                f"Network error: {e}",
                details={"error": str(e), "endpoint": endpoint},
            ) from e

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"message": response.text}

            logger.error(
                f"SevDesk API error: {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "method": method,
                    "endpoint": endpoint,
                    "error": error_data,
                },
            )

            raise SevDeskAPIException(
                f"SevDesk API error: {error_data}",
                status_code=response.status_code,
                details={"error": error_data, "endpoint": endpoint},
            )

        logger.debug(
            f"SevDesk API call succeeded: {method} {endpoint}",
            extra={"status_code": response.status_code},
        )

        if response.status_code == 204 or not response.content:
            return None

        body = response.json()
        if isinstance(body, dict) and "objects" in body:
            return body["objects"]
        return body


async def sevdesk_client(
    settings: Settings,
    secret_provider: SecretProvider,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SevDeskClient:
    """
    Build a SevDesk client with an API key fetched fresh from the secret store.

    Args:
        settings: Application settings (base URL, key reference, timeout)
        secret_provider: Provider used to resolve the API key reference
        transport: Optional httpx transport, used by tests

    Returns:
        A new SevDeskClient; close it with "async with" or aclose()
    """
    api_key = await secret_provider.resolve(settings.sevdesk_api_key_secret)

    return SevDeskClient(
        base_url=settings.sevdesk_base_url,
        api_key=api_key.strip(),
        timeout=settings.sevdesk_timeout,
        transport=transport,
    )


def default_client_factory(
    settings: Settings,
) -> Callable[[], Awaitable[SevDeskClient]]:
    """Factory used by the handlers: configured secret backend, one client per call"""
    secret_provider = get_secret_provider(settings)

    async def factory() -> SevDeskClient:
        return await sevdesk_client(settings, secret_provider)

    return factory
