"""
iiko Cloud API client.
Handles access token issuance, nomenclature and price list reads, and delivery creation.
"""

import asyncio
from typing import Any, Optional

import httpx
import structlog

from app.config import Settings
from app.errors import ConfigMissingError, UpstreamUnavailableError
from app.integrations.iiko.token_cache import TokenCache
from app.models.iiko import (
    AccessTokenResponse,
    CreateDeliveryRequest,
    CreateDeliveryResponse,
    NomenclatureResponse,
    PriceListItemsResponse,
    PriceListsResponse,
)

logger = structlog.get_logger()


class IikoAPIError(UpstreamUnavailableError):
    """Raised when an iiko API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class IikoAPIClient:
    """Client for making iiko Cloud API calls. Every call is attempted once."""

    def __init__(
        self,
        base_url: str = "",
        api_login: str = "",
        organization_id: str = "",
        token_ttl_seconds: float = 540,
        timeout: float = 30.0,
        token_cache: Optional[TokenCache] = None,
    ):
        """
        Initialize iiko API client.

        Args:
            base_url: iiko API base URL, e.g. https://api-ru.iiko.services
            api_login: apiLogin issued in iikoWeb
            organization_id: Organization the catalog and orders belong to
            token_ttl_seconds: How long an issued token is reused
            timeout: HTTP timeout in seconds
            token_cache: Cache shared by everything using this client
        """
        self.base_url = base_url.rstrip("/")
        self.api_login = api_login
        self.organization_id = organization_id
        self.token_ttl_seconds = token_ttl_seconds
        self.token_cache = token_cache or TokenCache()
        self._token_lock = asyncio.Lock()
        self.client = httpx.AsyncClient(
            base_url=self.base_url or "http://iiko.invalid",
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "IikoAPIClient":
        return cls(
            base_url=settings.iiko_api_base,
            api_login=settings.iiko_api_login,
            organization_id=settings.iiko_org_id,
            token_ttl_seconds=settings.iiko_token_ttl_seconds,
            timeout=settings.iiko_request_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_login)

    async def close(self):
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs,
    ) -> dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("iiko request failed", method=method, path=path, error=str(e))
            raise IikoAPIError(f"iiko request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "iiko API error",
                method=method,
                path=path,
                status=response.status_code,
                body=response.text[:500],
            )
            raise IikoAPIError(
                f"iiko API error {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise IikoAPIError(f"iiko returned invalid JSON for {path}") from e

    async def access_token(self) -> str:
        """
        Request a new access token.

        Raises:
            ConfigMissingError: if base URL or apiLogin is not configured
            IikoAPIError: if the call fails
        """
        if not self.configured:
            raise ConfigMissingError("iiko API base URL or apiLogin not configured")
        data = await self._request("POST", "/api/1/access_token", json={"apiLogin": self.api_login})
        return AccessTokenResponse.model_validate(data).token

    async def get_token(self) -> Optional[str]:
        """
        Return a valid access token, reusing the cached one while it is fresh.
        Never raises: offline mode and failures both return None.
        """
        token = self.token_cache.get()
        if token:
            return token
        if not self.configured:
            return None

        async with self._token_lock:
            # Another request may have refreshed while we waited
            token = self.token_cache.get()
            if token:
                return token
            try:
                token = await self.access_token()
            except Exception as e:
                logger.error("iiko token error", error=str(e))
                return None
            self.token_cache.set(token, self.token_ttl_seconds)
            logger.info("iiko token acquired", ttl_seconds=self.token_ttl_seconds)
            return token

    async def raw_nomenclature(self, token: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/1/nomenclature",
            token=token,
            json={"organizationId": self.organization_id},
        )

    async def nomenclature(self, token: str) -> NomenclatureResponse:
        return NomenclatureResponse.model_validate(await self.raw_nomenclature(token))

    async def price_lists(self, token: str) -> PriceListsResponse:
        data = await self._request(
            "GET",
            "/api/1/pricelists",
            token=token,
            params={"organizationId": self.organization_id},
        )
        return PriceListsResponse.model_validate(data)

    async def price_list_items(self, token: str, price_list_id: str) -> PriceListItemsResponse:
        data = await self._request("GET", f"/api/1/pricelists/{price_list_id}", token=token)
        return PriceListItemsResponse.model_validate(data)

    async def create_delivery(
        self, token: str, request: CreateDeliveryRequest
    ) -> CreateDeliveryResponse:
        """
        Create a delivery order.

        Args:
            token: Access token
            request: Delivery payload; organizationId is filled in when missing

        Returns:
            Parsed iiko response
        """
        if request.organizationId is None:
            request = request.model_copy(update={"organizationId": self.organization_id})
        data = await self._request(
            "POST",
            "/api/1/deliveries/create",
            token=token,
            json=request.model_dump(exclude_none=True),
        )
        return CreateDeliveryResponse.model_validate(data)
