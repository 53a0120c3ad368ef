"""Client for the remote marketplace-data API.

The API proxies paid third-party product data services:

- `POST /search/{marketplace}` with `{query?, upc?, asin?}` returns a list of
  product matches for one marketplace.
- `POST /search/multi` with the source product returns matches keyed by
  marketplace.

Both answer `{"success": bool, "data": ..., "error"?: str}`.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from ..config import ApiSettings
from ..errors import RemoteApiFailure
from ..models import Marketplace, ProductRecord

logger = logging.getLogger(__name__)


def create_session(settings: ApiSettings) -> aiohttp.ClientSession:
    """Create configured aiohttp session for API requests."""
    connector = aiohttp.TCPConnector(limit=20, limit_per_host=10)
    timeout = aiohttp.ClientTimeout(total=settings.timeout)
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if settings.api_key:
        headers["X-API-Key"] = settings.api_key
    return aiohttp.ClientSession(connector=connector, timeout=timeout, headers=headers)


class MarketplaceApiClient:
    """Thin async client for the search endpoints."""

    def __init__(self, settings: ApiSettings, session: aiohttp.ClientSession | None = None):
        """Initialize the client.

        Args:
            settings: Base URL, API key and timeout.
            session: Session to reuse; created lazily when omitted.
        """
        self.settings = settings
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_session(self.settings)
        return self._session

    async def _post(self, path: str, payload: dict[str, Any], marketplace: str | None = None) -> Any:
        url = f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            async with self._get_session().post(url, json=payload) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise RemoteApiFailure(
                        f"API request to {path} failed with status {response.status}: {text[:200]}",
                        marketplace=marketplace,
                        status=response.status,
                    )
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteApiFailure(f"API request to {path} failed: {e}", e, marketplace=marketplace) from e

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise RemoteApiFailure(error or f"API request to {path} was not successful", marketplace=marketplace)
        return body.get("data")

    async def search(
        self,
        marketplace: Marketplace,
        query: str | None = None,
        upc: str | None = None,
        asin: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search one marketplace.

        Raises:
            RemoteApiFailure: The request failed or the API reported failure.
        """
        payload = {key: value for key, value in (("query", query), ("upc", upc), ("asin", asin)) if value}
        logger.debug(f"Searching {marketplace.value} with {payload}")
        data = await self._post(f"search/{marketplace.value}", payload, marketplace=marketplace.value)
        return list(data or [])

    async def search_multi(
        self, product: ProductRecord, selected_marketplace: Marketplace | None = None
    ) -> dict[str, list[dict[str, Any]]]:
        """Search every marketplace (or only the selected one) for the product.

        Raises:
            RemoteApiFailure: The request failed or the API reported failure.
        """
        payload: dict[str, Any] = {
            "source_marketplace": product.marketplace.value,
            "product_id": product.upc or product.asin or product.product_id,
            "product_title": product.title,
            "product_brand": product.brand,
        }
        if selected_marketplace is not None:
            payload["selected_marketplace"] = selected_marketplace.value
        data = await self._post("search/multi", payload)
        return dict(data or {})

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
