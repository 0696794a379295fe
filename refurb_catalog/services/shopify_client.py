"""Shopify Admin REST client for the catalog sync.

Only the handful of endpoints the sync needs:
- shop.json (connection test)
- products.json (list / create)
- variants (update inventory, add missing variants)
- custom_collections.json / collects.json (collection bootstrap)

No retries or backoff here; the caller paces requests.
"""

import logging
from typing import Any

import httpx

from refurb_catalog.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class ShopifyError(RuntimeError):
    """Raised when the Shopify API rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def normalize_store_url(store_url: str) -> str:
    """Reduce a store reference to its host (e.g. "https://x.myshopify.com/" -> "x.myshopify.com")."""
    host = store_url.strip()
    for prefix in ("https://", "http://"):
        if host.lower().startswith(prefix):
            host = host[len(prefix):]
    return host.split("/", 1)[0]


class ShopifyClient:
    """Async client for a single Shopify store."""

    def __init__(
        self,
        store_url: str,
        access_token: str,
        api_version: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize client for a store.

        Args:
            store_url: Store domain (e.g. "my-shop.myshopify.com").
            access_token: Admin API access token.
            api_version: Admin API version (default from settings).
            http_client: Optional preconfigured httpx client (tests).
        """
        settings = get_settings()
        self.api_version = api_version or settings.shopify_api_version
        self.base_url = f"https://{normalize_store_url(store_url)}/admin/api/{self.api_version}/"
        self._headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": access_token,
        }
        self._timeout = settings.shopify_timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client (only if this instance created it)."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers,
            params=params,
            json=json,
        )
        if response.status_code >= 400:
            raise ShopifyError(
                f"{method} {path} failed with {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    async def get_shop(self) -> dict[str, Any]:
        """Fetch shop details; used as a connection/credentials test."""
        data = await self._request("GET", "shop.json")
        return data.get("shop", {})

    async def list_products(self, limit: int | None = None) -> list[dict[str, Any]]:
        """List existing products (first page only)."""
        limit = limit or get_settings().shopify_products_limit
        data = await self._request("GET", "products.json", params={"limit": limit})
        return data.get("products", [])

    async def create_product(self, product: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", "products.json", json={"product": product})
        return data.get("product", {})

    async def update_variant(self, variant_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "PUT",
            f"variants/{variant_id}.json",
            json={"variant": {"id": variant_id, **fields}},
        )
        return data.get("variant", {})

    async def create_variant(self, product_id: int, variant: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"products/{product_id}/variants.json",
            json={"variant": variant},
        )
        return data.get("variant", {})

    async def list_custom_collections(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "custom_collections.json", params={"limit": 250})
        return data.get("custom_collections", [])

    async def create_custom_collection(self, title: str) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "custom_collections.json",
            json={"custom_collection": {"title": title, "published": True}},
        )
        return data.get("custom_collection", {})

    async def add_product_to_collection(self, collection_id: int, product_id: int) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "collects.json",
            json={"collect": {"collection_id": collection_id, "product_id": product_id}},
        )
        return data.get("collect", {})
