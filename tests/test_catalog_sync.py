"""Tests for pushing product groups to Shopify (against a fake store)."""

import json

import httpx
import pytest

from refurb_catalog.services.aggregator import process_rows
from refurb_catalog.services.catalog_sync import (
    CatalogSync,
    CatalogSyncError,
    build_product_payload,
    build_variant_payload,
    generate_sku,
)
from refurb_catalog.services.shopify_client import ShopifyClient, normalize_store_url

MACBOOK_ROW = {
    "Brand": "Apple",
    "Model": "MacBook Pro 14-inch 2023",
    "Processor": "Apple M3 Pro",
    "Storage": "512GB",
    "Memory": "16GB",
    "Color": "Space Gray",
    "Condition": "Excellent",
    "Stock": "3",
}

API_PREFIX = "/admin/api/2023-10/"


class FakeStore:
    """Minimal in-memory Shopify Admin API behind httpx.MockTransport."""

    def __init__(self, products=None, collections=None, fail_titles=(), shop_status=200):
        self.products = products or []
        self.collections = collections or []
        self.fail_titles = fail_titles
        self.shop_status = shop_status
        self.calls: list[tuple[str, str, dict]] = []
        self._next_id = 1000

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["X-Shopify-Access-Token"] == "shpat_test"
        path = request.url.path.removeprefix(API_PREFIX)
        body = json.loads(request.content) if request.content else {}
        self.calls.append((request.method, path, body))

        if path == "shop.json":
            if self.shop_status != 200:
                return httpx.Response(self.shop_status, json={"errors": "Invalid API key"})
            return httpx.Response(200, json={"shop": {"name": "Test Shop"}})
        if path == "products.json" and request.method == "GET":
            return httpx.Response(200, json={"products": self.products})
        if path == "products.json" and request.method == "POST":
            product = body["product"]
            if any(t in product["title"] for t in self.fail_titles):
                return httpx.Response(422, json={"errors": {"title": ["is invalid"]}})
            return httpx.Response(201, json={"product": {**product, "id": self._id()}})
        if path == "custom_collections.json" and request.method == "GET":
            return httpx.Response(200, json={"custom_collections": self.collections})
        if path == "custom_collections.json" and request.method == "POST":
            collection = {**body["custom_collection"], "id": self._id()}
            return httpx.Response(201, json={"custom_collection": collection})
        if path == "collects.json":
            return httpx.Response(201, json={"collect": {**body["collect"], "id": self._id()}})
        if path.startswith("variants/"):
            return httpx.Response(200, json={"variant": body["variant"]})
        if path.endswith("/variants.json"):
            return httpx.Response(201, json={"variant": {**body["variant"], "id": self._id()}})
        return httpx.Response(404, json={"errors": "Not Found"})

    def paths(self, method: str) -> list[str]:
        return [p for m, p, _ in self.calls if m == method]


def make_client(store: FakeStore) -> ShopifyClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(store.handler))
    return ShopifyClient(
        store_url="https://test-shop.myshopify.com/",
        access_token="shpat_test",
        api_version="2023-10",
        http_client=http_client,
    )


@pytest.fixture
def macbook_groups():
    return process_rows([MACBOOK_ROW]).groups


class TestPayloads:
    def test_variant_payload(self, macbook_groups):
        group = next(iter(macbook_groups.values()))
        payload = build_variant_payload(group, "Space Gray", "A", 3)
        assert payload == {
            "option1": "Space Gray",
            "option2": "Grade A",
            "sku": "MACBOOKPRO-M3PRO-512GB-16GB-14INCH-SPACEGRAY-A",
            "price": "2759",
            "inventory_quantity": 3,
            "inventory_management": "shopify",
            "inventory_policy": "deny",
            "compare_at_price": "3311",
        }

    def test_lower_grade_has_no_compare_at(self, macbook_groups):
        group = next(iter(macbook_groups.values()))
        payload = build_variant_payload(group, "Silver", "C", 1)
        assert payload["price"] == "2262"
        assert "compare_at_price" not in payload
        assert generate_sku(group, "Silver", "C").endswith("-SILVER-C")

    def test_product_payload(self, macbook_groups):
        group = next(iter(macbook_groups.values()))
        product = build_product_payload(group)
        assert product["title"] == group.seo_title
        assert product["vendor"] == "Apple"
        assert product["product_type"] == "MacBook Pro"
        assert product["options"] == [
            {"name": "Color", "values": ["Space Gray"]},
            {"name": "Condition", "values": ["Grade A"]},
        ]
        assert product["tags"] == "MacBook Pro, Apple Silicon, 2023 Models, Laptops, Refurbished, Apple"
        assert "<li><strong>Processor:</strong> M3 Pro</li>" in product["body_html"]
        assert "<li><strong>Available Units:</strong> 3</li>" in product["body_html"]

    def test_group_without_variants_gets_default(self, macbook_groups):
        group = next(iter(macbook_groups.values()))
        group.variants.clear()
        variants = build_product_payload(group)["variants"]
        assert len(variants) == 1
        assert variants[0]["option1"] == "Default"
        assert variants[0]["option2"] == "Grade A"
        assert variants[0]["inventory_quantity"] == 1

    def test_normalize_store_url(self):
        assert normalize_store_url("https://shop.myshopify.com/admin") == "shop.myshopify.com"
        assert normalize_store_url("shop.myshopify.com") == "shop.myshopify.com"


class TestSync:
    async def test_creates_product_and_collections(self, macbook_groups):
        store = FakeStore(collections=[{"id": 1, "title": "Apple"}])
        async with make_client(store) as client:
            result = await CatalogSync(client, delay_seconds=0).sync(macbook_groups)

        assert (result.created, result.updated, result.errors) == (1, 0, 0)
        assert result.details == [f"Created: {next(iter(macbook_groups.values())).seo_title}"]

        posted = [b for m, p, b in store.calls if m == "POST" and p == "products.json"]
        assert len(posted) == 1
        assert posted[0]["product"]["variants"][0]["inventory_quantity"] == 3

        # "Apple" already exists; the other five are created on demand
        assert store.paths("POST").count("custom_collections.json") == 5
        assert store.paths("POST").count("collects.json") == 6

    async def test_updates_existing_product_by_title(self):
        rows = [MACBOOK_ROW, {**MACBOOK_ROW, "Color": "Silver", "Condition": "C", "Stock": "2"}]
        groups = process_rows(rows).groups
        group = next(iter(groups.values()))
        existing = {
            "id": 77,
            "title": group.seo_title.upper(),
            "variants": [{"id": 555, "option1": "Space Gray", "option2": "Grade A"}],
        }
        store = FakeStore(products=[existing])

        async with make_client(store) as client:
            result = await CatalogSync(client, delay_seconds=0).sync(groups)

        assert (result.created, result.updated, result.errors) == (0, 1, 0)
        puts = [b for m, p, b in store.calls if m == "PUT"]
        assert puts == [{"variant": {"id": 555, "inventory_quantity": 3}}]
        assert store.paths("POST") == ["products/77/variants.json"]

    async def test_group_error_does_not_stop_run(self):
        rows = [MACBOOK_ROW, {"Brand": "Apple", "Model": "iPad Air 2022", "Storage": "64GB"}]
        groups = process_rows(rows).groups
        store = FakeStore(fail_titles=("MacBook",))

        async with make_client(store) as client:
            result = await CatalogSync(client, delay_seconds=0).sync(groups)

        assert (result.created, result.updated, result.errors) == (1, 0, 1)
        assert result.details[0].startswith("Error with MacBook Pro 14-inch 2023:")
        assert result.details[1].startswith("Created: iPad Air")

    async def test_rejected_credentials_abort(self, macbook_groups):
        store = FakeStore(shop_status=401)
        async with make_client(store) as client:
            with pytest.raises(CatalogSyncError):
                await CatalogSync(client, delay_seconds=0).sync(macbook_groups)
        assert store.paths("POST") == []

    async def test_unreachable_store_aborts(self, macbook_groups):
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
        client = ShopifyClient("test-shop.myshopify.com", "shpat_test", http_client=http_client)
        with pytest.raises(CatalogSyncError):
            await CatalogSync(client, delay_seconds=0).sync(macbook_groups)
        await http_client.aclose()

    async def test_empty_groups(self):
        store = FakeStore()
        async with make_client(store) as client:
            result = await CatalogSync(client, delay_seconds=0).sync({})
        assert (result.created, result.updated, result.errors, result.details) == (0, 0, 0, [])
