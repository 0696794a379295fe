"""Catalog sync: product groups -> Shopify products, variants and collections.

Flow:
1. Test the connection (shop.json); abort the whole run if it fails
2. Load existing products and custom collections once
3. For each group, in order:
   - Existing product (matched by SEO title) -> update variant inventory,
     add variants the product does not have yet
   - Otherwise -> create the product with one variant per (color, condition),
     then attach it to its collections (created on demand)
   - Wait a fixed delay before the next group
4. Report created / updated / error counts with one detail line per group

A failing group is recorded and skipped; nothing is retried.
"""

import asyncio
import html
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from refurb_catalog.services.aggregator import ProductGroup
from refurb_catalog.services.pricing import compare_at_price, variant_price
from refurb_catalog.services.shopify_client import ShopifyClient, ShopifyError
from refurb_catalog.settings import get_settings

logger = logging.getLogger("uvicorn.error")

VENDOR = "Apple"

_GRADE_DESCRIPTIONS = {
    "A": "Excellent condition, minimal signs of use",
    "B": "Very good condition, light wear",
    "C": "Good condition, visible wear but fully functional",
    "D": "Fair condition, heavy wear, fully functional",
    "P": "Parts or repair",
}


class CatalogSyncError(RuntimeError):
    """Raised when a sync run cannot start (bad credentials, unreachable store)."""


@dataclass
class SyncResult:
    """Outcome of a sync run."""

    created: int = 0
    updated: int = 0
    errors: int = 0
    details: list[str] = field(default_factory=list)


# ============================================================
# Payload Builders
# ============================================================


def grade_label(condition: str) -> str:
    return f"Grade {condition}"


def generate_sku(group: ProductGroup, color: str, condition: str) -> str:
    """Deterministic SKU: group key + color + grade (e.g. "MACBOOKPRO-M3PRO-512GB-16GB-14INCH-SPACEGRAY-A")."""
    base = group.key.upper().replace("_", "-")
    color_code = re.sub(r"[^A-Za-z0-9]", "", color).upper() or "DEFAULT"
    return f"{base}-{color_code}-{condition.upper()}"


def build_variant_payload(
    group: ProductGroup,
    color: str,
    condition: str,
    quantity: int,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "option1": color,
        "option2": grade_label(condition),
        "sku": generate_sku(group, color, condition),
        "price": str(variant_price(group.base_price, condition)),
        "inventory_quantity": quantity,
        "inventory_management": "shopify",
        "inventory_policy": "deny",
    }
    compare_at = compare_at_price(group.base_price, condition)
    if compare_at is not None:
        payload["compare_at_price"] = str(compare_at)
    return payload


def build_variants(group: ProductGroup) -> list[dict[str, Any]]:
    """One variant per (color, condition); a single default variant if the group has none."""
    variants = [
        build_variant_payload(group, v.color, v.condition, v.quantity)
        for v in group.variants.values()
    ]
    if not variants:
        variants.append(build_variant_payload(group, "Default", "A", len(group.items)))
    return variants


def build_tags(group: ProductGroup) -> str:
    return ", ".join(group.collections)


def build_description(group: ProductGroup) -> str:
    """Product body HTML: specs, available units and grade explanations."""
    specs = [
        ("Model", group.model),
        ("Processor", group.processor),
        ("Storage", group.storage),
        ("Memory", group.memory),
        ("Display", group.display_size),
        ("Year", group.year),
    ]
    spec_items = "".join(
        f"<li><strong>{label}:</strong> {html.escape(value)}</li>"
        for label, value in specs
        if value and value != "Unknown"
    )
    units = sum(v.quantity for v in group.variants.values()) or len(group.items)
    grades = sorted({v.condition for v in group.variants.values()}) or ["A"]
    grade_items = "".join(
        f"<li><strong>{grade_label(g)}:</strong> {_GRADE_DESCRIPTIONS.get(g, '')}</li>"
        for g in grades
    )
    return (
        '<div class="product-specs">'
        "<h3>Product Specifications</h3>"
        f"<ul>{spec_items}<li><strong>Available Units:</strong> {units}</li></ul>"
        "<h3>Condition Information</h3>"
        "<p>All devices are professionally refurbished and tested.</p>"
        f"<ul>{grade_items}</ul>"
        "</div>"
    )


def build_product_payload(group: ProductGroup) -> dict[str, Any]:
    variants = build_variants(group)
    colors = list(dict.fromkeys(v["option1"] for v in variants))
    conditions = list(dict.fromkeys(v["option2"] for v in variants))
    return {
        "title": group.seo_title,
        "body_html": build_description(group),
        "vendor": VENDOR,
        "product_type": group.product_type,
        "status": "active",
        "options": [
            {"name": "Color", "values": colors},
            {"name": "Condition", "values": conditions},
        ],
        "variants": variants,
        "tags": build_tags(group),
    }


def find_existing_product(
    products: list[dict[str, Any]],
    group: ProductGroup,
) -> dict[str, Any] | None:
    """Find a store product whose title equals the group's SEO title (case-insensitive)."""
    wanted = group.seo_title.strip().lower()
    for product in products:
        if str(product.get("title", "")).strip().lower() == wanted:
            return product
    return None


def _find_variant(product: dict[str, Any], option1: str, option2: str) -> dict[str, Any] | None:
    for variant in product.get("variants") or []:
        if variant.get("option1") == option1 and variant.get("option2") == option2:
            return variant
    return None


# ============================================================
# Sync
# ============================================================


class CatalogSync:
    """Pushes product groups to a Shopify store, one group at a time."""

    def __init__(self, client: ShopifyClient, delay_seconds: float | None = None):
        self.client = client
        self.delay_seconds = (
            get_settings().sync_delay_seconds if delay_seconds is None else delay_seconds
        )
        self._collection_ids: dict[str, int] = {}

    async def sync(self, groups: Mapping[str, ProductGroup]) -> SyncResult:
        """Create or update a product for every group.

        Args:
            groups: Group key -> ProductGroup, as produced by the aggregator.

        Returns:
            SyncResult with counts and per-group detail lines.

        Raises:
            CatalogSyncError: If the store cannot be reached with these credentials.
        """
        try:
            shop = await self.client.get_shop()
            existing_products = await self.client.list_products()
            collections = await self.client.list_custom_collections()
        except (ShopifyError, httpx.HTTPError) as e:
            raise CatalogSyncError(f"Shopify connection failed: {e}") from e

        logger.info(
            f"Connected to Shopify store {shop.get('name', '?')}: "
            f"{len(existing_products)} products, {len(collections)} collections"
        )
        self._collection_ids = {
            str(c.get("title", "")).lower(): c["id"] for c in collections if c.get("id")
        }

        result = SyncResult()
        for index, (key, group) in enumerate(groups.items()):
            if index and self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            try:
                existing = find_existing_product(existing_products, group)
                if existing:
                    await self.update_product(existing, group)
                    result.updated += 1
                    result.details.append(f"Updated: {group.seo_title}")
                else:
                    created = await self.create_product(group)
                    existing_products.append(created)
                    result.created += 1
                    result.details.append(f"Created: {group.seo_title}")
            except Exception as e:
                result.errors += 1
                result.details.append(f"Error with {group.model or key}: {e}")
                logger.warning(f"Product sync error for group={key}: {e}")

        logger.info(
            f"Sync finished: created={result.created}, updated={result.updated}, errors={result.errors}"
        )
        return result

    async def create_product(self, group: ProductGroup) -> dict[str, Any]:
        """Create the product, then attach it to its collections."""
        product = await self.client.create_product(build_product_payload(group))
        product_id = product.get("id")
        if product_id:
            await self.attach_collections(product_id, group.collections)
        return product

    async def update_product(self, product: dict[str, Any], group: ProductGroup) -> None:
        """Set inventory on matching variants; add the ones the product lacks."""
        for payload in build_variants(group):
            existing = _find_variant(product, payload["option1"], payload["option2"])
            if existing:
                await self.client.update_variant(
                    existing["id"],
                    {"inventory_quantity": payload["inventory_quantity"]},
                )
            else:
                created = await self.client.create_variant(product["id"], payload)
                product.setdefault("variants", []).append(created)
        logger.info(f"Updated inventory for: {product.get('title')}")

    async def ensure_collection(self, title: str) -> int | None:
        """Return the custom collection id for `title`, creating it if needed."""
        cached = self._collection_ids.get(title.lower())
        if cached:
            return cached
        collection = await self.client.create_custom_collection(title)
        collection_id = collection.get("id")
        if collection_id:
            self._collection_ids[title.lower()] = collection_id
        return collection_id

    async def attach_collections(self, product_id: int, titles: list[str]) -> None:
        for title in titles:
            collection_id = await self.ensure_collection(title)
            if collection_id:
                await self.client.add_product_to_collection(collection_id, product_id)

