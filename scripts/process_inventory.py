#!/usr/bin/env python3
"""Process an inventory spreadsheet from disk (and optionally push it to Shopify).

Usage:
  python -m scripts.process_inventory path/to/inventory.xlsx

Optional env vars:
  SYNC_TO_SHOPIFY=1            push the resulting groups after processing
  SHOPIFY_STORE_URL=...        store domain (required with SYNC_TO_SHOPIFY)
  SHOPIFY_ACCESS_TOKEN=...     admin API token (required with SYNC_TO_SHOPIFY)
  SYNC_DELAY_SECONDS=0.2
"""

import asyncio
import os
import sys
from dataclasses import asdict
from pathlib import Path


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from refurb_catalog.services.aggregator import process_rows  # noqa: E402
from refurb_catalog.services.catalog_sync import CatalogSync  # noqa: E402
from refurb_catalog.services.shopify_client import ShopifyClient  # noqa: E402
from refurb_catalog.services.spreadsheet import describe_rows, read_inventory_rows  # noqa: E402
from refurb_catalog.settings import get_settings  # noqa: E402


async def main(path: Path) -> None:
    rows = read_inventory_rows(path.read_bytes())
    result = process_rows(rows)

    summary: dict = {
        "ok": True,
        "file": str(path),
        "totalRows": result.total_rows,
        "matchedRows": result.matched_rows,
        "totalItems": result.total_items,
        "skippedRows": result.skipped_rows,
        "groupCount": result.group_count,
        "categories": result.categories,
        "groups": {
            key: {
                "seoTitle": g.seo_title,
                "basePrice": g.base_price,
                "variants": {vk: asdict(v) for vk, v in g.variants.items()},
            }
            for key, g in result.groups.items()
        },
    }
    if not result.groups:
        summary["debug"] = describe_rows(rows)

    if os.getenv("SYNC_TO_SHOPIFY", "").strip() in ("1", "true", "yes") and result.groups:
        settings = get_settings()
        if not settings.shopify_store_url or not settings.shopify_access_token:
            raise SystemExit("SHOPIFY_STORE_URL and SHOPIFY_ACCESS_TOKEN are required with SYNC_TO_SHOPIFY=1")
        async with ShopifyClient(
            store_url=settings.shopify_store_url,
            access_token=settings.shopify_access_token,
        ) as client:
            sync_result = await CatalogSync(client).sync(result.groups)
        summary["sync"] = asdict(sync_result)

    # Single JSON-ish blob for logs
    print(summary)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(Path(sys.argv[1])))
