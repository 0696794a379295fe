"""Catalog sync endpoint.

POST /v1/catalog/sync - push product groups to a Shopify store.

Groups are processed one at a time with a fixed delay between them; a
failing group is reported in `details` and does not stop the run.
"""

import logging

from fastapi import APIRouter, HTTPException

from refurb_catalog.schemas import SyncRequest, SyncResponse, error_body
from refurb_catalog.services.catalog_sync import CatalogSync, CatalogSyncError
from refurb_catalog.services.shopify_client import ShopifyClient
from refurb_catalog.settings import get_settings

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("/sync", response_model=SyncResponse)
async def sync_catalog(request: SyncRequest) -> SyncResponse:
    """Create or update a store product for every posted product group.

    Raises:
        HTTPException 400: Store URL, token or product groups missing.
        HTTPException 502: Store unreachable or credentials rejected.
    """
    settings = get_settings()
    store_url = request.store_url or settings.shopify_store_url
    api_token = request.api_token or settings.shopify_access_token

    if not store_url or not api_token or not request.product_groups:
        raise HTTPException(
            status_code=400,
            detail=error_body(
                "MISSING_SYNC_DATA",
                "Missing required data",
                {
                    "storeUrl": bool(store_url),
                    "apiToken": bool(api_token),
                    "productGroups": len(request.product_groups),
                },
            ),
        )

    groups = {key: group.to_domain(key) for key, group in request.product_groups.items()}
    logger.info(f"Syncing {len(groups)} product groups to {store_url}")

    async with ShopifyClient(store_url=store_url, access_token=api_token) as client:
        try:
            result = await CatalogSync(client).sync(groups)
        except CatalogSyncError as e:
            raise HTTPException(
                status_code=502,
                detail=error_body("SHOPIFY_UNAVAILABLE", str(e), {"storeUrl": store_url}),
            )

    return SyncResponse(
        created=result.created,
        updated=result.updated,
        errors=result.errors,
        details=result.details,
    )
