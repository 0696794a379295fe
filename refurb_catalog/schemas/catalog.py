"""Schemas for the catalog sync endpoint (/v1/catalog/sync)."""

from pydantic import BaseModel, Field

from refurb_catalog.schemas.inventory import ProductGroupOut


class SyncRequest(BaseModel):
    """Request body: target store plus the product groups to push.

    Store URL and token fall back to server settings when omitted.
    """

    store_url: str = Field(alias="storeUrl", default="")
    api_token: str = Field(alias="apiToken", default="")
    product_groups: dict[str, ProductGroupOut] = Field(alias="productGroups", default_factory=dict)

    model_config = {"populate_by_name": True}


class SyncResponse(BaseModel):
    """Outcome of a sync run."""

    created: int = Field(ge=0)
    updated: int = Field(ge=0)
    errors: int = Field(ge=0)
    details: list[str] = Field(default_factory=list)
