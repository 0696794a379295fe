"""API routes."""

from fastapi import APIRouter

from refurb_catalog.routes import catalog, inventory

api_router = APIRouter()

# Spreadsheet upload -> product groups
api_router.include_router(inventory.router, prefix="/v1/inventory", tags=["inventory"])

# Product groups -> Shopify
api_router.include_router(catalog.router, prefix="/v1/catalog", tags=["catalog"])
