"""Pydantic schemas for API request/response validation."""

from refurb_catalog.schemas.catalog import SyncRequest, SyncResponse
from refurb_catalog.schemas.common import ErrorDetail, ErrorResponse, error_body
from refurb_catalog.schemas.inventory import (
    Item,
    ProcessResponse,
    ProductGroupOut,
    Variant,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "error_body",
    "Item",
    "ProcessResponse",
    "ProductGroupOut",
    "SyncRequest",
    "SyncResponse",
    "Variant",
]
