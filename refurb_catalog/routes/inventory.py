"""Inventory processing endpoint.

POST /v1/inventory/process - upload a spreadsheet, get product groups back.

The body is the raw file (.xlsx or CSV) or its base64 encoding, as sent by
the upload form. Routers are thin: reading, classification and grouping live
in services.
"""

import base64
import binascii
import logging

from fastapi import APIRouter, HTTPException, Request

from refurb_catalog.schemas import ProcessResponse, error_body
from refurb_catalog.services.aggregator import process_rows
from refurb_catalog.services.spreadsheet import SpreadsheetError, describe_rows, read_inventory_rows
from refurb_catalog.settings import get_settings

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

_XLSX_MAGIC = b"PK\x03\x04"


def decode_upload(body: bytes) -> bytes:
    """Return the file bytes, undoing base64 transport encoding when present.

    Decoded bytes are kept only if they are an .xlsx archive or UTF-8 text (CSV).
    """
    if body.startswith(_XLSX_MAGIC):
        return body
    try:
        decoded = base64.b64decode(body.strip(), validate=True)
    except (binascii.Error, ValueError):
        return body
    if not decoded or decoded.startswith(_XLSX_MAGIC):
        return decoded or body
    try:
        decoded.decode("utf-8-sig")
    except UnicodeDecodeError:
        return body
    return decoded


@router.post("/process", response_model=ProcessResponse)
async def process_inventory(request: Request) -> ProcessResponse:
    """Parse an inventory spreadsheet and group its Apple products.

    Returns:
        ProcessResponse with product groups, per-type counts and totals. When
        nothing matched, `debug` summarizes the sheet's headers and values.

    Raises:
        HTTPException 400: Empty or unreadable upload.
        HTTPException 413: Upload larger than the configured limit.
    """
    settings = get_settings()
    body = await request.body()

    if len(body) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=error_body(
                "UPLOAD_TOO_LARGE",
                f"Upload exceeds {settings.max_upload_mb} MB",
                {"bytes": len(body)},
            ),
        )

    data = decode_upload(body)
    logger.info(f"Processing inventory upload: {len(data)} bytes")

    try:
        rows = read_inventory_rows(data)
    except SpreadsheetError as e:
        raise HTTPException(
            status_code=400,
            detail=error_body("INVALID_SPREADSHEET", f"Error processing spreadsheet: {e}"),
        )

    result = process_rows(rows)

    debug = None
    if not result.groups:
        logger.warning(f"No Apple products found in {len(rows)} rows")
        debug = describe_rows(rows)

    return ProcessResponse.from_result(result, debug=debug)
