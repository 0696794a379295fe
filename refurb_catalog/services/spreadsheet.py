"""Spreadsheet reader: uploaded inventory file -> list of string-keyed rows.

Reads the first worksheet only; row 1 holds the headers. Values are returned
as strings with no other transformation, so header aliasing and
normalization stay in the normalizer. Empty cells become "".

Payloads that are not .xlsx (zip) archives are parsed as UTF-8 CSV.
"""

import csv
import io
import logging
from collections.abc import Sequence
from datetime import date, datetime

from openpyxl import load_workbook

from refurb_catalog.services.normalizer import (
    BRAND_ALIASES,
    CATEGORY_ALIASES,
    MODEL_ALIASES,
    resolve_field,
)

logger = logging.getLogger("uvicorn.error")

_XLSX_MAGIC = b"PK\x03\x04"
_SAMPLE_SIZE = 10


class SpreadsheetError(ValueError):
    """Raised when an upload cannot be read as a spreadsheet."""


def _cell_to_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _rows_from_matrix(matrix: Sequence[Sequence[object]]) -> list[dict[str, str]]:
    if not matrix:
        return []

    headers: list[str] = []
    for c, h in enumerate(matrix[0], start=1):
        text = _cell_to_str(h)
        headers.append(text if text else f"col_{c}")

    rows: list[dict[str, str]] = []
    for values in matrix[1:]:
        row = {
            header: _cell_to_str(values[i]) if i < len(values) else ""
            for i, header in enumerate(headers)
        }
        # Skip fully empty rows
        if any(row.values()):
            rows.append(row)
    return rows


def _read_xlsx(data: bytes) -> list[dict[str, str]]:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise SpreadsheetError(f"Cannot read Excel file (is it corrupted or wrong format?): {e}") from e

    try:
        if not wb.sheetnames:
            raise SpreadsheetError("No sheets found in Excel file")
        ws = wb.worksheets[0]
        logger.info(f"Found {len(wb.sheetnames)} sheets, reading '{ws.title}'")
        matrix = [list(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _rows_from_matrix(matrix)


def _read_csv(data: bytes) -> list[dict[str, str]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SpreadsheetError(f"Upload is neither an Excel file nor UTF-8 CSV: {e}") from e
    return _rows_from_matrix(list(csv.reader(io.StringIO(text))))


def read_inventory_rows(data: bytes) -> list[dict[str, str]]:
    """Read inventory rows from an uploaded file.

    Args:
        data: Raw file bytes (.xlsx or CSV).

    Returns:
        List of row dicts keyed by the original header text.

    Raises:
        SpreadsheetError: If the payload is empty or unreadable.
    """
    if not data:
        raise SpreadsheetError("No file data received")

    if data.startswith(_XLSX_MAGIC):
        rows = _read_xlsx(data)
    else:
        rows = _read_csv(data)

    logger.info(f"Total rows extracted: {len(rows)}")
    return rows


def describe_rows(rows: Sequence[dict[str, str]]) -> dict[str, object]:
    """Summarize a sheet for troubleshooting when no products were found.

    Returns:
        Headers seen, distinct categories and brands, and sample models.
    """
    headers: dict[str, None] = {}
    categories: dict[str, None] = {}
    brands: dict[str, None] = {}
    models: dict[str, None] = {}
    for row in rows:
        headers.update(dict.fromkeys(row))
        if category := resolve_field(row, CATEGORY_ALIASES):
            categories[category] = None
        if brand := resolve_field(row, BRAND_ALIASES):
            brands[brand] = None
        if model := resolve_field(row, MODEL_ALIASES):
            models[model] = None

    return {
        "totalRows": len(rows),
        "headers": list(headers),
        "categories": list(categories),
        "brands": list(brands),
        "sampleModels": list(models)[:_SAMPLE_SIZE],
    }
