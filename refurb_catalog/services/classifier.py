"""Row classification: does an inventory row describe a sellable Apple product?

Supplier spreadsheets use inconsistent taxonomy, so membership is an OR of
loose substring checks over brand, category and model. False positives are
acceptable (listings are reviewed before publishing); false negatives are not.

Out-of-stock rows are always excluded, whatever else they say, and so are
rows with neither a category nor a model.
"""

import logging
from collections.abc import Iterable, Mapping

from refurb_catalog.services.normalizer import (
    BRAND_ALIASES,
    CATEGORY_ALIASES,
    MODEL_ALIASES,
    STOCK_ALIASES,
    AttributeNormalizer,
)

logger = logging.getLogger("uvicorn.error")

_CATEGORY_KEYWORDS = (
    "laptop",
    "macbook",
    "tablet",
    "phone",
    "desktop",
    "accessory",
    "accessories",
    "mini",
    "air",
    "pro",
)

_MODEL_KEYWORDS = ("macbook", "ipad", "iphone", "imac", "airpod", "magic")


def is_out_of_stock(stock: str) -> bool:
    """Check a stock cell for an explicit "none left" value ("0", "0.0", "Out of stock")."""
    value = stock.strip().lower()
    if not value:
        return False
    if "out" in value:
        return True
    try:
        return float(value) == 0
    except ValueError:
        return False


class RowClassifier:
    """Decides whether inventory rows belong to the Apple product set."""

    def __init__(self, normalizer: AttributeNormalizer | None = None):
        self.normalizer = normalizer or AttributeNormalizer()

    def classify(self, row: Mapping[str, object]) -> bool:
        """Return True if the row looks like an in-stock Apple product."""
        try:
            resolve = self.normalizer.resolve_field
            stock = resolve(row, STOCK_ALIASES)
            if is_out_of_stock(stock):
                return False

            brand = resolve(row, BRAND_ALIASES).lower()
            category = resolve(row, CATEGORY_ALIASES).lower()
            model = resolve(row, MODEL_ALIASES).lower()
        except Exception as e:
            logger.warning(f"Row classification failed, treating as non-matching: {e}")
            return False

        # Nothing to list without a model or category
        if not category and not model:
            return False
        if "apple" in brand:
            return True
        if any(keyword in category for keyword in _CATEGORY_KEYWORDS):
            return True
        return any(keyword in model for keyword in _MODEL_KEYWORDS)

    def filter_rows(self, rows: Iterable[Mapping[str, object]]) -> list[Mapping[str, object]]:
        """Keep only the rows that classify as Apple products, in input order."""
        return [row for row in rows if self.classify(row)]
