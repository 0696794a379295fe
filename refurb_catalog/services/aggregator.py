"""Product aggregation: inventory rows -> product groups -> condition variants.

Flow (per row, in input order):
1. Resolve raw fields through header aliases
2. Skip rows with neither model nor category
3. Normalize attributes and derive the product type
4. Compute the group key from (type, processor, storage, memory[, display size])
5. Create the group on first sight (title, price, collections)
6. Append the item and bump its (color, condition) variant

Group metadata that is not part of the key (model name, year, category) comes
from the first row seen for that group. A row that fails to process is skipped
with a warning; the rest of the sheet still aggregates.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from refurb_catalog.services.classifier import RowClassifier
from refurb_catalog.services.normalizer import (
    CATEGORY_ALIASES,
    COLOR_ALIASES,
    CONDITION_ALIASES,
    MEMORY_ALIASES,
    MODEL_ALIASES,
    PROCESSOR_ALIASES,
    PRODUCT_TYPES,
    SERIAL_ALIASES,
    STOCK_ALIASES,
    STORAGE_ALIASES,
    UNKNOWN,
    AttributeNormalizer,
    is_apple_silicon,
    is_intel,
)
from refurb_catalog.services.pricing import estimate_base_price

logger = logging.getLogger("uvicorn.error")

FALLBACK_PRODUCT_TYPE = "Apple Product"
SEO_TITLE_SUFFIX = " | Certified Refurbished"

# Category keyword -> product type, used when the model names no known product
_CATEGORY_TYPE_RULES: list[tuple[str, str]] = [
    ("laptop", "MacBook"),
    ("tablet", "iPad"),
    ("phone", "iPhone"),
    ("desktop", "iMac"),
    ("accessor", "Apple Accessory"),
]

# Product type prefix -> umbrella collection
_FAMILY_COLLECTIONS: list[tuple[tuple[str, ...], str]] = [
    (("MacBook",), "Laptops"),
    (("iPad",), "Tablets"),
    (("iPhone",), "Phones"),
    (("iMac", "Mac Studio", "Mac Mini"), "Desktops"),
    (("AirPods", "Magic", "Apple Accessory", "Apple Watch"), "Accessories"),
]


@dataclass
class ProductAttributes:
    """Canonical view of one inventory row."""

    product_type: str
    model: str
    processor: str
    storage: str
    memory: str
    color: str
    condition: str
    display_size: str = ""
    year: str = ""


@dataclass
class ItemRecord:
    """One inventory row assigned to a group."""

    model: str
    color: str
    condition: str
    serial_number: str
    stock: int
    original_row: dict[str, str]


@dataclass
class VariantRecord:
    """Running stock for one (color, condition) pair within a group."""

    color: str
    condition: str
    quantity: int = 0
    serial_numbers: list[str] = field(default_factory=list)


@dataclass
class ProductGroup:
    """A sellable listing: all rows sharing type, processor, storage, memory and size."""

    key: str
    product_type: str
    model: str
    processor: str
    storage: str
    memory: str
    display_size: str
    year: str
    seo_title: str
    base_price: int
    collections: list[str]
    original_category: str = ""
    items: list[ItemRecord] = field(default_factory=list)
    variants: dict[str, VariantRecord] = field(default_factory=dict)


@dataclass
class AggregationResult:
    """Result of one aggregation pass."""

    groups: dict[str, ProductGroup] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)
    total_items: int = 0
    skipped_rows: int = 0
    total_rows: int = 0
    matched_rows: int = 0

    @property
    def group_count(self) -> int:
        return len(self.groups)


# ============================================================
# Derived Fields
# ============================================================


def _key_part(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value)


def compute_group_key(attrs: ProductAttributes) -> str:
    """Compute the stable group key.

    Format: {type}_{processor}_{storage}_{memory}[_{display_size}], each part
    stripped of non-alphanumeric characters.

    Example:
        >>> compute_group_key(ProductAttributes("MacBook Pro", "", "M3 Pro", "512GB", "16GB", "Black", "A", "14-inch"))
        'MacBookPro_M3Pro_512GB_16GB_14inch'
    """
    parts = [attrs.product_type, attrs.processor, attrs.storage, attrs.memory]
    if attrs.display_size:
        parts.append(attrs.display_size)
    return "_".join(_key_part(p) for p in parts)


def compute_variant_key(color: str, condition: str) -> str:
    return f"{color}_{condition}"


def create_seo_title(attrs: ProductAttributes) -> str:
    """Build the listing title, e.g. "MacBook Pro 14-inch (2023) - M3 Pro, 512GB, 16GB | Certified Refurbished"."""
    title = attrs.product_type
    if attrs.display_size:
        title += f" {attrs.display_size}"
    if attrs.year:
        title += f" ({attrs.year})"

    specs = [s for s in (attrs.processor, attrs.storage, attrs.memory) if s and s != UNKNOWN]
    if specs:
        title += " - " + ", ".join(specs)
    return title + SEO_TITLE_SUFFIX


def determine_collections(attrs: ProductAttributes) -> list[str]:
    """Collections (taxonomy tags) a group belongs to, deduplicated in insertion order."""
    collections = [attrs.product_type]

    if is_apple_silicon(attrs.processor):
        collections.append("Apple Silicon")
    elif is_intel(attrs.processor):
        collections.append("Intel")

    if attrs.year:
        collections.append(f"{attrs.year} Models")

    for prefixes, umbrella in _FAMILY_COLLECTIONS:
        if attrs.product_type.startswith(prefixes):
            collections.append(umbrella)
            break

    collections.extend(["Refurbished", "Apple"])
    return list(dict.fromkeys(collections))


def parse_stock(raw: str) -> int:
    """Units represented by a row: the stock cell if numeric, else 1."""
    if not raw:
        return 1
    try:
        return max(int(float(raw)), 0)
    except ValueError:
        return 1


# ============================================================
# Aggregator
# ============================================================


class ProductAggregator:
    """Folds inventory rows into product groups."""

    def __init__(self, normalizer: AttributeNormalizer | None = None):
        self.normalizer = normalizer or AttributeNormalizer()

    def resolve_product_type(self, normalized_model: str, category: str) -> str:
        """Pick the product type: model rules, then category keywords, then raw category."""
        if normalized_model in PRODUCT_TYPES:
            return normalized_model

        category_lower = category.lower()
        for keyword, product_type in _CATEGORY_TYPE_RULES:
            if keyword in category_lower:
                return product_type

        return category or FALLBACK_PRODUCT_TYPE

    def analyze_row(self, row: Mapping[str, object]) -> ProductAttributes | None:
        """Derive canonical attributes for a row, or None if it lacks model and category."""
        n = self.normalizer
        model = n.resolve_field(row, MODEL_ALIASES)
        category = n.resolve_field(row, CATEGORY_ALIASES)
        if not model and not category:
            return None

        normalized_model = n.normalize_model(model)
        product_type = self.resolve_product_type(normalized_model, category)

        return ProductAttributes(
            product_type=product_type,
            model=n.clean_model_name(model) or product_type,
            processor=n.normalize_processor(n.resolve_field(row, PROCESSOR_ALIASES)),
            storage=n.normalize_storage(n.resolve_field(row, STORAGE_ALIASES)),
            memory=n.normalize_memory(n.resolve_field(row, MEMORY_ALIASES)),
            color=n.normalize_color(n.resolve_field(row, COLOR_ALIASES)),
            condition=n.normalize_condition(n.resolve_field(row, CONDITION_ALIASES)),
            display_size=n.extract_display_size(model),
            year=n.extract_year(model),
        )

    def add_row(self, result: AggregationResult, row: Mapping[str, object]) -> bool:
        """Fold a single row into `result`. Returns False if the row was skipped."""
        attrs = self.analyze_row(row)
        if attrs is None:
            return False

        # All cells are read before `result` is touched: a failing row leaves no partial group
        serial = self.normalizer.resolve_field(row, SERIAL_ALIASES)
        stock = parse_stock(self.normalizer.resolve_field(row, STOCK_ALIASES))
        item = ItemRecord(
            model=attrs.model,
            color=attrs.color,
            condition=attrs.condition,
            serial_number=serial,
            stock=stock,
            original_row={str(k): "" if v is None else str(v) for k, v in row.items()},
        )

        key = compute_group_key(attrs)
        group = result.groups.get(key)
        if group is None:
            group = ProductGroup(
                key=key,
                product_type=attrs.product_type,
                model=attrs.model,
                processor=attrs.processor,
                storage=attrs.storage,
                memory=attrs.memory,
                display_size=attrs.display_size,
                year=attrs.year,
                seo_title=create_seo_title(attrs),
                base_price=estimate_base_price(attrs.product_type, attrs.processor, attrs.storage),
                collections=determine_collections(attrs),
                original_category=self.normalizer.resolve_field(row, CATEGORY_ALIASES),
            )
            result.groups[key] = group

        group.items.append(item)

        variant_key = compute_variant_key(attrs.color, attrs.condition)
        variant = group.variants.get(variant_key)
        if variant is None:
            variant = VariantRecord(color=attrs.color, condition=attrs.condition)
            group.variants[variant_key] = variant
        variant.quantity += stock
        if serial:
            variant.serial_numbers.append(serial)

        result.categories[attrs.product_type] = result.categories.get(attrs.product_type, 0) + 1
        result.total_items += 1
        return True

    def aggregate(self, rows: Iterable[Mapping[str, object]]) -> AggregationResult:
        """Group rows into products.

        Args:
            rows: Inventory rows (already classified).

        Returns:
            AggregationResult with groups, per-type counts and item totals.

        Raises:
            TypeError: If `rows` is None.
        """
        if rows is None:
            raise TypeError("rows must be an iterable of inventory rows, not None")

        result = AggregationResult()
        for index, row in enumerate(rows):
            try:
                if not self.add_row(result, row):
                    result.skipped_rows += 1
            except Exception as e:
                result.skipped_rows += 1
                logger.warning(f"Skipping inventory row {index + 1}: {e}")
        return result


def process_rows(
    rows: Iterable[Mapping[str, object]],
    classifier: RowClassifier | None = None,
    aggregator: ProductAggregator | None = None,
) -> AggregationResult:
    """Full core pipeline: classify rows, then aggregate the Apple ones.

    Args:
        rows: Raw inventory rows from the tabular reader.
        classifier: Optional classifier (default rules if omitted).
        aggregator: Optional aggregator (default rules if omitted).

    Returns:
        AggregationResult; zero groups when nothing qualified.
    """
    if rows is None:
        raise TypeError("rows must be an iterable of inventory rows, not None")

    classifier = classifier or RowClassifier()
    aggregator = aggregator or ProductAggregator(classifier.normalizer)

    all_rows = list(rows)
    matched = classifier.filter_rows(all_rows)
    logger.info(f"Classified {len(matched)} of {len(all_rows)} rows as Apple products")

    result = aggregator.aggregate(matched)
    result.total_rows = len(all_rows)
    result.matched_rows = len(matched)
    logger.info(
        f"Aggregated {result.total_items} items into {result.group_count} product groups "
        f"({result.skipped_rows} skipped)"
    )
    return result
