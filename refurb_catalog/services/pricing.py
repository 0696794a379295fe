"""Price estimation for product groups and their condition variants.

The base price is a heuristic starting point, not a pricing authority:
- Per product type list price
- Multiplied by processor tier (newer Apple silicon sells higher, Intel lower)
- Multiplied by storage tier

Variant prices scale the base price by condition grade. Grades A and B also
get a "compare at" price shown as the struck-through reference price.
"""

from refurb_catalog.services.normalizer import capacity_in_gb, is_intel

DEFAULT_BASE_PRICE = 999

# Base prices by product type
TYPE_BASE_PRICES: dict[str, int] = {
    "MacBook Pro": 1999,
    "MacBook Air": 1299,
    "MacBook": 1099,
    "iPad Pro": 999,
    "iPad Air": 599,
    "iPad Mini": 499,
    "iPad": 449,
    "iPhone": 799,
    "iMac": 1299,
    "Mac Studio": 1999,
    "Mac Mini": 599,
    "AirPods": 179,
    "Magic Mouse": 79,
    "Magic Keyboard": 99,
    "Apple Watch": 399,
    "Apple Accessory": 49,
}

# Processor tier multipliers (chip family prefix -> multiplier)
_PROCESSOR_MULTIPLIERS: list[tuple[str, float]] = [
    ("M3", 1.2),
    ("M2", 1.1),
    ("M1", 1.0),
]
_INTEL_MULTIPLIER = 0.85

# Storage tier multipliers (minimum GB -> multiplier), largest first
_STORAGE_MULTIPLIERS: list[tuple[float, float]] = [
    (1024, 1.3),
    (512, 1.15),
]

# Condition grade -> share of the base price
CONDITION_MULTIPLIERS: dict[str, float] = {
    "A": 1.0,
    "B": 0.92,
    "C": 0.82,
    "D": 0.70,
    "P": 0.60,
}

# Condition grade -> compare-at markup over the base price
_COMPARE_AT_MARKUPS: dict[str, float] = {
    "A": 1.20,
    "B": 1.10,
}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def type_base_price(product_type: str) -> int:
    """List price for a product type, DEFAULT_BASE_PRICE if unrecognized."""
    return TYPE_BASE_PRICES.get(product_type, DEFAULT_BASE_PRICE)


def processor_multiplier(processor: str) -> float:
    for prefix, multiplier in _PROCESSOR_MULTIPLIERS:
        if processor.startswith(prefix):
            return multiplier
    if is_intel(processor):
        return _INTEL_MULTIPLIER
    return 1.0


def storage_multiplier(storage: str) -> float:
    size_gb = capacity_in_gb(storage)
    for min_gb, multiplier in _STORAGE_MULTIPLIERS:
        if size_gb >= min_gb:
            return multiplier
    return 1.0


def estimate_base_price(product_type: str, processor: str, storage: str) -> int:
    """Estimate the base (grade A) price of a product group.

    Args:
        product_type: Canonical product type (e.g. "MacBook Pro").
        processor: Canonical processor (e.g. "M3 Pro", "Intel i7").
        storage: Canonical storage (e.g. "512GB", "1TB").

    Returns:
        Price in whole currency units, always positive.
    """
    price = (
        type_base_price(product_type)
        * processor_multiplier(processor)
        * storage_multiplier(storage)
    )
    return max(_round_half_up(price), 1)


def variant_price(base_price: float, condition: str) -> int:
    """Sale price of a condition variant. Unknown grades price as grade A."""
    multiplier = CONDITION_MULTIPLIERS.get(condition, CONDITION_MULTIPLIERS["A"])
    return _round_half_up(base_price * multiplier)


def compare_at_price(base_price: float, condition: str) -> int | None:
    """Reference "compare at" price, only for grades A and B."""
    markup = _COMPARE_AT_MARKUPS.get(condition)
    if markup is None:
        return None
    return _round_half_up(base_price * markup)
