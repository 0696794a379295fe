"""Attribute normalization for inventory spreadsheet rows.

Spreadsheets from different suppliers describe the same device in different
words and under different headers. Everything here turns that noise into a
small set of canonical tokens, so that two rows describing the "same" product
always produce the same group key.

Rules are ordered tables evaluated first-match-wins (more specific first).
Every function is total: missing input maps to a default, unparseable input
passes through, nothing raises.
"""

import re
from collections.abc import Mapping, Sequence

UNKNOWN = "Unknown"
DEFAULT_COLOR = "Default"
DEFAULT_CONDITION = "A"

_PROCESSOR_MAX_LEN = 20


# ============================================================
# Field Aliases
# ============================================================

BRAND_ALIASES = ("Brand", "Manufacturer", "Make")
CATEGORY_ALIASES = ("Sub-Category", "Category", "Type", "Product Type")
MODEL_ALIASES = ("Model", "Product", "Name", "Title")
PROCESSOR_ALIASES = ("Processor", "CPU", "Chip")
STORAGE_ALIASES = ("Storage", "SSD", "Capacity", "Hard Drive")
MEMORY_ALIASES = ("Memory", "RAM")
COLOR_ALIASES = ("Color", "Colour")
CONDITION_ALIASES = ("Condition", "Grade")
SERIAL_ALIASES = ("Serial Number", "Serial", "SN", "IMEI")
STOCK_ALIASES = ("Stock", "Quantity", "Qty", "In Stock")


def _header_token(header: str) -> str:
    return re.sub(r"\s+", " ", str(header)).strip().lower()


def resolve_field(row: Mapping[str, object], aliases: Sequence[str]) -> str:
    """Return the first non-empty value among `aliases`, trimmed.

    Exact header matches are tried first; headers differing only in case or
    surrounding whitespace are accepted as a fallback.

    Args:
        row: Inventory row keyed by header text.
        aliases: Acceptable header names, in priority order.

    Returns:
        Trimmed cell value, or "" if no alias holds a value.
    """
    for alias in aliases:
        value = row.get(alias)
        if value is not None and str(value).strip():
            return str(value).strip()

    loose = {_header_token(k): v for k, v in row.items()}
    for alias in aliases:
        value = loose.get(_header_token(alias))
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


# ============================================================
# Model / Product Type
# ============================================================

# Order matters - more specific first
_MODEL_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"macbook\s*pro", re.IGNORECASE), "MacBook Pro"),
    (re.compile(r"macbook\s*air", re.IGNORECASE), "MacBook Air"),
    (re.compile(r"macbook", re.IGNORECASE), "MacBook"),
    (re.compile(r"ipad\s*pro", re.IGNORECASE), "iPad Pro"),
    (re.compile(r"ipad\s*air", re.IGNORECASE), "iPad Air"),
    (re.compile(r"ipad\s*mini", re.IGNORECASE), "iPad Mini"),
    (re.compile(r"ipad", re.IGNORECASE), "iPad"),
    (re.compile(r"iphone", re.IGNORECASE), "iPhone"),
    (re.compile(r"imac", re.IGNORECASE), "iMac"),
    (re.compile(r"mac\s*studio", re.IGNORECASE), "Mac Studio"),
    (re.compile(r"mac\s*mini", re.IGNORECASE), "Mac Mini"),
    (re.compile(r"airpod", re.IGNORECASE), "AirPods"),
    (re.compile(r"magic\s*mouse", re.IGNORECASE), "Magic Mouse"),
    (re.compile(r"magic.*(keyboard|kybd)", re.IGNORECASE), "Magic Keyboard"),
    (re.compile(r"apple\s*watch|\bwatch\s*(series|ultra|se)\b", re.IGNORECASE), "Apple Watch"),
    (re.compile(r"apple\s*pencil|magic\s*trackpad|magsafe", re.IGNORECASE), "Apple Accessory"),
]

PRODUCT_TYPES: frozenset[str] = frozenset(label for _, label in _MODEL_RULES)


def normalize_model(raw: str | None) -> str:
    """Map a model description to a product type label.

    Returns:
        Product type (e.g. "MacBook Pro"), "Unknown" when `raw` is empty,
        or the trimmed input unchanged when no rule matches.
    """
    if not raw or not str(raw).strip():
        return UNKNOWN
    text = str(raw).strip()
    for pattern, label in _MODEL_RULES:
        if pattern.search(text):
            return label
    return text


def clean_model_name(raw: str | None) -> str:
    """Collapse whitespace in a model name."""
    if not raw:
        return ""
    return re.sub(r"\s+", " ", str(raw)).strip()


# ============================================================
# Processor
# ============================================================

_PROCESSOR_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bm3\s*ultra\b", re.IGNORECASE), "M3 Ultra"),
    (re.compile(r"\bm3\s*max\b", re.IGNORECASE), "M3 Max"),
    (re.compile(r"\bm3\s*pro\b", re.IGNORECASE), "M3 Pro"),
    (re.compile(r"\bm3\b", re.IGNORECASE), "M3"),
    (re.compile(r"\bm2\s*ultra\b", re.IGNORECASE), "M2 Ultra"),
    (re.compile(r"\bm2\s*max\b", re.IGNORECASE), "M2 Max"),
    (re.compile(r"\bm2\s*pro\b", re.IGNORECASE), "M2 Pro"),
    (re.compile(r"\bm2\b", re.IGNORECASE), "M2"),
    (re.compile(r"\bm1\s*ultra\b", re.IGNORECASE), "M1 Ultra"),
    (re.compile(r"\bm1\s*max\b", re.IGNORECASE), "M1 Max"),
    (re.compile(r"\bm1\s*pro\b", re.IGNORECASE), "M1 Pro"),
    (re.compile(r"\bm1\b", re.IGNORECASE), "M1"),
    (re.compile(r"\bi9(?!\d)", re.IGNORECASE), "Intel i9"),
    (re.compile(r"\bi7(?!\d)", re.IGNORECASE), "Intel i7"),
    (re.compile(r"\bi5(?!\d)", re.IGNORECASE), "Intel i5"),
    (re.compile(r"\bi3(?!\d)", re.IGNORECASE), "Intel i3"),
    (re.compile(r"intel", re.IGNORECASE), "Intel"),
]


def normalize_processor(raw: str | None) -> str:
    """Canonicalize a processor description (e.g. "Apple M3 Pro 11-core" -> "M3 Pro").

    Unmatched input is truncated to 20 characters to bound group key size.
    """
    if not raw or not str(raw).strip():
        return UNKNOWN
    text = str(raw).strip()
    for pattern, label in _PROCESSOR_RULES:
        if pattern.search(text):
            return label
    return text[:_PROCESSOR_MAX_LEN].strip()


def is_apple_silicon(processor: str) -> bool:
    return bool(re.match(r"M[1-3]\b", processor))


def is_intel(processor: str) -> bool:
    return processor.startswith("Intel")


# ============================================================
# Storage / Memory
# ============================================================

_CAPACITY_WITH_UNIT = re.compile(r"(\d+(?:\.\d+)?)\s*(gb|tb)\b", re.IGNORECASE)
_BARE_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*$")


def _format_amount(amount: float) -> str:
    if amount == int(amount):
        return str(int(amount))
    return f"{amount:g}"


def normalize_storage(raw: str | None) -> str:
    """Canonicalize storage capacity (e.g. "512 gb SSD" -> "512GB", "1000GB" -> "1TB").

    A bare number with fewer than four integer digits is read as GB; longer
    numbers are read as GB and expressed in TB.
    """
    if not raw or not str(raw).strip():
        return UNKNOWN
    text = str(raw).strip()

    match = _CAPACITY_WITH_UNIT.search(text)
    if match:
        amount = float(match.group(1))
        unit = match.group(2).upper()
    else:
        bare = _BARE_NUMBER.match(text)
        if not bare:
            return text
        amount = float(bare.group(1))
        unit = "GB" if len(str(int(amount))) < 4 else "TB"
        if unit == "TB":
            amount = float(round(amount / 1000))

    # 1000GB / 1024GB / 2048GB are sold as terabytes
    if unit == "GB" and amount >= 1000:
        amount = float(round(amount / 1000))
        unit = "TB"
    return f"{_format_amount(amount)}{unit}"


def normalize_memory(raw: str | None) -> str:
    """Canonicalize memory size (e.g. "16 GB DDR4" -> "16GB"). Bare numbers are GB."""
    if not raw or not str(raw).strip():
        return UNKNOWN
    text = str(raw).strip()

    match = _CAPACITY_WITH_UNIT.search(text)
    if match:
        return f"{_format_amount(float(match.group(1)))}{match.group(2).upper()}"
    bare = _BARE_NUMBER.match(text)
    if bare:
        return f"{_format_amount(float(bare.group(1)))}GB"
    return text


def capacity_in_gb(value: str) -> float:
    """Size in GB of a canonical capacity token, 0 if it isn't one."""
    match = re.fullmatch(r"(\d+(?:\.\d+)?)(GB|TB)", value or "")
    if not match:
        return 0.0
    amount = float(match.group(1))
    return amount * 1024 if match.group(2) == "TB" else amount


# ============================================================
# Color
# ============================================================

_COLOR_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"space\s*gr[ae]y", re.IGNORECASE), "Space Gray"),
    (re.compile(r"space\s*black", re.IGNORECASE), "Space Black"),
    (re.compile(r"rose\s*gold", re.IGNORECASE), "Rose Gold"),
    (re.compile(r"midnight", re.IGNORECASE), "Midnight"),
    (re.compile(r"starlight", re.IGNORECASE), "Starlight"),
    (re.compile(r"graphite", re.IGNORECASE), "Graphite"),
    (re.compile(r"sierra\s*blue", re.IGNORECASE), "Sierra Blue"),
    (re.compile(r"natural\s*titanium", re.IGNORECASE), "Natural Titanium"),
    (re.compile(r"silver", re.IGNORECASE), "Silver"),
    (re.compile(r"gold", re.IGNORECASE), "Gold"),
    (re.compile(r"blue", re.IGNORECASE), "Blue"),
    (re.compile(r"purple", re.IGNORECASE), "Purple"),
    (re.compile(r"pink", re.IGNORECASE), "Pink"),
    (re.compile(r"green", re.IGNORECASE), "Green"),
    (re.compile(r"yellow", re.IGNORECASE), "Yellow"),
    (re.compile(r"red", re.IGNORECASE), "Red"),
    (re.compile(r"black", re.IGNORECASE), "Black"),
    (re.compile(r"white", re.IGNORECASE), "White"),
    (re.compile(r"\bgr[ae]y\b", re.IGNORECASE), "Gray"),
]


def normalize_color(raw: str | None) -> str:
    """Map a marketing color name to its canonical form (e.g. "space grey" -> "Space Gray")."""
    if not raw or not str(raw).strip():
        return DEFAULT_COLOR
    text = str(raw).strip()
    for pattern, label in _COLOR_RULES:
        if pattern.search(text):
            return label
    return text


# ============================================================
# Condition
# ============================================================

CONDITION_GRADES = ("A", "B", "C", "D", "P")

_CONDITION_MAP = {
    "A": "A",
    "EXCELLENT": "A",
    "B": "B",
    "VERY GOOD": "B",
    "C": "C",
    "GOOD": "C",
    "D": "D",
    "FAIR": "D",
    "POOR": "D",
    "P": "P",
}


def normalize_condition(raw: str | None) -> str:
    """Map a condition description to a grade in {A, B, C, D, P}.

    Unrecognized or missing conditions map to "A".
    """
    # NOTE: unknown -> "A" marks unrated stock as best grade; kept until
    # merchandising decides on a separate "unrated" grade.
    if not raw:
        return DEFAULT_CONDITION
    text = re.sub(r"\s+", " ", str(raw)).strip().upper()
    text = re.sub(r"^GRADE\s*", "", text)
    return _CONDITION_MAP.get(text, DEFAULT_CONDITION)


# ============================================================
# Display Size / Year
# ============================================================

_DISPLAY_SIZE_PATTERN = re.compile(
    r"(\d{1,2}(?:\.\d)?)(?:\s*-?\s*inch(?:es)?|in\b|\s*in(?:\.|$)|\s*(?:\"|”|''))",
    re.IGNORECASE,
)
_YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")


def extract_display_size(model: str | None) -> str:
    """Extract a display size token (e.g. "MacBook Pro 14-inch" -> "14-inch")."""
    if not model:
        return ""
    match = _DISPLAY_SIZE_PATTERN.search(str(model))
    if not match:
        return ""
    return f"{match.group(1)}-inch"


def extract_year(model: str | None) -> str:
    """Extract a model year (e.g. "iMac 24-inch 2021" -> "2021")."""
    if not model:
        return ""
    match = _YEAR_PATTERN.search(str(model))
    return match.group(1) if match else ""


class AttributeNormalizer:
    """Stateless bundle of the normalization functions.

    Passed to the classifier and aggregator so callers can substitute
    their own rules.
    """

    resolve_field = staticmethod(resolve_field)
    normalize_model = staticmethod(normalize_model)
    clean_model_name = staticmethod(clean_model_name)
    normalize_processor = staticmethod(normalize_processor)
    normalize_storage = staticmethod(normalize_storage)
    normalize_memory = staticmethod(normalize_memory)
    normalize_color = staticmethod(normalize_color)
    normalize_condition = staticmethod(normalize_condition)
    extract_display_size = staticmethod(extract_display_size)
    extract_year = staticmethod(extract_year)
