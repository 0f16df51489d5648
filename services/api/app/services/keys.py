"""Key parsing and code normalization.

Turns whatever a user pastes (a bare code, a `prefix:value` key or a retailer URL)
into a typed key, and provides the pure normalizers used everywhere codes are
compared:

- norm_upc: bare digits, with barcode padding zeros removed (13/14 -> 12 digits)
- norm_sku: uppercase alphanumeric
- norm_pci: trimmed, uppercase
- norm_store: trimmed, lowercase, "best buy" -> "bestbuy"

The same UPC/SKU transforms are installed as SQL functions (`norm_upc`, `norm_sku`)
so queries and in-process comparisons agree.
"""

import re
from dataclasses import dataclass

KIND_ASIN = "asin"
KIND_UPC = "upc"
KIND_PCI = "pci"
KIND_BBY = "bby"
KIND_WAL = "wal"
KIND_TCIN = "tcin"
KIND_RAW = "raw"

# Accepted prefixes -> canonical kind
PREFIX_ALIASES: dict[str, str] = {
    "asin": KIND_ASIN,
    "upc": KIND_UPC,
    "pci": KIND_PCI,
    "pc": KIND_PCI,
    "pc_code": KIND_PCI,
    "pccode": KIND_PCI,
    "bby": KIND_BBY,
    "bestbuy": KIND_BBY,
    "sku": KIND_BBY,
    "wal": KIND_WAL,
    "walmart": KIND_WAL,
    "tcin": KIND_TCIN,
    "target": KIND_TCIN,
}

# Store-SKU kinds -> canonical store name in listings
KIND_STORES: dict[str, str] = {
    KIND_ASIN: "amazon",
    KIND_BBY: "bestbuy",
    KIND_WAL: "walmart",
    KIND_TCIN: "target",
}

_STORE_ALIASES = {
    "best buy": "bestbuy",
}

# Retailer URL shapes, checked in order (first match wins)
_URL_PATTERNS: list[tuple[str, list[re.Pattern[str]]]] = [
    (
        KIND_ASIN,
        [
            re.compile(r"/dp/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
            re.compile(r"/gp/product/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
            re.compile(r"/gp/aw/d/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
        ],
    ),
    (
        KIND_TCIN,
        [
            re.compile(r"target\.com/.*?/A-(\d{8})(?:\D|$)", re.IGNORECASE),
            re.compile(r"target\.com/.*?[?&]preselect=(\d{8})(?:\D|$)", re.IGNORECASE),
        ],
    ),
    (
        KIND_BBY,
        [
            re.compile(r"bestbuy\.com/site/(?:[^?#]*/)?(\d{6,8})\.p", re.IGNORECASE),
            re.compile(r"bestbuy\.com/.*?[?&]skuId=(\d{6,8})(?:\D|$)", re.IGNORECASE),
        ],
    ),
    (
        KIND_WAL,
        [
            re.compile(r"walmart\.com/ip/(?:[^/?#]+/)?(\d{6,12})(?:[/?#]|$)", re.IGNORECASE),
        ],
    ),
]

_PREFIX_RE = re.compile(r"^([A-Za-z_]+)\s*:\s*(.*)$", re.DOTALL)
_ASIN_RE = re.compile(r"^(?=.*\d)[A-Za-z0-9]{10}$")
_PCI_RE = re.compile(r"^(?=.*\d)[A-Za-z][A-Za-z0-9_-]{7}$")
_UPC_LIKE_RE = re.compile(r"^[\d\s-]+$")
_UPC_PADDED_RE = re.compile(r"^0{1,2}(\d{12,13})$")


@dataclass(frozen=True)
class ParsedKey:
    """A typed lookup key."""

    kind: str
    value: str

    @property
    def canonical(self) -> str:
        """Serialized form that reparses to the same key."""
        if self.kind == KIND_RAW:
            return self.value
        return f"{self.kind}:{self.value}"


def norm_upc(value: str | None) -> str | None:
    """Normalize a barcode to bare digits.

    GTIN padding zeros are dropped while the code is longer than 12 digits: a
    13-digit code with a leading zero is the UPC-A it encodes, a 14-digit code is
    the EAN-13 (one zero) or UPC-A (two zeros) it encodes.

    Example:
        >>> norm_upc("0-84980-30981-35")
        '849803098135'
    """
    if value is None:
        return None
    digits = re.sub(r"\D", "", str(value))
    if not digits:
        return None
    padded = _UPC_PADDED_RE.match(digits)
    if padded:
        return padded.group(1)
    return digits


def norm_sku(value: str | None) -> str | None:
    """Normalize a store SKU / code to uppercase alphanumeric."""
    if value is None:
        return None
    result = re.sub(r"[^0-9A-Za-z]", "", str(value)).upper()
    return result or None


def norm_pci(value: str | None) -> str | None:
    if value is None:
        return None
    result = str(value).strip().upper()
    return result or None


def norm_store(value: str | None) -> str:
    key = str(value or "").strip().lower()
    return _STORE_ALIASES.get(key, key)


def store_aliases(store: str) -> list[str]:
    """All lowercase spellings of a canonical store name seen in listings."""
    canonical = norm_store(store)
    return [canonical] + [raw for raw, target in _STORE_ALIASES.items() if target == canonical]


def offer_dedup_key(store: str | None, sku: str | None) -> str:
    """Uniqueness key for an offer: normalized store + normalized SKU."""
    return f"{norm_store(store)}:{norm_sku(sku) or ''}"


def selector_key(pci: str | None, upc: str | None) -> str | None:
    """Stable selector for links. PCI is always preferred over UPC."""
    pci = (pci or "").strip()
    if pci:
        return f"{KIND_PCI}:{pci}"
    upc = (upc or "").strip()
    if upc:
        return f"{KIND_UPC}:{upc}"
    return None


def classify_shape(value: str) -> ParsedKey | None:
    """Classify a bare value by its shape.

    Rules in fixed priority order: ASIN, PCI, UPC, TCIN, Best Buy SKU, Walmart item id.

    Returns:
        ParsedKey, or None if no shape matches.
    """
    v = value.strip()
    if not v:
        return None

    if _ASIN_RE.match(v):
        return ParsedKey(KIND_ASIN, v.upper())
    if _PCI_RE.match(v):
        return ParsedKey(KIND_PCI, v.upper())

    if _UPC_LIKE_RE.match(v):
        digits = re.sub(r"\D", "", v)
        if 12 <= len(digits) <= 14:
            return ParsedKey(KIND_UPC, digits)

    if v.isdigit():
        if len(v) == 8:
            return ParsedKey(KIND_TCIN, v)
        if 6 <= len(v) <= 8:
            return ParsedKey(KIND_BBY, v)
        if 6 <= len(v) <= 12:
            return ParsedKey(KIND_WAL, v)

    return None


def _normalize_value(kind: str, value: str) -> str:
    if kind in (KIND_ASIN, KIND_PCI):
        return value.strip().upper()
    if kind == KIND_UPC:
        return re.sub(r"\D", "", value)
    return value.strip()


def _parse_prefixed(text: str) -> ParsedKey | None:
    match = _PREFIX_RE.match(text)
    if not match:
        return None
    kind = PREFIX_ALIASES.get(match.group(1).lower())
    if kind is None:
        return None
    value = _normalize_value(kind, match.group(2))
    if not value:
        return None
    return ParsedKey(kind, value)


def _parse_url(text: str) -> ParsedKey | None:
    for kind, patterns in _URL_PATTERNS:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return ParsedKey(kind, _normalize_value(kind, match.group(1)))
    return None


def parse_key(raw: str | None) -> ParsedKey:
    """Parse an arbitrary user input into a typed key.

    Order: explicit prefix, retailer URL, bare shape, raw. Never raises.

    Example:
        >>> parse_key("https://www.amazon.com/Some-Thing/dp/B000123456?th=1")
        ParsedKey(kind='asin', value='B000123456')
    """
    text = (raw or "").strip()

    return (
        _parse_prefixed(text)
        or _parse_url(text)
        or classify_shape(text)
        or ParsedKey(KIND_RAW, text)
    )


def canonical_link(store: str | None, sku: str | None) -> str | None:
    """Build a retailer product link from store + SKU when the shape is known."""
    st = norm_store(store)
    s = (sku or "").strip()
    if not s:
        return None
    if st == "amazon" and re.fullmatch(r"[A-Za-z0-9]{10}", s):
        return f"https://www.amazon.com/dp/{s.upper()}"
    if st == "bestbuy" and re.fullmatch(r"\d{6,8}", s):
        return f"https://www.bestbuy.com/site/{s}.p"
    if st == "walmart" and re.fullmatch(r"\d{6,12}", s):
        return f"https://www.walmart.com/ip/{s}"
    if st == "target" and re.fullmatch(r"\d{8}", s):
        return f"https://www.target.com/p/-/A-{s}"
    return None
