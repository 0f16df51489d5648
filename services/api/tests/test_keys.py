import pytest

from app.services.keys import (
    KIND_ASIN,
    KIND_BBY,
    KIND_PCI,
    KIND_RAW,
    KIND_TCIN,
    KIND_UPC,
    KIND_WAL,
    ParsedKey,
    canonical_link,
    classify_shape,
    norm_sku,
    norm_store,
    norm_upc,
    offer_dedup_key,
    parse_key,
    selector_key,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("asin:B00TEST1234", ParsedKey(KIND_ASIN, "B00TEST1234")),
        ("ASIN: b000123456", ParsedKey(KIND_ASIN, "B000123456")),
        ("upc:0-84980-30981-35", ParsedKey(KIND_UPC, "0849803098135")),
        ("pci:ab123456", ParsedKey(KIND_PCI, "AB123456")),
        ("pc_code:AB123456", ParsedKey(KIND_PCI, "AB123456")),
        ("pccode:AB123456", ParsedKey(KIND_PCI, "AB123456")),
        ("bby:6525421", ParsedKey(KIND_BBY, "6525421")),
        ("wal:123456789", ParsedKey(KIND_WAL, "123456789")),
        ("tcin:12345678", ParsedKey(KIND_TCIN, "12345678")),
    ],
)
def test_parse_prefixed_keys(raw: str, expected: ParsedKey):
    assert parse_key(raw) == expected


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.amazon.com/Some-Headphones/dp/B000123456?th=1", ParsedKey(KIND_ASIN, "B000123456")),
        ("https://www.amazon.com/gp/product/B000123456/", ParsedKey(KIND_ASIN, "B000123456")),
        ("https://www.target.com/p/headphones/-/A-12345678#lnk=sametab", ParsedKey(KIND_TCIN, "12345678")),
        ("https://www.bestbuy.com/site/sony-headphones/6505727.p?skuId=6505727", ParsedKey(KIND_BBY, "6505727")),
        ("https://www.walmart.com/ip/Sony-Headphones/123456789", ParsedKey(KIND_WAL, "123456789")),
    ],
)
def test_parse_retailer_urls(url: str, expected: ParsedKey):
    assert parse_key(url) == expected


def test_bare_shapes_follow_priority_order():
    assert classify_shape("B000123456") == ParsedKey(KIND_ASIN, "B000123456")
    assert classify_shape("ab123456") == ParsedKey(KIND_PCI, "AB123456")
    assert classify_shape("849803098135") == ParsedKey(KIND_UPC, "849803098135")
    assert classify_shape("0849803098135") == ParsedKey(KIND_UPC, "0849803098135")
    assert classify_shape("8 49803 09813 5") == ParsedKey(KIND_UPC, "849803098135")
    assert classify_shape("12345678") == ParsedKey(KIND_TCIN, "12345678")
    assert classify_shape("6525421") == ParsedKey(KIND_BBY, "6525421")
    assert classify_shape("123456789") == ParsedKey(KIND_WAL, "123456789")
    assert classify_shape("hello") is None


def test_unknown_prefix_and_empty_value_fall_through():
    assert parse_key("foo:bar") == ParsedKey(KIND_RAW, "foo:bar")
    assert parse_key("asin:") == ParsedKey(KIND_RAW, "asin:")
    assert parse_key("  849803098135 ").kind == KIND_UPC


def test_parse_never_raises_on_garbage():
    assert parse_key(None) == ParsedKey(KIND_RAW, "")
    assert parse_key("   ").kind == KIND_RAW
    assert parse_key("not a product").value == "not a product"


@pytest.mark.parametrize(
    "raw",
    [
        "asin:B00TEST1234",
        "upc:0849803098135",
        "pc:ab123456",
        "https://www.walmart.com/ip/123456789",
        "6525421",
        "something unrecognizable",
    ],
)
def test_canonical_reparses_to_same_key(raw: str):
    key = parse_key(raw)
    assert parse_key(key.canonical) == key


def test_norm_upc_strips_separators_and_padding():
    assert norm_upc("849803098135") == "849803098135"
    assert norm_upc("0849803098135") == "849803098135"
    assert norm_upc("00849803098135") == "849803098135"
    assert norm_upc(" 0-84980-30981-35 ") == "849803098135"
    # A real 13-digit EAN is not padding, but its GTIN-14 form is
    assert norm_upc("4006381333931") == "4006381333931"
    assert norm_upc("04006381333931") == "4006381333931"
    assert norm_upc("0012345678905") == "012345678905"
    assert norm_upc("n/a") is None
    assert norm_upc(None) is None


def test_norm_sku_and_store():
    assert norm_sku(" b00-test 1234 ") == "B00TEST1234"
    assert norm_sku("--") is None
    assert norm_store(" Best Buy ") == "bestbuy"
    assert norm_store("AMAZON") == "amazon"
    assert offer_dedup_key("Amazon ", "b00test1234") == offer_dedup_key("amazon", "B00TEST1234")


def test_upc_selector_key_reparses_to_itself():
    for stored in ("0-84980-30981-35", "00849803098135", "849803098135"):
        key = selector_key(None, norm_upc(stored))
        assert key == "upc:849803098135"
        assert parse_key(key).canonical == key


def test_selector_key_prefers_pci():
    assert selector_key("AB123456", "849803098135") == "pci:AB123456"
    assert selector_key(None, "849803098135") == "upc:849803098135"
    assert selector_key("  ", None) is None


def test_canonical_link_by_store():
    assert canonical_link("amazon", "b000123456") == "https://www.amazon.com/dp/B000123456"
    assert canonical_link("Best Buy", "6505727") == "https://www.bestbuy.com/site/6505727.p"
    assert canonical_link("walmart", "123456789") == "https://www.walmart.com/ip/123456789"
    assert canonical_link("target", "12345678") == "https://www.target.com/p/-/A-12345678"
    assert canonical_link("ebay", "12345678") is None
    assert canonical_link("amazon", "") is None
