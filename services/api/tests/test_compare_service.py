"""End-to-end compare pipeline against SQLite (norm_upc/norm_sku registered per connection)."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.models import CatalogRecord, Listing, PriceHistorySample
from app.services import compare as compare_service
from app.services.compare import DataStoreUnavailable, NotResolvable, compare_key
from app.services.keys import parse_key
from app.settings import get_settings
from app.stores.postgres import close_db


def ago(**kwargs) -> datetime:
    return datetime.now(timezone.utc) - timedelta(**kwargs)


@pytest.fixture
async def catalog(add_rows):
    await add_rows(
        CatalogRecord(
            model_number="WH1000XM5",
            model_name="Sony WH-1000XM5",
            brand="Sony",
            category="Headphones",
            pci="AB123456",
            upc="849803098135",
            version="2022",
            color="Black",
        ),
        CatalogRecord(model_number="wh1000xm5 ", model_name="Sony WH-1000XM5", pci="AB654321", version="2022", color="Silver"),
        CatalogRecord(model_number="WH1000XM5", model_name="Sony WH-1000XM5", color="Blue"),
        Listing(
            store="amazon",
            store_sku="B00TEST1234",
            pci="AB123456",
            title="Sony WH-1000XM5 Wireless Headphones",
            current_price_cents=32999,
            effective_price_cents=29999,
            coupon_text="Save $30 with coupon",
            current_price_observed_at=ago(hours=2),
        ),
        Listing(
            store="Amazon",
            store_sku="B00TEST5678",
            pci="ab123456",
            current_price_cents=31999,
            current_price_observed_at=ago(hours=1),
        ),
        Listing(
            store="Best Buy",
            store_sku="6505727",
            upc="849803098135",
            current_price_cents=34999,
            current_price_observed_at=ago(hours=5),
        ),
        Listing(
            store="walmart",
            store_sku="123456789",
            pci="AB123456",
            status="Hidden ",
            current_price_cents=19999,
            current_price_observed_at=ago(minutes=5),
        ),
        Listing(store="amazon", store_sku="B0HIDDEN01", pci="ZZ999999", status="hidden"),
        Listing(
            store="target",
            store_sku="87654321",
            title="Mystery gadget",
            current_price_cents=1299,
            coupon_observed_at=ago(days=1),
        ),
        PriceHistorySample(store="amazon", store_sku="B00TEST1234", pci="AB123456", price_cents=32999, observed_at=ago(days=1)),
        PriceHistorySample(
            store="amazon",
            store_sku="B00TEST1234",
            pci="AB123456",
            price_cents=32999,
            effective_price_cents=27999,
            observed_at=ago(days=2),
        ),
        PriceHistorySample(store="bestbuy", store_sku="6505727", upc="0849803098135", price_cents=34999, observed_at=ago(days=40)),
        PriceHistorySample(store="amazon", store_sku="B00TEST1234", pci="AB123456", price_cents=9999, observed_at=ago(days=400)),
    )


@pytest.mark.asyncio
async def test_asin_resolves_through_seed_to_pci(catalog):
    response = await compare_key("asin:B00TEST1234")

    assert response.key.kind == "asin"
    assert response.canonical_key == "pci:AB123456"
    assert response.identity.pci == "AB123456"
    assert response.identity.upc == "849803098135"
    assert response.identity.asin_input_echo == "B00TEST1234"
    assert response.identity.model_number == "WH1000XM5"
    assert response.identity.listing_title == "Sony WH-1000XM5 Wireless Headphones"
    assert response.identity.partial is False
    assert response.unavailable == []


@pytest.mark.asyncio
async def test_padded_barcode_matches_catalog_upc(catalog):
    response = await compare_key("0849803098135")

    assert response.key.kind == "upc"
    assert response.identity.model_number == "WH1000XM5"
    assert response.canonical_key == "pci:AB123456"


@pytest.mark.asyncio
async def test_pci_and_upc_resolve_to_same_product(catalog):
    by_pci = await compare_key("pci:ab123456")
    by_upc = await compare_key("upc:849803098135")

    assert by_pci.identity.model_number == by_upc.identity.model_number == "WH1000XM5"
    assert by_pci.canonical_key == by_upc.canonical_key


@pytest.mark.asyncio
async def test_variants_skip_codeless_rows_and_mark_selection(catalog):
    response = await compare_key("pci:AB654321")

    assert [v.key for v in response.variants] == ["pci:AB123456", "pci:AB654321"]
    assert [v.label for v in response.variants] == ["2022 / Black", "2022 / Silver"]
    assert [v.selected for v in response.variants] == [False, True]


@pytest.mark.asyncio
async def test_offers_are_deduped_capped_and_exclude_hidden(catalog):
    response = await compare_key("asin:B00TEST1234")

    assert [(o.store, o.store_sku) for o in response.offers] == [
        ("amazon", "B00TEST5678"),
        ("amazon", "B00TEST1234"),
        ("bestbuy", "6505727"),
    ]
    seed_offer = response.offers[1]
    assert seed_offer.effective_price_cents == 29999
    assert response.offers[2].url == "https://www.bestbuy.com/site/6505727.p"
    assert all(o.store != "walmart" for o in response.offers)


@pytest.mark.asyncio
async def test_observations_newest_first_without_hidden(catalog):
    response = await compare_key("pci:AB123456")

    assert [(o.store, o.sku) for o in response.observed] == [
        ("amazon", "B00TEST5678"),
        ("amazon", "B00TEST1234"),
        ("bestbuy", "6505727"),
    ]
    times = [o.time for o in response.observed]
    assert times == sorted(times, reverse=True)


@pytest.mark.asyncio
async def test_price_stats_from_history(catalog):
    response = await compare_key("pci:AB123456", lookback_days=90)
    stats = response.stats

    # effective price wins over list price; 400-day-old sample is out of range
    assert [d.price_cents for d in stats.daily_lows] == [34999, 27999, 32999]
    assert stats.low_30_cents == 27999
    assert stats.lookback_days == 90
    assert 27999 <= stats.typical_low_90 <= 32999


@pytest.mark.asyncio
async def test_codeless_seed_gives_partial_identity(catalog):
    response = await compare_key("https://www.target.com/p/mystery/-/A-87654321")

    assert response.key.kind == "tcin"
    assert response.identity.partial is True
    assert response.identity.pci is None
    assert response.identity.listing_title == "Mystery gadget"
    assert response.canonical_key is None
    assert response.variants == []
    assert [(o.store, o.store_sku) for o in response.offers] == [("target", "87654321")]
    assert len(response.observed) == 1
    assert response.stats.daily_lows == []
    assert response.stats.typical_low_90 is None


@pytest.mark.asyncio
async def test_unknown_key_is_not_resolvable(catalog):
    with pytest.raises(NotResolvable) as exc_info:
        await compare_key("asin:B000000000")

    assert exc_info.value.key.canonical == "asin:B000000000"


@pytest.mark.asyncio
async def test_hidden_listing_is_never_a_seed(catalog):
    with pytest.raises(NotResolvable):
        await compare_key("asin:B0HIDDEN01")


@pytest.mark.asyncio
async def test_unclassifiable_input_is_not_resolvable(catalog):
    with pytest.raises(NotResolvable) as exc_info:
        await compare_key("definitely not a product")

    assert exc_info.value.key.kind == "raw"


@pytest.mark.asyncio
async def test_failed_component_is_reported_unavailable(catalog, monkeypatch: pytest.MonkeyPatch):
    async def broken_offers(*args, **kwargs):
        raise OperationalError("select", {}, Exception("connection reset"))

    monkeypatch.setattr(compare_service, "aggregate_offers", broken_offers)

    response = await compare_key("pci:AB123456")

    assert response.unavailable == ["offers"]
    assert response.offers is None
    assert response.variants
    assert response.observed
    assert response.stats is not None


@pytest.mark.asyncio
async def test_slow_component_times_out(catalog, monkeypatch: pytest.MonkeyPatch):
    async def slow_stats(*args, **kwargs):
        await asyncio.sleep(5)

    monkeypatch.setattr(compare_service, "price_stats", slow_stats)
    monkeypatch.setattr(get_settings(), "compare_component_timeout_s", 0.5)

    response = await compare_key("pci:AB123456")

    assert response.unavailable == ["stats"]
    assert response.stats is None
    assert response.offers


@pytest.mark.asyncio
async def test_every_component_failing_is_datastore_unavailable(catalog, monkeypatch: pytest.MonkeyPatch):
    async def broken(*args, **kwargs):
        raise OperationalError("select", {}, Exception("connection reset"))

    for name in ("expand_variants", "aggregate_offers", "build_observations", "price_stats"):
        monkeypatch.setattr(compare_service, name, broken)

    with pytest.raises(DataStoreUnavailable):
        await compare_key("pci:AB123456")


@pytest.mark.asyncio
async def test_unreachable_store_fails_seed_stage(catalog):
    await close_db()

    with pytest.raises(DataStoreUnavailable):
        await compare_key("asin:B00TEST1234")


@pytest.mark.asyncio
async def test_catalog_failure_degrades_to_seed(catalog, monkeypatch: pytest.MonkeyPatch):
    async def broken_catalog(*args, **kwargs):
        raise OperationalError("select", {}, Exception("connection reset"))

    monkeypatch.setattr(compare_service, "resolve_catalog", broken_catalog)

    response = await compare_key("asin:B00TEST1234")

    assert response.identity.model_number is None
    assert response.identity.pci == "AB123456"
    assert response.canonical_key == "pci:AB123456"
    assert response.variants == []
    assert response.offers


@pytest.mark.asyncio
async def test_gtin14_input_matches_ean13_catalog_upc(add_rows):
    await add_rows(CatalogRecord(model_number="M1", model_name="Label maker", upc="4006381333931"))

    response = await compare_key("upc:04006381333931")

    assert response.identity.model_number == "M1"
    assert response.identity.upc == "4006381333931"
    assert response.canonical_key == "upc:4006381333931"


@pytest.mark.asyncio
async def test_upc_canonical_key_ignores_stored_formatting(add_rows):
    await add_rows(
        Listing(
            store="walmart",
            store_sku="555555555",
            upc="0-84980-30981-35",
            current_price_cents=30999,
            current_price_observed_at=ago(hours=1),
        )
    )

    response = await compare_key("upc:849803098135")

    assert response.identity.upc == "849803098135"
    assert response.canonical_key == "upc:849803098135"
    assert parse_key(response.canonical_key).canonical == response.canonical_key


@pytest.mark.asyncio
async def test_component_bug_is_not_reported_as_unavailable(catalog, monkeypatch: pytest.MonkeyPatch):
    async def buggy_offers(*args, **kwargs):
        raise TypeError("bad argument")

    monkeypatch.setattr(compare_service, "aggregate_offers", buggy_offers)

    with pytest.raises(TypeError):
        await compare_key("pci:AB123456")


@pytest.mark.asyncio
async def test_cancelling_request_cancels_component_lookups(catalog, monkeypatch: pytest.MonkeyPatch):
    started = asyncio.Event()
    outcome: list[str] = []

    async def slow_stats(*args, **kwargs):
        started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            outcome.append("cancelled")
            raise
        outcome.append("finished")

    monkeypatch.setattr(compare_service, "price_stats", slow_stats)
    monkeypatch.setattr(get_settings(), "compare_component_timeout_s", 60.0)

    task = asyncio.create_task(compare_key("pci:AB123456"))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert outcome == ["cancelled"]
