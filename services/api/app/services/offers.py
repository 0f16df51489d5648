"""Offer aggregation: identity codes (+ seed listing) -> current offers.

Steps:
1. Gather visible listings whose PCI or UPC matches the identity
2. Union the seed listing (fetched fresh by store + SKU) so code-less seeds still show
3. Dedup on normalized store + ":" + normalized SKU
4. Sort by observation recency, newest first
5. Per-store multiplicity: MAX_OFFERS_PER_STORE (default 1). A marketplace store
   legitimately lists one item under many sellers, so it keeps several offers.
6. Multi-offer stores first (recency order), then one offer per store A-Z
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Listing
from app.schemas import OfferCandidate
from app.services.keys import canonical_link, norm_store, offer_dedup_key
from app.services.listings import (
    identity_matches,
    latest_listing,
    not_hidden,
    recency_column,
    recency_of,
    store_sku_matches,
)

# Store -> max offers kept for that store
MAX_OFFERS_PER_STORE: dict[str, int] = {
    "amazon": 10,
}
DEFAULT_MAX_OFFERS_PER_STORE = 1

# Safety bound on rows pulled for one identity
_GATHER_LIMIT = 2000


def max_offers_for(store: str | None) -> int:
    return MAX_OFFERS_PER_STORE.get(norm_store(store), DEFAULT_MAX_OFFERS_PER_STORE)


def sort_by_recency(rows: list[Listing]) -> list[Listing]:
    return sorted(rows, key=lambda r: (recency_of(r), r.id or 0), reverse=True)


def merge_seed(rows: list[Listing], seed: Listing | None) -> list[Listing]:
    """Add the seed listing unless its store/SKU is already present."""
    if seed is None:
        return list(rows)
    present = {offer_dedup_key(r.store, r.store_sku) for r in rows}
    if offer_dedup_key(seed.store, seed.store_sku) in present:
        return list(rows)
    return [*rows, seed]


def apply_store_policy(rows: list[Listing]) -> list[Listing]:
    """Dedup, cap per store and order the final offer list.

    Args:
        rows: Candidate listings in any order.

    Returns:
        Multi-offer store rows (newest first), then single-offer stores by name.
    """
    seen: set[str] = set()
    counts: dict[str, int] = {}
    multi: list[Listing] = []
    single: list[Listing] = []

    for row in sort_by_recency(rows):
        dedup_key = offer_dedup_key(row.store, row.store_sku)
        if dedup_key in seen:
            continue
        seen.add(dedup_key)

        store = norm_store(row.store)
        cap = max_offers_for(store)
        if counts.get(store, 0) >= cap:
            continue
        counts[store] = counts.get(store, 0) + 1

        if cap > 1:
            multi.append(row)
        else:
            single.append(row)

    single.sort(key=lambda r: norm_store(r.store))
    return multi + single


def to_offer(row: Listing) -> OfferCandidate:
    store = norm_store(row.store)
    return OfferCandidate(
        store=store,
        store_sku=row.store_sku,
        title=row.title,
        url=row.url or canonical_link(store, row.store_sku),
        offer_tag=row.offer_tag,
        price_cents=row.current_price_cents,
        effective_price_cents=row.effective_price_cents,
        coupon_text=row.coupon_text,
        coupon_type=row.coupon_type,
        coupon_value_cents=row.coupon_value_cents,
        coupon_value_pct=row.coupon_value_pct,
        coupon_requires_clip=row.coupon_requires_clip,
        coupon_code=row.coupon_code,
        coupon_expires_at=row.coupon_expires_at,
        observed_at=recency_of(row) if row.observed_at else None,
    )


async def gather_listings(session: AsyncSession, pci: str | None, upc: str | None) -> list[Listing]:
    """Visible listings matching the identity by PCI or UPC."""
    criteria = identity_matches(Listing.pci, Listing.upc, pci, upc)
    if criteria is None:
        return []
    result = await session.execute(
        select(Listing)
        .where(criteria, not_hidden())
        .order_by(recency_column().desc().nulls_last())
        .limit(_GATHER_LIMIT)
    )
    return list(result.scalars().all())


async def aggregate_offers(
    session: AsyncSession,
    pci: str | None,
    upc: str | None,
    seed_listing: Listing | None = None,
) -> list[OfferCandidate]:
    """Gather, dedup and cap the current offers for an identity.

    Args:
        session: Database session.
        pci: Identity PCI (optional).
        upc: Identity UPC (optional).
        seed_listing: Listing matched from the raw input, re-read by store + SKU.

    Returns:
        Ordered OfferCandidate list (empty when there is nothing to anchor on).
    """
    rows = await gather_listings(session, pci, upc)

    seed: Listing | None = None
    if seed_listing is not None:
        criteria = store_sku_matches(seed_listing.store, seed_listing.store_sku)
        if criteria is not None:
            seed = await latest_listing(session, criteria)

    return [to_offer(row) for row in apply_store_policy(merge_seed(rows, seed))]
