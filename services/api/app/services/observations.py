"""Observation log: raw recent-activity timeline for an identity.

Unlike the offer list this is not a current-state view: no dedup, no per-store caps.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Listing
from app.schemas import ObservationEntry
from app.services.keys import norm_store
from app.services.listings import as_utc, identity_matches, not_hidden, recency_column

DEFAULT_OBSERVATION_LIMIT = 250


def to_observation(row: Listing) -> ObservationEntry | None:
    observed_at = as_utc(row.observed_at)
    if observed_at is None:
        return None
    return ObservationEntry(
        time=observed_at,
        store=norm_store(row.store),
        sku=row.store_sku,
        price_cents=row.current_price_cents,
        effective_price_cents=row.effective_price_cents,
        coupon_text=row.coupon_text,
    )


async def build_observations(
    session: AsyncSession,
    pci: str | None,
    upc: str | None,
    seed_listing: Listing | None = None,
    limit: int = DEFAULT_OBSERVATION_LIMIT,
) -> list[ObservationEntry]:
    """Most recent matching listing rows, newest first.

    Without identity codes the seed listing alone becomes a single entry.
    """
    criteria = identity_matches(Listing.pci, Listing.upc, pci, upc)
    if criteria is None:
        if seed_listing is None:
            return []
        entry = to_observation(seed_listing)
        return [entry] if entry is not None else []

    recency = recency_column()
    result = await session.execute(
        select(Listing)
        .where(criteria, not_hidden(), recency.is_not(None))
        .order_by(recency.desc(), Listing.id.desc())
        .limit(limit)
    )
    entries = (to_observation(row) for row in result.scalars().all())
    return [e for e in entries if e is not None]
