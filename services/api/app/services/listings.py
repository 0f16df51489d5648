"""Shared listing query fragments and recency helpers.

Matching rules used by the seed resolver, offer aggregator and observation log:
- PCI: trimmed, case-insensitive equality
- UPC: norm_upc(column) = norm_upc(value)
- SKU: norm_sku(column) = norm_sku(value)
- status: NULL counts as active; "hidden" rows are never shown

Recency is coalesce(current_price_observed_at, coupon_observed_at, created_at).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models import Listing
from app.models.listing import STATUS_ACTIVE, STATUS_HIDDEN
from app.services.keys import norm_pci, norm_sku, norm_upc, store_aliases

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite returns naive values)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def recency_of(listing: Listing) -> datetime:
    """Sortable recency timestamp for a listing (epoch when unknown)."""
    return as_utc(listing.observed_at) or _EPOCH


def recency_column() -> ColumnElement[datetime]:
    return func.coalesce(
        Listing.current_price_observed_at,
        Listing.coupon_observed_at,
        Listing.created_at,
        type_=DateTime(timezone=True),
    )


def not_hidden() -> ColumnElement[bool]:
    return func.coalesce(func.lower(func.trim(Listing.status)), STATUS_ACTIVE) != STATUS_HIDDEN


def pci_matches(column, pci: str | None) -> ColumnElement[bool] | None:
    value = norm_pci(pci)
    if value is None:
        return None
    return func.upper(func.trim(column)) == value


def upc_matches(column, upc: str | None) -> ColumnElement[bool] | None:
    value = norm_upc(upc)
    if value is None:
        return None
    return func.norm_upc(column) == value


def identity_matches(pci_column, upc_column, pci: str | None, upc: str | None) -> ColumnElement[bool] | None:
    """PCI OR UPC match; None when neither code is usable."""
    clauses = [c for c in (pci_matches(pci_column, pci), upc_matches(upc_column, upc)) if c is not None]
    if not clauses:
        return None
    return or_(*clauses)


def store_sku_matches(store: str, sku: str | None) -> ColumnElement[bool] | None:
    value = norm_sku(sku)
    if value is None:
        return None
    return (func.lower(func.trim(Listing.store)).in_(store_aliases(store))) & (
        func.norm_sku(Listing.store_sku) == value
    )


async def latest_listing(session: AsyncSession, criteria: ColumnElement[bool]) -> Listing | None:
    """Most recently observed visible listing matching criteria."""
    result = await session.execute(
        select(Listing)
        .where(criteria, not_hidden())
        .order_by(recency_column().desc().nulls_last(), Listing.id.desc())
        .limit(1)
    )
    return result.scalars().first()
