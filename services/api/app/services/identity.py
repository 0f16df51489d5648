"""Catalog identity resolution.

PCI is the stronger, curated key: a PCI match is returned immediately regardless of
UPC. UPC (digit-normalized, tolerant of barcode padding) is only consulted when
there is no PCI or it matched nothing. Among several matching rows the most
recently created one wins.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models import CatalogRecord
from app.schemas import ResolvedIdentity
from app.services.keys import norm_pci, norm_upc
from app.services.listings import pci_matches, upc_matches
from app.services.seed import SeedResult


async def _latest_catalog_row(session: AsyncSession, criteria: ColumnElement[bool]) -> CatalogRecord | None:
    result = await session.execute(
        select(CatalogRecord)
        .where(criteria)
        .order_by(CatalogRecord.created_at.desc().nulls_last(), CatalogRecord.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def resolve_catalog(
    session: AsyncSession,
    pci: str | None,
    upc: str | None,
) -> CatalogRecord | None:
    """Find the authoritative catalog record for identity codes.

    Args:
        session: Database session.
        pci: Product code (optional).
        upc: Barcode (optional).

    Returns:
        CatalogRecord, or None if neither code resolves.
    """
    by_pci = pci_matches(CatalogRecord.pci, pci)
    if by_pci is not None:
        record = await _latest_catalog_row(session, by_pci)
        if record is not None:
            return record

    by_upc = upc_matches(CatalogRecord.upc, upc)
    if by_upc is not None:
        return await _latest_catalog_row(session, by_upc)

    return None


def build_identity(seed: SeedResult, record: CatalogRecord | None) -> ResolvedIdentity:
    """Merge seed codes and catalog metadata into the resolved identity.

    Codes from the catalog record take precedence over codes carried by the seed.
    """
    seed_pci, seed_upc = seed.identity_codes
    listing = seed.listing

    if record is None:
        return ResolvedIdentity(
            pci=norm_pci(seed_pci),
            upc=norm_upc(seed_upc),
            asin_input_echo=seed.asin_input_echo,
            listing_title=listing.title if listing is not None else None,
            partial=seed_pci is None and seed_upc is None,
        )

    return ResolvedIdentity(
        pci=norm_pci(record.pci) or norm_pci(seed_pci),
        upc=norm_upc(record.upc) or norm_upc(seed_upc),
        asin_input_echo=seed.asin_input_echo,
        model_number=(record.model_number or "").strip() or None,
        model_name=record.model_name,
        brand=record.brand,
        category=record.category,
        image_url=record.image_url,
        dropship_warning=bool(record.dropship_warning),
        recall_url=record.recall_url,
        coverage_warning=bool(record.coverage_warning),
        listing_title=listing.title if listing is not None else None,
        partial=False,
    )
