"""Seed resolver: typed key -> best matching listing + the identity codes it carries.

Lookup by kind:
- asin: amazon listing whose normalized SKU equals the ASIN
- upc: listing whose normalized UPC equals the input's
- pci: listing whose trimmed/uppercased PCI equals the input
- bby/wal/tcin: canonical store + normalized SKU
- raw: reclassify by shape and retry; unclassifiable input yields an empty result

No match is not an error: the typed key is echoed back with null codes so the caller
can continue with whatever it has ("no bridge available").
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Listing
from app.services.keys import (
    KIND_ASIN,
    KIND_PCI,
    KIND_RAW,
    KIND_STORES,
    KIND_UPC,
    ParsedKey,
    classify_shape,
    norm_pci,
    norm_upc,
)
from app.services.listings import latest_listing, pci_matches, store_sku_matches, upc_matches

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class SeedResult:
    """Outcome of the seed stage."""

    key: ParsedKey
    pci: str | None = None
    upc: str | None = None
    listing: Listing | None = None

    @property
    def asin_input_echo(self) -> str | None:
        return self.key.value if self.key.kind == KIND_ASIN else None

    @property
    def identity_codes(self) -> tuple[str | None, str | None]:
        """(pci, upc) to resolve against the catalog.

        Codes carried by the seed listing win; a pci/upc input is itself a code.
        """
        pci = self.pci or (self.key.value if self.key.kind == KIND_PCI else None)
        upc = self.upc or (norm_upc(self.key.value) if self.key.kind == KIND_UPC else None)
        return pci, upc


async def resolve_seed(session: AsyncSession, key: ParsedKey) -> SeedResult:
    """Find the seed listing for a typed key.

    Args:
        session: Database session.
        key: Parsed lookup key.

    Returns:
        SeedResult (listing None when nothing matched).
    """
    if key.kind == KIND_RAW:
        inferred = classify_shape(key.value)
        if inferred is None:
            return SeedResult(key=key)
        return await resolve_seed(session, inferred)

    if key.kind == KIND_UPC:
        criteria = upc_matches(Listing.upc, key.value)
    elif key.kind == KIND_PCI:
        criteria = pci_matches(Listing.pci, key.value)
    elif key.kind in KIND_STORES:
        criteria = store_sku_matches(KIND_STORES[key.kind], key.value)
    else:
        criteria = None

    if criteria is None:
        return SeedResult(key=key)

    listing = await latest_listing(session, criteria)
    if listing is None:
        logger.info(f"[seed] no listing for {key.canonical}")
        return SeedResult(key=key)

    return SeedResult(
        key=key,
        pci=norm_pci(listing.pci),
        upc=norm_upc(listing.upc),
        listing=listing,
    )
