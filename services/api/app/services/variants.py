"""Variant expansion: grouping code -> selectable sibling variants.

A variant must be independently addressable: rows carrying neither PCI nor UPC are
dropped (they may exist in the catalog for bookkeeping only).

Ordering: version, variant label, color (nulls last, case-insensitive), then key.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CatalogRecord
from app.schemas import Variant
from app.services.keys import norm_pci, norm_upc, selector_key

LABEL_SEPARATOR = " / "
DEFAULT_LABEL = "Default"


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def variant_key(record: CatalogRecord) -> str | None:
    return selector_key(norm_pci(record.pci), norm_upc(record.upc))


def variant_label(record: CatalogRecord) -> str:
    """Human label: version/color, else variant, else model name, else a placeholder."""
    parts = [p for p in (_clean(record.version), _clean(record.color)) if p]
    if parts:
        return LABEL_SEPARATOR.join(parts)
    return _clean(record.variant) or _clean(record.model_name) or DEFAULT_LABEL


def _nulls_last(value: str | None) -> tuple[bool, str]:
    cleaned = _clean(value)
    return (cleaned is None, (cleaned or "").lower())


def _is_selected(record: CatalogRecord, pci: str | None, upc: str | None) -> bool:
    record_pci = norm_pci(record.pci)
    if record_pci and pci:
        return record_pci == norm_pci(pci)
    record_upc = norm_upc(record.upc)
    return bool(record_upc and upc and record_upc == norm_upc(upc))


def build_variants(
    records: list[CatalogRecord],
    pci: str | None = None,
    upc: str | None = None,
) -> list[Variant]:
    """Turn catalog rows into ordered, addressable variants.

    Args:
        records: Catalog rows of one family.
        pci: Resolved identity PCI (marks the selected variant).
        upc: Resolved identity UPC (used when the row has no PCI).
    """
    keyed = [(variant_key(r), r) for r in records]
    keyed = [(k, r) for k, r in keyed if k is not None]
    keyed.sort(
        key=lambda kr: (
            _nulls_last(kr[1].version),
            _nulls_last(kr[1].variant),
            _nulls_last(kr[1].color),
            kr[0],
        )
    )

    return [
        Variant(
            key=key,
            label=variant_label(record),
            pci=norm_pci(record.pci),
            upc=norm_upc(record.upc),
            version=_clean(record.version),
            color=_clean(record.color),
            variant=_clean(record.variant),
            model_name=record.model_name,
            image_url=record.image_url,
            selected=_is_selected(record, pci, upc),
        )
        for key, record in keyed
    ]


async def expand_variants(
    session: AsyncSession,
    model_number: str | None,
    pci: str | None = None,
    upc: str | None = None,
) -> list[Variant]:
    """Fetch every catalog row sharing a grouping code and build the variant list."""
    code = _clean(model_number)
    if code is None:
        return []

    result = await session.execute(
        select(CatalogRecord).where(func.upper(func.trim(CatalogRecord.model_number)) == code.upper())
    )
    return build_variants(list(result.scalars().all()), pci=pci, upc=upc)
