"""Catalog record model.

A catalog record is one curated, SKU-level product description:
model_number (grouping code) + version/color/variant descriptors + identity codes.

Rows sharing a model_number form a variant family; they are told apart by pci/upc.
Example: model_number "WH1000XM5", version "2022", color "Silver", pci "SN4K2P7Q".
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base


class CatalogRecord(Base):
    """Curated catalog row (read-only to the compare engine)."""

    __tablename__ = "catalog"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Grouping code shared by a variant family
    model_number: Mapped[str | None] = mapped_column(String(100), index=True)

    # Display info
    model_name: Mapped[str | None] = mapped_column(String(300))
    brand: Mapped[str | None] = mapped_column(String(100), index=True)
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    image_url: Mapped[str | None] = mapped_column(Text)

    # Identity codes (either may be absent, not both)
    pci: Mapped[str | None] = mapped_column(String(20), index=True)  # 8-char product code
    upc: Mapped[str | None] = mapped_column(String(20), index=True)  # 12-14 digit barcode

    # Variant descriptors
    version: Mapped[str | None] = mapped_column(String(100))
    color: Mapped[str | None] = mapped_column(String(100))
    variant: Mapped[str | None] = mapped_column(String(200))  # free-form label

    # Risk flags
    dropship_warning: Mapped[bool] = mapped_column(Boolean, default=False)
    recall_url: Mapped[str | None] = mapped_column(Text)
    coverage_warning: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<CatalogRecord {self.model_number} pci={self.pci} upc={self.upc}>"
