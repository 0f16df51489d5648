"""Listing model.

One observed offer from one storefront (store + store_sku). Written by the external
ingestion process; identity codes (pci/upc) are filled in when collection resolved them.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base

STATUS_ACTIVE = "active"
STATUS_HIDDEN = "hidden"


class Listing(Base):
    """Store offer row (read-only to the compare engine)."""

    __tablename__ = "listings"
    __table_args__ = (UniqueConstraint("store", "store_sku", name="uq_listings_store_sku"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    # Storefront identification
    store: Mapped[str] = mapped_column(String(50), index=True)
    store_sku: Mapped[str] = mapped_column(String(100), index=True)

    # Identity codes (optional)
    pci: Mapped[str | None] = mapped_column(String(20), index=True)
    upc: Mapped[str | None] = mapped_column(String(20), index=True)

    # Display
    title: Mapped[str | None] = mapped_column(Text)
    url: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str | None] = mapped_column(String(20))  # NULL means active
    offer_tag: Mapped[str | None] = mapped_column(String(100))

    # Pricing
    current_price_cents: Mapped[int | None] = mapped_column(Integer)
    current_price_observed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    effective_price_cents: Mapped[int | None] = mapped_column(Integer)  # after coupon

    # Coupon
    coupon_text: Mapped[str | None] = mapped_column(Text)
    coupon_type: Mapped[str | None] = mapped_column(String(20))  # "amount", "percent"
    coupon_value_cents: Mapped[int | None] = mapped_column(Integer)
    coupon_value_pct: Mapped[float | None] = mapped_column(Float)
    coupon_requires_clip: Mapped[bool | None] = mapped_column(Boolean)
    coupon_code: Mapped[str | None] = mapped_column(String(100))
    coupon_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    coupon_observed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

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

    @property
    def observed_at(self) -> datetime | None:
        """Recency timestamp: price observation, then coupon observation, then creation."""
        return self.current_price_observed_at or self.coupon_observed_at or self.created_at

    def __repr__(self) -> str:
        return f"<Listing {self.store}:{self.store_sku}>"
