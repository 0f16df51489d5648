"""Price history sample model (append-only, used for statistics)."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base


class PriceHistorySample(Base):
    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(primary_key=True)

    store: Mapped[str] = mapped_column(String(50))
    store_sku: Mapped[str] = mapped_column(String(100))

    pci: Mapped[str | None] = mapped_column(String(20), index=True)
    upc: Mapped[str | None] = mapped_column(String(20), index=True)

    price_cents: Mapped[int | None] = mapped_column(Integer)
    effective_price_cents: Mapped[int | None] = mapped_column(Integer)

    # Coupon snapshot at observation time
    coupon_text: Mapped[str | None] = mapped_column(Text)
    coupon_value_cents: Mapped[int | None] = mapped_column(Integer)
    coupon_value_pct: Mapped[float | None] = mapped_column(Float)

    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<PriceHistorySample {self.store}:{self.store_sku} {self.price_cents}>"
