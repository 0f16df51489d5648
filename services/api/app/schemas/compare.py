"""Schemas for the compare endpoint (/v1/compare/{key}) and key parsing."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class ParsedKeyOut(BaseModel):
    """A typed lookup key as understood by the parser."""

    kind: str
    value: str
    canonical: str


class ParseResponse(BaseModel):
    """Response payload for GET /v1/keys/parse."""

    input: str
    key: ParsedKeyOut


class ResolvedIdentity(BaseModel):
    """The single canonical product an input refers to."""

    pci: str | None = None
    upc: str | None = None
    asin_input_echo: str | None = Field(alias="asinInputEcho", default=None)
    model_number: str | None = Field(alias="modelNumber", default=None)
    model_name: str | None = Field(alias="modelName", default=None)
    brand: str | None = None
    category: str | None = None
    image_url: str | None = Field(alias="imageUrl", default=None)
    dropship_warning: bool = Field(alias="dropshipWarning", default=False)
    recall_url: str | None = Field(alias="recallUrl", default=None)
    coverage_warning: bool = Field(alias="coverageWarning", default=False)
    listing_title: str | None = Field(alias="listingTitle", default=None)
    partial: bool = False

    model_config = {"populate_by_name": True}


class Variant(BaseModel):
    """A selectable sibling in a variant family."""

    key: str
    label: str
    pci: str | None = None
    upc: str | None = None
    version: str | None = None
    color: str | None = None
    variant: str | None = None
    model_name: str | None = Field(alias="modelName", default=None)
    image_url: str | None = Field(alias="imageUrl", default=None)
    selected: bool = False

    model_config = {"populate_by_name": True}


class OfferCandidate(BaseModel):
    """A current offer from one storefront."""

    store: str
    store_sku: str = Field(alias="storeSku")
    title: str | None = None
    url: str | None = None
    offer_tag: str | None = Field(alias="offerTag", default=None)
    price_cents: int | None = Field(alias="priceCents", default=None)
    effective_price_cents: int | None = Field(alias="effectivePriceCents", default=None)
    coupon_text: str | None = Field(alias="couponText", default=None)
    coupon_type: str | None = Field(alias="couponType", default=None)
    coupon_value_cents: int | None = Field(alias="couponValueCents", default=None)
    coupon_value_pct: float | None = Field(alias="couponValuePct", default=None)
    coupon_requires_clip: bool | None = Field(alias="couponRequiresClip", default=None)
    coupon_code: str | None = Field(alias="couponCode", default=None)
    coupon_expires_at: datetime | None = Field(alias="couponExpiresAt", default=None)
    observed_at: datetime | None = Field(alias="observedAt", default=None)

    model_config = {"populate_by_name": True}


class ObservationEntry(BaseModel):
    """One row of the recent-activity timeline."""

    time: datetime
    store: str
    sku: str
    price_cents: int | None = Field(alias="priceCents", default=None)
    effective_price_cents: int | None = Field(alias="effectivePriceCents", default=None)
    coupon_text: str | None = Field(alias="couponText", default=None)

    model_config = {"populate_by_name": True}


class DailyLow(BaseModel):
    date: date
    price_cents: int = Field(alias="priceCents", ge=0)

    model_config = {"populate_by_name": True}


class PriceStats(BaseModel):
    """Price-trend statistics over trailing windows.

    typicalLow* is the 20th-percentile (interpolated) of per-day lows.
    """

    daily_lows: list[DailyLow] = Field(alias="dailyLows", default_factory=list)
    typical_low_90: float | None = Field(alias="typicalLow90", default=None)
    typical_low_30: float | None = Field(alias="typicalLow30", default=None)
    low_30_cents: int | None = Field(alias="low30Cents", default=None)
    low_30_date: date | None = Field(alias="low30Date", default=None)
    lookback_days: int = Field(alias="lookbackDays", default=90)

    model_config = {"populate_by_name": True}


class CompareResponse(BaseModel):
    """Response payload for GET /v1/compare/{key}.

    Component fields are None when that lookup was unavailable; their names are
    listed in `unavailable`.
    """

    input: str
    key: ParsedKeyOut
    canonical_key: str | None = Field(alias="canonicalKey", default=None)
    identity: ResolvedIdentity
    variants: list[Variant] | None = None
    offers: list[OfferCandidate] | None = None
    observed: list[ObservationEntry] | None = None
    stats: PriceStats | None = None
    unavailable: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
