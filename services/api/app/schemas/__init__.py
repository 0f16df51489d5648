"""Pydantic schemas for API request/response validation."""

from app.schemas.common import ErrorDetail, ErrorResponse
from app.schemas.compare import (
    CompareResponse,
    DailyLow,
    ObservationEntry,
    OfferCandidate,
    ParsedKeyOut,
    ParseResponse,
    PriceStats,
    ResolvedIdentity,
    Variant,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "CompareResponse",
    "DailyLow",
    "ObservationEntry",
    "OfferCandidate",
    "ParsedKeyOut",
    "ParseResponse",
    "PriceStats",
    "ResolvedIdentity",
    "Variant",
]
