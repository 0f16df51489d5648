"""Compare endpoints.

GET /v1/compare/{key} - Identity, variants, offers, observations and price stats.
GET /v1/keys/parse    - How an input is understood, without touching the store.

Routers are thin: call services for business logic. NotResolvable and
DataStoreUnavailable are mapped to structured errors in app.main.
"""

from fastapi import APIRouter, Path, Query

from app.schemas import CompareResponse, ParseResponse
from app.services.compare import compare_key, key_out
from app.services.keys import parse_key

router = APIRouter()


@router.get("/compare/{key:path}", response_model=CompareResponse)
async def get_compare(
    key: str = Path(
        ...,
        description="Prefixed key, bare code or retailer URL",
        examples=["asin:B00TEST1234", "upc:849803098135", "https://www.amazon.com/dp/B00TEST1234"],
    ),
    days: int | None = Query(
        default=None,
        ge=30,
        le=365,
        description="Daily-low lookback in days (default from settings)",
    ),
) -> CompareResponse:
    """Resolve an input to one product and aggregate what is known about it.

    Returns:
        CompareResponse; component fields listed in `unavailable` are null.
    """
    return await compare_key(key, lookback_days=days)


@router.get("/keys/parse", response_model=ParseResponse)
async def get_parsed_key(
    q: str = Query(..., min_length=1, description="Input to classify"),
) -> ParseResponse:
    """Classify an input the same way /v1/compare does."""
    return ParseResponse(input=q, key=key_out(parse_key(q)))
