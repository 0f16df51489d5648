"""Compare service: raw input -> identity, variants, offers, observations, stats.

Flow:
1. Parse the input into a typed key (never fails)
2. Seed resolver (fatal if the store is unreachable)
3. Catalog identity resolver
4. Variants / offers / observations / stats run concurrently, each on its own
   session with a timeout. A failed component is logged and reported as
   unavailable; the rest of the response is still returned. No retries.

Outcomes:
- NotResolvable: no catalog record and no seed listing (caller answers "not found")
- Partial identity: seed listing without PCI/UPC, response limited to that listing
- DataStoreUnavailable: seed stage failed, or every component failed
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CatalogRecord, Listing
from app.schemas import CompareResponse, ParsedKeyOut, ResolvedIdentity
from app.services.identity import build_identity, resolve_catalog
from app.services.keys import ParsedKey, parse_key, selector_key
from app.services.observations import build_observations
from app.services.offers import aggregate_offers
from app.services.price_stats import price_stats
from app.services.seed import SeedResult, resolve_seed
from app.services.variants import build_variants, expand_variants
from app.settings import get_settings
from app.stores.postgres import get_session
from app.stores.redis import get_compare_cache, set_compare_cache

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

# get_session() raises RuntimeError before init_db()
_STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError, RuntimeError)

ACCEPTED_FORMATS = [
    "asin:B000123456",
    "upc:012345678905",
    "pci:AB123456",
    "bby:6525421",
    "wal:123456789",
    "tcin:12345678",
    "https://www.amazon.com/dp/B000123456",
]


class NotResolvable(LookupError):
    """The input matches no catalog record and no listing."""

    def __init__(self, key: ParsedKey):
        super().__init__(f"No match for {key.canonical!r}")
        self.key = key


class DataStoreUnavailable(RuntimeError):
    pass


def key_out(key: ParsedKey) -> ParsedKeyOut:
    return ParsedKeyOut(kind=key.kind, value=key.value, canonical=key.canonical)


async def _with_session(fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
    async with get_session() as session:
        return await fn(session)


async def _resolve(key: ParsedKey) -> tuple[SeedResult, CatalogRecord | None]:
    try:
        seed = await _with_session(lambda s: resolve_seed(s, key))
    except _STORE_ERRORS as e:
        logger.exception(f"[compare] seed lookup failed key={key.canonical}")
        raise DataStoreUnavailable("Seed lookup failed") from e

    pci, upc = seed.identity_codes
    try:
        record = await _with_session(lambda s: resolve_catalog(s, pci, upc))
    except _STORE_ERRORS as e:
        if seed.listing is None:
            logger.exception(f"[compare] catalog lookup failed without seed key={key.canonical}")
            raise DataStoreUnavailable("Catalog lookup failed") from e
        logger.warning(f"[compare] catalog lookup failed, continuing with seed key={key.canonical}: {e}")
        record = None

    return seed, record


def _component_calls(
    identity: ResolvedIdentity,
    record: CatalogRecord | None,
    seed_listing: Listing | None,
    lookback_days: int,
) -> dict[str, Callable[[AsyncSession], Awaitable[Any]]]:
    settings = get_settings()
    pci, upc = identity.pci, identity.upc

    async def variants(session: AsyncSession):
        if identity.model_number:
            return await expand_variants(session, identity.model_number, pci=pci, upc=upc)
        return build_variants([record], pci=pci, upc=upc) if record is not None else []

    return {
        "variants": variants,
        "offers": lambda s: aggregate_offers(s, pci, upc, seed_listing),
        "observed": lambda s: build_observations(s, pci, upc, seed_listing, limit=settings.observation_limit),
        "stats": lambda s: price_stats(s, pci, upc, lookback_days=lookback_days),
    }


async def _run_components(
    calls: dict[str, Callable[[AsyncSession], Awaitable[Any]]],
    timeout: float,
) -> tuple[dict[str, Any], list[str]]:
    """Run component lookups concurrently; store failures and timeouts become absent data.

    Any other exception is a bug and is re-raised once every lookup has settled.
    Cancelling the caller cancels every outstanding lookup (asyncio.gather).
    """
    names = list(calls)
    results = await asyncio.gather(
        *(asyncio.wait_for(_with_session(calls[name]), timeout=timeout) for name in names),
        return_exceptions=True,
    )

    values: dict[str, Any] = {}
    unavailable: list[str] = []
    for name, result in zip(names, results):
        if isinstance(result, _STORE_ERRORS):
            logger.error(f"[compare] component {name} unavailable: {type(result).__name__}: {result}")
            values[name] = None
            unavailable.append(name)
        elif isinstance(result, BaseException):
            raise result
        else:
            values[name] = result
    return values, unavailable


async def _try_get_cached(key: ParsedKey, lookback_days: int) -> CompareResponse | None:
    try:
        payload = await get_compare_cache(key.canonical, lookback_days)
    except RuntimeError:
        return None
    except RedisError as e:
        logger.warning(f"[compare] cache read failed: {e}")
        return None
    if not payload:
        return None
    return CompareResponse.model_validate(payload)


async def _try_set_cached(key: ParsedKey, lookback_days: int, response: CompareResponse) -> None:
    try:
        await set_compare_cache(key.canonical, lookback_days, response.model_dump(mode="json", by_alias=True))
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"[compare] cache write failed: {e}")


async def compare_key(raw_key: str, *, lookback_days: int | None = None) -> CompareResponse:
    """Resolve an arbitrary input and aggregate everything known about it.

    Args:
        raw_key: User input (prefixed key, bare code or retailer URL).
        lookback_days: Statistics lookback (defaults to settings.stats_lookback_days).

    Returns:
        CompareResponse.

    Raises:
        NotResolvable: Nothing matched the input.
        DataStoreUnavailable: The store could not be reached.
    """
    settings = get_settings()
    lookback = lookback_days or settings.stats_lookback_days
    key = parse_key(raw_key)

    cached = await _try_get_cached(key, lookback)
    if cached is not None:
        return cached.model_copy(update={"input": raw_key})

    seed, record = await _resolve(key)
    if record is None and seed.listing is None:
        raise NotResolvable(seed.key)

    identity = build_identity(seed, record)
    values, unavailable = await _run_components(
        _component_calls(identity, record, seed.listing, lookback),
        timeout=settings.compare_component_timeout_s,
    )
    if len(unavailable) == len(values):
        raise DataStoreUnavailable("Every compare component failed")

    response = CompareResponse(
        input=raw_key,
        key=key_out(seed.key),
        canonical_key=selector_key(identity.pci, identity.upc),
        identity=identity,
        variants=values["variants"],
        offers=values["offers"],
        observed=values["observed"],
        stats=values["stats"],
        unavailable=unavailable,
    )

    logger.info(
        f"[compare] key={seed.key.canonical} pci={identity.pci} upc={identity.upc} "
        f"partial={identity.partial} offers={len(response.offers or [])} unavailable={unavailable}"
    )

    if not unavailable:
        await _try_set_cached(key, lookback, response)
    return response
