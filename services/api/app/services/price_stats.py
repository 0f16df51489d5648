"""Price statistics: daily lows and rolling "typical low".

Definitions:
- Daily low: per UTC calendar day, min of effective_price_cents (falling back to
  price_cents), ignoring null and non-positive values.
- Typical low (N days): 20th percentile, continuous/interpolated like SQL
  percentile_cont, of the daily lows in the trailing N days. It is a price you can
  expect to see again without being pulled down by one-off flash sales.
- Low (30 days): absolute min of trailing-30 daily lows and the day it occurred
  (earliest day on tie).

Trailing N days = the N calendar days ending today (UTC), inclusive.
Statistics need a stable anchor: without PCI/UPC nothing is computed.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import PriceHistorySample
from app.schemas import DailyLow, PriceStats
from app.services.listings import as_utc, identity_matches

TYPICAL_LOW_PERCENTILE = 0.20
WINDOW_90_DAYS = 90
WINDOW_30_DAYS = 30
DEFAULT_LOOKBACK_DAYS = 90


def percentile_cont(values: Iterable[float], fraction: float) -> float | None:
    """Continuous percentile with linear interpolation between closest ranks.

    Example:
        >>> percentile_cont([100, 200, 300, 400, 500], 0.2)
        180.0
    """
    ordered = sorted(values)
    if not ordered:
        return None
    rank = fraction * (len(ordered) - 1)
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(ordered[lo])
    return ordered[lo] + (ordered[hi] - ordered[lo]) * (rank - lo)


def _sample_price(sample: PriceHistorySample) -> int | None:
    for value in (sample.effective_price_cents, sample.price_cents):
        if value is not None:
            return value
    return None


def compute_daily_lows(samples: Iterable[PriceHistorySample]) -> list[DailyLow]:
    """Per-day minimum price, oldest day first."""
    lows: dict[date, int] = {}
    for sample in samples:
        observed_at = as_utc(sample.observed_at)
        price = _sample_price(sample)
        if observed_at is None or price is None or price <= 0:
            continue
        day = observed_at.date()
        if day not in lows or price < lows[day]:
            lows[day] = price
    return [DailyLow(date=day, price_cents=lows[day]) for day in sorted(lows)]


def _window(daily_lows: list[DailyLow], today: date, days: int) -> list[DailyLow]:
    start = today - timedelta(days=days - 1)
    return [d for d in daily_lows if start <= d.date <= today]


def compute_price_stats(
    samples: Iterable[PriceHistorySample],
    now: datetime,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> PriceStats:
    """Compute statistics from raw samples.

    Args:
        samples: Price history rows (any order, may extend past the windows).
        now: Reference time; "today" is its UTC date.
        lookback_days: Days of daily lows to return.
    """
    today = as_utc(now).date()
    daily = compute_daily_lows(samples)

    last_90 = _window(daily, today, WINDOW_90_DAYS)
    last_30 = _window(daily, today, WINDOW_30_DAYS)

    low_30: DailyLow | None = None
    for d in last_30:
        if low_30 is None or d.price_cents < low_30.price_cents:
            low_30 = d

    return PriceStats(
        daily_lows=_window(daily, today, lookback_days),
        typical_low_90=percentile_cont((d.price_cents for d in last_90), TYPICAL_LOW_PERCENTILE),
        typical_low_30=percentile_cont((d.price_cents for d in last_30), TYPICAL_LOW_PERCENTILE),
        low_30_cents=low_30.price_cents if low_30 else None,
        low_30_date=low_30.date if low_30 else None,
        lookback_days=lookback_days,
    )


async def load_samples(
    session: AsyncSession,
    pci: str | None,
    upc: str | None,
    since: datetime,
) -> list[PriceHistorySample]:
    criteria = identity_matches(PriceHistorySample.pci, PriceHistorySample.upc, pci, upc)
    if criteria is None:
        return []
    result = await session.execute(
        select(PriceHistorySample).where(criteria, PriceHistorySample.observed_at >= since)
    )
    return list(result.scalars().all())


async def price_stats(
    session: AsyncSession,
    pci: str | None,
    upc: str | None,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    now: datetime | None = None,
) -> PriceStats:
    """Load samples for an identity and compute its statistics.

    Returns empty statistics immediately when neither code is present.
    """
    if not (pci or upc):
        return PriceStats(lookback_days=lookback_days)

    now = now or datetime.now(timezone.utc)
    today = as_utc(now).date()
    span = max(lookback_days, WINDOW_90_DAYS)
    since = datetime.combine(today - timedelta(days=span - 1), time.min, tzinfo=timezone.utc)

    samples = await load_samples(session, pci, upc, since)
    return compute_price_stats(samples, now=now, lookback_days=lookback_days)
