"""SQLAlchemy ORM models.

Models represent database tables:
- catalog: Curated SKU-level product records (variant families via model_number)
- listings: Offers observed per storefront (store + store_sku)
- price_history: Append-only price samples for trend statistics
"""

from app.models.catalog import CatalogRecord
from app.models.listing import Listing
from app.models.price_history import PriceHistorySample

__all__ = ["CatalogRecord", "Listing", "PriceHistorySample"]
