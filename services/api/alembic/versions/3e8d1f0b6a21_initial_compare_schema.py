"""initial_compare_schema

Revision ID: 3e8d1f0b6a21
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3e8d1f0b6a21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Must stay in sync with app.services.keys.norm_upc / norm_sku.
NORM_UPC_SQL = r"""
CREATE OR REPLACE FUNCTION norm_upc(v text) RETURNS text
LANGUAGE sql IMMUTABLE PARALLEL SAFE AS $$
  SELECT nullif(
    regexp_replace(
      regexp_replace(coalesce(v, ''), '[^0-9]', '', 'g'),
      '^0{1,2}([0-9]{12,13})$', '\1'
    ),
    ''
  )
$$;
"""

NORM_SKU_SQL = r"""
CREATE OR REPLACE FUNCTION norm_sku(v text) RETURNS text
LANGUAGE sql IMMUTABLE PARALLEL SAFE AS $$
  SELECT nullif(upper(regexp_replace(coalesce(v, ''), '[^0-9A-Za-z]', '', 'g')), '')
$$;
"""


def upgrade() -> None:
    op.execute(NORM_UPC_SQL)
    op.execute(NORM_SKU_SQL)

    op.create_table(
        "catalog",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("model_number", sa.String(length=100), nullable=True),
        sa.Column("model_name", sa.String(length=300), nullable=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("pci", sa.String(length=20), nullable=True),
        sa.Column("upc", sa.String(length=20), nullable=True),
        sa.Column("version", sa.String(length=100), nullable=True),
        sa.Column("color", sa.String(length=100), nullable=True),
        sa.Column("variant", sa.String(length=200), nullable=True),
        sa.Column("dropship_warning", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recall_url", sa.Text(), nullable=True),
        sa.Column("coverage_warning", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_catalog_model_number"), "catalog", ["model_number"], unique=False)
    op.create_index(op.f("ix_catalog_brand"), "catalog", ["brand"], unique=False)
    op.create_index(op.f("ix_catalog_category"), "catalog", ["category"], unique=False)
    op.create_index(op.f("ix_catalog_pci"), "catalog", ["pci"], unique=False)
    op.create_index(op.f("ix_catalog_upc"), "catalog", ["upc"], unique=False)
    op.create_index("ix_catalog_norm_upc", "catalog", [sa.text("norm_upc(upc)")], unique=False)
    op.create_index("ix_catalog_upper_pci", "catalog", [sa.text("upper(trim(pci))")], unique=False)

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store", sa.String(length=50), nullable=False),
        sa.Column("store_sku", sa.String(length=100), nullable=False),
        sa.Column("pci", sa.String(length=20), nullable=True),
        sa.Column("upc", sa.String(length=20), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.Column("offer_tag", sa.String(length=100), nullable=True),
        sa.Column("current_price_cents", sa.Integer(), nullable=True),
        sa.Column("current_price_observed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("effective_price_cents", sa.Integer(), nullable=True),
        sa.Column("coupon_text", sa.Text(), nullable=True),
        sa.Column("coupon_type", sa.String(length=20), nullable=True),
        sa.Column("coupon_value_cents", sa.Integer(), nullable=True),
        sa.Column("coupon_value_pct", sa.Float(), nullable=True),
        sa.Column("coupon_requires_clip", sa.Boolean(), nullable=True),
        sa.Column("coupon_code", sa.String(length=100), nullable=True),
        sa.Column("coupon_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coupon_observed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store", "store_sku", name="uq_listings_store_sku"),
    )
    op.create_index(op.f("ix_listings_store"), "listings", ["store"], unique=False)
    op.create_index(op.f("ix_listings_store_sku"), "listings", ["store_sku"], unique=False)
    op.create_index(op.f("ix_listings_pci"), "listings", ["pci"], unique=False)
    op.create_index(op.f("ix_listings_upc"), "listings", ["upc"], unique=False)
    op.create_index("ix_listings_norm_upc", "listings", [sa.text("norm_upc(upc)")], unique=False)
    op.create_index("ix_listings_upper_pci", "listings", [sa.text("upper(trim(pci))")], unique=False)
    op.create_index("ix_listings_norm_sku", "listings", [sa.text("norm_sku(store_sku)")], unique=False)

    op.create_table(
        "price_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store", sa.String(length=50), nullable=False),
        sa.Column("store_sku", sa.String(length=100), nullable=False),
        sa.Column("pci", sa.String(length=20), nullable=True),
        sa.Column("upc", sa.String(length=20), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("effective_price_cents", sa.Integer(), nullable=True),
        sa.Column("coupon_text", sa.Text(), nullable=True),
        sa.Column("coupon_value_cents", sa.Integer(), nullable=True),
        sa.Column("coupon_value_pct", sa.Float(), nullable=True),
        sa.Column("observed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_price_history_pci"), "price_history", ["pci"], unique=False)
    op.create_index(op.f("ix_price_history_upc"), "price_history", ["upc"], unique=False)
    op.create_index(op.f("ix_price_history_observed_at"), "price_history", ["observed_at"], unique=False)
    op.create_index("ix_price_history_norm_upc", "price_history", [sa.text("norm_upc(upc)")], unique=False)


def downgrade() -> None:
    op.drop_index("ix_price_history_norm_upc", table_name="price_history")
    op.drop_index(op.f("ix_price_history_observed_at"), table_name="price_history")
    op.drop_index(op.f("ix_price_history_upc"), table_name="price_history")
    op.drop_index(op.f("ix_price_history_pci"), table_name="price_history")
    op.drop_table("price_history")

    op.drop_index("ix_listings_norm_sku", table_name="listings")
    op.drop_index("ix_listings_upper_pci", table_name="listings")
    op.drop_index("ix_listings_norm_upc", table_name="listings")
    op.drop_index(op.f("ix_listings_upc"), table_name="listings")
    op.drop_index(op.f("ix_listings_pci"), table_name="listings")
    op.drop_index(op.f("ix_listings_store_sku"), table_name="listings")
    op.drop_index(op.f("ix_listings_store"), table_name="listings")
    op.drop_table("listings")

    op.drop_index("ix_catalog_upper_pci", table_name="catalog")
    op.drop_index("ix_catalog_norm_upc", table_name="catalog")
    op.drop_index(op.f("ix_catalog_upc"), table_name="catalog")
    op.drop_index(op.f("ix_catalog_pci"), table_name="catalog")
    op.drop_index(op.f("ix_catalog_category"), table_name="catalog")
    op.drop_index(op.f("ix_catalog_brand"), table_name="catalog")
    op.drop_index(op.f("ix_catalog_model_number"), table_name="catalog")
    op.drop_table("catalog")

    op.execute("DROP FUNCTION IF EXISTS norm_sku(text)")
    op.execute("DROP FUNCTION IF EXISTS norm_upc(text)")
