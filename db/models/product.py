"""
db/models/product.py

Scraped catalog listings, enriched in place by the detail phase.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.shop import Shop

_JSON = JSON().with_variant(JSONB, "postgresql")


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_url: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
        comment="Dedup key for two-phase parsing; empty for some legacy rows",
    )
    parsing_status: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[str | None] = mapped_column(String(64), nullable=True)
    material: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_urls: Mapped[list[str]] = mapped_column(_JSON, nullable=False, default=list)
    local_image_paths: Mapped[list[str]] = mapped_column(_JSON, nullable=False, default=list)
    variants: Mapped[list[dict[str, Any]]] = mapped_column(_JSON, nullable=False, default=list)

    shop: Mapped["Shop"] = relationship(back_populates="products")

    __table_args__ = (
        UniqueConstraint("shop_id", "product_url", name="uq_products_shop_id_product_url"),
        Index("ix_products_shop_id", "shop_id"),
        Index("ix_products_parsing_status", "parsing_status"),
    )
