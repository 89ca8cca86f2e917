"""
app/repositories/product_repository.py

Persistence layer for shops and scraped products.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.scraping.types import Listing
from db.models.product import Product
from db.models.shop import Shop


class ProductRepository:
    """
    Query and write helpers over the shops and products tables.

    Methods never commit; transaction boundaries belong to the caller.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_shop_by_name(self, name: str) -> Shop | None:
        stmt = select(Shop).where(Shop.name == name)
        return self._session.scalars(stmt).first()

    def create_shop(self, *, name: str, url: str) -> Shop:
        shop = Shop(name=name, url=url)
        self._session.add(shop)
        self._session.flush()
        return shop

    def list_product_urls(self, shop_id: int) -> set[str]:
        stmt = select(Product.product_url).where(
            Product.shop_id == shop_id,
            Product.product_url.is_not(None),
            Product.product_url != "",
        )
        return set(self._session.scalars(stmt).all())

    def list_name_price_pairs(self, shop_id: int) -> list[tuple[str, str | None]]:
        stmt = select(Product.name, Product.price).where(Product.shop_id == shop_id)
        return [(name, price) for name, price in self._session.execute(stmt).all()]

    def list_products_by_status(self, shop_id: int, status: str) -> list[Product]:
        stmt = (
            select(Product)
            .where(
                Product.shop_id == shop_id,
                Product.parsing_status == status,
                Product.product_url.is_not(None),
                Product.product_url != "",
            )
            .order_by(Product.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_product(
        self,
        *,
        product_id: int | None,
        shop_id: int | None,
        product_url: str,
    ) -> Product | None:
        if product_id is not None:
            found = self._session.get(Product, product_id)
            if found is not None:
                return found
        if shop_id is None or not product_url:
            return None
        stmt = select(Product).where(
            Product.shop_id == shop_id,
            Product.product_url == product_url,
        )
        return self._session.scalars(stmt).first()

    def add_product(self, *, shop_id: int, listing: Listing) -> Product:
        product = Product(shop_id=shop_id, created_at=listing.created_at)
        self.apply_listing(product, listing)
        self._session.add(product)
        self._session.flush()
        return product

    @staticmethod
    def apply_listing(product: Product, listing: Listing) -> None:
        product.name = listing.name
        product.product_url = listing.product_url or None
        product.parsing_status = listing.parsing_status
        product.description = listing.description
        product.price = listing.price
        product.material = listing.material
        product.image_urls = list(listing.image_urls)
        product.local_image_paths = list(listing.local_image_paths)
        product.variants = [dict(variant) for variant in listing.variants]
        product.updated_at = listing.updated_at

    def shop_statistics(self) -> list[tuple[str, int, datetime | None]]:
        stmt = (
            select(Shop.name, func.count(Product.id), func.max(Product.created_at))
            .join(Product, Product.shop_id == Shop.id)
            .group_by(Shop.name)
            .order_by(Shop.name)
        )
        return [(name, int(count), last) for name, count, last in self._session.execute(stmt).all()]

    def count_products(self) -> int:
        return int(self._session.scalar(select(func.count(Product.id))) or 0)
