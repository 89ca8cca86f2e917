"""
SQLAlchemy-backed storage implementation for scraped listings.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.repositories.product_repository import ProductRepository
from app.scraping.errors import PersistenceError
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import ProductStorage
from app.scraping.types import Listing, ParsingStatus, ShopRecord, ShopStatistics
from db.models.product import Product

logger = logging.getLogger(__name__)


class SQLAlchemyProductStorage(ProductStorage):
    """
    Persist listings through the product repository and one DB session.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session
        self._repository = ProductRepository(session)
        self._shop_ids: dict[str, int] = {}

    def ensure_shop_exists(self, name: str, url: str | None = None) -> ShopRecord:
        try:
            shop = self._repository.get_shop_by_name(name)
            if shop is None:
                shop = self._repository.create_shop(name=name, url=url or "")
                self._session.commit()
                log_event(logger, logging.INFO, "shop_created", shop=name, url=url)
            elif url and not shop.url:
                shop.url = url
                self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Unable to ensure shop '{name}': {exc}") from exc

        self._shop_ids[name] = shop.id
        return ShopRecord(id=shop.id, name=shop.name, url=shop.url)

    def get_known_product_urls(self, shop_name: str) -> set[str]:
        shop_id = self._lookup_shop_id(shop_name)
        if shop_id is None:
            return set()
        return self._repository.list_product_urls(shop_id)

    def get_known_name_price_keys(self, shop_name: str) -> set[tuple[str, str | None]]:
        shop_id = self._lookup_shop_id(shop_name)
        if shop_id is None:
            return set()
        return set(self._repository.list_name_price_pairs(shop_id))

    def get_pending_detail_listings(self, shop_name: str) -> list[Listing]:
        shop_id = self._lookup_shop_id(shop_name)
        if shop_id is None:
            return []
        products = self._repository.list_products_by_status(shop_id, ParsingStatus.BASIC_PARSED)
        return [_to_listing(product, shop_name) for product in products]

    def save_one(self, listing: Listing) -> bool:
        shop_id = self._shop_id_for(listing)
        try:
            product = self._repository.add_product(shop_id=shop_id, listing=listing)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.ERROR,
                "listing_save_failed",
                shop=listing.shop_name,
                listing=listing.name,
                product_url=listing.product_url,
                error=str(exc),
            )
            return False

        listing.id = product.id
        listing.shop_id = shop_id
        return True

    def save_many(self, listings: Sequence[Listing]) -> int:
        if not listings:
            return 0

        saved: list[tuple[Listing, int, int]] = []
        try:
            for listing in listings:
                shop_id = self._shop_id_for(listing)
                product = self._repository.add_product(shop_id=shop_id, listing=listing)
                saved.append((listing, product.id, shop_id))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Batch save of {len(listings)} listings failed: {exc}") from exc

        for listing, product_id, shop_id in saved:
            listing.id = product_id
            listing.shop_id = shop_id
        return len(saved)

    def update_one(self, listing: Listing) -> bool:
        try:
            product = self._repository.find_product(
                product_id=listing.id,
                shop_id=listing.shop_id,
                product_url=listing.product_url,
            )
            if product is None:
                log_event(
                    logger,
                    logging.WARNING,
                    "listing_update_missing_row",
                    shop=listing.shop_name,
                    listing=listing.name,
                    product_url=listing.product_url,
                )
                return False
            self._repository.apply_listing(product, listing)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.ERROR,
                "listing_update_failed",
                shop=listing.shop_name,
                listing=listing.name,
                product_url=listing.product_url,
                error=str(exc),
            )
            return False
        return True

    def get_shop_statistics(self) -> list[ShopStatistics]:
        return [
            ShopStatistics(shop_name=name, product_count=count, last_update=last_update)
            for name, count, last_update in self._repository.shop_statistics()
        ]

    def count_products(self) -> int:
        return self._repository.count_products()

    def _lookup_shop_id(self, shop_name: str) -> int | None:
        cached = self._shop_ids.get(shop_name)
        if cached is not None:
            return cached
        shop = self._repository.get_shop_by_name(shop_name)
        if shop is None:
            return None
        self._shop_ids[shop_name] = shop.id
        return shop.id

    def _shop_id_for(self, listing: Listing) -> int:
        if listing.shop_id is not None:
            return listing.shop_id
        shop_id = self._lookup_shop_id(listing.shop_name)
        if shop_id is None:
            shop_id = self.ensure_shop_exists(listing.shop_name).id
        return shop_id


def _to_listing(product: Product, shop_name: str) -> Listing:
    return Listing(
        name=product.name,
        product_url=product.product_url or "",
        shop_name=shop_name,
        shop_id=product.shop_id,
        id=product.id,
        parsing_status=product.parsing_status,
        created_at=product.created_at,
        updated_at=product.updated_at,
        description=product.description,
        price=product.price,
        material=product.material,
        image_urls=list(product.image_urls or []),
        local_image_paths=list(product.local_image_paths or []),
        variants=[dict(variant) for variant in product.variants or []],
    )
