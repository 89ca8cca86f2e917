"""
Storage layer interface for scraped listings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from app.scraping.types import Listing, ShopRecord, ShopStatistics


class ProductStorage(ABC):
    """
    Persistence gateway used by the parsing phases.

    `save_one` and `update_one` run in their own transaction: an ordinary
    store failure is rolled back and reported as False so the caller can move
    on to the next listing.
    """

    @abstractmethod
    def ensure_shop_exists(self, name: str, url: str | None = None) -> ShopRecord:
        """
        Return the shop row, creating it on first use.
        """

    @abstractmethod
    def get_known_product_urls(self, shop_name: str) -> set[str]:
        """
        Product URLs already stored for the shop.
        """

    @abstractmethod
    def get_known_name_price_keys(self, shop_name: str) -> set[tuple[str, str | None]]:
        """
        (name, price) pairs already stored for the shop.
        """

    @abstractmethod
    def get_pending_detail_listings(self, shop_name: str) -> list[Listing]:
        """
        Stored listings of the shop that still wait for detail enrichment.
        """

    @abstractmethod
    def save_one(self, listing: Listing) -> bool:
        """
        Insert one listing in its own transaction.
        """

    @abstractmethod
    def save_many(self, listings: Sequence[Listing]) -> int:
        """
        Insert listings in one transaction and return the inserted count.
        """

    @abstractmethod
    def update_one(self, listing: Listing) -> bool:
        """
        Persist detail enrichment of an already stored listing.
        """

    @abstractmethod
    def get_shop_statistics(self) -> list[ShopStatistics]:
        """
        Product count and latest insert time per shop.
        """

    @abstractmethod
    def count_products(self) -> int:
        """
        Total stored products across shops.
        """
