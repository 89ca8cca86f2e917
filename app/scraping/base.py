"""
Generic shop parser bound to one shop profile.
"""

from __future__ import annotations

import logging
import warnings

from app.scraping.config.models import CatalogScrapingSettings, CatalogUrlConfig, ShopCatalogConfig
from app.scraping.extractors import BasicExtractor, DetailExtractor
from app.scraping.fetcher import PageFetcher, is_remote
from app.scraping.images import ImageStore
from app.scraping.logging_utils import log_event
from app.scraping.paginator import CatalogPaginator
from app.scraping.types import CatalogCrawl, Listing

logger = logging.getLogger(__name__)


class ShopParser:
    """
    Runs catalog and product extraction for one shop.

    Every shop shares this engine; per-shop behaviour comes from the profile.
    Subclasses registered in `ParserRegistry` may override `link_base`.
    """

    def __init__(
        self,
        *,
        profile: ShopCatalogConfig,
        fetcher: PageFetcher,
        settings: CatalogScrapingSettings,
        image_store: ImageStore | None = None,
    ) -> None:
        self.profile = profile
        self.fetcher = fetcher
        self.settings = settings
        self.image_store = image_store
        self._detail_extractor = DetailExtractor(fetcher=fetcher, image_store=image_store)

    @property
    def shop_name(self) -> str:
        return self.profile.name

    @property
    def shop_url(self) -> str:
        return self.profile.shop_url

    def parse_basic_products(self) -> list[Listing]:
        """
        Return basic listings across every catalog URL of the shop.
        """

        return self.collect_basic_listings().listings

    def collect_basic_listings(self) -> CatalogCrawl:
        return self._crawl(legacy=False)

    def collect_legacy_listings(self) -> CatalogCrawl:
        return self._crawl(legacy=True)

    def parse_detailed_product(self, listing: Listing) -> Listing:
        return self._detail_extractor.extract(listing, self.profile.selectors)

    def store_images(self, listing: Listing) -> None:
        self._detail_extractor.store_images(listing)

    def parse_products(self) -> list[Listing]:
        """
        Deprecated single-phase parse: name, price and image from catalog pages.

        Use `parse_basic_products` followed by `parse_detailed_product`.
        """

        warnings.warn(
            "ShopParser.parse_products is deprecated; use parse_basic_products "
            "and parse_detailed_product instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        log_event(logger, logging.WARNING, "legacy_parse_invoked", shop=self.shop_name)

        listings = self.collect_legacy_listings().listings
        for listing in listings:
            self.store_images(listing)
        return listings

    def link_base(self, url_config: CatalogUrlConfig) -> str | None:
        """
        Base URL for resolving relative product links, or None to use the page URL.

        Catalog pages loaded from disk resolve against the shop URL.
        """

        if is_remote(url_config.url):
            return None
        if is_remote(self.shop_url):
            return self.shop_url
        return None

    def _crawl(self, *, legacy: bool) -> CatalogCrawl:
        paginator = CatalogPaginator(
            fetcher=self.fetcher,
            extractor=BasicExtractor(shop_name=self.shop_name, legacy=legacy),
            max_pages=self.settings.max_pages,
            shop_name=self.shop_name,
        )

        crawl = CatalogCrawl()
        for url_config in self.profile.base_urls:
            crawl.merge(
                paginator.traverse(
                    url_config,
                    self.profile.selectors,
                    link_base=self.link_base(url_config),
                )
            )

        log_event(
            logger,
            logging.INFO,
            "catalog_crawl_completed",
            shop=self.shop_name,
            legacy=legacy,
            listings=len(crawl.listings),
            pages_fetched=crawl.pages_fetched,
            failed_pages=crawl.failed_pages,
        )
        return crawl
