"""
Listing extractors for catalog pages and product pages.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from app.scraping.config.models import SelectorSet
from app.scraping.errors import ScrapingError
from app.scraping.fetcher import PageFetcher
from app.scraping.images import ImageStore
from app.scraping.logging_utils import log_event
from app.scraping.parsing import HTMLParsingLayer
from app.scraping.types import Listing, ParsingStatus

logger = logging.getLogger(__name__)


class BasicExtractor:
    """
    Turns one catalog page into basic listings.

    In legacy mode the price and image are read from the catalog node too and
    the product link becomes optional.
    """

    def __init__(self, *, shop_name: str = "", legacy: bool = False) -> None:
        self._shop_name = shop_name
        self._legacy = legacy

    def extract(
        self,
        page: BeautifulSoup,
        selectors: SelectorSet,
        base_url: str,
    ) -> list[Listing]:
        if self._legacy:
            listings = HTMLParsingLayer.extract_legacy_listings(
                soup=page,
                selectors=selectors,
                base_url=base_url,
                shop_name=self._shop_name,
            )
        else:
            listings = HTMLParsingLayer.extract_listings(
                soup=page,
                selectors=selectors,
                base_url=base_url,
                shop_name=self._shop_name,
            )
        log_event(
            logger,
            logging.DEBUG,
            "catalog_page_extracted",
            shop=self._shop_name,
            url=base_url,
            listings=len(listings),
        )
        return listings


class DetailExtractor:
    """
    Enriches a basic listing from its product page.

    Failures never propagate: the listing is returned unchanged and a warning
    is logged.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        image_store: ImageStore | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._image_store = image_store

    def extract(self, listing: Listing, selectors: SelectorSet) -> Listing:
        if not listing.product_url.strip():
            log_event(
                logger,
                logging.WARNING,
                "detail_skipped_missing_url",
                shop=listing.shop_name,
                listing=listing.name,
            )
            return listing

        try:
            page = self._fetcher.load(listing.product_url)
            details = HTMLParsingLayer.extract_details(
                soup=page,
                selectors=selectors,
                base_url=listing.product_url,
            )
        except ScrapingError as exc:
            log_event(
                logger,
                logging.WARNING,
                "detail_extraction_failed",
                shop=listing.shop_name,
                listing=listing.name,
                product_url=listing.product_url,
                error=str(exc),
            )
            return listing

        if details.description is not None:
            listing.description = details.description
        if details.material is not None:
            listing.material = details.material
        if details.price is not None:
            listing.price = details.price
        if details.image_urls:
            listing.image_urls = details.image_urls
        listing.variants = details.variants

        if self._image_store is not None:
            self.store_images(listing)

        listing.parsing_status = ParsingStatus.DETAILED_PARSED
        listing.touch()
        log_event(
            logger,
            logging.DEBUG,
            "detail_extracted",
            shop=listing.shop_name,
            listing=listing.name,
            product_url=listing.product_url,
            images=len(listing.image_urls),
            variants=len(listing.variants),
        )
        return listing

    def store_images(self, listing: Listing) -> None:
        """
        Download every image URL of the listing; failed downloads are skipped.
        """

        if self._image_store is None:
            return
        for image_url in listing.image_urls:
            stored = self._image_store.fetch_and_store(image_url, listing.shop_name)
            if stored is not None and stored not in listing.local_image_paths:
                listing.local_image_paths.append(stored)
