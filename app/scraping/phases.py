"""
Parsing phase runners: basic (batch and streaming), detailed and legacy.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.scraping.base import ShopParser
from app.scraping.dedup import DedupIndex, NamePriceDedupIndex
from app.scraping.logging_utils import log_event
from app.scraping.storage import ProductStorage
from app.scraping.types import (
    BasicParsingResult,
    DetailedParsingResult,
    LegacyParsingResult,
    Listing,
    ParsingStatus,
    StreamingParsingResult,
    utc_now,
)

logger = logging.getLogger(__name__)


class BasicParsingService:
    """
    First phase: catalog listings, saved as they are found or returned for a
    later batch save.
    """

    def __init__(self, *, storage: ProductStorage) -> None:
        self._storage = storage

    def parse_basic_products(self, parser: ShopParser) -> BasicParsingResult:
        result = BasicParsingResult(shop_name=parser.shop_name)
        log_event(logger, logging.INFO, "basic_phase_started", shop=parser.shop_name)
        try:
            crawl = parser.collect_basic_listings()
        except Exception as exc:
            result.fail(exc)
            log_event(
                logger,
                logging.ERROR,
                "basic_phase_failed",
                shop=parser.shop_name,
                error=str(exc),
            )
            return result

        result.basic_products = crawl.listings
        result.failed_pages = crawl.failed_pages
        result.errors.extend(crawl.errors)
        result.finish()
        if not crawl.listings:
            log_event(logger, logging.WARNING, "basic_phase_no_listings", shop=parser.shop_name)
        log_event(
            logger,
            logging.INFO,
            "basic_phase_completed",
            shop=parser.shop_name,
            listings=result.product_count,
            failed_pages=result.failed_pages,
        )
        return result

    def parse_and_save_basic_products_stream(self, parser: ShopParser) -> StreamingParsingResult:
        """
        Extract listings and persist each new one in its own transaction.

        Duplicates by product URL are skipped. A failed save is counted and the
        run moves on to the next listing.
        """

        result = StreamingParsingResult(shop_name=parser.shop_name)
        log_event(logger, logging.INFO, "streaming_phase_started", shop=parser.shop_name)
        try:
            shop = self._storage.ensure_shop_exists(parser.shop_name, parser.shop_url)
            index = DedupIndex(self._storage.get_known_product_urls(parser.shop_name))
            log_event(
                logger,
                logging.INFO,
                "known_listings_loaded",
                shop=parser.shop_name,
                known=len(index),
            )
            crawl = parser.collect_basic_listings()
        except Exception as exc:
            result.fail(exc)
            log_event(
                logger,
                logging.ERROR,
                "streaming_phase_failed",
                shop=parser.shop_name,
                error=str(exc),
            )
            return result

        result.total_parsed_count = len(crawl.listings)
        result.failed_pages = crawl.failed_pages
        result.errors.extend(crawl.errors)

        for listing in crawl.listings:
            if index.is_duplicate(listing):
                result.skipped_count += 1
                log_event(
                    logger,
                    logging.DEBUG,
                    "listing_skipped_duplicate",
                    shop=parser.shop_name,
                    listing=listing.name,
                    product_url=listing.product_url,
                )
                continue

            now = utc_now()
            listing.parsing_status = ParsingStatus.BASIC_PARSED
            listing.shop_id = shop.id
            listing.shop_name = shop.name
            listing.created_at = now
            listing.updated_at = now

            try:
                saved = self._storage.save_one(listing)
            except Exception as exc:
                result.failed_count += 1
                result.errors.append(f"listing '{listing.name}': {exc}")
                log_event(
                    logger,
                    logging.ERROR,
                    "listing_save_raised",
                    shop=parser.shop_name,
                    listing=listing.name,
                    product_url=listing.product_url,
                    error=str(exc),
                )
                continue

            if saved:
                result.saved_count += 1
                result.saved_products.append(listing)
                index.add(listing)
            else:
                result.failed_count += 1
                result.errors.append(f"listing '{listing.name}': save rejected")

        result.finish()
        log_event(
            logger,
            logging.INFO,
            "streaming_phase_completed",
            shop=parser.shop_name,
            parsed=result.total_parsed_count,
            saved=result.saved_count,
            skipped=result.skipped_count,
            failed=result.failed_count,
            success_rate=round(result.success_rate, 2),
        )
        return result


def filter_new_listings(
    listings: Sequence[Listing],
    known_urls: set[str],
) -> tuple[list[Listing], int]:
    """
    Drop listings whose product URL is already known, including repeats
    within `listings`. Returns the survivors and the skipped count.
    """

    index = DedupIndex(known_urls)
    survivors: list[Listing] = []
    skipped = 0
    for listing in listings:
        if index.is_duplicate(listing):
            skipped += 1
            continue
        index.add(listing)
        survivors.append(listing)
    return survivors, skipped


class DetailedParsingService:
    """
    Second phase: enrich listings from their product pages.

    With a storage gateway each enriched listing is persisted through
    `update_one`; without one the listings are only enriched in memory.
    """

    def __init__(self, *, storage: ProductStorage | None = None) -> None:
        self._storage = storage

    def parse_detailed_products(
        self,
        parser: ShopParser,
        listings: Sequence[Listing],
    ) -> DetailedParsingResult:
        result = DetailedParsingResult(shop_name=parser.shop_name)
        log_event(
            logger,
            logging.INFO,
            "detail_phase_started",
            shop=parser.shop_name,
            listings=len(listings),
        )

        for listing in listings:
            result.processed_count += 1
            try:
                parser.parse_detailed_product(listing)
            except Exception as exc:
                result.failed_count += 1
                result.errors.append(f"listing '{listing.name}': {exc}")
                log_event(
                    logger,
                    logging.ERROR,
                    "detail_listing_raised",
                    shop=parser.shop_name,
                    listing=listing.name,
                    product_url=listing.product_url,
                    error=str(exc),
                )
                continue

            if listing.parsing_status != ParsingStatus.DETAILED_PARSED:
                result.failed_count += 1
                continue

            result.detailed_count += 1
            result.detailed_products.append(listing)
            if self._storage is None:
                continue
            if self._storage.update_one(listing):
                result.saved_count += 1
            else:
                result.failed_count += 1
                result.errors.append(f"listing '{listing.name}': detail update rejected")

        result.finish()
        log_event(
            logger,
            logging.INFO,
            "detail_phase_completed",
            shop=parser.shop_name,
            processed=result.processed_count,
            detailed=result.detailed_count,
            saved=result.saved_count,
            failed=result.failed_count,
        )
        return result


class LegacyParsingService:
    """
    Deprecated single-phase run: catalog extraction, name+price dedup, image
    download, one batch save.

    A listing whose product URL is already stored, or was accepted earlier in
    the run, is skipped as well: rows are unique per shop and URL.
    """

    def __init__(self, *, storage: ProductStorage) -> None:
        self._storage = storage

    def parse_and_save_products(self, parser: ShopParser) -> LegacyParsingResult:
        result = LegacyParsingResult(shop_name=parser.shop_name)
        log_event(logger, logging.WARNING, "legacy_mode_deprecated", shop=parser.shop_name)
        try:
            shop = self._storage.ensure_shop_exists(parser.shop_name, parser.shop_url)
            index = NamePriceDedupIndex(self._storage.get_known_name_price_keys(parser.shop_name))
            url_index = DedupIndex(self._storage.get_known_product_urls(parser.shop_name))
            crawl = parser.collect_legacy_listings()
            result.parsed_count = len(crawl.listings)
            result.failed_pages = crawl.failed_pages
            result.errors.extend(crawl.errors)

            accepted: list[Listing] = []
            for listing in crawl.listings:
                if index.is_duplicate(listing) or url_index.is_duplicate(listing):
                    result.skipped_count += 1
                    continue
                index.add(listing)
                url_index.add(listing)
                listing.shop_id = shop.id
                listing.shop_name = shop.name
                parser.store_images(listing)
                accepted.append(listing)

            result.added_count = self._storage.save_many(accepted)
            result.products = accepted
        except Exception as exc:
            result.fail(exc)
            log_event(
                logger,
                logging.ERROR,
                "legacy_phase_failed",
                shop=parser.shop_name,
                error=str(exc),
            )
            return result

        result.finish()
        log_event(
            logger,
            logging.INFO,
            "legacy_phase_completed",
            shop=parser.shop_name,
            parsed=result.parsed_count,
            added=result.added_count,
            skipped=result.skipped_count,
        )
        return result
