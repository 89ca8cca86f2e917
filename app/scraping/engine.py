"""
Catalog scraping engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime

import requests

from app.domain.catalog_scraping import ShopRunStatus, ShopScrapeSummary
from app.scraping.base import ShopParser
from app.scraping.config import load_shop_profiles
from app.scraping.config.models import CatalogScrapingSettings, ParsingMode, ShopCatalogConfig
from app.scraping.errors import ConfigurationError, ScrapingError
from app.scraping.fetcher import PageFetcher
from app.scraping.images import ImageStore
from app.scraping.logging_utils import log_event
from app.scraping.phases import (
    BasicParsingService,
    DetailedParsingService,
    LegacyParsingService,
    filter_new_listings,
)
from app.scraping.rate_limiter import DomainRateLimiter
from app.scraping.registry import ParserRegistry
from app.scraping.storage import ProductStorage
from app.scraping.types import Listing, utc_now

logger = logging.getLogger(__name__)


class ShopRunFailed(ScrapingError):
    """Raised when a phase reports a shop-level failure."""


class CatalogScrapingEngine:
    """
    Runs every selected shop in turn and persists new listings.

    A failure in one shop is recorded in its summary and never stops the
    remaining shops.
    """

    def __init__(
        self,
        *,
        settings: CatalogScrapingSettings,
        storage: ProductStorage,
        registry: ParserRegistry | None = None,
        session: requests.Session | None = None,
        fetcher: PageFetcher | None = None,
        image_store: ImageStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._registry = registry or ParserRegistry()
        self._session = session or requests.Session()
        self._fetcher = fetcher or PageFetcher(
            session=self._session,
            user_agent=settings.user_agent,
            timeout_seconds=settings.timeout_seconds,
            verify_ssl=settings.verify_ssl,
            rate_limiter=DomainRateLimiter(min_interval_seconds=settings.request_delay_seconds),
        )
        if image_store is None and settings.save_images:
            image_store = ImageStore(
                images_dir=settings.images_dir,
                session=self._session,
                timeout_seconds=settings.timeout_seconds,
                user_agent=settings.user_agent,
                verify_ssl=settings.verify_ssl,
            )
        self._image_store = image_store
        self._sleep = sleep

    def run_configured(self, *, shop_names: Sequence[str] | None = None) -> list[ShopScrapeSummary]:
        """
        Load shop profiles from the configured file and run the selected ones.
        """

        profiles = load_shop_profiles(config_path=self._settings.config_path)
        selected = self.select_shops(
            profiles=profiles,
            shop_names=shop_names or self._settings.enabled_shops,
        )
        if not selected:
            raise ConfigurationError("No enabled shops matched the run criteria.")
        return self.run(selected)

    def run(self, shops: Sequence[ShopCatalogConfig]) -> list[ShopScrapeSummary]:
        summaries: list[ShopScrapeSummary] = []
        for profile in shops:
            summary = self._run_with_retries(profile)
            summaries.append(summary)
            log_event(
                logger,
                logging.INFO if summary.status != ShopRunStatus.FAILED else logging.ERROR,
                "shop_scrape_completed",
                shop=summary.shop,
                mode=summary.mode,
                parsed=summary.parsed,
                saved=summary.saved,
                skipped=summary.skipped,
                failed=summary.failed,
                detailed=summary.detailed,
                failed_pages=summary.failed_pages,
                status=summary.status,
                attempts=summary.attempts,
            )
        return summaries

    @staticmethod
    def select_shops(
        *,
        profiles: Sequence[ShopCatalogConfig],
        shop_names: Sequence[str] | None,
    ) -> list[ShopCatalogConfig]:
        enabled = [profile for profile in profiles if profile.enabled]
        if not shop_names:
            return enabled

        normalized = {item.strip().lower() for item in shop_names if item.strip()}
        if not normalized:
            return enabled
        return [profile for profile in profiles if profile.name.lower() in normalized]

    def _run_with_retries(self, profile: ShopCatalogConfig) -> ShopScrapeSummary:
        started_at = utc_now()
        attempts = profile.max_retries + 1
        errors: list[str] = []

        for attempt in range(attempts):
            try:
                return self._scrape_shop(profile, started_at=started_at, attempt=attempt + 1)
            except Exception as exc:
                message = f"attempt {attempt + 1}: {exc}"
                errors.append(message)
                log_event(
                    logger,
                    logging.ERROR,
                    "shop_scrape_failed",
                    shop=profile.name,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    error=str(exc),
                )

            if attempt + 1 >= attempts:
                break

            backoff_seconds = self._settings.backoff_initial_seconds * (
                self._settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.INFO,
                "shop_scrape_retry_scheduled",
                shop=profile.name,
                backoff_seconds=backoff_seconds,
            )
            self._sleep(backoff_seconds)

        return ShopScrapeSummary(
            shop=profile.name,
            mode=profile.mode,
            parsed=0,
            saved=0,
            skipped=0,
            failed=0,
            detailed=0,
            failed_pages=0,
            status=ShopRunStatus.FAILED,
            errors=self._truncate(errors),
            started_at=started_at,
            finished_at=utc_now(),
            attempts=attempts,
        )

    def _scrape_shop(
        self,
        profile: ShopCatalogConfig,
        *,
        started_at: datetime,
        attempt: int,
    ) -> ShopScrapeSummary:
        parser = self._registry.create_parser(
            profile=profile,
            fetcher=self._fetcher,
            settings=self._settings,
            image_store=self._image_store,
        )
        if profile.mode == ParsingMode.LEGACY:
            return self._run_legacy(parser, started_at=started_at, attempt=attempt)
        if self._settings.streaming_save:
            return self._run_streaming(parser, started_at=started_at, attempt=attempt)
        return self._run_batch(parser, started_at=started_at, attempt=attempt)

    def _run_streaming(
        self,
        parser: ShopParser,
        *,
        started_at: datetime,
        attempt: int,
    ) -> ShopScrapeSummary:
        basic = BasicParsingService(storage=self._storage).parse_and_save_basic_products_stream(
            parser
        )
        if not basic.success:
            raise ShopRunFailed(f"Streaming basic phase failed: {basic.error}")

        errors = list(basic.errors)
        detailed = 0
        failed = basic.failed_count
        if self._detail_enabled(parser):
            pending = self._with_pending_details(parser, basic.saved_products)
            if pending:
                detail = DetailedParsingService(storage=self._storage).parse_detailed_products(
                    parser,
                    pending,
                )
                detailed = detail.detailed_count
                errors.extend(detail.errors)

        return self._summary(
            parser,
            parsed=basic.total_parsed_count,
            saved=basic.saved_count,
            skipped=basic.skipped_count,
            failed=failed,
            detailed=detailed,
            failed_pages=basic.failed_pages,
            errors=errors,
            started_at=started_at,
            attempt=attempt,
        )

    def _run_batch(
        self,
        parser: ShopParser,
        *,
        started_at: datetime,
        attempt: int,
    ) -> ShopScrapeSummary:
        basic = BasicParsingService(storage=self._storage).parse_basic_products(parser)
        if not basic.success:
            raise ShopRunFailed(f"Basic phase failed: {basic.error}")

        shop = self._storage.ensure_shop_exists(parser.shop_name, parser.shop_url)
        known_urls = self._storage.get_known_product_urls(parser.shop_name)
        survivors, skipped = filter_new_listings(basic.basic_products, known_urls)
        for listing in survivors:
            listing.shop_id = shop.id
            listing.shop_name = shop.name

        errors = list(basic.errors)
        detailed = 0
        if self._detail_enabled(parser) and survivors:
            detail = DetailedParsingService().parse_detailed_products(parser, survivors)
            detailed = detail.detailed_count
            errors.extend(detail.errors)

        if self._detail_enabled(parser):
            pending = self._with_pending_details(parser, [])
            if pending:
                detail = DetailedParsingService(storage=self._storage).parse_detailed_products(
                    parser,
                    pending,
                )
                detailed += detail.detailed_count
                errors.extend(detail.errors)

        saved = self._storage.save_many(survivors)
        return self._summary(
            parser,
            parsed=basic.product_count,
            saved=saved,
            skipped=skipped,
            failed=len(survivors) - saved,
            detailed=detailed,
            failed_pages=basic.failed_pages,
            errors=errors,
            started_at=started_at,
            attempt=attempt,
        )

    def _run_legacy(
        self,
        parser: ShopParser,
        *,
        started_at: datetime,
        attempt: int,
    ) -> ShopScrapeSummary:
        legacy = LegacyParsingService(storage=self._storage).parse_and_save_products(parser)
        if not legacy.success:
            raise ShopRunFailed(f"Legacy run failed: {legacy.error}")

        return self._summary(
            parser,
            parsed=legacy.parsed_count,
            saved=legacy.added_count,
            skipped=legacy.skipped_count,
            failed=max(0, len(legacy.products) - legacy.added_count),
            detailed=0,
            failed_pages=legacy.failed_pages,
            errors=legacy.errors,
            started_at=started_at,
            attempt=attempt,
        )

    def _detail_enabled(self, parser: ShopParser) -> bool:
        return self._settings.detail_enabled and parser.profile.detail_enabled

    def _with_pending_details(
        self,
        parser: ShopParser,
        listings: Sequence[Listing],
    ) -> list[Listing]:
        """
        `listings` followed by stored listings of the shop still at basic status.

        Listings whose detail fetch failed in an earlier run are skipped as
        duplicates by the basic phase, so they are picked up here.
        """

        current_ids = {listing.id for listing in listings if listing.id is not None}
        leftovers = [
            listing
            for listing in self._storage.get_pending_detail_listings(parser.shop_name)
            if listing.id not in current_ids
        ]
        if leftovers:
            log_event(
                logger,
                logging.INFO,
                "pending_details_loaded",
                shop=parser.shop_name,
                pending=len(leftovers),
            )
        return [*listings, *leftovers]

    def _summary(
        self,
        parser: ShopParser,
        *,
        parsed: int,
        saved: int,
        skipped: int,
        failed: int,
        detailed: int,
        failed_pages: int,
        errors: list[str],
        started_at: datetime,
        attempt: int,
    ) -> ShopScrapeSummary:
        status = ShopRunStatus.SUCCESS
        if failed_pages > 0 or failed > 0:
            status = (
                ShopRunStatus.PARTIAL_SUCCESS
                if saved + skipped > 0
                else ShopRunStatus.FAILED
            )
        return ShopScrapeSummary(
            shop=parser.shop_name,
            mode=parser.profile.mode,
            parsed=parsed,
            saved=saved,
            skipped=skipped,
            failed=failed,
            detailed=detailed,
            failed_pages=failed_pages,
            status=status,
            errors=self._truncate(errors),
            started_at=started_at,
            finished_at=utc_now(),
            attempts=attempt,
        )

    def _truncate(self, errors: list[str]) -> list[str]:
        limit = self._settings.max_reported_errors
        if len(errors) <= limit:
            return list(errors)
        hidden = len(errors) - limit
        return [*errors[:limit], f"... {hidden} more errors"]
