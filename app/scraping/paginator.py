"""
Catalog pagination traversal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.scraping.config.models import CatalogUrlConfig, SelectorSet
from app.scraping.errors import ScrapingError, TransportError
from app.scraping.extractors import BasicExtractor
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import log_event
from app.scraping.types import CatalogCrawl, Listing

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100


@dataclass
class PaginationState:
    current_url: str
    page_number: int = 1


class CatalogPaginator:
    """
    Walks the pages of one catalog URL until a page is empty, the rule runs
    out, or the page ceiling is reached.

    A 404 past the first page ends the traversal like an empty page.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        extractor: BasicExtractor,
        max_pages: int = DEFAULT_MAX_PAGES,
        shop_name: str = "",
    ) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._max_pages = max(1, max_pages)
        self._shop_name = shop_name

    def traverse(
        self,
        url_config: CatalogUrlConfig,
        selectors: SelectorSet,
        link_base: str | None = None,
    ) -> CatalogCrawl:
        """
        Return listings of every page reachable from `url_config`.

        `link_base` overrides the page URL when resolving relative product links.
        """

        crawl = CatalogCrawl()
        state = PaginationState(current_url=url_config.url)

        while True:
            listings = self._extract_page(state, selectors, link_base, crawl)
            if not listings:
                log_event(
                    logger,
                    logging.INFO,
                    "pagination_finished_empty_page",
                    shop=self._shop_name,
                    url=state.current_url,
                    page=state.page_number,
                )
                break
            crawl.listings.extend(listings)

            next_number = state.page_number + 1
            if next_number > self._max_pages:
                log_event(
                    logger,
                    logging.WARNING,
                    "pagination_ceiling_reached",
                    shop=self._shop_name,
                    url=url_config.url,
                    max_pages=self._max_pages,
                )
                break
            next_url = url_config.page_url(next_number)
            if not next_url:
                break
            state = PaginationState(current_url=next_url, page_number=next_number)

        return crawl

    def _extract_page(
        self,
        state: PaginationState,
        selectors: SelectorSet,
        link_base: str | None,
        crawl: CatalogCrawl,
    ) -> list[Listing]:
        try:
            page = self._fetcher.load(state.current_url)
            crawl.pages_fetched += 1
            listings = self._extractor.extract(page, selectors, link_base or state.current_url)
        except TransportError as exc:
            if exc.status_code == 404 and state.page_number > 1:
                log_event(
                    logger,
                    logging.INFO,
                    "pagination_finished_not_found",
                    shop=self._shop_name,
                    url=state.current_url,
                    page=state.page_number,
                )
                return []
            self._record_failure(state, exc, crawl)
            return []
        except ScrapingError as exc:
            self._record_failure(state, exc, crawl)
            return []

        log_event(
            logger,
            logging.DEBUG,
            "catalog_page_parsed",
            shop=self._shop_name,
            url=state.current_url,
            page=state.page_number,
            listings=len(listings),
        )
        return listings

    def _record_failure(
        self,
        state: PaginationState,
        exc: ScrapingError,
        crawl: CatalogCrawl,
    ) -> None:
        crawl.failed_pages += 1
        crawl.errors.append(f"page={state.page_number} url={state.current_url} error={exc}")
        log_event(
            logger,
            logging.ERROR,
            "catalog_page_failed",
            shop=self._shop_name,
            url=state.current_url,
            page=state.page_number,
            error=str(exc),
        )
