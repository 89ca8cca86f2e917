"""
tests/test_paginator.py

Pagination traversal over local catalog fixtures.
"""

from __future__ import annotations

from pathlib import Path

from app.scraping.config.models import CatalogUrlConfig
from app.scraping.errors import TransportError
from app.scraping.extractors import BasicExtractor
from app.scraping.paginator import CatalogPaginator
from tests.conftest import SELECTORS, SHOP_URL, RecordingFetcher, catalog_html


def _paginator(fetcher: RecordingFetcher, *, max_pages: int = 100) -> CatalogPaginator:
    return CatalogPaginator(
        fetcher=fetcher,
        extractor=BasicExtractor(shop_name="TestShop"),
        max_pages=max_pages,
        shop_name="TestShop",
    )


class TestCatalogPaginator:
    def test_stops_on_first_empty_page(self, tmp_path: Path, write_page, fetcher) -> None:
        write_page("page1.html", catalog_html([("A", "/p/a"), ("B", "/p/b")]))
        write_page("page2.html", catalog_html([("C", "/p/c")]))
        write_page("page3.html", catalog_html([]))
        write_page("page4.html", catalog_html([("D", "/p/d")]))
        url_config = CatalogUrlConfig(
            url=str(tmp_path / "page1.html"),
            pagination_rule=str(tmp_path / "page{page}.html"),
        )

        crawl = _paginator(fetcher).traverse(url_config, SELECTORS, link_base=SHOP_URL)

        assert [listing.name for listing in crawl.listings] == ["A", "B", "C"]
        assert crawl.pages_fetched == 3
        assert str(tmp_path / "page4.html") not in fetcher.loaded

    def test_no_rule_fetches_single_page(self, write_page, fetcher) -> None:
        path = write_page("catalog.html", catalog_html([("A", "/p/a")]))

        crawl = _paginator(fetcher).traverse(
            CatalogUrlConfig(url=str(path)),
            SELECTORS,
            link_base=SHOP_URL,
        )

        assert len(crawl.listings) == 1
        assert fetcher.loaded == [str(path)]

    def test_ceiling_limits_pages(self, tmp_path: Path, write_page, fetcher) -> None:
        for number in range(1, 6):
            write_page(f"page{number}.html", catalog_html([(f"Item {number}", f"/p/{number}")]))
        url_config = CatalogUrlConfig(
            url=str(tmp_path / "page1.html"),
            pagination_rule=str(tmp_path / "page{page}.html"),
        )

        crawl = _paginator(fetcher, max_pages=3).traverse(url_config, SELECTORS, SHOP_URL)

        assert [listing.name for listing in crawl.listings] == ["Item 1", "Item 2", "Item 3"]
        assert len(fetcher.loaded) == 3

    def test_failed_page_is_recorded_and_ends_traversal(
        self,
        tmp_path: Path,
        write_page,
        fetcher,
    ) -> None:
        write_page("page1.html", catalog_html([("A", "/p/a")]))
        url_config = CatalogUrlConfig(
            url=str(tmp_path / "page1.html"),
            pagination_rule=str(tmp_path / "page{page}.html"),
        )

        crawl = _paginator(fetcher).traverse(url_config, SELECTORS, SHOP_URL)

        assert [listing.name for listing in crawl.listings] == ["A"]
        assert crawl.failed_pages == 1
        assert "page=2" in crawl.errors[0]

    def test_links_resolve_against_link_base(self, write_page, fetcher) -> None:
        path = write_page("catalog.html", catalog_html([("A", "/p/123")]))

        crawl = _paginator(fetcher).traverse(CatalogUrlConfig(url=str(path)), SELECTORS, SHOP_URL)

        assert crawl.listings[0].product_url == "https://shop.example/p/123"


class _NotFoundFetcher(RecordingFetcher):
    """Answers the configured locators with an HTTP 404."""

    def __init__(self, missing: set[str]) -> None:
        super().__init__()
        self.missing = missing

    def load(self, locator: str):  # type: ignore[override]
        if locator in self.missing:
            self.loaded.append(locator)
            raise TransportError(
                f"HTTP status=404 fetching {locator}",
                locator=locator,
                status_code=404,
            )
        return super().load(locator)


class TestNotFoundPages:
    def test_not_found_after_first_page_ends_pagination(self, tmp_path: Path, write_page) -> None:
        write_page("page1.html", catalog_html([("A", "/p/a")]))
        write_page("page2.html", catalog_html([("B", "/p/b")]))
        fetcher = _NotFoundFetcher({str(tmp_path / "page3.html")})
        url_config = CatalogUrlConfig(
            url=str(tmp_path / "page1.html"),
            pagination_rule=str(tmp_path / "page{page}.html"),
        )

        crawl = _paginator(fetcher).traverse(url_config, SELECTORS, SHOP_URL)

        assert [listing.name for listing in crawl.listings] == ["A", "B"]
        assert crawl.failed_pages == 0
        assert crawl.errors == []
        assert len(fetcher.loaded) == 3

    def test_not_found_first_page_is_a_failure(self, tmp_path: Path) -> None:
        first = str(tmp_path / "page1.html")
        fetcher = _NotFoundFetcher({first})

        crawl = _paginator(fetcher).traverse(CatalogUrlConfig(url=first), SELECTORS, SHOP_URL)

        assert crawl.listings == []
        assert crawl.failed_pages == 1
        assert "404" in crawl.errors[0]
