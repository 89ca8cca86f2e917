"""
tests/test_html_parsers.py

Unit tests for the selector-driven HTML parsing layer.

Coverage
--------
- Link normalization (root-relative, protocol-relative, absolute, relative)
- Price normalization across currency spellings
- Listing extraction: nameless and linkless nodes dropped
- Legacy extraction: price, image and optional link
- Product detail extraction: meta fallback and variant cartesian product
"""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from app.scraping.config.models import SelectorSet
from app.scraping.errors import ParseFailure
from app.scraping.parsing import HTMLParsingLayer, normalize_price, normalize_product_link
from app.scraping.types import ParsingStatus
from tests.conftest import SELECTORS, catalog_html, product_html


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


# ---------------------------------------------------------------------------
# Link normalization
# ---------------------------------------------------------------------------


class TestNormalizeProductLink:
    def test_root_relative_uses_scheme_and_host_of_base(self) -> None:
        assert (
            normalize_product_link("/p/123", "https://shop.example/cat/")
            == "https://shop.example/p/123"
        )

    def test_absolute_link_is_kept(self) -> None:
        link = "https://cdn.example/p/9?ref=1"
        assert normalize_product_link(link, "https://shop.example/cat/") == link

    def test_protocol_relative_takes_base_scheme(self) -> None:
        assert (
            normalize_product_link("//shop.example/p/1", "http://shop.example/")
            == "http://shop.example/p/1"
        )

    def test_plain_relative_is_joined_with_base_path(self) -> None:
        assert (
            normalize_product_link("item-7", "https://shop.example/cat/")
            == "https://shop.example/cat/item-7"
        )

    def test_blank_link_stays_empty(self) -> None:
        assert normalize_product_link("   ", "https://shop.example/") == ""


# ---------------------------------------------------------------------------
# Price normalization
# ---------------------------------------------------------------------------


class TestNormalizePrice:
    @pytest.mark.parametrize("raw", ["1 234 ₽", "1234РУБ", "1234", "1\xa0234 руб", "1&nbsp;234"])
    def test_spellings_share_one_key(self, raw: str) -> None:
        assert normalize_price(raw) == "1234"

    def test_missing_price_normalizes_to_empty(self) -> None:
        assert normalize_price(None) == ""


# ---------------------------------------------------------------------------
# Listing extraction
# ---------------------------------------------------------------------------


class TestExtractListings:
    def test_three_valid_nodes_and_one_nameless(self) -> None:
        markup = catalog_html(
            [("Shirt", "/p/1"), ("Dress", "/p/2"), (None, "/p/3"), ("Coat", "/p/4")]
        )

        listings = HTMLParsingLayer.extract_listings(
            soup=_soup(markup),
            selectors=SELECTORS,
            base_url="https://shop.example/catalog/",
            shop_name="TestShop",
        )

        assert [listing.name for listing in listings] == ["Shirt", "Dress", "Coat"]
        assert listings[0].product_url == "https://shop.example/p/1"
        assert all(listing.parsing_status == ParsingStatus.BASIC_PARSED for listing in listings)
        assert all(listing.shop_name == "TestShop" for listing in listings)

    def test_node_without_link_is_dropped(self) -> None:
        markup = catalog_html([("Shirt", None), ("Dress", "/p/2")])

        listings = HTMLParsingLayer.extract_listings(
            soup=_soup(markup),
            selectors=SELECTORS,
            base_url="https://shop.example/",
        )

        assert [listing.name for listing in listings] == ["Dress"]

    def test_name_whitespace_is_collapsed(self) -> None:
        markup = catalog_html([("  Linen \n  shirt ", "/p/1")])

        listings = HTMLParsingLayer.extract_listings(
            soup=_soup(markup),
            selectors=SELECTORS,
            base_url="https://shop.example/",
        )

        assert listings[0].name == "Linen shirt"

    def test_page_without_containers_yields_nothing(self) -> None:
        listings = HTMLParsingLayer.extract_listings(
            soup=_soup("<html><body><p>Nothing here</p></body></html>"),
            selectors=SELECTORS,
            base_url="https://shop.example/",
        )

        assert listings == []


class TestExtractLegacyListings:
    def test_reads_price_and_image_and_allows_missing_link(self) -> None:
        markup = (
            "<div class='item'><span class='title'>Bag</span>"
            "<span class='price'>4 500 ₽</span>"
            "<img class='thumb' data-src='/img/bag.jpg'></div>"
        )

        listings = HTMLParsingLayer.extract_legacy_listings(
            soup=_soup(markup),
            selectors=SELECTORS,
            base_url="https://shop.example/",
        )

        assert len(listings) == 1
        assert listings[0].price == "4500"
        assert listings[0].product_url == ""
        assert listings[0].image_urls == ["https://shop.example/img/bag.jpg"]

    def test_image_from_background_style(self) -> None:
        markup = (
            "<div class='item'><span class='title'>Hat</span>"
            "<div class='thumb' style=\"background-image: url('/img/hat.png')\"></div></div>"
        )
        selectors = SelectorSet(
            product_container="div.item",
            name="span.title",
            product_link="",
            image="div.thumb",
        )

        listings = HTMLParsingLayer.extract_legacy_listings(
            soup=_soup(markup),
            selectors=selectors,
            base_url="https://shop.example/",
        )

        assert listings[0].image_urls == ["https://shop.example/img/hat.png"]


# ---------------------------------------------------------------------------
# Detail extraction
# ---------------------------------------------------------------------------


class TestExtractDetails:
    def test_fills_every_declared_field(self) -> None:
        details = HTMLParsingLayer.extract_details(
            soup=_soup(product_html(sizes=("S", "M"), colors=("black", "white"))),
            selectors=SELECTORS,
            base_url="https://shop.example/p/1",
        )

        assert details.description == "Soft cotton shirt"
        assert details.material == "100% cotton"
        assert details.price == "2990"
        assert details.image_urls == ["https://shop.example/img/1.jpg"]
        assert len(details.variants) == 4
        assert {"size": "M", "color": "white", "price": "2990"} in details.variants

    def test_description_falls_back_to_meta(self) -> None:
        details = HTMLParsingLayer.extract_details(
            soup=_soup(product_html(description=None, meta_description="From meta")),
            selectors=SELECTORS,
            base_url="https://shop.example/p/1",
        )

        assert details.description == "From meta"

    def test_no_variant_values_means_no_variants(self) -> None:
        details = HTMLParsingLayer.extract_details(
            soup=_soup(product_html(sizes=(), colors=())),
            selectors=SELECTORS,
            base_url="https://shop.example/p/1",
        )

        assert details.variants == []

    def test_selector_error_raises_parse_failure(self) -> None:
        broken = SelectorSet(
            product_container="div.item",
            name="span.title",
            product_link="a.link",
            description="div[",
        )

        with pytest.raises(ParseFailure):
            HTMLParsingLayer.extract_details(
                soup=_soup(product_html()),
                selectors=broken,
                base_url="https://shop.example/p/1",
            )
