"""
BeautifulSoup-based parsing layer for catalog and product pages.
"""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from app.scraping.config.models import SelectorSet
from app.scraping.errors import ParseFailure
from app.scraping.logging_utils import log_event
from app.scraping.types import Listing, ParsingStatus, utc_now

logger = logging.getLogger(__name__)

_PRICE_NOISE = ("&nbsp;", "РУБ", "руб", "₽")
_WHITESPACE = re.compile(r"\s+")
_STYLE_URL = re.compile(r"url\(([^)]+)\)")
_IMAGE_ATTRIBUTES = ("src", "data-src", "data-lazy", "data-original")


def clean_text(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def normalize_price(value: str | None) -> str:
    """
    Strip currency markers and whitespace so equal prices compare equal.
    """

    if not value:
        return ""
    normalized = value
    for marker in _PRICE_NOISE:
        normalized = normalized.replace(marker, "")
    return _WHITESPACE.sub("", normalized)


def normalize_product_link(link: str, base_url: str) -> str:
    """
    Make a catalog link absolute.

    Root-relative paths take scheme and host from `base_url`. Links that are
    already absolute are returned untouched.
    """

    link = link.strip()
    if not link:
        return ""

    base = urlsplit(base_url)
    if link.startswith("//"):
        return f"{base.scheme or 'https'}:{link}"
    if link.startswith("/"):
        if not base.scheme or not base.netloc:
            return link
        return f"{base.scheme}://{base.netloc}{link}"
    if urlsplit(link).scheme:
        return link
    if base.scheme and base.netloc:
        return urljoin(base_url, link)
    return link


@dataclass
class ProductDetails:
    """
    Fields read from one product page.
    """

    description: str | None = None
    price: str | None = None
    material: str | None = None
    image_urls: list[str] = field(default_factory=list)
    variants: list[dict[str, Any]] = field(default_factory=list)


class HTMLParsingLayer:
    """
    Deterministic selector-driven extraction for catalog and product documents.
    """

    @classmethod
    def extract_listings(
        cls,
        *,
        soup: BeautifulSoup,
        selectors: SelectorSet,
        base_url: str,
        shop_name: str = "",
    ) -> list[Listing]:
        """
        Return one basic listing per container node that has both a name and a link.
        """

        listings: list[Listing] = []
        for index, node in enumerate(cls._select_containers(soup, selectors)):
            try:
                name = cls._select_text(node, selectors.name)
                link = cls._select_link(node, selectors.product_link, base_url)
            except Exception as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "listing_node_skipped",
                    shop=shop_name,
                    node_index=index,
                    error=str(exc),
                )
                continue

            if not name or not link:
                continue

            now = utc_now()
            listings.append(
                Listing(
                    name=name,
                    product_url=link,
                    shop_name=shop_name,
                    parsing_status=ParsingStatus.BASIC_PARSED,
                    created_at=now,
                    updated_at=now,
                )
            )
        return listings

    @classmethod
    def extract_legacy_listings(
        cls,
        *,
        soup: BeautifulSoup,
        selectors: SelectorSet,
        base_url: str,
        shop_name: str = "",
    ) -> list[Listing]:
        """
        Single-phase extraction: name, normalized price, image and optional link.
        """

        listings: list[Listing] = []
        for index, node in enumerate(cls._select_containers(soup, selectors)):
            try:
                name = cls._select_text(node, selectors.name)
                price = normalize_price(cls._select_text(node, selectors.price))
                link = cls._select_link(node, selectors.product_link, base_url)
                image_url = cls._select_image(node, selectors.image, base_url)
            except Exception as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "listing_node_skipped",
                    shop=shop_name,
                    node_index=index,
                    error=str(exc),
                )
                continue

            if not name:
                continue

            now = utc_now()
            listings.append(
                Listing(
                    name=name,
                    product_url=link,
                    shop_name=shop_name,
                    parsing_status=ParsingStatus.BASIC_PARSED,
                    created_at=now,
                    updated_at=now,
                    price=price or None,
                    image_urls=[image_url] if image_url else [],
                )
            )
        return listings

    @classmethod
    def extract_details(
        cls,
        *,
        soup: BeautifulSoup,
        selectors: SelectorSet,
        base_url: str,
    ) -> ProductDetails:
        try:
            description = cls._select_text(soup, selectors.description)
            if not description:
                description = cls._meta_description(soup)
            price = normalize_price(cls._select_text(soup, selectors.detail_price))
            material = cls._select_text(soup, selectors.material)
            image_urls = cls._select_images(soup, selectors.detail_images, base_url)
            variants = cls._build_variants(soup, selectors.variant_axes, price)
        except Exception as exc:
            raise ParseFailure(f"Unable to extract product details: {exc}") from exc

        return ProductDetails(
            description=description or None,
            price=price or None,
            material=material or None,
            image_urls=image_urls,
            variants=variants,
        )

    @staticmethod
    def _select_containers(soup: BeautifulSoup, selectors: SelectorSet) -> list[Tag]:
        try:
            return soup.select(selectors.product_container)
        except Exception as exc:
            raise ParseFailure(
                f"Product container selector '{selectors.product_container}' failed: {exc}"
            ) from exc

    @staticmethod
    def _select_text(node: Tag, selector: str) -> str:
        if not selector:
            return ""
        found = node.select_one(selector)
        if found is None:
            return ""
        return clean_text(found.get_text(" ", strip=True))

    @staticmethod
    def _select_link(node: Tag, selector: str, base_url: str) -> str:
        if not selector:
            return ""
        found = node.select_one(selector)
        if found is None:
            return ""
        href = found.get("href")
        if not isinstance(href, str) or not href.strip():
            return ""
        return normalize_product_link(href, base_url)

    @classmethod
    def _select_image(cls, node: Tag, selector: str, base_url: str) -> str:
        if not selector:
            return ""
        found = node.select_one(selector)
        if found is None:
            return ""
        return cls._image_url(found, base_url)

    @classmethod
    def _select_images(cls, soup: BeautifulSoup, selector: str, base_url: str) -> list[str]:
        if not selector:
            return []
        urls: list[str] = []
        for node in soup.select(selector):
            url = cls._image_url(node, base_url)
            if url and url not in urls:
                urls.append(url)
        return urls

    @staticmethod
    def _image_url(node: Tag, base_url: str) -> str:
        for attribute in _IMAGE_ATTRIBUTES:
            value = node.get(attribute)
            if isinstance(value, str) and value.strip():
                return normalize_product_link(value, base_url)

        style = node.get("style")
        if isinstance(style, str):
            match = _STYLE_URL.search(style)
            if match:
                return normalize_product_link(match.group(1).strip("\"' "), base_url)
        return ""

    @staticmethod
    def _meta_description(soup: BeautifulSoup) -> str:
        meta = soup.find("meta", attrs={"name": "description"})
        if meta is None:
            return ""
        content = meta.get("content")
        return clean_text(content) if isinstance(content, str) else ""

    @classmethod
    def _build_variants(
        cls,
        soup: BeautifulSoup,
        variant_axes: dict[str, str],
        price: str,
    ) -> list[dict[str, Any]]:
        axes: list[tuple[str, list[str]]] = []
        for axis, selector in variant_axes.items():
            values: list[str] = []
            for node in soup.select(selector):
                text = clean_text(node.get_text(" ", strip=True))
                if text and text not in values:
                    values.append(text)
            if values:
                axes.append((axis, values))

        if not axes:
            return []

        names = [axis for axis, _ in axes]
        variants: list[dict[str, Any]] = []
        for combination in itertools.product(*(values for _, values in axes)):
            variant: dict[str, Any] = dict(zip(names, combination))
            if price:
                variant["price"] = price
            variants.append(variant)
        return variants
