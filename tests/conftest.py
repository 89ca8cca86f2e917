"""
Shared fixtures for catalog scraping tests.

Catalog and product pages are written as HTML files under tmp_path and loaded
through the local-file branch of PageFetcher.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from app.scraping.config.models import (
    CatalogScrapingSettings,
    CatalogUrlConfig,
    ParsingMode,
    SelectorSet,
    ShopCatalogConfig,
)
from app.scraping.fetcher import PageFetcher
from app.scraping.storage.base import ProductStorage
from app.scraping.types import Listing, ParsingStatus, ShopRecord, ShopStatistics

SHOP_URL = "https://shop.example"

SELECTORS = SelectorSet(
    product_container="div.item",
    name="span.title",
    product_link="a.link",
    price="span.price",
    image="img.thumb",
    description="div.description",
    material="div.material",
    detail_price="span.detail-price",
    detail_images="div.gallery img",
    variant_axes={"size": "ul.sizes li", "color": "ul.colors li"},
)


def catalog_html(items: Sequence[tuple[str | None, str | None]], *, price: str = "") -> str:
    """
    Build a catalog page; each item is (name, href) and None omits the element.
    """

    nodes = []
    for name, href in items:
        parts = ['<div class="item">']
        if name is not None:
            parts.append(f'<span class="title">{name}</span>')
        if href is not None:
            parts.append(f'<a class="link" href="{href}">open</a>')
        if price:
            parts.append(f'<span class="price">{price}</span>')
        parts.append("</div>")
        nodes.append("".join(parts))
    return f"<html><body><div class='catalog'>{''.join(nodes)}</div></body></html>"


def product_html(
    *,
    description: str | None = "Soft cotton shirt",
    material: str = "100% cotton",
    price: str = "2 990 ₽",
    images: Sequence[str] = ("/img/1.jpg",),
    sizes: Sequence[str] = ("S", "M"),
    colors: Sequence[str] = ("black",),
    meta_description: str = "",
) -> str:
    head = f'<meta name="description" content="{meta_description}">' if meta_description else ""
    body = []
    if description is not None:
        body.append(f'<div class="description">{description}</div>')
    body.append(f'<div class="material">{material}</div>')
    body.append(f'<span class="detail-price">{price}</span>')
    body.append(
        '<div class="gallery">' + "".join(f'<img src="{src}">' for src in images) + "</div>"
    )
    body.append('<ul class="sizes">' + "".join(f"<li>{size}</li>" for size in sizes) + "</ul>")
    body.append('<ul class="colors">' + "".join(f"<li>{color}</li>" for color in colors) + "</ul>")
    return f"<html><head>{head}</head><body>{''.join(body)}</body></html>"


@pytest.fixture()
def write_page(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, markup: str) -> Path:
        path = tmp_path / name
        path.write_text(markup, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def settings(tmp_path: Path) -> CatalogScrapingSettings:
    return CatalogScrapingSettings(
        config_path=str(tmp_path / "shops.json"),
        user_agent="test-agent",
        timeout_seconds=5.0,
        request_delay_seconds=0.0,
        verify_ssl=True,
        max_pages=100,
        streaming_save=True,
        detail_enabled=False,
        save_images=False,
        images_dir=str(tmp_path / "images"),
        enabled_shops=(),
        backoff_initial_seconds=1.0,
        backoff_multiplier=2.0,
        max_reported_errors=10,
    )


def make_profile(
    base_urls: Sequence[CatalogUrlConfig],
    *,
    name: str = "TestShop",
    mode: str = ParsingMode.TWO_PHASE,
    **overrides: object,
) -> ShopCatalogConfig:
    profile = ShopCatalogConfig(
        name=name,
        shop_url=SHOP_URL,
        base_urls=tuple(base_urls),
        selectors=SELECTORS,
        mode=mode,
    )
    return replace(profile, **overrides) if overrides else profile


class RecordingFetcher(PageFetcher):
    """PageFetcher that remembers every locator it was asked to load."""

    def __init__(self) -> None:
        super().__init__(user_agent="test-agent")
        self.loaded: list[str] = []

    def load(self, locator: str):  # type: ignore[override]
        self.loaded.append(locator)
        return super().load(locator)


@pytest.fixture()
def fetcher() -> RecordingFetcher:
    return RecordingFetcher()


class FakeStorage(ProductStorage):
    """
    In-memory storage gateway.

    `fail_on` names make save_one raise; `reject` names make it return False.
    """

    def __init__(
        self,
        *,
        fail_on: Sequence[str] = (),
        reject: Sequence[str] = (),
        broken_shops: Sequence[str] = (),
    ) -> None:
        self.shops: dict[str, ShopRecord] = {}
        self.rows: list[Listing] = []
        self.updated: list[Listing] = []
        self.fail_on = set(fail_on)
        self.reject = set(reject)
        self.broken_shops = set(broken_shops)
        self.ensure_calls = 0

    def ensure_shop_exists(self, name: str, url: str | None = None) -> ShopRecord:
        self.ensure_calls += 1
        if name in self.broken_shops:
            raise RuntimeError(f"shop table unavailable for {name}")
        if name not in self.shops:
            self.shops[name] = ShopRecord(id=len(self.shops) + 1, name=name, url=url or "")
        return self.shops[name]

    def get_known_product_urls(self, shop_name: str) -> set[str]:
        return {row.product_url for row in self.rows if row.shop_name == shop_name}

    def get_known_name_price_keys(self, shop_name: str) -> set[tuple[str, str | None]]:
        return {(row.name, row.price) for row in self.rows if row.shop_name == shop_name}

    def get_pending_detail_listings(self, shop_name: str) -> list[Listing]:
        return [
            row
            for row in self.rows
            if row.shop_name == shop_name
            and row.product_url
            and row.parsing_status == ParsingStatus.BASIC_PARSED
        ]

    def save_one(self, listing: Listing) -> bool:
        if listing.name in self.fail_on:
            raise RuntimeError(f"constraint violated for {listing.name}")
        if listing.name in self.reject:
            return False
        listing.id = len(self.rows) + 1
        self.rows.append(listing)
        return True

    def save_many(self, listings: Sequence[Listing]) -> int:
        for listing in listings:
            listing.id = len(self.rows) + 1
            self.rows.append(listing)
        return len(listings)

    def update_one(self, listing: Listing) -> bool:
        self.updated.append(listing)
        return True

    def get_shop_statistics(self) -> list[ShopStatistics]:
        counts: dict[str, list[datetime]] = {}
        for row in self.rows:
            counts.setdefault(row.shop_name, []).append(row.created_at)
        return [
            ShopStatistics(shop_name=name, product_count=len(dates), last_update=max(dates))
            for name, dates in sorted(counts.items())
        ]

    def count_products(self) -> int:
        return len(self.rows)


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()
