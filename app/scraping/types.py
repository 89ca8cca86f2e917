"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ParsingStatus:
    NOT_PARSED = "not_parsed"
    BASIC_PARSED = "basic_parsed"
    DETAILED_PARSED = "detailed_parsed"


@dataclass
class Listing:
    """
    One scraped catalog entry.

    Created by the basic phase and enriched in place by the detail phase.
    """

    name: str
    product_url: str
    shop_name: str = ""
    shop_id: int | None = None
    id: int | None = None
    parsing_status: str = ParsingStatus.NOT_PARSED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    description: str | None = None
    price: str | None = None
    material: str | None = None
    image_urls: list[str] = field(default_factory=list)
    local_image_paths: list[str] = field(default_factory=list)
    variants: list[dict[str, Any]] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = utc_now()


@dataclass(frozen=True)
class ShopRecord:
    """
    Persisted shop identity returned by the storage gateway.
    """

    id: int
    name: str
    url: str


@dataclass(frozen=True)
class ShopStatistics:
    shop_name: str
    product_count: int
    last_update: datetime | None


@dataclass
class CatalogCrawl:
    """
    Listings found across every base URL of one shop, with failed page details.
    """

    listings: list[Listing] = field(default_factory=list)
    pages_fetched: int = 0
    failed_pages: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "CatalogCrawl") -> None:
        self.listings.extend(other.listings)
        self.pages_fetched += other.pages_fetched
        self.failed_pages += other.failed_pages
        self.errors.extend(other.errors)


@dataclass
class _PhaseResult:
    shop_name: str
    start_time: datetime = field(default_factory=utc_now)
    end_time: datetime | None = None
    success: bool = True
    error: str | None = None
    errors: list[str] = field(default_factory=list)
    failed_pages: int = 0

    @property
    def duration(self) -> timedelta:
        return (self.end_time or utc_now()) - self.start_time

    def finish(self) -> None:
        self.end_time = utc_now()

    def fail(self, exc: BaseException) -> None:
        self.success = False
        self.error = str(exc)
        self.finish()


@dataclass
class BasicParsingResult(_PhaseResult):
    basic_products: list[Listing] = field(default_factory=list)

    @property
    def product_count(self) -> int:
        return len(self.basic_products)


@dataclass
class StreamingParsingResult(_PhaseResult):
    saved_products: list[Listing] = field(default_factory=list)
    total_parsed_count: int = 0
    saved_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_parsed_count <= 0:
            return 0.0
        return self.saved_count / self.total_parsed_count * 100


@dataclass
class DetailedParsingResult(_PhaseResult):
    detailed_products: list[Listing] = field(default_factory=list)
    processed_count: int = 0
    detailed_count: int = 0
    saved_count: int = 0
    failed_count: int = 0


@dataclass
class LegacyParsingResult(_PhaseResult):
    products: list[Listing] = field(default_factory=list)
    parsed_count: int = 0
    added_count: int = 0
    skipped_count: int = 0
