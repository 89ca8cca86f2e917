"""
app/schemas/catalog_scraping.py

Output schemas for catalog scraping runs and statistics.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.catalog_scraping import RunSummary, ShopScrapeSummary
from app.scraping.types import ShopStatistics


class ShopScrapeSummaryResponse(BaseModel):
    """
    Serialized summary for one shop.
    """

    shop: str
    mode: str
    parsed: int = Field(..., ge=0)
    saved: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    detailed: int = Field(..., ge=0)
    failed_pages: int = Field(..., ge=0)
    status: str
    attempts: int = Field(1, ge=1)
    duration_seconds: float = Field(0.0, ge=0)
    errors: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def from_domain(cls, summary: ShopScrapeSummary) -> "ShopScrapeSummaryResponse":
        return cls(
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
            duration_seconds=max(0.0, summary.duration_seconds),
            errors=list(summary.errors),
            started_at=summary.started_at,
            finished_at=summary.finished_at,
        )


class RunSummaryResponse(BaseModel):
    success: bool
    totals: dict[str, int]
    shops: list[ShopScrapeSummaryResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, summary: RunSummary) -> "RunSummaryResponse":
        return cls(
            success=summary.success,
            totals=summary.totals,
            shops=[ShopScrapeSummaryResponse.from_domain(item) for item in summary.shops],
        )


class ShopStatisticsResponse(BaseModel):
    shop_name: str
    product_count: int = Field(..., ge=0)
    last_update: datetime | None = None

    @classmethod
    def from_domain(cls, statistics: ShopStatistics) -> "ShopStatisticsResponse":
        return cls(
            shop_name=statistics.shop_name,
            product_count=statistics.product_count,
            last_update=statistics.last_update,
        )


class StatisticsReportResponse(BaseModel):
    total_products: int = Field(..., ge=0)
    shops: list[ShopStatisticsResponse] = Field(default_factory=list)
