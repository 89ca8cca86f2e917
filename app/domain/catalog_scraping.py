"""
app/domain/catalog_scraping.py

Domain models for catalog scraping runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


class ShopRunStatus:
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


@dataclass(frozen=True)
class ShopScrapeSummary:
    """
    Summary for one shop in one run.
    """

    shop: str
    mode: str
    parsed: int
    saved: int
    skipped: int
    failed: int
    detailed: int
    failed_pages: int
    status: str
    errors: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    attempts: int = 1

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


@dataclass(frozen=True)
class RunSummary:
    """
    Aggregate of every shop summary in one run.
    """

    shops: list[ShopScrapeSummary] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(summary.status != ShopRunStatus.FAILED for summary in self.shops)

    @property
    def totals(self) -> dict[str, int]:
        return {
            "parsed": sum(summary.parsed for summary in self.shops),
            "saved": sum(summary.saved for summary in self.shops),
            "skipped": sum(summary.skipped for summary in self.shops),
            "failed": sum(summary.failed for summary in self.shops),
            "detailed": sum(summary.detailed for summary in self.shops),
            "failed_pages": sum(summary.failed_pages for summary in self.shops),
        }
