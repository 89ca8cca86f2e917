"""
app/schemas package marker.
"""

from app.schemas.catalog_scraping import (
    RunSummaryResponse,
    ShopScrapeSummaryResponse,
    ShopStatisticsResponse,
    StatisticsReportResponse,
)

__all__ = [
    "RunSummaryResponse",
    "ShopScrapeSummaryResponse",
    "ShopStatisticsResponse",
    "StatisticsReportResponse",
]
