"""
app/domain package marker.
"""

from app.domain.catalog_scraping import RunSummary, ShopRunStatus, ShopScrapeSummary

__all__ = [
    "RunSummary",
    "ShopRunStatus",
    "ShopScrapeSummary",
]
