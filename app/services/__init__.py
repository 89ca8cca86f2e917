"""
app/services package marker.
"""

from app.services.catalog_scraping_service import (
    CatalogScrapingService,
    get_catalog_scraping_service,
)

__all__ = [
    "CatalogScrapingService",
    "get_catalog_scraping_service",
]
