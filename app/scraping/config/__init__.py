"""
Config helpers for catalog scraping.
"""

from app.scraping.config.loader import (
    build_shop_profile,
    get_catalog_scraping_settings,
    load_shop_profiles,
)
from app.scraping.config.models import (
    CatalogScrapingSettings,
    CatalogUrlConfig,
    ParsingMode,
    SelectorSet,
    ShopCatalogConfig,
)

__all__ = [
    "CatalogScrapingSettings",
    "CatalogUrlConfig",
    "ParsingMode",
    "SelectorSet",
    "ShopCatalogConfig",
    "build_shop_profile",
    "get_catalog_scraping_settings",
    "load_shop_profiles",
]
