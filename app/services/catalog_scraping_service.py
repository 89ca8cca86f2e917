"""
app/services/catalog_scraping_service.py

Service orchestration for catalog scraping runs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.catalog_scraping import RunSummary
from app.scraping.config import CatalogScrapingSettings, get_catalog_scraping_settings
from app.scraping.engine import CatalogScrapingEngine
from app.scraping.logging_utils import log_event
from app.scraping.storage import SQLAlchemyProductStorage
from app.scraping.types import ShopStatistics

logger = logging.getLogger(__name__)


class CatalogScrapingService:
    """
    Runs the catalog scraping pipeline against one DB session.
    """

    def __init__(self, settings: CatalogScrapingSettings | None = None) -> None:
        self._settings = settings or get_catalog_scraping_settings()

    def run_parsing(
        self,
        *,
        db: Session,
        shops: Sequence[str] | None = None,
    ) -> RunSummary:
        """
        Scrape every enabled shop, or only `shops` when given.
        """

        storage = SQLAlchemyProductStorage(session=db)
        engine = CatalogScrapingEngine(settings=self._settings, storage=storage)
        summary = RunSummary(shops=engine.run_configured(shop_names=shops))
        log_event(
            logger,
            logging.INFO,
            "catalog_run_completed",
            shops=len(summary.shops),
            success=summary.success,
            **summary.totals,
        )
        return summary

    def get_statistics(self, *, db: Session) -> list[ShopStatistics]:
        return SQLAlchemyProductStorage(session=db).get_shop_statistics()

    def count_products(self, *, db: Session) -> int:
        return SQLAlchemyProductStorage(session=db).count_products()

    def check_database(self, *, db: Session) -> bool:
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            log_event(logger, logging.ERROR, "database_check_failed", error=str(exc))
            return False
        return True


@lru_cache(maxsize=1)
def get_catalog_scraping_service() -> CatalogScrapingService:
    """
    Build and cache the catalog scraping service.
    """

    return CatalogScrapingService()
