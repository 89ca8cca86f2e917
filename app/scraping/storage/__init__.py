"""
Storage layer exports.
"""

from app.scraping.storage.base import ProductStorage
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyProductStorage

__all__ = ["ProductStorage", "SQLAlchemyProductStorage"]
