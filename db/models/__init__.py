"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.product import Product
from db.models.shop import Shop

__all__ = [
    "Product",
    "Shop",
]
