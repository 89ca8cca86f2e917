"""
HTML parsing layer exports.
"""

from app.scraping.parsing.html_parsers import (
    HTMLParsingLayer,
    ProductDetails,
    clean_text,
    normalize_price,
    normalize_product_link,
)

__all__ = [
    "HTMLParsingLayer",
    "ProductDetails",
    "clean_text",
    "normalize_price",
    "normalize_product_link",
]
