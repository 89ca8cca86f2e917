"""
Per-shop duplicate detection.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.scraping.parsing import normalize_price
from app.scraping.types import Listing


class DedupIndex:
    """
    Known product URLs of one shop, extended as listings are accepted.
    """

    def __init__(self, known_urls: Iterable[str] = ()) -> None:
        self._known = {url for url in known_urls if url}

    def __len__(self) -> int:
        return len(self._known)

    def is_duplicate(self, listing: Listing) -> bool:
        return listing.product_url in self._known

    def add(self, listing: Listing) -> None:
        if listing.product_url:
            self._known.add(listing.product_url)


def name_price_key(name: str, price: str | None) -> tuple[str, str]:
    return name.strip(), normalize_price(price)


class NamePriceDedupIndex:
    """
    Legacy index keyed by listing name and normalized price.
    """

    def __init__(self, known_keys: Iterable[tuple[str, str]] = ()) -> None:
        self._known = {name_price_key(name, price) for name, price in known_keys}

    def __len__(self) -> int:
        return len(self._known)

    def is_duplicate(self, listing: Listing) -> bool:
        return name_price_key(listing.name, listing.price) in self._known

    def add(self, listing: Listing) -> None:
        self._known.add(name_price_key(listing.name, listing.price))
