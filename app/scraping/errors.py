"""
Scraping pipeline exceptions.
"""

from __future__ import annotations


class ScrapingError(Exception):
    """Base exception for catalog scraping failures."""


class TransportError(ScrapingError):
    """Raised when a page cannot be retrieved (connection, timeout, status, unreadable file)."""

    def __init__(self, message: str, *, locator: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.locator = locator
        self.status_code = status_code


class ParseFailure(ScrapingError):
    """Raised when a document or one of its structures cannot be interpreted."""


class PersistenceError(ScrapingError):
    """Raised when the store rejects a write."""


class ConfigurationError(ScrapingError):
    """Raised when a shop profile is missing a required selector or URL."""
