"""
Page loading for catalog and product pages.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests
from bs4 import BeautifulSoup

from app.scraping.errors import ParseFailure, TransportError
from app.scraping.logging_utils import log_event
from app.scraping.rate_limiter import DomainRateLimiter

logger = logging.getLogger(__name__)

_HTML_PARSER = "html.parser"


def is_remote(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


class PageFetcher:
    """
    Load a document tree from an HTTP(S) URL, a file:// URL or a plain path.

    Every failure surfaces as TransportError or ParseFailure. Nothing is
    retried here.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        user_agent: str = "Aggregator Bot 1.0",
        timeout_seconds: float = 30.0,
        verify_ssl: bool = True,
        rate_limiter: DomainRateLimiter | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._headers = {"User-Agent": user_agent}
        self._timeout_seconds = timeout_seconds
        self._verify_ssl = verify_ssl
        self._rate_limiter = rate_limiter

    def load(self, locator: str) -> BeautifulSoup:
        if is_remote(locator):
            markup = self._download(locator)
        else:
            markup = self._read_local(locator)
        return self._parse(locator, markup)

    def _download(self, url: str) -> bytes:
        if self._rate_limiter is not None:
            self._rate_limiter.wait(url=url)
        try:
            response = self._session.get(
                url,
                headers=self._headers,
                timeout=self._timeout_seconds,
                verify=self._verify_ssl,
                allow_redirects=True,
            )
            response.raise_for_status()
        except requests.Timeout as exc:
            raise TransportError(f"Timed out fetching {url}: {exc}", locator=url) from exc
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise TransportError(
                f"HTTP status={status_code} fetching {url}",
                locator=url,
                status_code=status_code,
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(f"Failed to fetch {url}: {exc}", locator=url) from exc

        log_event(
            logger,
            logging.DEBUG,
            "page_fetched",
            url=url,
            status_code=response.status_code,
            size_bytes=len(response.content),
        )
        return response.content

    @staticmethod
    def _read_local(locator: str) -> bytes:
        if locator.startswith("file://"):
            path = Path(unquote(urlparse(locator).path))
        else:
            path = Path(locator)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TransportError(f"Failed to read {path}: {exc}", locator=locator) from exc

    @staticmethod
    def _parse(locator: str, markup: bytes) -> BeautifulSoup:
        if not markup.strip():
            raise ParseFailure(f"Empty document at {locator}")
        try:
            return BeautifulSoup(markup, _HTML_PARSER)
        except Exception as exc:
            raise ParseFailure(f"Unable to parse document at {locator}: {exc}") from exc
