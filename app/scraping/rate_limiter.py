"""
Per-domain request spacing for catalog fetches.
"""

from __future__ import annotations

import time
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces a minimum delay between consecutive requests to one domain.

    Locators without a network location (local files) are never delayed.
    """

    def __init__(self, *, min_interval_seconds: float) -> None:
        self._min_interval_seconds = max(0.0, min_interval_seconds)
        self._last_request_by_domain: dict[str, float] = {}

    def wait(self, *, url: str) -> None:
        """
        Sleep as needed so outbound requests respect the configured spacing.
        """

        domain = urlparse(url).netloc.lower()
        if not domain or self._min_interval_seconds <= 0:
            return

        now = time.monotonic()
        last_time = self._last_request_by_domain.get(domain)
        if last_time is not None:
            wait_seconds = self._min_interval_seconds - (now - last_time)
            if wait_seconds > 0:
                time.sleep(wait_seconds)
        self._last_request_by_domain[domain] = time.monotonic()
