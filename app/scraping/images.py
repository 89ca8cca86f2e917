"""
Best-effort product image downloads.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path
from urllib.parse import urlparse

import requests

from app.scraping.logging_utils import log_event
from app.scraping.types import utc_now

logger = logging.getLogger(__name__)

_VALID_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
_CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
_UNSAFE_NAME_CHARS = re.compile(r"[^\w\-]")


class ImageStore:
    """
    Downloads images into a local directory.

    `fetch_and_store` returns the stored file name, or None when the image
    could not be downloaded or written.
    """

    def __init__(
        self,
        *,
        images_dir: str | Path,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
        user_agent: str = "Aggregator Bot 1.0",
        verify_ssl: bool = True,
    ) -> None:
        self._images_dir = Path(images_dir)
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": user_agent}
        self._verify_ssl = verify_ssl

    @property
    def images_dir(self) -> Path:
        return self._images_dir

    def fetch_and_store(self, url: str, shop_name: str) -> str | None:
        if not url or not url.startswith(("http://", "https://")):
            return None

        try:
            response = self._session.get(
                url,
                headers=self._headers,
                timeout=self._timeout_seconds,
                verify=self._verify_ssl,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            log_event(
                logger,
                logging.WARNING,
                "image_download_failed",
                shop=shop_name,
                url=url,
                error=str(exc),
            )
            return None

        extension = self._extension(url, response.headers.get("Content-Type"))
        file_name = self._file_name(shop_name, extension)
        target = self._images_dir / file_name
        temp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            self._images_dir.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(response.content)
            os.replace(temp_path, target)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            log_event(
                logger,
                logging.WARNING,
                "image_write_failed",
                shop=shop_name,
                url=url,
                path=str(target),
                error=str(exc),
            )
            return None

        log_event(logger, logging.DEBUG, "image_stored", shop=shop_name, url=url, file=file_name)
        return file_name

    @staticmethod
    def _extension(url: str, content_type: str | None) -> str:
        suffix = Path(urlparse(url).path).suffix.lower()
        if suffix in _VALID_EXTENSIONS:
            return suffix
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        return _CONTENT_TYPE_EXTENSIONS.get(media_type, ".jpg")

    @staticmethod
    def _file_name(shop_name: str, extension: str) -> str:
        timestamp = utc_now().strftime("%Y%m%d_%H%M%S")
        safe_name = _UNSAFE_NAME_CHARS.sub("", shop_name) or "shop"
        return f"{safe_name}_{timestamp}_{uuid.uuid4().hex[:8]}{extension}"
