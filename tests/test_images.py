"""
tests/test_images.py

Best-effort image downloads with a stubbed HTTP session.
"""

from __future__ import annotations

from pathlib import Path

import requests

from app.scraping.images import ImageStore


class _Response:
    def __init__(self, content: bytes, *, status_code: int = 200, content_type: str = "") -> None:
        self.content = content
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}")


class _Session:
    def __init__(self, response: _Response | Exception) -> None:
        self.response = response
        self.calls: list[str] = []

    def get(self, url: str, **kwargs) -> _Response:
        self.calls.append(url)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class TestImageStore:
    def test_stores_file_with_url_extension(self, tmp_path: Path) -> None:
        store = ImageStore(images_dir=tmp_path / "img", session=_Session(_Response(b"png-bytes")))

        name = store.fetch_and_store("https://cdn.example/a/photo.PNG", "Ask Studio!")

        assert name is not None
        assert name.startswith("AskStudio_")
        assert name.endswith(".png")
        assert (tmp_path / "img" / name).read_bytes() == b"png-bytes"
        assert not list((tmp_path / "img").glob("*.tmp"))

    def test_extension_from_content_type(self, tmp_path: Path) -> None:
        session = _Session(_Response(b"x", content_type="image/webp; charset=binary"))
        store = ImageStore(images_dir=tmp_path, session=session)

        name = store.fetch_and_store("https://cdn.example/image?id=1", "ZNWR")

        assert name is not None and name.endswith(".webp")

    def test_http_error_returns_none(self, tmp_path: Path) -> None:
        store = ImageStore(images_dir=tmp_path, session=_Session(_Response(b"", status_code=404)))

        assert store.fetch_and_store("https://cdn.example/a.jpg", "ZNWR") is None

    def test_connection_error_returns_none(self, tmp_path: Path) -> None:
        session = _Session(requests.ConnectionError("refused"))
        store = ImageStore(images_dir=tmp_path, session=session)

        assert store.fetch_and_store("https://cdn.example/a.jpg", "ZNWR") is None

    def test_non_http_url_is_ignored(self, tmp_path: Path) -> None:
        session = _Session(_Response(b"x"))
        store = ImageStore(images_dir=tmp_path, session=session)

        assert store.fetch_and_store("/relative/a.jpg", "ZNWR") is None
        assert session.calls == []
