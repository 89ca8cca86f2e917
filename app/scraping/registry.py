"""
Shop parser class registry and factory.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping

from app.scraping.base import ShopParser
from app.scraping.config.models import CatalogScrapingSettings, ShopCatalogConfig
from app.scraping.errors import ConfigurationError
from app.scraping.fetcher import PageFetcher
from app.scraping.images import ImageStore


class ParserRegistry:
    """
    Maps shop names to parser classes; unregistered shops use ShopParser.

    A profile's `parser_class` ('module.path:ClassName') takes precedence.
    """

    def __init__(self, registrations: Mapping[str, type[ShopParser]] | None = None) -> None:
        self._registrations: dict[str, type[ShopParser]] = {}
        for shop_name, parser_class in (registrations or {}).items():
            self.register(shop_name=shop_name, parser_class=parser_class)

    def register(self, *, shop_name: str, parser_class: type[ShopParser]) -> None:
        self._registrations[shop_name.strip().lower()] = parser_class

    def create_parser(
        self,
        *,
        profile: ShopCatalogConfig,
        fetcher: PageFetcher,
        settings: CatalogScrapingSettings,
        image_store: ImageStore | None = None,
    ) -> ShopParser:
        parser_class = self._resolve_parser_class(profile)
        return parser_class(
            profile=profile,
            fetcher=fetcher,
            settings=settings,
            image_store=image_store,
        )

    def _resolve_parser_class(self, profile: ShopCatalogConfig) -> type[ShopParser]:
        if profile.parser_class:
            return self._load_dynamic_class(profile.parser_class)
        return self._registrations.get(profile.name.strip().lower(), ShopParser)

    @staticmethod
    def _load_dynamic_class(path: str) -> type[ShopParser]:
        if ":" not in path:
            raise ConfigurationError(f"Invalid parser_class '{path}'. Use 'module.path:ClassName'.")

        module_path, class_name = path.split(":", 1)
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ConfigurationError(f"Unable to import parser module '{module_path}'.") from exc
        loaded = getattr(module, class_name, None)
        if loaded is None:
            raise ConfigurationError(f"Unable to resolve parser class '{path}'.")
        if not isinstance(loaded, type) or not issubclass(loaded, ShopParser):
            raise ConfigurationError(f"Class '{path}' must inherit from ShopParser.")
        return loaded
