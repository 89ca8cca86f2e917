"""
Environment + JSON config loader for catalog scraping.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

from app.scraping.config.models import (
    CatalogScrapingSettings,
    CatalogUrlConfig,
    ParsingMode,
    SelectorSet,
    ShopCatalogConfig,
)
from app.scraping.errors import ConfigurationError

_SELECTOR_FIELDS = (
    "product_container",
    "name",
    "product_link",
    "price",
    "image",
    "description",
    "material",
    "detail_price",
    "detail_images",
)


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_list_env(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_catalog_scraping_settings() -> CatalogScrapingSettings:
    """
    Return cached catalog scraping settings from environment variables.
    """

    load_env_files()
    config_path = _get_str_env(
        "CATALOG_SCRAPE_CONFIG_PATH",
        "app/scraping/config/shops.json",
    )
    return CatalogScrapingSettings(
        config_path=str(_resolve_config_path(config_path)),
        user_agent=_get_str_env("CATALOG_SCRAPE_USER_AGENT", "Aggregator Bot 1.0"),
        timeout_seconds=max(1.0, _get_float_env("CATALOG_SCRAPE_TIMEOUT_SECONDS", 30.0)),
        request_delay_seconds=max(
            0.0,
            _get_float_env("CATALOG_SCRAPE_REQUEST_DELAY_SECONDS", 1.0),
        ),
        verify_ssl=_get_bool_env("CATALOG_SCRAPE_VERIFY_SSL", True),
        max_pages=max(1, _get_int_env("CATALOG_SCRAPE_MAX_PAGES", 100)),
        streaming_save=_get_bool_env("CATALOG_SCRAPE_STREAMING_SAVE", True),
        detail_enabled=_get_bool_env("CATALOG_SCRAPE_DETAIL_ENABLED", True),
        save_images=_get_bool_env("CATALOG_SCRAPE_SAVE_IMAGES", True),
        images_dir=_get_str_env("CATALOG_SCRAPE_IMAGES_DIR", "Images"),
        enabled_shops=_get_list_env("CATALOG_SCRAPE_ENABLED_SHOPS"),
        backoff_initial_seconds=max(
            0.0,
            _get_float_env("CATALOG_SCRAPE_BACKOFF_INITIAL_SECONDS", 1.0),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("CATALOG_SCRAPE_BACKOFF_MULTIPLIER", 2.0),
        ),
        max_reported_errors=max(
            1,
            _get_int_env("CATALOG_SCRAPE_MAX_REPORTED_ERRORS", 10),
        ),
    )


def load_shop_profiles(*, config_path: str) -> list[ShopCatalogConfig]:
    """
    Load shop profiles from a JSON file.

    Entries without a name are ignored. A named entry that cannot be turned
    into a runnable profile raises ConfigurationError.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Shop config file not found: {path}")

    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Shop config file is not valid JSON: {path}") from exc

    shops = raw_data.get("shops", []) if isinstance(raw_data, dict) else None
    if not isinstance(shops, list):
        raise ConfigurationError("Invalid shop config: 'shops' must be a list.")

    parsed: list[ShopCatalogConfig] = []
    for entry in shops:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name", "")).strip()
        if not name:
            continue
        parsed.append(build_shop_profile(entry))
    return parsed


def build_shop_profile(entry: dict[str, object]) -> ShopCatalogConfig:
    """
    Turn one raw shop entry into a validated profile.
    """

    name = str(entry.get("name", "")).strip()
    base_urls = _normalize_base_urls(entry.get("base_urls", []))
    shop_url = _optional_str(entry.get("shop_url"))
    if shop_url is None and base_urls:
        shop_url = base_urls[0].url

    return ShopCatalogConfig(
        name=name,
        shop_url=(shop_url or "").rstrip("/"),
        base_urls=base_urls,
        selectors=_normalize_selectors(entry.get("selectors", {})),
        mode=str(entry.get("mode", ParsingMode.TWO_PHASE)).strip().lower(),
        enabled=_optional_bool(entry.get("enabled"), True),
        detail_enabled=_optional_bool(entry.get("detail_enabled"), True),
        max_retries=max(0, _optional_int(entry.get("max_retries"), 0)),
        parser_class=_optional_str(entry.get("parser_class")),
    )


def _normalize_base_urls(raw: object) -> tuple[CatalogUrlConfig, ...]:
    if not isinstance(raw, list):
        return ()

    normalized: list[CatalogUrlConfig] = []
    for item in raw:
        if isinstance(item, str):
            url, rule = item.strip(), None
        elif isinstance(item, dict):
            url = str(item.get("url", "")).strip()
            rule = _optional_str(item.get("pagination_rule"))
        else:
            continue
        if url:
            normalized.append(CatalogUrlConfig(url=url, pagination_rule=rule))
    return tuple(normalized)


def _normalize_selectors(raw: object) -> SelectorSet:
    if not isinstance(raw, dict):
        raw = {}

    values: dict[str, str] = {}
    for key in _SELECTOR_FIELDS:
        value = raw.get(key)
        values[key] = value.strip() if isinstance(value, str) else ""

    axes: dict[str, str] = {}
    raw_axes = raw.get("variant_axes", {})
    if isinstance(raw_axes, dict):
        for axis, selector in raw_axes.items():
            if isinstance(axis, str) and isinstance(selector, str) and selector.strip():
                axes[axis.strip().lower()] = selector.strip()

    return SelectorSet(variant_axes=axes, **values)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_int(value: object, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
