"""
Catalog scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import soupsieve

from app.scraping.errors import ConfigurationError


class ParsingMode:
    TWO_PHASE = "two_phase"
    # Deprecated single-call extraction keyed by name + price.
    LEGACY = "legacy"

    ALL = frozenset({TWO_PHASE, LEGACY})


@dataclass(frozen=True)
class SelectorSet:
    """
    CSS selectors locating listing fields on catalog and product pages.

    `product_container`, `name` and `product_link` drive the basic phase.
    Every other selector is optional; an empty value means the field is
    never populated.
    """

    product_container: str
    name: str
    product_link: str
    price: str = ""
    image: str = ""
    description: str = ""
    material: str = ""
    detail_price: str = ""
    detail_images: str = ""
    variant_axes: dict[str, str] = field(default_factory=dict)

    def declared(self) -> dict[str, str]:
        """
        Return every non-empty selector keyed by field name.
        """

        selectors = {
            "product_container": self.product_container,
            "name": self.name,
            "product_link": self.product_link,
            "price": self.price,
            "image": self.image,
            "description": self.description,
            "material": self.material,
            "detail_price": self.detail_price,
            "detail_images": self.detail_images,
        }
        for axis, selector in self.variant_axes.items():
            selectors[f"variant:{axis}"] = selector
        return {key: value for key, value in selectors.items() if value}


@dataclass(frozen=True)
class CatalogUrlConfig:
    """
    One catalog entry point and its pagination template.

    `pagination_rule` may reference `{page}` (the next page number) and
    `{base_url}`. None disables pagination.
    """

    url: str
    pagination_rule: str | None = None

    def page_url(self, page_number: int) -> str | None:
        if not self.pagination_rule:
            return None
        return self.pagination_rule.replace("{page}", str(page_number)).replace(
            "{base_url}", self.url
        )


@dataclass(frozen=True)
class ShopCatalogConfig:
    """
    One shop profile consumed by the generic extraction engine.
    """

    name: str
    shop_url: str
    base_urls: tuple[CatalogUrlConfig, ...]
    selectors: SelectorSet
    mode: str = ParsingMode.TWO_PHASE
    enabled: bool = True
    detail_enabled: bool = True
    max_retries: int = 0
    parser_class: str | None = None

    def __post_init__(self) -> None:
        validate_shop_config(self)

    @property
    def is_legacy(self) -> bool:
        return self.mode == ParsingMode.LEGACY


@dataclass(frozen=True)
class CatalogScrapingSettings:
    """
    Runtime settings for catalog scraping.
    """

    config_path: str
    user_agent: str
    timeout_seconds: float
    request_delay_seconds: float
    verify_ssl: bool
    max_pages: int
    streaming_save: bool
    detail_enabled: bool
    save_images: bool
    images_dir: str
    enabled_shops: tuple[str, ...]
    backoff_initial_seconds: float
    backoff_multiplier: float
    max_reported_errors: int


def validate_shop_config(config: ShopCatalogConfig) -> None:
    """
    Reject a shop profile the engine cannot run.
    """

    if not config.name.strip():
        raise ConfigurationError("Shop profile requires a non-empty name.")
    if config.mode not in ParsingMode.ALL:
        allowed = ", ".join(sorted(ParsingMode.ALL))
        raise ConfigurationError(
            f"Unknown mode='{config.mode}' for shop='{config.name}'. Allowed modes: {allowed}."
        )
    if not config.base_urls:
        raise ConfigurationError(f"Shop '{config.name}' has no catalog base URLs.")
    for url_config in config.base_urls:
        if not url_config.url.strip():
            raise ConfigurationError(f"Shop '{config.name}' has an empty catalog base URL.")

    required = {
        "product_container": config.selectors.product_container,
        "name": config.selectors.name,
    }
    if not config.is_legacy:
        required["product_link"] = config.selectors.product_link
    missing = sorted(key for key, value in required.items() if not value.strip())
    if missing:
        raise ConfigurationError(
            f"Shop '{config.name}' is missing required selectors: {', '.join(missing)}."
        )

    for key, selector in config.selectors.declared().items():
        try:
            soupsieve.compile(selector)
        except soupsieve.SelectorSyntaxError as exc:
            raise ConfigurationError(
                f"Invalid selector for shop='{config.name}' field='{key}': {exc}"
            ) from exc
