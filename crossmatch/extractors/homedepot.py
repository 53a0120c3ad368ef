"""Home Depot search result and product page adapter.

Home Depot renders prices split across spans (`$`, dollars, cents) inside
`.price-format__main-price`, which the split-price parser handles.
"""

import re
from typing import Any
from urllib.parse import quote

from bs4 import Tag

from ..models import Marketplace
from .base import BaseAdapter
from .page import PageSnapshot

SKU_URL_RE = re.compile(r"/p/(?:[^/]+/)?(\d+)")
INTERNET_NUMBER_RE = re.compile(r"Internet\s+#\s*(\d+)")


class HomeDepotAdapter(BaseAdapter):
    """Adapter for homedepot.com search and product pages."""

    HOST_RE = re.compile(r"^https?://(?:[\w-]+\.)*homedepot\.com(?:/|$)")
    SEARCH_PATH_RE = re.compile(r"homedepot\.com/s/")
    PRODUCT_PATH_RE = re.compile(r"homedepot\.com/p/")
    SEARCH_URL_BASE = "https://www.homedepot.com/s/"

    RESULT_SELECTORS = (
        '[data-testid="product-pod"]',
        ".browse-search__pod",
        ".plp-pod",
    )
    TITLE_SELECTORS = (
        '[data-testid="product-header"] span',
        ".product-header__title",
        ".pod-plp__description",
    )
    PRICE_SELECTORS = (
        ".price-format__main-price",
        '[data-testid="price"]',
        ".price",
    )
    LINK_SELECTORS = (
        'a[href*="/p/"]',
        "a[href]",
    )
    BRAND_SELECTORS = (
        '[data-testid="attribute-brandname-above"]',
        ".product-header__title__brand",
    )
    RATING_SELECTORS = (
        '[data-testid="ratings"]',
        ".stars",
    )
    REVIEW_COUNT_SELECTORS = ('[data-testid="ratings-count"]', ".product-ratings__count")
    SHIPPING_SELECTORS = ('[data-testid="fulfillment-shipping"]',)

    PRODUCT_TITLE_SELECTORS = ("h1.sui-text-primary", ".product-details__title", "h1")
    PRODUCT_PRICE_SELECTORS = ("#standard-price", ".price-format__main-price", ".price")
    PRODUCT_BRAND_SELECTORS = (".product-details__brand--link", '[data-testid="attribute-brandname-above"]')
    PRODUCT_IMAGE_SELECTORS = (".mediagallery__mainimage img", 'img[data-testid="media-gallery-image"]')

    def __init__(self) -> None:
        super().__init__(Marketplace.HOMEDEPOT)

    def build_search_url(self, query: str) -> str:
        # Home Depot takes the query as a path segment
        return f"{self.SEARCH_URL_BASE}{quote(query.strip(), safe='')}"

    def extract_identifiers(self, element: Tag, url: str) -> dict[str, Any]:
        match = SKU_URL_RE.search(url)
        return {"sku": match.group(1) if match else None}

    def _extract_product_identifiers(self, page: PageSnapshot) -> dict[str, Any]:
        match = SKU_URL_RE.search(page.url)
        sku = match.group(1) if match else None
        if sku is None:
            match = INTERNET_NUMBER_RE.search(page.soup.get_text(" "))
            sku = match.group(1) if match else None
        return {"product_id": sku or ""}
