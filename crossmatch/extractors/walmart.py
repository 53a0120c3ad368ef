"""Walmart search result and product page adapter."""

import re
from typing import Any

from bs4 import Tag

from ..models import Marketplace
from . import dom
from .base import BaseAdapter
from .page import PageSnapshot

ITEM_ID_PATTERNS = (
    re.compile(r"/ip/(?:.*?)/(\d+)"),
    re.compile(r"/ip/(\d+)"),
)


def _item_id_from_url(url: str) -> str | None:
    for pattern in ITEM_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


class WalmartAdapter(BaseAdapter):
    """Adapter for walmart.com search and product pages."""

    HOST_RE = re.compile(r"^https?://(?:[\w-]+\.)*walmart\.com(?:/|$)")
    SEARCH_PATH_RE = re.compile(r"walmart\.com/search(?:\?|/|$)")
    PRODUCT_PATH_RE = re.compile(r"walmart\.com/ip/")
    SEARCH_URL_BASE = "https://www.walmart.com/search?q="

    RESULT_SELECTORS = (
        "[data-item-id]",
        "[data-product-id]",
        ".search-result-gridview-item",
        ".product-search-result",
        '[data-testid="list-view"] [data-testid="product-card"]',
        '[data-testid="search-results"] > li',
    )
    TITLE_SELECTORS = (
        '[data-automation-id="product-title"]',
        ".sans-serif.mid-gray",
        ".w_iUH",
        ".lh-title",
        '[data-testid="product-title"]',
        "span.f6.f5-l.fw5.lh-title",
    )
    PRICE_SELECTORS = (
        '[data-automation-id="product-price"] .w_iUH7',
        '[data-automation-id="product-price"]',
        ".b.black.f1.mr1",
        '[data-testid="price-current"]',
        '[data-testid="list-view-price"]',
        ".price-main .visuallyhidden",
        ".price-characteristic",
    )
    LINK_SELECTORS = (
        'a[link-identifier="linkTest"]',
        "a.absolute.w-100.h-100",
        'a[href*="/ip/"]',
        "a[href]",
    )
    IMAGE_SELECTORS = (
        'img[data-testid="productTileImage"]',
        "img.absolute",
        "img",
    )
    BRAND_SELECTORS = (
        '[data-automation-id="product-brand"]',
        ".f6.gray.fw4",
        '[data-testid="product-brand"]',
    )
    RATING_SELECTORS = (
        '[data-testid="product-ratings"]',
        ".stars-container",
        '[aria-label*="Stars"]',
        '[aria-label*="stars"]',
    )
    REVIEW_COUNT_SELECTORS = (
        '[data-testid="product-reviews"]',
        ".stars-reviews-count",
        "span.sans-serif.gray.f7",
    )
    SHIPPING_SELECTORS = (
        '[data-automation-id="fulfillment-badge"]',
        '[data-testid="fulfillment-badge"]',
    )

    PRODUCT_TITLE_SELECTORS = (
        'h1[itemprop="name"]',
        "h1#main-title",
        '[data-testid="product-title"]',
        "h1",
    )
    PRODUCT_PRICE_SELECTORS = (
        'span[itemprop="price"]',
        '[data-testid="price-wrap"] [itemprop="price"]',
        '[data-automation-id="product-price"]',
        ".price-characteristic",
    )
    PRODUCT_BRAND_SELECTORS = (
        'a[data-dca-name="ItemBrandLink"]',
        '[data-testid="product-brand"]',
        '[itemprop="brand"]',
    )
    PRODUCT_IMAGE_SELECTORS = (
        '[data-testid="hero-image-container"] img',
        'img[data-testid="hero-image"]',
    )

    def __init__(self) -> None:
        super().__init__(Marketplace.WALMART)

    def extract_identifiers(self, element: Tag, url: str) -> dict[str, Any]:
        item_id = _item_id_from_url(url)
        if item_id is None:
            item_id = element.get("data-item-id") or element.get("data-product-id") or None
        return {"item_id": item_id}

    def _extract_product_identifiers(self, page: PageSnapshot) -> dict[str, Any]:
        item_id = _item_id_from_url(page.url)
        if item_id is None:
            match = re.search(r'"usItemId"\s*:\s*"(\d+)"', page.html)
            item_id = match.group(1) if match else None
        if item_id is None:
            item_id = dom.extract_attribute(page.soup, ("[data-item-id]",), "data-item-id")
        return {"product_id": item_id or ""}
