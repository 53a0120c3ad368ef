"""Target search result and product page adapter."""

import re
from typing import Any

from bs4 import Tag

from ..models import Marketplace
from .base import BaseAdapter
from .page import PageSnapshot

TCIN_PATTERNS = (
    re.compile(r"/A-(\d+)"),
    re.compile(r"/p/.*?-(\d+)(?:[?#]|$)"),
)
TCIN_PAGE_RE = re.compile(r'"tcin"\s*:\s*"?(\d+)"?')


def _tcin_from_url(url: str) -> str | None:
    for pattern in TCIN_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


class TargetAdapter(BaseAdapter):
    """Adapter for target.com search and product pages."""

    HOST_RE = re.compile(r"^https?://(?:[\w-]+\.)*target\.com(?:/|$)")
    SEARCH_PATH_RE = re.compile(r"target\.com/s(?:\?|/|$)")
    PRODUCT_PATH_RE = re.compile(r"target\.com/p/")
    SEARCH_URL_BASE = "https://www.target.com/s?searchTerm="

    RESULT_SELECTORS = (
        '[data-test="@web/site-top-of-funnel/ProductCardWrapper"]',
        'li[data-test="list-entry-product-card"]',
        'div[data-test="product-card"]',
    )
    TITLE_SELECTORS = (
        'a[data-test="product-title"]',
        '[data-test="product-title"]',
        "h3",
    )
    PRICE_SELECTORS = (
        '[data-test="current-price"]',
        'span[data-test="product-price"]',
    )
    LINK_SELECTORS = (
        'a[data-test="product-title"]',
        'a[href*="/p/"]',
        "a[href]",
    )
    BRAND_SELECTORS = (
        'a[data-test="@web/ProductCard/ProductCardBrandAndRibbonMessage/brand"]',
        '[data-test="product-brand"]',
    )
    RATING_SELECTORS = (
        '[data-test="ratings"]',
        '[aria-label*="out of 5 stars"]',
    )
    REVIEW_COUNT_SELECTORS = ('[data-test="rating-count"]',)
    SHIPPING_SELECTORS = ('[data-test="LPFulfillmentSectionShippingFA_standardShippingMessage"]',)

    PRODUCT_TITLE_SELECTORS = ('h1[data-test="product-title"]', "h1")
    PRODUCT_PRICE_SELECTORS = ('[data-test="product-price"]', '[data-test="current-price"]')
    PRODUCT_BRAND_SELECTORS = ('a[data-test="@web/ProductDetailPage/BrandLink"]', '[data-test="product-brand"]')
    PRODUCT_IMAGE_SELECTORS = ('[data-test="product-image"] img', 'img[data-test="product-image"]')

    def __init__(self) -> None:
        super().__init__(Marketplace.TARGET)

    def extract_identifiers(self, element: Tag, url: str) -> dict[str, Any]:
        return {"tcin": _tcin_from_url(url)}

    def _extract_product_identifiers(self, page: PageSnapshot) -> dict[str, Any]:
        tcin = _tcin_from_url(page.url)
        if tcin is None:
            match = TCIN_PAGE_RE.search(page.html)
            tcin = match.group(1) if match else None
        return {"product_id": tcin or ""}
