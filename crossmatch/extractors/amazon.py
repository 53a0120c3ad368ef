"""Amazon search result and product page adapter.

Amazon serves several result grid layouts at once depending on experiment
cohort, and sponsored results are wrapped in `.AdHolder` containers. The
selector chains below list the current layout first.
"""

import re
from typing import Any

from bs4 import Tag

from ..models import Marketplace
from . import dom
from .base import BaseAdapter
from .page import PageSnapshot

ASIN_URL_RE = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})")


class AmazonAdapter(BaseAdapter):
    """Adapter for amazon.com search and product pages."""

    HOST_RE = re.compile(r"^https?://(?:[\w-]+\.)*amazon\.(?:com|ca|co\.uk|de)(?:/|$)")
    SEARCH_PATH_RE = re.compile(r"amazon\.[a-z.]+/s(?:\?|/|$)")
    PRODUCT_PATH_RE = ASIN_URL_RE
    SEARCH_URL_BASE = "https://www.amazon.com/s?k="

    RESULT_SELECTORS = (
        ".s-result-item[data-asin]:not(.AdHolder)",
        ".s-result-item[data-asin].AdHolder .s-inner-result-item",
        ".s-result-list .a-section[data-asin]",
        ".sg-row[data-asin]",
        ".rush-component[data-asin]",
    )
    TITLE_SELECTORS = (
        "h2",
        "h2 a",
        ".a-text-normal",
        ".a-size-medium",
        '[data-cy="title-recipe"]',
    )
    PRICE_SELECTORS = (
        ".a-price .a-offscreen",
        ".a-color-price",
        ".a-price",
        '[data-a-color="price"]',
    )
    LINK_SELECTORS = (
        'a.a-link-normal[href*="/dp/"]',
        'a[href*="/dp/"]',
        "a.a-link-normal",
    )
    IMAGE_SELECTORS = (
        "img.s-image",
        "img[data-image-latency]",
        "img.a-dynamic-image",
    )
    BRAND_SELECTORS = (
        ".a-row.a-size-base .a-size-base.a-color-secondary",
        "h5 .a-size-base-plus",
    )
    RATING_SELECTORS = (
        ".a-icon-star-small",
        ".a-icon-star",
        '[data-a-popover*="star"]',
    )
    REVIEW_COUNT_SELECTORS = (
        ".a-size-small .a-link-normal .a-size-base",
        ".a-size-small.a-link-normal",
        'span[aria-label$="ratings"]',
    )
    SHIPPING_SELECTORS = (
        '[data-cy="delivery-recipe"]',
        ".a-row.s-align-children-center",
    )

    PRODUCT_TITLE_SELECTORS = ("#productTitle", "#title", "h1")
    PRODUCT_PRICE_SELECTORS = (
        "#corePrice_feature_div .a-price .a-offscreen",
        "#corePriceDisplay_desktop_feature_div .a-price .a-offscreen",
        "#priceblock_ourprice",
        "#priceblock_dealprice",
        ".a-price .a-offscreen",
    )
    PRODUCT_BRAND_SELECTORS = ("#bylineInfo", "#brand", "tr.po-brand td:last-child")
    PRODUCT_IMAGE_SELECTORS = ("#landingImage", "#imgBlkFront", "#main-image")

    def __init__(self) -> None:
        super().__init__(Marketplace.AMAZON)

    def extract_identifiers(self, element: Tag, url: str) -> dict[str, Any]:
        match = ASIN_URL_RE.search(url)
        asin = match.group(1) if match else element.get("data-asin") or None
        return {"asin": asin}

    def _extract_product_identifiers(self, page: PageSnapshot) -> dict[str, Any]:
        match = ASIN_URL_RE.search(page.url)
        asin = match.group(1) if match else None
        if asin is None:
            asin = dom.extract_attribute(page.soup, ("input#ASIN", "input[name='ASIN']"), "value")
        return {"asin": asin, "product_id": asin or ""}
