"""Category and search listing page adapters.

A category adapter wraps the search adapter of the same marketplace: it reuses
its listing selectors and field extraction, turns every listing into a
`ProductRecord`, and adds the `prepare_page` hook that scrolls an infinite
listing until it stops growing.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..models import Marketplace, ProductRecord
from . import dom
from .amazon import AmazonAdapter
from .base import BaseAdapter
from .page import PageSnapshot
from .walmart import WalmartAdapter

if TYPE_CHECKING:
    from ..services.browser_pool import BrowsingContext

MAX_SCROLLS = 3
SCROLL_PAUSE = 1.0

_TITLE_SPLIT_RE = re.compile(r"\s+[:|\-]\s+")


class CategoryPageAdapter:
    """Shared behaviour of the category page variants.

    Attributes:
        listing: Search adapter providing selectors and field extraction.
        marketplace: Marketplace of the wrapped adapter.
    """

    CATEGORY_PATH_RE: re.Pattern[str] = re.compile(r"$^")
    BREADCRUMB_SELECTORS: tuple[str, ...] = ()
    SEARCH_BOX_SELECTORS: tuple[str, ...] = ()

    def __init__(self, listing: BaseAdapter, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.listing = listing
        self.marketplace: Marketplace = listing.marketplace
        self._sleep = sleep
        self.logger = logging.getLogger(f"{__name__}.{self.marketplace.value}")

    def can_handle_page(self, page: PageSnapshot) -> bool:
        if not self.listing.supports_url(page.url):
            return False
        return bool(self.CATEGORY_PATH_RE.search(page.url)) or self.listing.can_handle_page(page)

    async def prepare_page(self, context: "BrowsingContext") -> None:
        """Scroll to the bottom until the page height stops growing.

        At most three scrolls, one second apart.
        """
        previous_height = -1
        for attempt in range(MAX_SCROLLS):
            height = await context.scroll_to_bottom()
            self.logger.debug(f"Scroll {attempt + 1}/{MAX_SCROLLS}: page height {height}")
            if height == previous_height:
                break
            previous_height = height
            await self._sleep(SCROLL_PAUSE)

    def extract_products(self, page: PageSnapshot) -> list[ProductRecord]:
        """Read every listing on the page that has a title.

        Listings without a price are kept with `price=None`; the caller
        decides whether they are useful.
        """
        products = []
        for element in self.listing.find_candidate_elements(page):
            title = dom.extract_text(element, self.listing.TITLE_SELECTORS)
            if not title:
                continue
            price = dom.extract_price(element, self.listing.PRICE_SELECTORS)
            url = page.absolute_url(dom.extract_attribute(element, self.listing.LINK_SELECTORS, "href"))
            identifiers = self.listing.extract_identifiers(element, url)
            product_id = next((value for value in identifiers.values() if value), "")
            products.append(
                ProductRecord(
                    title=title,
                    price=price.amount if price else None,
                    marketplace=self.marketplace,
                    product_id=product_id,
                    brand=self.listing.clean_brand(
                        dom.extract_text(element, self.listing.BRAND_SELECTORS)
                    ),
                    asin=identifiers.get("asin"),
                    image_url=dom.extract_image_url(element, self.listing.IMAGE_SELECTORS),
                    page_url=url,
                )
            )
        return products

    def extract_category_name(self, page: PageSnapshot) -> str | None:
        """Category name from breadcrumbs, the search box, or the page title."""
        name = dom.extract_text(page.soup, self.BREADCRUMB_SELECTORS)
        if name:
            return name

        name = dom.extract_attribute(page.soup, self.SEARCH_BOX_SELECTORS, "value")
        if name:
            return name

        marketplace_name = self.marketplace.value
        for part in _TITLE_SPLIT_RE.split(page.title):
            part = part.strip()
            if part and marketplace_name not in part.lower():
                return part
        return None


class AmazonCategoryAdapter(CategoryPageAdapter):
    """Amazon browse nodes, best seller lists and search listings."""

    CATEGORY_PATH_RE = re.compile(r"amazon\.[a-z.]+/(?:b/|b\?|s\?|gp/browse|zgbs/|gp/bestsellers)")
    BREADCRUMB_SELECTORS = (
        "#wayfinding-breadcrumbs_feature_div li:last-child a",
        ".a-breadcrumb li:last-child",
        "#departments .a-list-item .a-text-bold",
    )
    SEARCH_BOX_SELECTORS = ("#twotabsearchtextbox",)

    def __init__(self, listing: AmazonAdapter | None = None, **kwargs):
        super().__init__(listing or AmazonAdapter(), **kwargs)


class WalmartCategoryAdapter(CategoryPageAdapter):
    """Walmart browse, category and search listings."""

    CATEGORY_PATH_RE = re.compile(r"walmart\.com/(?:browse/|cp/|shop/|search)")
    BREADCRUMB_SELECTORS = (
        'nav[aria-label="breadcrumb"] li:last-child',
        '[data-testid="breadcrumb"] li:last-child',
    )
    SEARCH_BOX_SELECTORS = ('input[type="search"]', 'input[aria-label="Search"]')

    def __init__(self, listing: WalmartAdapter | None = None, **kwargs):
        super().__init__(listing or WalmartAdapter(), **kwargs)
