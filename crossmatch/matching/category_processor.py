"""Collects source products from a category or search listing page.

Picks the category adapter for the loaded page, lets it load lazily rendered
listings, and returns the products ordered and filtered for batch matching.
"""

import logging
import time
from collections.abc import Callable, Sequence
from decimal import Decimal
from enum import Enum

from ..errors import NoCandidatesFound, NoMatcherForPage
from ..extractors.category import CategoryPageAdapter
from ..extractors.page import PageSnapshot
from ..models import CategoryPageResult, ProductRecord
from ..services.browser_pool import BrowsingContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_PRODUCTS = 20


class PriorityOrder(str, Enum):
    PRICE_DESC = "price_desc"
    PRICE_ASC = "price_asc"
    POSITION = "position"


def order_products(products: list[ProductRecord], order: PriorityOrder) -> list[ProductRecord]:
    """Sort by price or keep page order. Products without a price go last."""
    if order is PriorityOrder.POSITION:
        return list(products)

    priced = [product for product in products if product.price is not None]
    unpriced = [product for product in products if product.price is None]
    priced.sort(key=lambda product: product.price, reverse=order is PriorityOrder.PRICE_DESC)
    return priced + unpriced


class CategoryPageProcessor:
    """Turns a category page into a `CategoryPageResult`.

    Args:
        adapters: Category adapters, tried in order.
        clock: Wall clock for the result timestamp.
    """

    def __init__(self, adapters: Sequence[CategoryPageAdapter], clock: Callable[[], float] = time.time):
        self.adapters = list(adapters)
        self._clock = clock

    def get_adapter(self, page: PageSnapshot) -> CategoryPageAdapter | None:
        for adapter in self.adapters:
            if adapter.can_handle_page(page):
                return adapter
        return None

    async def process_page(
        self,
        context: BrowsingContext,
        max_products: int = DEFAULT_MAX_PRODUCTS,
        priority_order: PriorityOrder | str = PriorityOrder.PRICE_DESC,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> CategoryPageResult:
        """Read the products listed on the loaded page.

        Args:
            context: Browsing context showing the category page.
            max_products: Products kept after ordering.
            priority_order: `price_desc`, `price_asc` or `position`.
            min_price: Drop products cheaper than this.
            max_price: Drop products more expensive than this.

        Returns:
            Collected products with page metadata.

        Raises:
            NoMatcherForPage: No category adapter understands the page.
            NoCandidatesFound: The page lists no products.
        """
        page = await context.snapshot()
        adapter = self.get_adapter(page)
        if adapter is None:
            raise NoMatcherForPage(f"no matcher for marketplace at {page.url}")

        await adapter.prepare_page(context)
        page = await context.snapshot()
        return self.process_snapshot(
            adapter, page, max_products, PriorityOrder(priority_order), min_price, max_price
        )

    def process_snapshot(
        self,
        adapter: CategoryPageAdapter,
        page: PageSnapshot,
        max_products: int = DEFAULT_MAX_PRODUCTS,
        priority_order: PriorityOrder = PriorityOrder.PRICE_DESC,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> CategoryPageResult:
        """Extract, order, truncate and filter the products of a snapshot."""
        products = adapter.extract_products(page)
        if not products:
            raise NoCandidatesFound(f"no search results found on {page.url}")

        products = [
            product.model_copy(update={"page_url": product.page_url or page.url})
            for product in products
        ]
        selected = order_products(products, priority_order)[:max_products]
        if min_price is not None:
            selected = [p for p in selected if p.price is not None and p.price >= min_price]
        if max_price is not None:
            selected = [p for p in selected if p.price is not None and p.price <= max_price]

        category_name = adapter.extract_category_name(page)
        logger.info(
            f"{adapter.marketplace.value} category '{category_name}': "
            f"{len(products)} found, {len(selected)} selected"
        )
        return CategoryPageResult(
            products=selected,
            marketplace=adapter.marketplace,
            category_name=category_name,
            page_url=page.url,
            timestamp=self._clock(),
            total_products_found=len(products),
            processed_products=len(selected),
        )
