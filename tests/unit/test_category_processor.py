"""Tests for category page collection."""

from decimal import Decimal

import pytest

from crossmatch.errors import NoCandidatesFound, NoMatcherForPage
from crossmatch.extractors.category import AmazonCategoryAdapter, WalmartCategoryAdapter
from crossmatch.extractors.page import PageSnapshot
from crossmatch.matching.category_processor import (
    CategoryPageProcessor,
    PriorityOrder,
    order_products,
)
from crossmatch.models import Marketplace, ProductRecord


WALMART_CATEGORY_HTML = """
<html><head><title>Kitchen Gadgets - Walmart.com</title></head><body>
<nav aria-label="breadcrumb"><ol><li>Home</li><li>Kitchen Gadgets</li></ol></nav>
<div data-item-id="111"><a href="/ip/Timer/111"><span data-automation-id="product-title">Egg Timer</span></a>
  <div data-automation-id="product-price"><span>$5.99</span></div></div>
</body></html>
"""


@pytest.fixture
def adapters(sleep_calls):
    return [AmazonCategoryAdapter(sleep=sleep_calls), WalmartCategoryAdapter(sleep=sleep_calls)]


@pytest.fixture
def processor(adapters, clock):
    return CategoryPageProcessor(adapters, clock=clock)


def _products(*prices):
    return [
        ProductRecord(
            title=f"Item {i}",
            price=Decimal(price) if price is not None else None,
            marketplace=Marketplace.AMAZON,
        )
        for i, price in enumerate(prices)
    ]


class TestOrdering:
    def test_price_desc_puts_unpriced_last(self):
        ordered = order_products(_products("5", None, "20", "10"), PriorityOrder.PRICE_DESC)
        assert [p.title for p in ordered] == ["Item 2", "Item 3", "Item 0", "Item 1"]

    def test_price_asc(self):
        ordered = order_products(_products("5", None, "20", "10"), PriorityOrder.PRICE_ASC)
        assert [p.title for p in ordered] == ["Item 0", "Item 3", "Item 2", "Item 1"]

    def test_position_keeps_page_order(self):
        products = _products("5", None, "20")
        assert order_products(products, PriorityOrder.POSITION) == products


class TestProcessPage:
    """Test collecting products from a loaded listing page."""

    @pytest.mark.asyncio
    async def test_amazon_listing(self, processor, make_browsing_context, amazon_page, clock):
        context = make_browsing_context(amazon_page.url, amazon_page.html)

        result = await processor.process_page(context)

        assert result.marketplace == Marketplace.AMAZON
        assert [p.title for p in result.products] == [
            "Garden Hose 50ft",
            "Acme Widget Pro",
            "Acme Widget Refill",
        ]
        assert result.products[1].product_id == "B000ACME01"
        assert result.products[1].brand == "Acme"
        assert result.products[2].price is None
        # a listing without a link falls back to the page address
        assert result.products[2].page_url == amazon_page.url
        assert result.category_name == "acme widget"
        assert result.total_products_found == 3
        assert result.processed_products == 3
        assert result.timestamp == clock.now

    @pytest.mark.asyncio
    async def test_scrolls_until_height_stops_growing(self, processor, make_browsing_context, amazon_page, sleep_calls):
        context = make_browsing_context(amazon_page.url, amazon_page.html, heights=[1000, 2000, 2000])

        await processor.process_page(context)

        assert context.scrolls == 3
        assert sleep_calls.calls == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_at_most_three_scrolls(self, processor, make_browsing_context, amazon_page):
        context = make_browsing_context(amazon_page.url, amazon_page.html, heights=[1, 2, 3, 4, 5])

        await processor.process_page(context)

        assert context.scrolls == 3

    @pytest.mark.asyncio
    async def test_truncate_then_filter_by_price(self, processor, make_browsing_context, amazon_page):
        context = make_browsing_context(amazon_page.url, amazon_page.html)

        result = await processor.process_page(
            context, max_products=2, priority_order="price_asc", min_price=Decimal("20")
        )

        assert [p.title for p in result.products] == ["Garden Hose 50ft"]
        assert result.total_products_found == 3

    @pytest.mark.asyncio
    async def test_max_price(self, processor, make_browsing_context, amazon_page):
        context = make_browsing_context(amazon_page.url, amazon_page.html)

        result = await processor.process_page(context, max_price=Decimal("20"))

        assert [p.title for p in result.products] == ["Acme Widget Pro"]

    @pytest.mark.asyncio
    async def test_walmart_breadcrumb_category(self, processor, make_browsing_context):
        context = make_browsing_context("https://www.walmart.com/browse/kitchen/123", WALMART_CATEGORY_HTML)

        result = await processor.process_page(context)

        assert result.marketplace == Marketplace.WALMART
        assert result.category_name == "Kitchen Gadgets"
        assert result.products[0].product_id == "111"
        assert result.products[0].page_url == "https://www.walmart.com/ip/Timer/111"

    @pytest.mark.asyncio
    async def test_category_from_page_title(self, processor, make_browsing_context, walmart_page):
        context = make_browsing_context(walmart_page.url, walmart_page.html)

        result = await processor.process_page(context)

        assert result.category_name == "Acme Widget"

    @pytest.mark.asyncio
    async def test_empty_page(self, processor, make_browsing_context, empty_walmart_page):
        context = make_browsing_context("https://www.walmart.com/browse/kitchen", empty_walmart_page.html)

        with pytest.raises(NoCandidatesFound):
            await processor.process_page(context)

    @pytest.mark.asyncio
    async def test_unknown_site(self, processor, make_browsing_context):
        context = make_browsing_context("https://www.ebay.com/b/Kitchen/123", "<html></html>")

        with pytest.raises(NoMatcherForPage):
            await processor.process_page(context)


def test_get_adapter(processor):
    """Test the category adapter is picked by host."""
    page = PageSnapshot.from_html("https://www.amazon.com/b?node=123", "<html></html>")
    assert processor.get_adapter(page).marketplace == Marketplace.AMAZON
