"""Global test configuration and fixtures.

Provides shared fixtures for all test levels: saved marketplace markup,
source products, in-memory storage, a controllable clock and fake browsing
contexts. No test touches the network or a real browser.
"""

from contextlib import asynccontextmanager
from decimal import Decimal

import pytest

from crossmatch.config import BatchSettings, CacheSettings, Config, MatchFinderSettings
from crossmatch.errors import LoadTimeout
from crossmatch.extractors import create_default_registry
from crossmatch.extractors.page import PageSnapshot
from crossmatch.models import Marketplace, ProductRecord
from crossmatch.services.storage import MemoryStore

AMAZON_SEARCH_URL = "https://www.amazon.com/s?k=acme+widget"
WALMART_SEARCH_URL = "https://www.walmart.com/search?q=Acme+Widget"
TARGET_SEARCH_URL = "https://www.target.com/s?searchTerm=acme+widget"
HOMEDEPOT_SEARCH_URL = "https://www.homedepot.com/s/acme%20widget"

AMAZON_SEARCH_HTML = """
<html><head><title>Amazon.com : acme widget</title></head><body>
<div class="s-result-list">
  <div class="s-result-item" data-asin="B000ACME01">
    <h2><a class="a-link-normal" href="/Acme-Widget-Pro/dp/B000ACME01/ref=sr_1_1"><span>Acme Widget Pro</span></a></h2>
    <div class="a-row a-size-base"><span class="a-size-base a-color-secondary">by Acme</span></div>
    <span class="a-price"><span class="a-offscreen">$15.00</span><span aria-hidden="true"><span class="a-price-symbol">$</span><span class="a-price-whole">15</span><span class="a-price-fraction">00</span></span></span>
    <i class="a-icon a-icon-star-small"><span class="a-icon-alt">4.5 out of 5 stars</span></i>
    <span class="a-size-small"><a class="a-link-normal" href="#reviews"><span class="a-size-base">1,234</span></a></span>
    <img class="s-image" src="https://m.media-amazon.com/images/acme.jpg">
  </div>
  <div class="s-result-item" data-asin="B000OTHER2">
    <h2><a class="a-link-normal" href="/Garden-Hose/dp/B000OTHER2"><span>Garden Hose 50ft</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$29.99</span></span>
  </div>
  <div class="s-result-item" data-asin="B000NOPRIC">
    <h2><span>Acme Widget Refill</span></h2>
  </div>
</div>
</body></html>
"""

WALMART_SEARCH_HTML = """
<html><head><title>Acme Widget - Walmart.com</title></head><body>
<div data-testid="search-results">
  <div data-item-id="123456789">
    <a link-identifier="linkTest" href="/ip/Acme-Widget-Pro/123456789"><span data-automation-id="product-title">Acme Widget Pro</span></a>
    <div data-automation-id="product-price"><span class="w_iUH7">current price $14.50</span></div>
    <div data-automation-id="product-brand">Acme</div>
    <div data-testid="product-ratings" aria-label="4.3 Stars. 120 reviews"></div>
    <span data-testid="product-reviews">120</span>
    <div data-automation-id="fulfillment-badge">Free shipping, arrives in 2 days</div>
    <img data-testid="productTileImage" src="https://i5.walmartimages.com/acme.jpg">
  </div>
  <div data-item-id="987654321">
    <a link-identifier="linkTest" href="/ip/987654321"><span data-automation-id="product-title">Acme Widget Deluxe Set</span></a>
    <div data-automation-id="product-price"><span>$</span><span>23</span><span>94</span></div>
  </div>
</div>
</body></html>
"""

TARGET_SEARCH_HTML = """
<html><body>
<div data-test="@web/site-top-of-funnel/ProductCardWrapper">
  <a data-test="product-title" href="/p/acme-widget-pro/-/A-87654321">Acme Widget Pro</a>
  <span data-test="current-price"><span>$16.99</span></span>
  <div data-test="ratings" aria-label="4.7 out of 5 stars with 52 reviews"></div>
</div>
</body></html>
"""

HOMEDEPOT_SEARCH_HTML = """
<html><body>
<div data-testid="product-pod">
  <a href="/p/Acme-Widget-Pro/312345678">
    <span data-testid="attribute-brandname-above">Acme</span>
  </a>
  <div data-testid="product-header"><span>Widget Pro Cordless</span></div>
  <div class="price-format__main-price"><span>$</span><span>129</span><span>00</span></div>
</div>
</body></html>
"""

EMPTY_WALMART_HTML = """
<html><body><div class="no-results">No results for "acme widget"</div></body></html>
"""


class FakeClock:
    """Wall clock the test moves by hand."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBrowsingContext:
    """BrowsingContext returning a fixed snapshot."""

    def __init__(self, url: str, html: str, heights: list[int] | None = None):
        self._url = url
        self._html = html
        self.heights = list(heights or [1000])
        self.scrolls = 0

    @property
    def url(self) -> str:
        return self._url

    async def snapshot(self) -> PageSnapshot:
        return PageSnapshot.from_html(self._url, self._html)

    async def scroll_to_bottom(self) -> int:
        height = self.heights[min(self.scrolls, len(self.heights) - 1)]
        self.scrolls += 1
        return height


class FakeContextFactory:
    """Context factory serving canned pages and recording every context.

    Args:
        pages: Markup to serve for each URL prefix.
        default_html: Markup for URLs not in `pages`.
        fail_urls: URL substrings that raise LoadTimeout.
        snapshot_hook: Awaitable run before each snapshot, e.g. to stall.
    """

    def __init__(self, pages=None, default_html=EMPTY_WALMART_HTML, fail_urls=(), snapshot_hook=None):
        self.pages = pages or {}
        self.default_html = default_html
        self.fail_urls = fail_urls
        self.snapshot_hook = snapshot_hook
        self.opened: list[str] = []
        self.closed: list[str] = []

    def _html_for(self, url: str) -> str:
        for prefix, html in self.pages.items():
            if url.startswith(prefix):
                return html
        return self.default_html

    @asynccontextmanager
    async def open(self, url: str, timeout: float):
        self.opened.append(url)
        try:
            if any(marker in url for marker in self.fail_urls):
                raise LoadTimeout(f"Timed out after {timeout}s loading {url}")
            context = FakeBrowsingContext(url, self._html_for(url))
            if self.snapshot_hook is not None:
                original = context.snapshot
                hook = self.snapshot_hook

                async def snapshot():
                    await hook()
                    return await original()

                context.snapshot = snapshot
            yield context
        finally:
            self.closed.append(url)


@pytest.fixture
def source_product() -> ProductRecord:
    return ProductRecord(
        title="Acme Widget",
        brand="Acme",
        price=Decimal("10.00"),
        marketplace=Marketplace.AMAZON,
        product_id="B000SOURCE",
        asin="B000SOURCE",
    )


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def match_settings() -> MatchFinderSettings:
    return MatchFinderSettings()


@pytest.fixture
def batch_settings() -> BatchSettings:
    return BatchSettings()


@pytest.fixture
def cache_settings() -> CacheSettings:
    return CacheSettings()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path) -> Config:
    """Configuration with built-in defaults (no fee file)."""
    return Config(config_dir=tmp_path)


@pytest.fixture
def amazon_page() -> PageSnapshot:
    return PageSnapshot.from_html(AMAZON_SEARCH_URL, AMAZON_SEARCH_HTML)


@pytest.fixture
def walmart_page() -> PageSnapshot:
    return PageSnapshot.from_html(WALMART_SEARCH_URL, WALMART_SEARCH_HTML)


@pytest.fixture
def target_page() -> PageSnapshot:
    return PageSnapshot.from_html(TARGET_SEARCH_URL, TARGET_SEARCH_HTML)


@pytest.fixture
def homedepot_page() -> PageSnapshot:
    return PageSnapshot.from_html(HOMEDEPOT_SEARCH_URL, HOMEDEPOT_SEARCH_HTML)


@pytest.fixture
def empty_walmart_page() -> PageSnapshot:
    return PageSnapshot.from_html(WALMART_SEARCH_URL, EMPTY_WALMART_HTML)


@pytest.fixture
def search_pages() -> dict[str, str]:
    """Search page markup keyed by search URL prefix."""
    return {
        "https://www.walmart.com/search": WALMART_SEARCH_HTML,
        "https://www.amazon.com/s": AMAZON_SEARCH_HTML,
    }


@pytest.fixture
def make_context_factory():
    """Build a FakeContextFactory with custom pages or failures."""
    return FakeContextFactory


@pytest.fixture
def make_browsing_context():
    return FakeBrowsingContext


@pytest.fixture
def sleep_calls():
    """Async sleep replacement recording requested delays."""
    calls: list[float] = []

    async def sleep(seconds: float) -> None:
        calls.append(seconds)

    sleep.calls = calls
    return sleep
