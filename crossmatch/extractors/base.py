"""Extraction adapter protocol and abstractions for marketplace pages.

Defines the interface every marketplace adapter implements, a base class that
runs the shared field-by-field extraction over selector chains declared as
class attributes, and the registry that picks the adapter for a page.
"""

import logging
import re
from typing import Any, Protocol
from urllib.parse import quote_plus

from bs4 import Tag

from ..models import CandidateRecord, Marketplace, ProductRecord, Ratings
from ..matching.similarity import title_similarity
from . import dom
from .page import PageSnapshot

logger = logging.getLogger(__name__)

UPC_RE = re.compile(r"\"(?:upc|gtin12)\"\s*:\s*\"?(\d{12})\"?", re.I)
UPC_TEXT_RE = re.compile(r"UPC(?:\s+Code)?\s*[#:]?\s*(\d{12})", re.I)


class ExtractionAdapter(Protocol):
    """Protocol defining the interface for all marketplace adapters.

    Methods:
        can_handle_page: Check if the adapter understands a search page.
        find_candidate_elements: Locate result listings on the page.
        extract_candidate: Read one listing into a candidate record.
        compute_similarity_of_titles: Compare two titles.
        extract_source_product: Read a product detail page.
        build_search_url: Search page address for a query.
    """

    marketplace: Marketplace

    def can_handle_page(self, page: PageSnapshot) -> bool:
        ...

    def find_candidate_elements(self, page: PageSnapshot) -> list[Tag]:
        ...

    def extract_candidate(self, element: Tag, page: PageSnapshot) -> CandidateRecord | None:
        """Read one result listing.

        Args:
            element: Result listing element.
            page: Page the element belongs to, for resolving links.

        Returns:
            Candidate record, or None when title or price is missing.
        """
        ...

    def compute_similarity_of_titles(self, a: str, b: str) -> float:
        ...

    def extract_source_product(self, page: PageSnapshot) -> ProductRecord | None:
        ...

    def build_search_url(self, query: str) -> str:
        ...


class BaseAdapter:
    """Base class providing the shared extraction pipeline.

    Concrete adapters declare their selector chains as class attributes
    (newest layout first) and override the identifier hooks.
    """

    HOST_RE: re.Pattern[str] = re.compile(r"$^")
    SEARCH_PATH_RE: re.Pattern[str] = re.compile(r"$^")
    PRODUCT_PATH_RE: re.Pattern[str] = re.compile(r"$^")
    SEARCH_URL_BASE = ""

    RESULT_SELECTORS: tuple[str, ...] = ()
    TITLE_SELECTORS: tuple[str, ...] = ()
    PRICE_SELECTORS: tuple[str, ...] = ()
    LINK_SELECTORS: tuple[str, ...] = ("a[href]",)
    IMAGE_SELECTORS: tuple[str, ...] = ("img",)
    BRAND_SELECTORS: tuple[str, ...] = ()
    RATING_SELECTORS: tuple[str, ...] = ()
    REVIEW_COUNT_SELECTORS: tuple[str, ...] = ()
    SHIPPING_SELECTORS: tuple[str, ...] = ()

    PRODUCT_TITLE_SELECTORS: tuple[str, ...] = ("h1",)
    PRODUCT_PRICE_SELECTORS: tuple[str, ...] = ()
    PRODUCT_BRAND_SELECTORS: tuple[str, ...] = ()
    PRODUCT_IMAGE_SELECTORS: tuple[str, ...] = ()

    def __init__(self, marketplace: Marketplace):
        """Initialize base adapter.

        Args:
            marketplace: Marketplace handled by the adapter.
        """
        self.marketplace = marketplace
        self.logger = logging.getLogger(f"{__name__}.{marketplace.value}")

    def supports_url(self, url: str) -> bool:
        return bool(self.HOST_RE.search(url))

    def is_search_page(self, page: PageSnapshot) -> bool:
        return bool(self.SEARCH_PATH_RE.search(page.url))

    def is_product_page(self, page: PageSnapshot) -> bool:
        return self.supports_url(page.url) and bool(self.PRODUCT_PATH_RE.search(page.url))

    def can_handle_page(self, page: PageSnapshot) -> bool:
        """Check the host, then either the search path or a result landmark."""
        if not self.supports_url(page.url):
            return False
        if self.is_search_page(page):
            return True
        return bool(dom.try_selectors(page.soup, self.RESULT_SELECTORS))

    def find_candidate_elements(self, page: PageSnapshot) -> list[Tag]:
        elements = dom.try_selectors(page.soup, self.RESULT_SELECTORS)
        self.logger.debug(f"Found {len(elements)} result elements on {page.url}")
        return elements

    def extract_candidate(self, element: Tag, page: PageSnapshot) -> CandidateRecord | None:
        """Read title, price, identifiers, image, brand, ratings and shipping.

        Returns None when either the title or the price cannot be read.
        """
        title = dom.extract_text(element, self.TITLE_SELECTORS)
        if not title:
            return None

        price = dom.extract_price(element, self.PRICE_SELECTORS)
        if price is None:
            return None

        url = page.absolute_url(dom.extract_attribute(element, self.LINK_SELECTORS, "href"))

        return CandidateRecord(
            title=title,
            price=price.amount,
            price_confidence=price.confidence,
            shipping_price=dom.parse_shipping(dom.extract_text(element, self.SHIPPING_SELECTORS)),
            marketplace=self.marketplace,
            url=url,
            image=dom.extract_image_url(element, self.IMAGE_SELECTORS),
            brand=self.clean_brand(dom.extract_text(element, self.BRAND_SELECTORS)),
            ratings=self._extract_ratings(element),
            **self.extract_identifiers(element, url),
        )

    def compute_similarity_of_titles(self, a: str, b: str) -> float:
        return title_similarity(a, b)

    def extract_source_product(self, page: PageSnapshot) -> ProductRecord | None:
        """Read the product detail page the user is viewing.

        Returns:
            ProductRecord, or None when the page has no recognizable title.
        """
        soup = page.soup
        title = dom.extract_text(soup, self.PRODUCT_TITLE_SELECTORS)
        if not title:
            self.logger.info(f"No product title found on {page.url}")
            return None

        price = dom.extract_price(soup, self.PRODUCT_PRICE_SELECTORS)
        identifiers = self._extract_product_identifiers(page)

        return ProductRecord(
            title=title,
            price=price.amount if price else None,
            marketplace=self.marketplace,
            brand=self.clean_brand(dom.extract_text(soup, self.PRODUCT_BRAND_SELECTORS)),
            image_url=dom.extract_image_url(soup, self.PRODUCT_IMAGE_SELECTORS),
            page_url=page.url,
            upc=self._extract_upc(page),
            **identifiers,
        )

    def build_search_url(self, query: str) -> str:
        return f"{self.SEARCH_URL_BASE}{quote_plus(query)}"

    def extract_identifiers(self, element: Tag, url: str) -> dict[str, Any]:
        """Marketplace identifiers of a result listing."""
        return {}

    def _extract_product_identifiers(self, page: PageSnapshot) -> dict[str, Any]:
        """`product_id` (and `asin` where relevant) of a detail page."""
        return {}

    def _extract_ratings(self, element: Tag) -> Ratings | None:
        average = dom.parse_rating(dom.select_first(element, self.RATING_SELECTORS))
        count = dom.parse_review_count(dom.extract_text(element, self.REVIEW_COUNT_SELECTORS))
        if average is None and count is None:
            return None
        return Ratings(average=average, count=count)

    @staticmethod
    def _extract_upc(page: PageSnapshot) -> str | None:
        for pattern in (UPC_RE, UPC_TEXT_RE):
            match = pattern.search(page.html)
            if match:
                return match.group(1)
        return None

    @staticmethod
    def clean_brand(brand: str | None) -> str | None:
        if not brand:
            return None
        brand = re.sub(r"^(?:by|brand:)\s+", "", brand.strip(), flags=re.I)
        brand = re.sub(r"^Visit the\s+(.+?)\s+Store$", r"\1", brand, flags=re.I)
        return brand or None


class AdapterRegistry:
    """Registry for managing marketplace adapters.

    Adapters are consulted in registration order when picking the one for a
    page; the first whose `can_handle_page` is true wins.
    """

    def __init__(self) -> None:
        """Initialize empty adapter registry."""
        self._adapters: dict[Marketplace, ExtractionAdapter] = {}
        self.logger = logging.getLogger(f"{__name__}.registry")

    def register(self, adapter: ExtractionAdapter) -> None:
        """Register a new adapter.

        Args:
            adapter: Adapter instance implementing ExtractionAdapter.
        """
        self._adapters[adapter.marketplace] = adapter
        self.logger.debug(f"Registered adapter for marketplace: {adapter.marketplace.value}")

    def get_adapter_for_page(self, page: PageSnapshot) -> ExtractionAdapter | None:
        """Find the adapter that understands the given search page.

        Args:
            page: Page to inspect.

        Returns:
            Adapter instance if found, None otherwise.
        """
        for adapter in self._adapters.values():
            if adapter.can_handle_page(page):
                return adapter

        self.logger.warning(f"No adapter found for page: {page.url}")
        return None

    def get_by_marketplace(self, marketplace: Marketplace) -> ExtractionAdapter | None:
        return self._adapters.get(marketplace)

    def get_all_marketplaces(self) -> list[Marketplace]:
        return list(self._adapters.keys())
