"""Data models for the cross-marketplace product resolution engine.

Defines Pydantic models for every record that flows through the engine:
products seen on their origin marketplace, candidates extracted from result
listings, scored and profit-annotated matches, comparison results, cache
entries and fee schedules. Money is carried as Decimal throughout.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Marketplace(str, Enum):
    """Supported marketplaces."""

    AMAZON = "amazon"
    WALMART = "walmart"
    TARGET = "target"
    HOMEDEPOT = "homedepot"


class PriceConfidence(str, Enum):
    """How a price was read from the page.

    Attributes:
        EXACT: A single text node with a decimal point (or whole dollars
            introduced by a currency symbol).
        SPLIT: Whole and fraction parts spread across sibling nodes.
        HEURISTIC: A bare digit blob where the decimal point was guessed.
    """

    EXACT = "exact"
    SPLIT = "split"
    HEURISTIC = "heuristic"


class ParsedPrice(BaseModel):
    """Price read from page text together with its confidence."""

    amount: Decimal
    confidence: PriceConfidence = PriceConfidence.EXACT


class ProductRecord(BaseModel):
    """A product as seen on its origin marketplace.

    `marketplace` and `product_id` together are the stable identity; `upc`,
    when present, is the stronger cross-marketplace identity.

    Attributes:
        title: Product title as displayed.
        price: Current price in USD, None when unknown.
        marketplace: Origin marketplace.
        product_id: Marketplace-local identifier (may be empty).
        brand: Brand name if known.
        upc: Universal product code if known.
        asin: Amazon standard identification number (Amazon only).
        image_url: Primary image URL.
        page_url: URL of the product page.
    """

    title: str
    price: Decimal | None = None
    marketplace: Marketplace
    product_id: str = ""
    brand: str | None = None
    upc: str | None = None
    asin: str | None = None
    image_url: str | None = None
    page_url: str = ""


class Ratings(BaseModel):
    """Average star rating and review count of a listing."""

    average: float | None = None
    count: int | None = None


class ProfitInfo(BaseModel):
    """Profit estimate for reselling one candidate."""

    amount: Decimal
    percentage: Decimal


class FeeBreakdown(BaseModel):
    """Fees deducted when computing profit."""

    marketplace_fee_percentage: Decimal
    marketplace_fee_amount: Decimal
    additional_fees: Decimal
    total_fees: Decimal


class CandidateRecord(BaseModel):
    """Listing extracted from a search result page on another marketplace.

    Created transiently during one resolution pass and never persisted on
    its own.
    """

    title: str
    price: Decimal | None = None
    price_confidence: PriceConfidence | None = None
    shipping_price: Decimal | None = None
    marketplace: Marketplace
    url: str = ""
    image: str | None = None
    brand: str | None = None
    upc: str | None = None
    asin: str | None = None
    item_id: str | None = None
    tcin: str | None = None
    sku: str | None = None
    ratings: Ratings | None = None


class MatchResult(CandidateRecord):
    """Candidate augmented with similarity and profit information."""

    similarity_score: float | None = None
    profit: ProfitInfo | None = None
    fee_breakdown: FeeBreakdown | None = None
    source_product_id: str | None = None
    search_url: str | None = None


class ComparisonResult(BaseModel):
    """Source product with its ranked matches per marketplace.

    `matched_products` preserves insertion order, which is rank order.
    """

    source_product: ProductRecord
    matched_products: dict[Marketplace, list[MatchResult]] = Field(default_factory=dict)
    timestamp: float
    search_url: str | None = None


class CacheEntry(BaseModel):
    """Cached payload with its creation time (epoch seconds)."""

    data: Any
    timestamp: float


class FeeSchedule(BaseModel):
    """Marketplace fee fractions plus one flat fee applied everywhere.

    Immutable so a schedule cannot change in the middle of a computation.
    """

    model_config = ConfigDict(frozen=True)

    fees: dict[Marketplace, Decimal] = Field(default_factory=dict)
    additional_fees: Decimal = Decimal("0")
    include_fees: bool = True

    def fee_for(self, marketplace: Marketplace) -> Decimal:
        """Fee fraction for a marketplace, zero when absent or disabled."""
        if not self.include_fees:
            return Decimal("0")
        return self.fees.get(marketplace, Decimal("0"))


class MatchTiming(BaseModel):
    """Wall-clock milliseconds spent in each match finder state."""

    states: dict[str, float] = Field(default_factory=dict)
    total: float = 0.0


class MatchFinderResult(BaseModel):
    """Outcome of one match finder run.

    Attributes:
        success: True when the best candidate reaches the configured minimum.
        match: Best candidate when successful.
        all_matches: Ranked candidates up to the result cap, kept for manual
            review even when the run is not successful.
        search_url: URL of the page that was scanned.
        source_product: Product the matches were computed for.
        timing: Per-state durations.
        error: Failure description when a state aborted the run.
    """

    success: bool
    match: MatchResult | None = None
    all_matches: list[MatchResult] = Field(default_factory=list)
    search_url: str = ""
    source_product: ProductRecord | None = None
    timing: MatchTiming = Field(default_factory=MatchTiming)
    error: str | None = None


class CategoryPageResult(BaseModel):
    """Products collected from a category or search results page."""

    products: list[ProductRecord] = Field(default_factory=list)
    marketplace: Marketplace
    category_name: str | None = None
    page_url: str
    timestamp: float
    total_products_found: int = 0
    processed_products: int = 0
