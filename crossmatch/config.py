"""Configuration management for the resolution engine.

Handles all engine configuration including environment variables, the YAML
fee file, and default settings. Provides structured configuration classes for
the match finder, batch matcher, cache, remote API and browser.
"""

from decimal import Decimal
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings

from .models import FeeSchedule, Marketplace

DEFAULT_FEES: dict[Marketplace, Decimal] = {
    Marketplace.AMAZON: Decimal("0.15"),
    Marketplace.WALMART: Decimal("0"),
    Marketplace.TARGET: Decimal("0.10"),
    Marketplace.HOMEDEPOT: Decimal("0"),
}


class MatchFinderSettings(BaseSettings):
    """Single-page match finder parameters.

    Attributes:
        min_similarity_score: Score the best candidate must reach for success.
        max_results: Cap on the number of ranked candidates returned.
        search_timeout: Seconds allowed for a whole resolution.
        extraction_timeout: Seconds allowed for reading and scoring a page.
    """
    min_similarity_score: float = Field(default=0.6, validation_alias="MIN_SIMILARITY_SCORE")
    max_results: int = Field(default=10, validation_alias="MAX_RESULTS")
    search_timeout: float = Field(default=30.0, validation_alias="SEARCH_TIMEOUT")
    extraction_timeout: float = Field(default=10.0, validation_alias="EXTRACTION_TIMEOUT")


class BatchSettings(BaseSettings):
    """Category batch matcher parameters.

    Attributes:
        batch_size: Products processed per batch.
        load_timeout: Seconds allowed for a search page to load.
        extraction_timeout: Seconds allowed for reading and scoring it.
        settle_delay: Seconds to wait after load before reading the page.
        product_delay: Pause between products.
        batch_delay: Pause between batches.
        min_similarity_score: Minimum score for a candidate to be kept.
        max_matches: Candidates kept per product.
    """
    batch_size: int = Field(default=5, validation_alias="BATCH_SIZE")
    load_timeout: float = Field(default=20.0, validation_alias="BATCH_LOAD_TIMEOUT")
    extraction_timeout: float = Field(default=10.0, validation_alias="BATCH_EXTRACTION_TIMEOUT")
    settle_delay: float = Field(default=3.0, validation_alias="BATCH_SETTLE_DELAY")
    product_delay: float = Field(default=0.5, validation_alias="BATCH_PRODUCT_DELAY")
    batch_delay: float = Field(default=1.0, validation_alias="BATCH_DELAY")
    min_similarity_score: float = Field(default=0.6, validation_alias="BATCH_MIN_SIMILARITY_SCORE")
    max_matches: int = Field(default=3, validation_alias="BATCH_MAX_MATCHES")


class CacheSettings(BaseSettings):
    """Result cache parameters.

    Attributes:
        ttl_hours: Maximum age of a cached entry.
        namespace: Prefix of every durable key owned by the cache.
        redis_url: Redis server used as the durable tier.
        enabled: Use Redis as the durable tier; otherwise an in-memory store.
    """
    ttl_hours: float = Field(default=24.0, validation_alias="CACHE_TTL_HOURS")
    namespace: str = Field(default="ecommerce_arbitrage_", validation_alias="CACHE_NAMESPACE")
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    enabled: bool = Field(default=False, validation_alias="CACHE_REDIS_ENABLED")


class ApiSettings(BaseSettings):
    """Remote marketplace-data API connection."""
    base_url: str = Field(default="http://localhost:3000/api", validation_alias="API_BASE_URL")
    api_key: str | None = Field(default=None, validation_alias="API_KEY")
    timeout: float = Field(default=20.0, validation_alias="API_TIMEOUT")


class BrowserSettings(BaseSettings):
    """Headless browser used for ephemeral browsing contexts."""
    headless: bool = Field(default=True, validation_alias="BROWSER_HEADLESS")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        validation_alias="BROWSER_USER_AGENT",
    )
    viewport_width: int = 1280
    viewport_height: int = 720


class ProfitSettings(BaseSettings):
    """Profit reporting parameters.

    Attributes:
        minimum_profit_percentage: Threshold for a match to count as profitable.
    """
    minimum_profit_percentage: Decimal = Decimal("10")


class Config:
    """Engine configuration manager.

    Centralizes loading of environment variables, the fee file and default
    values. One instance is created by the caller and passed into the
    components that need it; values such as the cache TTL are read from it on
    every use, so assigning a new value takes effect on the next call.
    """

    def __init__(self, config_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_dir: Path to configuration directory, defaults to crossmatch/config.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent / "config"

        self.config_dir = Path(config_dir)

        self.match_finder = MatchFinderSettings()
        self.batch = BatchSettings()
        self.cache = CacheSettings()
        self.api = ApiSettings()
        self.browser = BrowserSettings()

        fees_path = self.config_dir / "fees.yml"
        if fees_path.exists():
            with open(fees_path) as f:
                fees_data = yaml.safe_load(f) or {}

            self.fee_schedule = self._parse_fee_schedule(fees_data)
            self.profit = ProfitSettings(
                minimum_profit_percentage=Decimal(
                    str(fees_data.get("minimum_profit_percentage", 10))
                )
            )
        else:
            # Use defaults if config file not found
            self.fee_schedule = FeeSchedule(fees=dict(DEFAULT_FEES))
            self.profit = ProfitSettings()

    @staticmethod
    def _parse_fee_schedule(fees_data: dict) -> FeeSchedule:
        """Build a fee schedule from the parsed YAML document.

        Marketplaces missing from the file keep their default fee.
        """
        fees = dict(DEFAULT_FEES)
        for name, fraction in (fees_data.get("marketplace_fees") or {}).items():
            fees[Marketplace(name)] = Decimal(str(fraction))

        return FeeSchedule(
            fees=fees,
            additional_fees=Decimal(str(fees_data.get("additional_fees", 0))),
            include_fees=bool(fees_data.get("include_fees", True)),
        )
