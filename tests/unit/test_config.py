"""Tests for configuration loading."""

from decimal import Decimal

from crossmatch.config import DEFAULT_FEES, CacheSettings, Config, MatchFinderSettings
from crossmatch.models import Marketplace


def test_defaults_without_fee_file(config):
    """Test built-in defaults apply when no fees.yml exists."""
    assert config.fee_schedule.fees == DEFAULT_FEES
    assert config.fee_schedule.additional_fees == Decimal("0")
    assert config.fee_schedule.include_fees is True
    assert config.profit.minimum_profit_percentage == Decimal("10")
    assert config.match_finder.min_similarity_score == 0.6
    assert config.match_finder.max_results == 10
    assert config.batch.batch_size == 5
    assert config.batch.max_matches == 3
    assert config.cache.ttl_hours == 24
    assert config.cache.namespace == "ecommerce_arbitrage_"


def test_fee_file_overrides(tmp_path):
    """Test fees.yml values replace defaults for the marketplaces it names."""
    (tmp_path / "fees.yml").write_text(
        "marketplace_fees:\n"
        "  walmart: 0.15\n"
        "additional_fees: 1.25\n"
        "include_fees: false\n"
        "minimum_profit_percentage: 25\n"
    )

    config = Config(config_dir=tmp_path)

    assert config.fee_schedule.fees[Marketplace.WALMART] == Decimal("0.15")
    assert config.fee_schedule.fees[Marketplace.AMAZON] == Decimal("0.15")
    assert config.fee_schedule.additional_fees == Decimal("1.25")
    assert config.fee_schedule.include_fees is False
    assert config.profit.minimum_profit_percentage == Decimal("25")


def test_packaged_fee_file():
    """Test the fee file shipped with the package matches the defaults."""
    config = Config()

    assert config.fee_schedule.fees == DEFAULT_FEES


def test_environment_overrides(monkeypatch):
    """Test settings read their environment variables."""
    monkeypatch.setenv("MIN_SIMILARITY_SCORE", "0.75")
    monkeypatch.setenv("CACHE_TTL_HOURS", "2")
    monkeypatch.setenv("CACHE_REDIS_ENABLED", "true")

    assert MatchFinderSettings().min_similarity_score == 0.75
    cache = CacheSettings()
    assert cache.ttl_hours == 2
    assert cache.enabled is True


def test_settings_mutable_at_runtime(config):
    """Test components see assignments on the shared settings object."""
    config.cache.ttl_hours = 1
    assert config.cache.ttl_hours == 1
