"""Tests for title and product similarity scoring."""

from decimal import Decimal

import pytest

from crossmatch.matching.similarity import (
    normalize_title,
    price_proximity,
    product_similarity,
    title_similarity,
)
from crossmatch.models import CandidateRecord, Marketplace, ProductRecord


def _candidate(title, brand=None, price=None) -> CandidateRecord:
    return CandidateRecord(
        title=title,
        brand=brand,
        price=Decimal(price) if price is not None else None,
        marketplace=Marketplace.WALMART,
        url="https://www.walmart.com/ip/1",
    )


class TestNormalizeTitle:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_title("Acme  Widget-Pro, 2-Pack!") == "acme widgetpro 2pack"


class TestTitleSimilarity:
    def test_identical_titles(self):
        assert title_similarity("Acme Widget", "Acme Widget") == 1.0

    def test_identical_after_normalization(self):
        assert title_similarity("ACME widget!", "acme Widget") == 1.0

    @pytest.mark.parametrize("a,b", [("", "Acme"), ("Acme", ""), (None, "Acme"), (None, None)])
    def test_empty_side_scores_zero(self, a, b):
        assert title_similarity(a, b) == 0.0

    def test_extra_token_dilutes_score(self):
        # two of three tokens match
        assert title_similarity("Acme Widget", "Acme Widget Pro") == pytest.approx(2 / 3)

    def test_partial_match_counts_half(self):
        # "widget" is contained in "widgets"
        assert title_similarity("Acme Widget", "Acme Widgets") == pytest.approx(0.75)

    def test_short_tokens_ignored(self):
        assert title_similarity("a b c", "a b d") == 0.0

    def test_unrelated_titles(self):
        assert title_similarity("Acme Widget", "Garden Hose 50ft") == 0.0

    def test_score_is_capped(self):
        assert title_similarity("widget widget", "widget") <= 1.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Acme Widget Widgets", "Acme Widget Gizmo"),
            ("widget widget", "widget"),
            ("Acme Cordless Drill Kit", "Acme Drill"),
        ],
    )
    def test_swapping_titles_keeps_score(self, a, b):
        assert title_similarity(a, b) == pytest.approx(title_similarity(b, a))

    def test_partial_match_counted_from_both_sides(self):
        # 2.5 matched from the first title, 2 from the second, over 3 tokens
        assert title_similarity("Acme Widget Widgets", "Acme Widget Gizmo") == pytest.approx(0.75)

    def test_min_word_length_configurable(self):
        assert title_similarity("HP Ink", "HP Toner", min_word_length=2) == pytest.approx(0.5)


class TestPriceProximity:
    def test_equal_prices(self):
        assert price_proximity(Decimal("10"), Decimal("10")) == 1.0

    def test_relative_difference(self):
        assert price_proximity(Decimal("10"), Decimal("15")) == pytest.approx(1 - 5 / 15)

    def test_zero_prices(self):
        assert price_proximity(Decimal("0"), Decimal("0")) == 1.0


class TestProductSimilarity:
    def test_blend_with_brand_and_price(self, source_product):
        candidate = _candidate("Acme Widget Pro", brand="Acme", price="15.00")
        expected = (2 / 3 * 0.7 + 1.0 * 0.2 + (1 - 5 / 15) * 0.1) / 1.0
        assert product_similarity(source_product, candidate) == pytest.approx(expected)

    def test_missing_brand_drops_out(self, source_product):
        candidate = _candidate("Acme Widget", price="10.00")
        # title 1.0 and price 1.0 over weights 0.7 + 0.1
        assert product_similarity(source_product, candidate) == pytest.approx(1.0)

    def test_title_only(self):
        source = ProductRecord(title="Acme Widget", marketplace=Marketplace.AMAZON)
        candidate = _candidate("Acme Widget Pro")
        assert product_similarity(source, candidate) == pytest.approx(2 / 3)

    def test_brand_mismatch_lowers_score(self, source_product):
        same = _candidate("Acme Widget", brand="Acme", price="10.00")
        other = _candidate("Acme Widget", brand="Globex", price="10.00")
        assert product_similarity(source_product, other) < product_similarity(source_product, same)

    def test_symmetric_in_source_and_target(self):
        first = ProductRecord(title="Acme Widget Widgets", brand="Acme", marketplace=Marketplace.AMAZON)
        second = ProductRecord(title="Acme Widget Gizmo", brand="Acme Tools", marketplace=Marketplace.WALMART)

        assert product_similarity(first, second) == pytest.approx(product_similarity(second, first))

    def test_stays_within_bounds(self, source_product):
        candidate = _candidate("Completely Different Thing", brand="Other", price="999.00")
        assert 0.0 <= product_similarity(source_product, candidate) <= 1.0
