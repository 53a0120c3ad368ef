"""Tests for fee-aware profit calculation."""

from decimal import Decimal

import pytest

from crossmatch.models import (
    ComparisonResult,
    FeeSchedule,
    Marketplace,
    MatchResult,
    ProfitInfo,
)
from crossmatch.services.profit import (
    calculate_profit,
    compute_match_profit,
    profitable_matches,
    total_potential_profit,
)

WALMART_15 = FeeSchedule(fees={Marketplace.WALMART: Decimal("0.15")})


def _match(price, shipping=None, marketplace=Marketplace.WALMART, title="Acme Widget Pro"):
    return MatchResult(
        title=title,
        price=Decimal(price) if price is not None else None,
        shipping_price=Decimal(shipping) if shipping is not None else None,
        marketplace=marketplace,
    )


def _comparison(source_product, *matches):
    grouped: dict = {}
    for match in matches:
        grouped.setdefault(match.marketplace, []).append(match)
    return ComparisonResult(source_product=source_product, matched_products=grouped, timestamp=0)


class TestMatchProfit:
    """Test the profit of one match."""

    def test_profit_after_marketplace_fee(self):
        result = compute_match_profit(Decimal("10.00"), _match("15.00"), WALMART_15)

        assert result.profit.amount == Decimal("2.75")
        assert result.profit.percentage == Decimal("27.50")
        assert result.fee_breakdown.marketplace_fee_percentage == Decimal("0.15")
        assert result.fee_breakdown.marketplace_fee_amount == Decimal("2.25")
        assert result.fee_breakdown.total_fees == Decimal("2.25")

    def test_shipping_counts_toward_sale_price(self):
        result = compute_match_profit(Decimal("10.00"), _match("15.00", shipping="5.00"), WALMART_15)

        # (15 + 5) * 0.15 = 3.00 in fees
        assert result.fee_breakdown.marketplace_fee_amount == Decimal("3.00")
        assert result.profit.amount == Decimal("7.00")

    def test_additional_fees_deducted(self):
        schedule = FeeSchedule(fees={Marketplace.WALMART: Decimal("0.15")}, additional_fees=Decimal("1.50"))

        result = compute_match_profit(Decimal("10.00"), _match("15.00"), schedule)

        assert result.profit.amount == Decimal("1.25")
        assert result.fee_breakdown.additional_fees == Decimal("1.50")
        assert result.fee_breakdown.total_fees == Decimal("3.75")

    def test_fees_disabled(self):
        schedule = FeeSchedule(
            fees={Marketplace.WALMART: Decimal("0.15")}, additional_fees=Decimal("1.00"), include_fees=False
        )

        result = compute_match_profit(Decimal("10.00"), _match("15.00"), schedule)

        assert result.fee_breakdown.marketplace_fee_amount == Decimal("0.00")
        assert result.profit.amount == Decimal("4.00")

    def test_unknown_marketplace_fee_is_zero(self):
        result = compute_match_profit(Decimal("10.00"), _match("15.00", marketplace=Marketplace.TARGET), WALMART_15)

        assert result.profit.amount == Decimal("5.00")
        assert result.profit.percentage == Decimal("50.00")

    def test_loss(self):
        result = compute_match_profit(Decimal("20.00"), _match("15.00"), WALMART_15)

        assert result.profit.amount == Decimal("-7.25")

    def test_match_without_price_gets_zero_profit(self):
        result = compute_match_profit(Decimal("10.00"), _match(None), WALMART_15)

        assert result.profit == ProfitInfo(amount=Decimal("0"), percentage=Decimal("0"))
        assert result.fee_breakdown is None

    def test_original_match_untouched(self):
        match = _match("15.00")

        compute_match_profit(Decimal("10.00"), match, WALMART_15)

        assert match.profit is None


class TestComparisonProfit:
    def test_every_match_annotated(self, source_product):
        comparison = _comparison(
            source_product, _match("15.00"), _match("12.00"), _match("20.00", marketplace=Marketplace.TARGET)
        )

        result = calculate_profit(comparison, WALMART_15)

        amounts = [m.profit.amount for ms in result.matched_products.values() for m in ms]
        assert amounts == [Decimal("2.75"), Decimal("0.20"), Decimal("10.00")]

    def test_no_source_price_leaves_profit_absent(self, source_product):
        source = source_product.model_copy(update={"price": None})
        comparison = _comparison(source, _match("15.00"))

        result = calculate_profit(comparison, WALMART_15)

        assert result.matched_products[Marketplace.WALMART][0].profit is None

    def test_total_potential_profit(self, source_product):
        comparison = calculate_profit(
            _comparison(source_product, _match("15.00"), _match("5.00"), _match("20.00", marketplace=Marketplace.TARGET)),
            WALMART_15,
        )

        total = total_potential_profit(comparison)

        # 2.75 + 10.00; the loss-making match is ignored
        assert total.amount == Decimal("12.75")
        assert total.percentage == Decimal("63.75")

    def test_total_without_profit(self, source_product):
        total = total_potential_profit(_comparison(source_product, _match("15.00")))
        assert total.amount == Decimal("0")

    @pytest.mark.parametrize(
        "minimum,expected",
        [
            (Decimal("10"), ["target", "walmart"]),
            (Decimal("50"), ["target"]),
            (Decimal("200"), []),
        ],
    )
    def test_profitable_matches(self, source_product, minimum, expected):
        comparison = calculate_profit(
            _comparison(source_product, _match("15.00"), _match("20.00", marketplace=Marketplace.TARGET)),
            WALMART_15,
        )

        matches = profitable_matches(comparison, minimum)

        assert [match.marketplace.value for match in matches] == expected
