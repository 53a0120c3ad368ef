"""Fee-aware profit calculation for resolved matches.

Pure functions over a `ComparisonResult` and a `FeeSchedule`. Amounts are
kept at full precision through the computation and rounded to cents only
when written to the result.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from ..models import ComparisonResult, FeeBreakdown, FeeSchedule, MatchResult, ProfitInfo

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_match_profit(source_price: Decimal, match: MatchResult, fee_schedule: FeeSchedule) -> MatchResult:
    """Profit of buying at `source_price` and selling at the match's price.

    Args:
        source_price: Price on the source marketplace.
        match: Candidate on the target marketplace.
        fee_schedule: Fees of the target marketplace.

    Returns:
        Copy of the match with `profit` and `fee_breakdown` set. A match
        without a price gets an explicit zero profit.
    """
    if match.price is None:
        return match.model_copy(update={"profit": ProfitInfo(amount=ZERO, percentage=ZERO)})

    total_price = match.price + (match.shipping_price or ZERO)
    fee_fraction = fee_schedule.fees.get(match.marketplace, ZERO)
    marketplace_fee = total_price * fee_schedule.fee_for(match.marketplace)
    total_fees = marketplace_fee + fee_schedule.additional_fees

    amount = total_price - source_price - total_fees
    percentage = amount / source_price * 100 if source_price else ZERO

    return match.model_copy(
        update={
            "profit": ProfitInfo(amount=_round(amount), percentage=_round(percentage)),
            "fee_breakdown": FeeBreakdown(
                marketplace_fee_percentage=fee_fraction,
                marketplace_fee_amount=_round(marketplace_fee),
                additional_fees=_round(fee_schedule.additional_fees),
                total_fees=_round(total_fees),
            ),
        }
    )


def calculate_profit(comparison: ComparisonResult, fee_schedule: FeeSchedule) -> ComparisonResult:
    """Annotate every match of the comparison with profit.

    When the source price is unknown the comparison is returned unchanged:
    profit stays absent, which is different from zero profit.
    """
    source_price = comparison.source_product.price
    if source_price is None:
        logger.info(f"No source price for '{comparison.source_product.title}', skipping profit")
        return comparison

    matched = {
        marketplace: [compute_match_profit(source_price, match, fee_schedule) for match in matches]
        for marketplace, matches in comparison.matched_products.items()
    }
    return comparison.model_copy(update={"matched_products": matched})


def total_potential_profit(comparison: ComparisonResult) -> ProfitInfo:
    """Sum of positive profits and their average percentage."""
    positive = [
        match.profit
        for matches in comparison.matched_products.values()
        for match in matches
        if match.profit is not None and match.profit.amount > 0
    ]
    if not positive:
        return ProfitInfo(amount=ZERO, percentage=ZERO)

    amount = sum((profit.amount for profit in positive), ZERO)
    percentage = sum((profit.percentage for profit in positive), ZERO) / len(positive)
    return ProfitInfo(amount=_round(amount), percentage=_round(percentage))


def profitable_matches(comparison: ComparisonResult, minimum_percentage: Decimal) -> list[MatchResult]:
    """Matches whose profit percentage reaches `minimum_percentage`, best first."""
    matches = [
        match
        for candidates in comparison.matched_products.values()
        for match in candidates
        if match.profit is not None and match.profit.percentage >= minimum_percentage
    ]
    return sorted(matches, key=lambda match: match.profit.percentage, reverse=True)
