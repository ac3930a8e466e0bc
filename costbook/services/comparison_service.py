"""
Comparison Service - estimate vs quote profitability

Matches quote line items to estimate line items and works out what
accepting the quote does to the margin.

Matching, first rule that applies per quote line item:
1. estimateLineItemId points at an existing estimate line item -> that item
2. otherwise every estimate line item of the same category

A category whose quote lines matched nothing reports ``None`` (unavailable)
instead of a zero variance.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Set

from costbook.core.config import settings
from costbook.models.line_item import LineItem, QuoteLineItem, LineItemCategory
from costbook.schemas.quote import (
    VarianceSchema,
    VarianceDirection,
    MarginStatus,
    Recommendation,
    MarginAnalysisSchema,
    CategoryCostComparisonSchema,
    QuoteComparisonSchema,
)
from costbook.services.calculation_service import calculation_service
from costbook.services.pricing_service import percent_of, ZERO, HUNDRED

VARIANCE_TONES = {
    VarianceDirection.OVER: "warning",
    VarianceDirection.UNDER: "success",
    VarianceDirection.EXACT: "muted",
}


@dataclass
class CategoryMatch:
    """Estimate and quote lines that landed in one category."""
    estimate_items: Dict[str, LineItem] = field(default_factory=dict)
    quote_items: List[QuoteLineItem] = field(default_factory=list)

    @property
    def has_estimate_data(self) -> bool:
        return bool(self.estimate_items)


def _line_cost(item: LineItem) -> Decimal:
    return item.quantity * item.cost_per_unit


def _line_price(item: LineItem) -> Decimal:
    return item.quantity * item.price_per_unit


def compute_variance(estimate: Decimal, actual: Decimal) -> VarianceSchema:
    """
    difference = actual - estimate
    percentage = difference / estimate x 100 (0 when estimate <= 0)
    """
    difference = actual - estimate
    if difference > 0:
        direction = VarianceDirection.OVER
    elif difference < 0:
        direction = VarianceDirection.UNDER
    else:
        direction = VarianceDirection.EXACT

    return VarianceSchema(
        estimate=estimate,
        actual=actual,
        difference=difference,
        percentage=percent_of(difference, estimate),
        direction=direction,
        tone=VARIANCE_TONES[direction],
    )


class ComparisonService:
    """Service for estimate vs quote comparisons"""

    def __init__(self, default_target_margin: Decimal = None, marginal_threshold: Decimal = None):
        if default_target_margin is None:
            default_target_margin = Decimal(str(settings.DEFAULT_TARGET_MARGIN_PERCENT))
        if marginal_threshold is None:
            marginal_threshold = Decimal(str(settings.MARGINAL_MARGIN_PERCENT))
        self.default_target_margin = Decimal(str(default_target_margin))
        self.marginal_threshold = Decimal(str(marginal_threshold))

    def resolve_target_margin(self, target_margin_percent: Optional[Decimal]) -> Decimal:
        if target_margin_percent is None:
            return self.default_target_margin
        return Decimal(str(target_margin_percent))

    def margin_status(self, margin_percent: Decimal, target_margin_percent: Decimal) -> MarginStatus:
        if margin_percent < 0:
            return MarginStatus.LOSS
        if margin_percent < self.marginal_threshold:
            return MarginStatus.MARGINAL
        if margin_percent < target_margin_percent:
            return MarginStatus.ACCEPTABLE
        return MarginStatus.EXCELLENT

    def analyze_margin(
        self,
        your_cost: Decimal,
        your_price: Decimal,
        vendor_quote: Decimal,
        target_margin_percent: Decimal
    ) -> MarginAnalysisSchema:
        """
        Margin if accepted = (yourPrice - vendorQuote) / yourPrice x 100
        Minimum acceptable quote = yourCost x (1 + target / 100)
        """
        margin_if_accepted = percent_of(your_price - vendor_quote, your_price)
        minimum_acceptable = your_cost * (Decimal("1") + target_margin_percent / HUNDRED)

        return MarginAnalysisSchema(
            yourCost=your_cost,
            yourPrice=your_price,
            vendorQuote=vendor_quote,
            marginIfAccepted=margin_if_accepted,
            marginDollarImpact=your_price - vendor_quote,
            minimumAcceptableQuote=minimum_acceptable,
            status=self.margin_status(margin_if_accepted, target_margin_percent),
            recommendation=(
                Recommendation.ACCEPT if vendor_quote <= minimum_acceptable
                else Recommendation.NEGOTIATE
            ),
            costVariance=compute_variance(your_cost, vendor_quote),
        )

    @staticmethod
    def match_line_items(
        estimate_items: List[LineItem],
        quote_items: List[QuoteLineItem]
    ) -> Dict[LineItemCategory, CategoryMatch]:
        """Group quote lines with the estimate lines they answer, per category."""
        estimate_by_id = {item.id: item for item in estimate_items}
        estimate_by_category: Dict[LineItemCategory, List[LineItem]] = {}
        for item in estimate_items:
            estimate_by_category.setdefault(item.category, []).append(item)

        matches: Dict[LineItemCategory, CategoryMatch] = {}
        for quote_item in quote_items:
            linked = estimate_by_id.get(quote_item.estimate_line_item_id) if quote_item.estimate_line_item_id else None

            if linked is not None:
                match = matches.setdefault(linked.category, CategoryMatch())
                match.estimate_items[linked.id] = linked
            else:
                match = matches.setdefault(quote_item.category, CategoryMatch())
                for candidate in estimate_by_category.get(quote_item.category, []):
                    match.estimate_items[candidate.id] = candidate
            match.quote_items.append(quote_item)

        return matches

    def _analyze_match(self, match: CategoryMatch, target: Decimal) -> Optional[MarginAnalysisSchema]:
        if not match.has_estimate_data:
            return None
        return self.analyze_margin(
            your_cost=sum((_line_cost(i) for i in match.estimate_items.values()), ZERO),
            your_price=sum((_line_price(i) for i in match.estimate_items.values()), ZERO),
            vendor_quote=sum((_line_price(i) for i in match.quote_items), ZERO),
            target_margin_percent=target,
        )

    @staticmethod
    def compare_by_category(
        estimate_items: List[LineItem],
        quote_items: List[QuoteLineItem]
    ) -> Dict[LineItemCategory, CategoryCostComparisonSchema]:
        """Straight category-to-category cost and price comparison."""
        categories: Set[LineItemCategory] = {i.category for i in estimate_items} | {i.category for i in quote_items}
        comparison = {}

        for category in sorted(categories, key=lambda c: c.value):
            estimated_cost = sum((_line_cost(i) for i in estimate_items if i.category == category), ZERO)
            quoted_cost = sum((_line_cost(i) for i in quote_items if i.category == category), ZERO)
            estimated_price = sum((_line_price(i) for i in estimate_items if i.category == category), ZERO)
            quoted_price = sum((_line_price(i) for i in quote_items if i.category == category), ZERO)

            comparison[category] = CategoryCostComparisonSchema(
                estimatedCost=estimated_cost,
                quotedCost=quoted_cost,
                estimatedPrice=estimated_price,
                quotedPrice=quoted_price,
                costVariance=quoted_cost - estimated_cost,
                priceVariance=quoted_price - estimated_price,
                costVariancePercent=percent_of(quoted_cost - estimated_cost, estimated_cost),
                priceVariancePercent=percent_of(quoted_price - estimated_price, estimated_price),
            )

        return comparison

    def compare(
        self,
        estimate_items: List[LineItem],
        quote_items: List[QuoteLineItem],
        target_margin_percent: Optional[Decimal] = None,
        quote_id: Optional[str] = None,
        estimate_id: Optional[str] = None
    ) -> QuoteComparisonSchema:
        """
        Full comparison of a quote against an estimate.

        Args:
            estimate_items: Priced estimate line items
            quote_items: Priced quote line items
            target_margin_percent: Estimate's target margin; default from settings

        Returns:
            Per-category and overall margin analysis
        """
        target = self.resolve_target_margin(target_margin_percent)
        matches = self.match_line_items(estimate_items, quote_items)

        overall = CategoryMatch()
        matched_ids: List[str] = []
        unmatched_ids: List[str] = []
        for match in matches.values():
            if match.has_estimate_data:
                overall.estimate_items.update(match.estimate_items)
                overall.quote_items.extend(match.quote_items)
                matched_ids.extend(i.id for i in match.quote_items)
            else:
                unmatched_ids.extend(i.id for i in match.quote_items)

        return QuoteComparisonSchema(
            quoteId=quote_id,
            estimateId=estimate_id,
            targetMarginPercent=target,
            overall=self._analyze_match(overall, target),
            categories={
                category: self._analyze_match(match, target)
                for category, match in matches.items()
            },
            categoryComparison=self.compare_by_category(estimate_items, quote_items),
            estimateTotals=calculation_service.aggregate(estimate_items),
            quoteTotals=calculation_service.aggregate(quote_items),
            matchedQuoteLineItemIds=sorted(matched_ids),
            unmatchedQuoteLineItemIds=sorted(unmatched_ids),
        )


# Singleton instance
comparison_service = ComparisonService()
