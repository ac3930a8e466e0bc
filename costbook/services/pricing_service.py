"""
Pricing Service - line item price and total calculation

Turns a line item's cost basis and markup into its client price and
derived totals:
- Percent markup: price = basis x (1 + percent / 100)
- Amount markup:  price = basis + amount
- No markup:      price = basis
- total = quantity x price, totalCost = quantity x basis,
  totalMarkup = total - totalCost

Internal labor with both hourly rates set uses the billing rate as its cost
basis. The true internal rate only feeds the labor cushion.

Uses Decimal throughout; nothing is rounded here so totals stay exact.
"""
from decimal import Decimal
from typing import List, Optional

from costbook.core.config import settings
from costbook.core.exceptions import LineItemValidationError
from costbook.models.line_item import LineItem, PercentMarkup, AmountMarkup

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole x 100, or 0 when whole is not positive."""
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


class PricingService:
    """Service for line item pricing with exact decimal arithmetic"""

    def __init__(self, min_markup_percent: Decimal = None):
        """
        Args:
            min_markup_percent: Lowest percent markup accepted (discount floor).
                Defaults to settings value.
        """
        if min_markup_percent is None:
            min_markup_percent = Decimal(str(settings.MIN_MARKUP_PERCENT))
        self.min_markup_percent = Decimal(str(min_markup_percent))

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    @staticmethod
    def has_labor_rates(item: LineItem) -> bool:
        return (
            item.is_internal_labor
            and item.billing_rate_per_hour is not None
            and item.actual_cost_rate_per_hour is not None
        )

    def cost_basis(self, item: LineItem) -> Decimal:
        """Unit cost that markup and totalCost are computed from."""
        if self.has_labor_rates(item):
            return item.billing_rate_per_hour
        return item.cost_per_unit

    def apply_markup(self, cost_basis: Decimal, markup) -> Decimal:
        """
        Apply a markup variant to a unit cost.

        Args:
            cost_basis: Unit cost
            markup: PercentMarkup, AmountMarkup or None

        Returns:
            Unit price
        """
        if isinstance(markup, PercentMarkup):
            return cost_basis * (Decimal("1") + markup.value / HUNDRED)
        if isinstance(markup, AmountMarkup):
            return cost_basis + markup.value
        return cost_basis

    @staticmethod
    def labor_cushion(
        hours: Optional[Decimal],
        billing_rate: Optional[Decimal],
        actual_rate: Optional[Decimal]
    ) -> Decimal:
        """Hidden margin between billed and true labor rates."""
        if billing_rate is None or actual_rate is None:
            return ZERO
        return (hours or ZERO) * (billing_rate - actual_rate)

    @staticmethod
    def margin_percent(price_per_unit: Decimal, cost_per_unit: Decimal) -> Decimal:
        """Display margin: (price - cost) / price x 100, 0 when price <= 0."""
        return percent_of(price_per_unit - cost_per_unit, price_per_unit)

    @staticmethod
    def realized_markup_percent(item: LineItem) -> Decimal:
        """Markup actually achieved: (price - cost) / cost x 100."""
        return percent_of(item.price_per_unit - item.cost_per_unit, item.cost_per_unit)

    # ------------------------------------------------------------------
    # Line item operations
    # ------------------------------------------------------------------

    def validate(self, item: LineItem) -> None:
        if item.quantity < 0:
            raise LineItemValidationError(f"Quantity cannot be negative (line item {item.id})")
        if item.cost_per_unit < 0:
            raise LineItemValidationError(f"Cost per unit cannot be negative (line item {item.id})")
        if isinstance(item.markup, PercentMarkup) and item.markup.value < self.min_markup_percent:
            raise LineItemValidationError(
                f"Markup {item.markup.value}% is below the minimum of {self.min_markup_percent}%"
            )

    def price_line_item(self, item: LineItem) -> LineItem:
        """
        Recompute every derived field of a line item.

        Returns:
            A new LineItem; the input is left untouched.
        """
        self.validate(item)

        update = {}
        if self.has_labor_rates(item):
            update["cost_per_unit"] = item.billing_rate_per_hour
        cost_basis = self.cost_basis(item)

        price_per_unit = self.apply_markup(cost_basis, item.markup)
        total = item.quantity * price_per_unit
        total_cost = item.quantity * cost_basis

        update.update({
            "price_per_unit": price_per_unit,
            "total": total,
            "total_cost": total_cost,
            "total_markup": total - total_cost,
            "labor_cushion_amount": self.labor_cushion(
                item.labor_hours,
                item.billing_rate_per_hour,
                item.actual_cost_rate_per_hour,
            ) if item.is_internal_labor else ZERO,
        })
        return item.model_copy(update=update)

    def price_line_items(self, items: List[LineItem]) -> List[LineItem]:
        return [self.price_line_item(item) for item in items]

    def switch_markup_mode(self, item: LineItem, mode: str) -> LineItem:
        """
        Convert the markup to another representation, keeping the price.

        percent -> amount: amount = price - basis
        amount -> percent: percent = (price - basis) / basis x 100
                           (0 when basis <= 0)
        """
        priced = self.price_line_item(item)
        cost_basis = self.cost_basis(priced)
        spread = priced.price_per_unit - cost_basis

        if mode == "amount":
            markup = AmountMarkup(value=spread)
        elif mode == "percent":
            markup = PercentMarkup(value=percent_of(spread, cost_basis))
        else:
            raise LineItemValidationError(f"Unknown markup mode: {mode}")

        return self.price_line_item(priced.model_copy(update={"markup": markup}))

    def find_negative_markup_items(self, items: List[LineItem]) -> List[LineItem]:
        """Items priced below cost."""
        return [item for item in items if self.realized_markup_percent(item) < 0]


# Singleton instance for easy import
pricing_service = PricingService()
