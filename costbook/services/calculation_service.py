"""
Calculation Service - The "Brain" of the Estimation System

This service folds priced line items into document totals:
- Category subtotals (amount, cost, markup)
- Document totals, gross profit and margin
- Contingency amount and grand total for estimates

Every method is a pure fold over its input: no I/O, no rounding, and the
result does not depend on item order.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from costbook.core.config import settings
from costbook.models.line_item import LineItem, LineItemCategory
from costbook.schemas.line_item import CategoryTotalsSchema, DocumentTotalsSchema
from costbook.schemas.estimate import EstimateSummary
from costbook.services.pricing_service import percent_of, ZERO, HUNDRED


class CalculationService:
    """Service for estimate and quote roll-ups with exact decimal arithmetic"""

    def __init__(self, contingency_percent: Decimal = None):
        """
        Initialize calculation service.

        Args:
            contingency_percent: Default contingency (10 = 10%). Defaults to settings value.
        """
        if contingency_percent is None:
            contingency_percent = Decimal(str(settings.DEFAULT_CONTINGENCY_PERCENT))
        self.contingency_percent = Decimal(str(contingency_percent))

    def aggregate(self, items: List[LineItem]) -> DocumentTotalsSchema:
        """
        Fold line items into category subtotals and document totals.

        Amount and cost are recomputed from quantity x unit values so that a
        stale stored total can never leak into the roll-up.

        Args:
            items: Priced line items

        Returns:
            Totals with every category present (zeros when unused)
        """
        by_category: Dict[LineItemCategory, Dict] = {
            category: {"amount": ZERO, "cost": ZERO, "count": 0}
            for category in LineItemCategory
        }

        for item in items:
            bucket = by_category[LineItemCategory(item.category)]
            bucket["amount"] += item.quantity * item.price_per_unit
            bucket["cost"] += item.quantity * item.cost_per_unit
            bucket["count"] += 1

        total_amount = sum((b["amount"] for b in by_category.values()), ZERO)
        total_cost = sum((b["cost"] for b in by_category.values()), ZERO)
        total_markup = total_amount - total_cost

        return DocumentTotalsSchema(
            totalAmount=total_amount,
            totalCost=total_cost,
            totalMarkup=total_markup,
            grossProfit=total_markup,
            grossMarginPercent=percent_of(total_markup, total_amount),
            averageMarkupPercent=percent_of(total_markup, total_cost),
            itemCount=len(items),
            byCategory={
                category: CategoryTotalsSchema(
                    amount=bucket["amount"],
                    cost=bucket["cost"],
                    markup=bucket["amount"] - bucket["cost"],
                    itemCount=bucket["count"],
                )
                for category, bucket in by_category.items()
            },
        )

    def contingency_amount(self, total_amount: Decimal, contingency_percent: Decimal = None) -> Decimal:
        """Contingency reserve: total x percent / 100."""
        percent = self.contingency_percent if contingency_percent is None else Decimal(str(contingency_percent))
        return total_amount * percent / HUNDRED

    def summarize_estimate(
        self,
        items: List[LineItem],
        contingency_percent: Optional[Decimal] = None
    ) -> EstimateSummary:
        """
        Calculate complete estimate breakdown.

        1. Line item totals
        2. Contingency on the line item total
        3. Grand total (line items + contingency)
        """
        percent = self.contingency_percent if contingency_percent is None else Decimal(str(contingency_percent))
        totals = self.aggregate(items)
        contingency = self.contingency_amount(totals.totalAmount, percent)

        return EstimateSummary(
            totals=totals,
            contingencyPercent=percent,
            contingencyAmount=contingency,
            grandTotal=totals.totalAmount + contingency,
        )


# Singleton instance for easy import
calculation_service = CalculationService()
