"""
Margin validation warnings

Data-quality checks on project financials. Each check returns a message or
None; nothing here raises.
"""
from decimal import Decimal
from typing import Iterable, List, Optional

from costbook.models.line_item import LineItem
from costbook.services.pricing_service import ZERO, HUNDRED

# A quote cost within 2% of its price looks like a price typed as a cost
SUSPICIOUS_COST_RATIO = Decimal("0.98")
SUSPICIOUS_SHARE_PERCENT = Decimal("30")
MAX_COST_DECREASE_PERCENT = Decimal("5")
MAX_COST_TO_CONTRACT_RATIO = Decimal("0.95")


def detect_quote_price_cost_issue(quote_items: Iterable[LineItem]) -> Optional[str]:
    suspicious = 0
    counted = 0

    for item in quote_items:
        cost = item.total_cost or ZERO
        price = item.total or ZERO
        if cost == 0 or price == 0:
            continue

        counted += 1
        if cost / price > SUSPICIOUS_COST_RATIO:
            suspicious += 1

    if counted == 0:
        return None

    if Decimal(suspicious) / Decimal(counted) * HUNDRED > SUSPICIOUS_SHARE_PERCENT:
        return (
            f"{suspicious} of {counted} quote line items have costs very close to sell prices. "
            "Verify that costs (not prices) were entered."
        )
    return None


def detect_cost_decrease_issue(adjusted_costs: Decimal, original_costs: Decimal) -> Optional[str]:
    if adjusted_costs == 0 or original_costs == 0:
        return None

    decrease = (original_costs - adjusted_costs) / original_costs * HUNDRED
    if decrease > MAX_COST_DECREASE_PERCENT:
        return (
            f"Adjusted costs (${adjusted_costs:.0f}) are {decrease:.1f}% lower than "
            f"original costs (${original_costs:.0f}). Verify quote data."
        )
    return None


def detect_cost_exceeds_contract_issue(projected_costs: Decimal, contract_value: Decimal) -> Optional[str]:
    if projected_costs == 0 or contract_value == 0:
        return None

    ratio = projected_costs / contract_value
    if ratio > MAX_COST_TO_CONTRACT_RATIO:
        return (
            f"Projected costs (${projected_costs:.0f}) are {ratio * HUNDRED:.1f}% of contract value "
            f"(${contract_value:.0f}). This indicates either critical margin risk or data entry "
            "errors (e.g., using prices instead of costs)."
        )
    return None


def validate_project_margin(
    contracted_amount: Optional[Decimal],
    original_costs: Optional[Decimal],
    adjusted_costs: Optional[Decimal],
    quote_items: Optional[Iterable[LineItem]] = None
) -> List[str]:
    """
    Run all margin checks.

    Projected margin is contract value minus adjusted costs, checked only
    when both are known.
    """
    warnings = []
    contract = contracted_amount or ZERO
    original = original_costs or ZERO
    adjusted = adjusted_costs or ZERO

    if quote_items is not None:
        warning = detect_quote_price_cost_issue(quote_items)
        if warning:
            warnings.append(warning)

    if adjusted > 0 and original > 0:
        warning = detect_cost_decrease_issue(adjusted, original)
        if warning:
            warnings.append(warning)

    if adjusted > 0 and contract > 0:
        warning = detect_cost_exceeds_contract_issue(adjusted, contract)
        if warning:
            warnings.append(warning)

        projected_margin = contract - adjusted
        if projected_margin < 0:
            warnings.append(f"Negative projected margin (${projected_margin:.0f}). Costs exceed revenue.")

    return warnings
