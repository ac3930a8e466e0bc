from pydantic import BaseModel, Field
from typing import Optional, Dict
from decimal import Decimal

from costbook.core.config import settings
from costbook.models.line_item import (
    LineItem,
    QuoteLineItem,
    LineItemCategory,
    Markup,
    PercentMarkup,
)


def _default_markup():
    return PercentMarkup(value=Decimal(str(settings.DEFAULT_MARKUP_PERCENT)))


# ============================================================================
# Line Item Request Schemas
# ============================================================================

class LineItemInputSchema(BaseModel):
    """
    Line item as entered by the user. Derived fields (price, totals) are
    never accepted from the client; PricingService computes them.

    Omitting ``markup`` applies the default percentage markup; sending
    ``"markup": null`` prices the item at cost.
    """
    id: Optional[str] = Field(None, description="Existing line item ID")
    category: LineItemCategory = Field(..., description="Line item category")
    description: str = Field("", max_length=500, description="Line item description")
    unit: str = Field("EA", max_length=20, description="Unit of measure")
    sortOrder: Optional[int] = Field(None, ge=0, description="Display order")
    quantity: Decimal = Field(..., ge=0, description="Quantity")
    costPerUnit: Decimal = Field(Decimal("0"), ge=0, description="Internal unit cost")
    markup: Optional[Markup] = Field(default_factory=_default_markup, description="Percent or amount markup")

    # Labor-specific
    laborHours: Optional[Decimal] = Field(None, ge=0, description="Labor hours")
    billingRatePerHour: Optional[Decimal] = Field(None, ge=0, description="Hourly rate shown to client")
    actualCostRatePerHour: Optional[Decimal] = Field(None, ge=0, description="True internal hourly cost")

    class Config:
        json_schema_extra = {
            "example": {
                "category": "materials",
                "description": "2x4 studs",
                "unit": "EA",
                "quantity": "120",
                "costPerUnit": "4.25",
                "markup": {"mode": "percent", "value": "25"}
            }
        }

    def _model_fields(self, position: int) -> dict:
        data = {
            "category": self.category,
            "description": self.description,
            "unit": self.unit,
            "sort_order": self.sortOrder if self.sortOrder is not None else position,
            "quantity": self.quantity,
            "cost_per_unit": self.costPerUnit,
            "markup": self.markup,
            "labor_hours": self.laborHours,
            "billing_rate_per_hour": self.billingRatePerHour,
            "actual_cost_rate_per_hour": self.actualCostRatePerHour,
        }
        if self.id:
            data["id"] = self.id
        return data

    def to_model(self, position: int = 0) -> LineItem:
        """Unpriced LineItem; run it through PricingService before use."""
        return LineItem(**self._model_fields(position))


class QuoteLineItemInputSchema(LineItemInputSchema):
    """Quote line item, optionally linked to an estimate line item."""
    estimateLineItemId: Optional[str] = Field(None, description="Estimate line item this row answers")

    def to_model(self, position: int = 0) -> QuoteLineItem:
        return QuoteLineItem(
            estimate_line_item_id=self.estimateLineItemId,
            **self._model_fields(position)
        )


# ============================================================================
# Line Item Response Schemas
# ============================================================================

class LineItemSchema(BaseModel):
    """Priced line item as returned by the API."""
    id: str
    category: LineItemCategory
    description: str
    unit: str
    sortOrder: int
    quantity: Decimal
    costPerUnit: Decimal
    pricePerUnit: Decimal
    markup: Optional[Markup] = None
    markupPercent: Optional[Decimal] = None
    markupAmount: Optional[Decimal] = None
    total: Decimal
    totalCost: Decimal
    totalMarkup: Decimal
    marginPercent: Decimal = Field(..., description="Display only: (price - cost) / price * 100")
    laborHours: Optional[Decimal] = None
    billingRatePerHour: Optional[Decimal] = None
    actualCostRatePerHour: Optional[Decimal] = None
    laborCushionAmount: Decimal = Decimal("0")

    @classmethod
    def _fields_from(cls, item: LineItem, margin_percent: Decimal) -> dict:
        return {
            "id": item.id,
            "category": item.category,
            "description": item.description,
            "unit": item.unit,
            "sortOrder": item.sort_order,
            "quantity": item.quantity,
            "costPerUnit": item.cost_per_unit,
            "pricePerUnit": item.price_per_unit,
            "markup": item.markup,
            "markupPercent": item.markup_percent,
            "markupAmount": item.markup_amount,
            "total": item.total,
            "totalCost": item.total_cost,
            "totalMarkup": item.total_markup,
            "marginPercent": margin_percent,
            "laborHours": item.labor_hours,
            "billingRatePerHour": item.billing_rate_per_hour,
            "actualCostRatePerHour": item.actual_cost_rate_per_hour,
            "laborCushionAmount": item.labor_cushion_amount,
        }

    @classmethod
    def from_model(cls, item: LineItem, margin_percent: Decimal) -> "LineItemSchema":
        return cls(**cls._fields_from(item, margin_percent))


class QuoteLineItemSchema(LineItemSchema):
    estimateLineItemId: Optional[str] = None

    @classmethod
    def from_model(cls, item: QuoteLineItem, margin_percent: Decimal) -> "QuoteLineItemSchema":
        return cls(
            estimateLineItemId=getattr(item, "estimate_line_item_id", None),
            **cls._fields_from(item, margin_percent)
        )


class MarkupSwitchSchema(BaseModel):
    """Request to change a line item's markup representation."""
    lineItem: LineItemInputSchema
    mode: str = Field(..., pattern="^(percent|amount)$", description="Target markup mode")


# ============================================================================
# Aggregation Schemas
# ============================================================================

class CategoryTotalsSchema(BaseModel):
    """Subtotals for one category."""
    amount: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    markup: Decimal = Decimal("0")
    itemCount: int = 0


class DocumentTotalsSchema(BaseModel):
    """Document-level totals of an estimate or quote."""
    totalAmount: Decimal = Field(..., description="Sum of quantity x price")
    totalCost: Decimal = Field(..., description="Sum of quantity x cost")
    totalMarkup: Decimal = Field(..., description="totalAmount - totalCost")
    grossProfit: Decimal
    grossMarginPercent: Decimal
    averageMarkupPercent: Decimal
    itemCount: int
    byCategory: Dict[LineItemCategory, CategoryTotalsSchema]

    class Config:
        json_schema_extra = {
            "example": {
                "totalAmount": "1200.00",
                "totalCost": "1000.00",
                "totalMarkup": "200.00",
                "grossProfit": "200.00",
                "grossMarginPercent": "16.67",
                "averageMarkupPercent": "20.0",
                "itemCount": 2,
                "byCategory": {
                    "materials": {"amount": "1200.00", "cost": "1000.00", "markup": "200.00", "itemCount": 2}
                }
            }
        }
