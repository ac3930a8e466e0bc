from pydantic import BaseModel, Field, BeforeValidator
from decimal import Decimal
from typing import Optional, Annotated, Any, Literal, Union
import enum
import uuid


def coerce_decimal(v: Any) -> Decimal:
    if v is None:
        return Decimal("0")
    try:
        # Handle Decimal128 and floats by converting to string first
        return Decimal(str(v))
    except (ValueError, TypeError, ArithmeticError):
        return Decimal("0")


def coerce_optional_decimal(v: Any) -> Optional[Decimal]:
    if v is None:
        return None
    return coerce_decimal(v)


Money = Annotated[Decimal, BeforeValidator(coerce_decimal)]
OptionalMoney = Annotated[Optional[Decimal], BeforeValidator(coerce_optional_decimal)]


class LineItemCategory(str, enum.Enum):
    """Line item category. Values are storage keys and CSV tokens."""
    LABOR_INTERNAL = "labor_internal"
    SUBCONTRACTORS = "subcontractors"
    MATERIALS = "materials"
    EQUIPMENT = "equipment"
    PERMITS = "permits"
    MANAGEMENT = "management"
    OTHER = "other"


CATEGORY_DISPLAY_MAP = {
    LineItemCategory.LABOR_INTERNAL: "Labor (Internal)",
    LineItemCategory.SUBCONTRACTORS: "Subcontractors",
    LineItemCategory.MATERIALS: "Materials",
    LineItemCategory.EQUIPMENT: "Equipment",
    LineItemCategory.PERMITS: "Permits & Fees",
    LineItemCategory.MANAGEMENT: "Management",
    LineItemCategory.OTHER: "Other",
}


class PercentMarkup(BaseModel):
    """Markup as a percentage of the cost basis (25 = 25%)."""
    mode: Literal["percent"] = "percent"
    value: Money


class AmountMarkup(BaseModel):
    """Markup as a fixed amount added to the unit cost basis."""
    mode: Literal["amount"] = "amount"
    value: Money


Markup = Annotated[Union[PercentMarkup, AmountMarkup], Field(discriminator="mode")]


class LineItem(BaseModel):
    """
    Priced line item.
    Embedded in Estimate and Quote documents. Derived fields are written by
    PricingService and never set independently.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    category: LineItemCategory = LineItemCategory.OTHER
    description: str = ""
    unit: str = "EA"
    sort_order: int = 0

    quantity: Money = Decimal("1")
    cost_per_unit: Money = Decimal("0")
    markup: Optional[Markup] = None

    # Derived
    price_per_unit: Money = Decimal("0")
    total: Money = Decimal("0")
    total_cost: Money = Decimal("0")
    total_markup: Money = Decimal("0")

    # Labor-specific fields
    labor_hours: OptionalMoney = None
    billing_rate_per_hour: OptionalMoney = None
    actual_cost_rate_per_hour: OptionalMoney = None
    labor_cushion_amount: Money = Decimal("0")

    @property
    def is_internal_labor(self) -> bool:
        return self.category == LineItemCategory.LABOR_INTERNAL

    @property
    def markup_percent(self) -> Optional[Decimal]:
        if isinstance(self.markup, PercentMarkup):
            return self.markup.value
        return None

    @property
    def markup_amount(self) -> Optional[Decimal]:
        if isinstance(self.markup, AmountMarkup):
            return self.markup.value
        return None


class QuoteLineItem(LineItem):
    """Quote line item, optionally tied to one estimate line item."""
    estimate_line_item_id: Optional[str] = None
