from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime, date
from decimal import Decimal
import enum

from costbook.models.line_item import LineItemCategory
from costbook.models.quote import QuoteStatus
from costbook.schemas.line_item import (
    LineItemInputSchema,
    QuoteLineItemInputSchema,
    QuoteLineItemSchema,
    DocumentTotalsSchema,
)


class VarianceDirection(str, enum.Enum):
    OVER = "over"      # actual above estimate, unfavorable
    UNDER = "under"    # actual below estimate, favorable
    EXACT = "exact"


class MarginStatus(str, enum.Enum):
    LOSS = "loss"
    MARGINAL = "marginal"
    ACCEPTABLE = "acceptable"
    EXCELLENT = "excellent"


class Recommendation(str, enum.Enum):
    ACCEPT = "ACCEPT"
    NEGOTIATE = "NEGOTIATE"


# ============================================================================
# Quote Request Schemas
# ============================================================================

class QuoteCreateSchema(BaseModel):
    """Vendor quote as entered by the user."""
    projectId: str = Field(..., description="Project the quote is for")
    estimateId: Optional[str] = Field(None, description="Estimate the quote answers")
    quoteNumber: Optional[str] = Field(None, max_length=50)
    quotedBy: str = Field(..., min_length=1, max_length=200, description="Vendor or subcontractor")
    dateReceived: Optional[date] = None
    validUntil: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    lineItems: List[QuoteLineItemInputSchema] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "projectId": "665f1c2e8a1b2c3d4e5f6a7b",
                "estimateId": "665f1c2e8a1b2c3d4e5f6a7c",
                "quotedBy": "Ace Electric",
                "validUntil": "2026-12-31",
                "lineItems": [
                    {
                        "category": "subcontractors",
                        "description": "Rough-in electrical",
                        "quantity": "1",
                        "costPerUnit": "4500",
                        "markup": None
                    }
                ]
            }
        }


class QuoteRejectSchema(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class QuoteComparisonRequestSchema(BaseModel):
    """Compare unsaved line items (no database access)."""
    estimateLineItems: List[LineItemInputSchema]
    quoteLineItems: List[QuoteLineItemInputSchema]
    targetMarginPercent: Optional[Decimal] = Field(None, ge=0, le=100)


# ============================================================================
# Quote Response Schemas
# ============================================================================

class QuoteResponseSchema(BaseModel):
    quoteId: str
    projectId: Optional[str] = None
    estimateId: Optional[str] = None
    quoteNumber: str
    quotedBy: str
    status: QuoteStatus
    dateReceived: date
    validUntil: Optional[date] = None
    acceptedDate: Optional[date] = None
    rejectionReason: Optional[str] = None
    notes: Optional[str] = None
    lineItems: List[QuoteLineItemSchema]
    totals: DocumentTotalsSchema
    createdAt: datetime
    updatedAt: datetime


class QuoteListResponseSchema(BaseModel):
    quotes: List[QuoteResponseSchema]
    expiredQuoteIds: List[str] = Field(default_factory=list, description="Quotes expired by this load")


class VarianceSchema(BaseModel):
    """
    Signed variance of an actual figure against its estimate.
    Positive difference means over estimate (unfavorable).
    """
    estimate: Decimal
    actual: Decimal
    difference: Decimal
    percentage: Decimal
    direction: VarianceDirection
    tone: str = Field(..., description="UI color token: warning, success or muted")


class MarginAnalysisSchema(BaseModel):
    """Profitability of accepting a quote against the matched estimate lines."""
    yourCost: Decimal
    yourPrice: Decimal
    vendorQuote: Decimal
    marginIfAccepted: Decimal
    marginDollarImpact: Decimal = Field(..., description="yourPrice - vendorQuote")
    minimumAcceptableQuote: Decimal
    status: MarginStatus
    recommendation: Recommendation
    costVariance: VarianceSchema


class CategoryCostComparisonSchema(BaseModel):
    estimatedCost: Decimal
    quotedCost: Decimal
    estimatedPrice: Decimal
    quotedPrice: Decimal
    costVariance: Decimal
    priceVariance: Decimal
    costVariancePercent: Decimal
    priceVariancePercent: Decimal


class QuoteComparisonSchema(BaseModel):
    """
    Estimate vs quote comparison.
    A null analysis means no estimate line matched: the variance is
    unavailable, which is different from zero.
    """
    quoteId: Optional[str] = None
    estimateId: Optional[str] = None
    targetMarginPercent: Decimal
    overall: Optional[MarginAnalysisSchema] = None
    categories: Dict[LineItemCategory, Optional[MarginAnalysisSchema]]
    categoryComparison: Dict[LineItemCategory, CategoryCostComparisonSchema]
    estimateTotals: DocumentTotalsSchema
    quoteTotals: DocumentTotalsSchema
    matchedQuoteLineItemIds: List[str]
    unmatchedQuoteLineItemIds: List[str]
