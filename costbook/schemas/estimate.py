from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from costbook.core.config import settings
from costbook.models.estimate import EstimateStatus
from costbook.schemas.line_item import (
    LineItemInputSchema,
    LineItemSchema,
    DocumentTotalsSchema,
)


# ============================================================================
# Calculation Schemas
# ============================================================================

class EstimateSummary(BaseModel):
    """Totals plus contingency for one estimate."""
    totals: DocumentTotalsSchema
    contingencyPercent: Decimal
    contingencyAmount: Decimal
    grandTotal: Decimal = Field(..., description="Line item total plus contingency")


class CalculationRequestSchema(BaseModel):
    """
    Schema for real-time calculation requests (nothing is saved).
    Used for the /estimates/calculate endpoint.
    """
    lineItems: List[LineItemInputSchema] = Field(default_factory=list)
    contingencyPercent: Optional[Decimal] = Field(None, ge=0, le=100, description="Contingency (10 = 10%)")


class CalculationResponseSchema(BaseModel):
    """Response schema for calculation endpoint"""
    lineItems: List[LineItemSchema]
    summary: EstimateSummary
    warnings: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "lineItems": [],
                "summary": {
                    "totals": {"totalAmount": "1200.00", "totalCost": "1000.00"},
                    "contingencyPercent": "10",
                    "contingencyAmount": "120.00",
                    "grandTotal": "1320.00"
                },
                "warnings": []
            }
        }


# ============================================================================
# Estimate Request Schemas
# ============================================================================

class EstimateCreateSchema(BaseModel):
    """
    Estimate creation/update schema.
    The same body is used for PUT on a draft.
    """
    projectId: str = Field(..., description="Project this estimate belongs to")
    estimateNumber: Optional[str] = Field(None, max_length=50, description="Human readable estimate number")
    notes: Optional[str] = Field(None, max_length=2000)
    contingencyPercent: Decimal = Field(
        default_factory=lambda: Decimal(str(settings.DEFAULT_CONTINGENCY_PERCENT)),
        ge=0, le=100, description="Contingency (10 = 10%)"
    )
    targetMarginPercent: Optional[Decimal] = Field(None, ge=0, le=100, description="Target margin (20 = 20%)")
    validUntil: Optional[date] = None
    lineItems: List[LineItemInputSchema] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "projectId": "665f1c2e8a1b2c3d4e5f6a7b",
                "estimateNumber": "EST-1042",
                "contingencyPercent": "10",
                "targetMarginPercent": "20",
                "lineItems": [
                    {
                        "category": "materials",
                        "description": "Drywall sheets",
                        "quantity": "40",
                        "costPerUnit": "12.50",
                        "markup": {"mode": "percent", "value": "20"}
                    },
                    {
                        "category": "labor_internal",
                        "description": "Hang and finish",
                        "quantity": "16",
                        "laborHours": "16",
                        "billingRatePerHour": "75",
                        "actualCostRatePerHour": "45",
                        "markup": None
                    }
                ]
            }
        }


class EstimateStatusUpdateSchema(BaseModel):
    status: EstimateStatus


class ContingencyAllocationRequestSchema(BaseModel):
    """Draw an amount from the estimate's contingency reserve."""
    amount: Decimal = Field(..., description="Amount to allocate")
    description: str = Field(..., min_length=1, max_length=500)


# ============================================================================
# Estimate Response Schemas
# ============================================================================

class ContingencyLedgerSchema(BaseModel):
    contingencyPercent: Decimal
    contingencyAmount: Decimal
    contingencyUsed: Decimal
    contingencyRemaining: Decimal


class ContingencyAllocationResponseSchema(BaseModel):
    expenseId: str
    allocated: Decimal
    ledger: ContingencyLedgerSchema


class EstimateResponseSchema(BaseModel):
    """Response schema for estimate creation/retrieval"""
    estimateId: str = Field(..., description="Estimate ID")
    projectId: Optional[str] = None
    estimateNumber: str
    status: EstimateStatus
    notes: Optional[str] = None
    versionNumber: int
    parentEstimateId: Optional[str] = None
    isCurrentVersion: bool
    targetMarginPercent: Optional[Decimal] = None
    contingency: ContingencyLedgerSchema
    lineItems: List[LineItemSchema]
    totals: DocumentTotalsSchema
    createdAt: datetime
    updatedAt: datetime
    validUntil: Optional[date] = None
    warnings: List[str] = Field(default_factory=list)


class EstimateVersionSchema(BaseModel):
    """One member of a version chain."""
    estimateId: str
    versionNumber: int
    status: EstimateStatus
    isCurrentVersion: bool
    totalAmount: Decimal
    updatedAt: datetime


class RecentlyViewedSchema(BaseModel):
    viewer: str
    estimateIds: List[str]
