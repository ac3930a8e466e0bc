from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from costbook.models.line_item import LineItemCategory


# ============================================================================
# Client Schemas
# ============================================================================

class ClientCreateSchema(BaseModel):
    clientName: str = Field(..., min_length=1, max_length=200)
    companyName: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)


class ClientResponseSchema(BaseModel):
    clientId: str
    clientName: str
    companyName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    isActive: bool
    createdAt: datetime


# ============================================================================
# Project Schemas
# ============================================================================

class ProjectCreateSchema(BaseModel):
    projectNumber: str = Field(..., min_length=1, max_length=50)
    projectName: str = Field(..., min_length=1, max_length=200)
    clientId: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
    contractedAmount: Optional[Decimal] = Field(None, ge=0)
    originalEstCosts: Optional[Decimal] = Field(None, ge=0)
    adjustedEstCosts: Optional[Decimal] = Field(None, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "projectNumber": "P-2026-014",
                "projectName": "Kitchen remodel",
                "address": "12 Elm St",
                "contractedAmount": "48000"
            }
        }


class ProjectResponseSchema(BaseModel):
    projectId: str
    projectNumber: str
    projectName: str
    displayName: str
    clientId: Optional[str] = None
    clientName: Optional[str] = None
    address: Optional[str] = None
    status: str
    contractedAmount: Optional[Decimal] = None
    originalEstCosts: Optional[Decimal] = None
    adjustedEstCosts: Optional[Decimal] = None
    createdAt: datetime


# ============================================================================
# Variance Analysis Schemas
# ============================================================================

class VarianceLineItemSchema(BaseModel):
    """Amounts for one description within a category."""
    description: str
    estimated: Decimal
    quoted: Decimal
    actual: Decimal
    variance: Decimal
    variancePercentage: Decimal


class CategoryVarianceSchema(BaseModel):
    category: LineItemCategory
    categoryName: str
    estimated: Decimal
    quoted: Decimal
    actual: Decimal
    variance: Decimal = Field(..., description="actual - estimated")
    variancePercentage: Decimal
    lineItems: List[VarianceLineItemSchema]


class VarianceTotalsSchema(BaseModel):
    estimated: Decimal
    quoted: Decimal
    actual: Decimal
    variance: Decimal


class VarianceReportSchema(BaseModel):
    projectId: str
    estimateId: Optional[str] = None
    variances: List[CategoryVarianceSchema]
    totals: VarianceTotalsSchema


class MarginWarningsSchema(BaseModel):
    projectId: str
    warnings: List[str]
