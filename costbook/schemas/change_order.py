from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from costbook.models.change_order import ChangeOrderStatus


# ============================================================================
# Change Order Request Schemas
# ============================================================================

class ChangeOrderCreateSchema(BaseModel):
    """Change order as entered by the user. marginImpact is always derived."""
    projectId: str = Field(..., description="Project the change order belongs to")
    changeOrderNumber: Optional[str] = Field(None, max_length=50)
    description: str = Field("", max_length=2000)
    clientAmount: Decimal = Field(Decimal("0"), description="Amount billed to the client")
    costImpact: Decimal = Field(Decimal("0"), description="Added internal cost")
    includesContingency: bool = False
    contingencyBilledToClient: Decimal = Field(Decimal("0"), ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "projectId": "665f1c2e8a1b2c3d4e5f6a7b",
                "description": "Add recessed lighting in kitchen",
                "clientAmount": "3000",
                "costImpact": "2400"
            }
        }


class ChangeOrderRecordSchema(BaseModel):
    """Unsaved change order figures for the rollup endpoint."""
    status: ChangeOrderStatus
    clientAmount: Decimal = Decimal("0")
    costImpact: Decimal = Decimal("0")
    marginImpact: Optional[Decimal] = Field(None, description="Defaults to clientAmount - costImpact")
    contingencyBilledToClient: Decimal = Decimal("0")


class ChangeOrderRollupRequestSchema(BaseModel):
    changeOrders: List[ChangeOrderRecordSchema] = Field(default_factory=list)


# ============================================================================
# Change Order Response Schemas
# ============================================================================

class ChangeOrderRollupSchema(BaseModel):
    """Totals over approved change orders only."""
    totalClientAmount: Decimal
    totalCostImpact: Decimal
    totalMarginImpact: Decimal
    overallMarginPercentage: Decimal
    totalContingencyBilled: Decimal
    approvedCount: int
    totalCount: int


class ChangeOrderResponseSchema(BaseModel):
    changeOrderId: str
    projectId: str
    changeOrderNumber: str
    description: str
    status: ChangeOrderStatus
    clientAmount: Decimal
    costImpact: Decimal
    marginImpact: Decimal
    includesContingency: bool
    contingencyBilledToClient: Decimal
    approvedDate: Optional[date] = None
    createdAt: datetime
    updatedAt: datetime


class ChangeOrderListResponseSchema(BaseModel):
    changeOrders: List[ChangeOrderResponseSchema]
    rollup: ChangeOrderRollupSchema
