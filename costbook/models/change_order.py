from beanie import Document, Indexed
from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
import enum

from costbook.models.line_item import Money


class ChangeOrderStatus(str, enum.Enum):
    """Change order status enumeration."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeOrderBase(BaseModel):
    project_id: Indexed(str)
    change_order_number: str = ""
    description: str = ""
    status: ChangeOrderStatus = ChangeOrderStatus.PENDING

    client_amount: Money = Decimal("0")
    cost_impact: Money = Decimal("0")
    # client_amount - cost_impact, kept in sync by ChangeOrderService
    margin_impact: Money = Decimal("0")

    includes_contingency: bool = False
    contingency_billed_to_client: Money = Decimal("0")

    approved_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ChangeOrder(Document, ChangeOrderBase):
    """
    Change Order model.
    A priced scope change on a project. Only approved change orders count
    toward project totals.
    """

    class Settings:
        name = "change_orders"

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        await super().save(*args, **kwargs)
