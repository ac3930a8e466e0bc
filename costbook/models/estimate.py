from beanie import Document, Indexed
from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import List, Optional
import enum

from costbook.models.line_item import LineItem, Money, OptionalMoney


class EstimateStatus(str, enum.Enum):
    """Estimate status enumeration."""
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EstimateBase(BaseModel):
    """Estimate fields, shared by the stored document and in-memory records."""
    project_id: Optional[Indexed(str)] = None
    estimate_number: str = ""
    status: EstimateStatus = EstimateStatus.DRAFT
    notes: Optional[str] = None

    # Financial fields
    total_amount: Money = Decimal("0")
    total_cost: Money = Decimal("0")
    contingency_percent: Money = Decimal("10")
    contingency_amount: Money = Decimal("0")
    contingency_used: Money = Decimal("0")
    target_margin_percent: OptionalMoney = None

    # Version chain
    version_number: int = 1
    parent_estimate_id: Optional[Indexed(str)] = None
    is_current_version: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    valid_until: Optional[date] = None

    # Embedded Items
    line_items: List[LineItem] = []

    @property
    def root_estimate_id(self) -> str:
        """ID of the first version in this estimate's chain."""
        return self.parent_estimate_id or str(self.id)

    @property
    def contingency_remaining(self) -> Decimal:
        return self.contingency_amount - self.contingency_used


class Estimate(Document, EstimateBase):
    """
    Estimate model.
    One version of a priced estimate for a project. Versions of the same
    estimate form a chain rooted at the first version.
    """

    class Settings:
        name = "estimates"
        use_state_management = True

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        await super().save(*args, **kwargs)
