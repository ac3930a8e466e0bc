from beanie import Document, Indexed
from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import List, Optional
import enum

from costbook.models.line_item import QuoteLineItem, Money


class QuoteStatus(str, enum.Enum):
    """Quote status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class QuoteBase(BaseModel):
    project_id: Optional[Indexed(str)] = None
    estimate_id: Optional[str] = None
    quote_number: str = ""
    quoted_by: str = ""
    status: QuoteStatus = QuoteStatus.PENDING

    total_amount: Money = Decimal("0")
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

    date_received: date = Field(default_factory=date.today)
    valid_until: Optional[date] = None
    accepted_date: Optional[date] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    line_items: List[QuoteLineItem] = []

    def is_past_validity(self, today: date = None) -> bool:
        """True when valid_until lies strictly before today."""
        if self.valid_until is None:
            return False
        return self.valid_until < (today or date.today())


class Quote(Document, QuoteBase):
    """
    Quote model.
    A vendor or subcontractor quote, usually answering one estimate.
    """

    class Settings:
        name = "quotes"
        use_state_management = True

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        await super().save(*args, **kwargs)
