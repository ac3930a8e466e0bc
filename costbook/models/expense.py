from beanie import Document, Indexed
from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
import enum

from costbook.models.line_item import LineItemCategory, Money


class TransactionType(str, enum.Enum):
    EXPENSE = "expense"
    REVENUE = "revenue"


class ExpenseBase(BaseModel):
    project_id: Indexed(str)
    category: LineItemCategory = LineItemCategory.OTHER
    amount: Money = Decimal("0")
    description: str = ""
    expense_date: date = Field(default_factory=date.today)
    transaction_type: TransactionType = TransactionType.EXPENSE
    is_planned: bool = False
    payee_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Expense(Document, ExpenseBase):
    """
    Expense model.
    An actual cost booked against a project.
    """

    class Settings:
        name = "expenses"
