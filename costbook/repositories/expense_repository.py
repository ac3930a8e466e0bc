from typing import Optional, List
import logging

from beanie import PydanticObjectId

from costbook.core.database import database_write
from costbook.models.expense import Expense, TransactionType

logger = logging.getLogger(__name__)


class ExpenseRepository:
    """Repository for project expenses (MongoDB/Beanie)."""

    @database_write("Expense insert")
    async def create_expense(self, data: dict) -> Expense:
        expense = Expense(**data)
        await expense.insert()
        return expense

    @database_write("Expense delete")
    async def delete_expense(self, expense_id: str) -> bool:
        """Remove an expense. Used to undo a half-finished allocation."""
        if not PydanticObjectId.is_valid(expense_id):
            return False
        expense = await Expense.get(PydanticObjectId(expense_id))
        if not expense:
            return False
        await expense.delete()
        return True

    async def list_by_project(
        self,
        project_id: str,
        transaction_type: Optional[TransactionType] = TransactionType.EXPENSE
    ) -> List[Expense]:
        query = Expense.find(Expense.project_id == project_id)
        if transaction_type:
            query = query.find(Expense.transaction_type == transaction_type)
        return await query.sort("+expense_date").to_list()
