"""
Contingency Service - drawing down an estimate's contingency reserve

contingencyAmount = estimate total x contingencyPercent / 100
remaining         = contingencyAmount - contingencyUsed

An allocation books a planned expense against the project and raises
contingencyUsed by the same amount. The two writes run as a saga:

1. validate against the ledger (no writes on failure)
2. insert the expense (a failure here raises PersistenceError, nothing is booked)
3. compare-and-set contingencyUsed from the value read in step 1
4. if step 3 fails, delete the expense and raise ContingencyAllocationError
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
import logging

from costbook.core.exceptions import ContingencyAllocationError, NotFoundError, PersistenceError
from costbook.models.estimate import Estimate
from costbook.models.expense import TransactionType
from costbook.models.line_item import LineItemCategory
from costbook.repositories.estimate_repository import EstimateRepository
from costbook.repositories.expense_repository import ExpenseRepository
from costbook.schemas.estimate import ContingencyLedgerSchema, ContingencyAllocationResponseSchema
from costbook.services.pricing_service import HUNDRED, ZERO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContingencyLedger:
    percent: Decimal
    amount: Decimal
    used: Decimal = ZERO

    @classmethod
    def for_total(cls, estimate_total: Decimal, percent: Decimal, used: Decimal = ZERO) -> "ContingencyLedger":
        return cls(percent=percent, amount=estimate_total * percent / HUNDRED, used=used)

    @classmethod
    def from_estimate(cls, estimate: Estimate) -> "ContingencyLedger":
        return cls(
            percent=estimate.contingency_percent,
            amount=estimate.contingency_amount,
            used=estimate.contingency_used,
        )

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.used

    def validate_allocation(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ContingencyAllocationError("Allocation amount must be greater than zero")
        if amount > self.remaining:
            raise ContingencyAllocationError(
                f"Allocation of {amount} exceeds remaining contingency of {self.remaining}"
            )

    def allocate(self, amount: Decimal) -> "ContingencyLedger":
        """Ledger after a successful allocation; self is unchanged."""
        self.validate_allocation(amount)
        return ContingencyLedger(percent=self.percent, amount=self.amount, used=self.used + amount)

    def to_schema(self) -> ContingencyLedgerSchema:
        return ContingencyLedgerSchema(
            contingencyPercent=self.percent,
            contingencyAmount=self.amount,
            contingencyUsed=self.used,
            contingencyRemaining=self.remaining,
        )


class ContingencyService:
    """Service for contingency allocations (Async)"""

    def __init__(
        self,
        estimate_repository: EstimateRepository = None,
        expense_repository: ExpenseRepository = None
    ):
        self.estimate_repository = estimate_repository or EstimateRepository()
        self.expense_repository = expense_repository or ExpenseRepository()

    async def get_ledger(self, estimate_id: str) -> ContingencyLedgerSchema:
        estimate = await self._get_estimate(estimate_id)
        return ContingencyLedger.from_estimate(estimate).to_schema()

    async def allocate(
        self,
        estimate_id: str,
        amount: Decimal,
        description: str
    ) -> ContingencyAllocationResponseSchema:
        """
        Allocate contingency to a planned expense.

        Raises:
            NotFoundError: unknown estimate
            ContingencyAllocationError: invalid amount, or the write was rolled back
            PersistenceError: the expense could not be inserted
        """
        estimate = await self._get_estimate(estimate_id)
        ledger = ContingencyLedger.from_estimate(estimate)
        updated_ledger = ledger.allocate(amount)

        if not estimate.project_id:
            raise ContingencyAllocationError("Estimate has no project to book the expense against")

        expense = await self.expense_repository.create_expense({
            "project_id": estimate.project_id,
            "category": LineItemCategory.OTHER,
            "amount": amount,
            "description": f"Contingency Allocation: {description}",
            "expense_date": date.today(),
            "transaction_type": TransactionType.EXPENSE,
            "is_planned": True,
        })

        try:
            updated = await self.estimate_repository.increment_contingency_used(
                estimate_id, ledger.used, amount
            )
        except PersistenceError as e:
            logger.error("Contingency update failed for estimate %s: %s", estimate_id, e)
            updated = False

        if not updated:
            await self._compensate(str(expense.id), estimate_id)
            raise ContingencyAllocationError(
                "Contingency changed while allocating; nothing was booked. Reload and try again."
            )

        logger.info("Allocated %s contingency on estimate %s", amount, estimate_id)
        return ContingencyAllocationResponseSchema(
            expenseId=str(expense.id),
            allocated=amount,
            ledger=updated_ledger.to_schema(),
        )

    async def _compensate(self, expense_id: str, estimate_id: str) -> None:
        try:
            deleted = await self.expense_repository.delete_expense(expense_id)
        except PersistenceError as e:
            logger.error("Rollback of expense %s failed: %s", expense_id, e)
            deleted = False

        if not deleted:
            raise ContingencyAllocationError(
                f"Contingency update failed and expense {expense_id} could not be removed; "
                f"reconcile estimate {estimate_id} manually"
            )
        logger.warning("Rolled back expense %s for estimate %s", expense_id, estimate_id)

    async def _get_estimate(self, estimate_id: str) -> Estimate:
        estimate = await self.estimate_repository.get_by_id(estimate_id)
        if not estimate:
            raise NotFoundError(f"Estimate {estimate_id} not found")
        return estimate


def get_contingency_service() -> ContingencyService:
    """
    Factory function to create ContingencyService instance.
    """
    return ContingencyService()
