"""
Change Order Service

Change order lifecycle and the project rollup.

Status flow:
    pending  -> approved | rejected
    rejected -> approved   (re-approval)
    approved -> rejected   (reversal)

Only approved change orders count toward the rollup.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

from costbook.core.exceptions import InvalidStatusTransition, NotFoundError
from costbook.models.change_order import ChangeOrder, ChangeOrderStatus
from costbook.repositories.change_order_repository import ChangeOrderRepository
from costbook.repositories.project_repository import ProjectRepository
from costbook.schemas.change_order import (
    ChangeOrderCreateSchema,
    ChangeOrderRecordSchema,
    ChangeOrderResponseSchema,
    ChangeOrderListResponseSchema,
    ChangeOrderRollupSchema,
)
from costbook.services.pricing_service import percent_of, ZERO

logger = logging.getLogger(__name__)

CHANGE_ORDER_TRANSITIONS = {
    ChangeOrderStatus.PENDING: {ChangeOrderStatus.APPROVED, ChangeOrderStatus.REJECTED},
    ChangeOrderStatus.REJECTED: {ChangeOrderStatus.APPROVED},
    ChangeOrderStatus.APPROVED: {ChangeOrderStatus.REJECTED},
}


@dataclass
class ChangeOrderFigures:
    """The money side of a change order, saved or not."""
    status: ChangeOrderStatus
    client_amount: Decimal = ZERO
    cost_impact: Decimal = ZERO
    margin_impact: Decimal = ZERO
    contingency_billed_to_client: Decimal = ZERO

    @classmethod
    def from_document(cls, change_order: ChangeOrder) -> "ChangeOrderFigures":
        return cls(
            status=change_order.status,
            client_amount=change_order.client_amount,
            cost_impact=change_order.cost_impact,
            margin_impact=change_order.margin_impact,
            contingency_billed_to_client=change_order.contingency_billed_to_client,
        )

    @classmethod
    def from_schema(cls, record: ChangeOrderRecordSchema) -> "ChangeOrderFigures":
        margin = record.marginImpact
        if margin is None:
            margin = record.clientAmount - record.costImpact
        return cls(
            status=record.status,
            client_amount=record.clientAmount,
            cost_impact=record.costImpact,
            margin_impact=margin,
            contingency_billed_to_client=record.contingencyBilledToClient,
        )


def rollup_change_orders(change_orders: Iterable[ChangeOrderFigures]) -> ChangeOrderRollupSchema:
    """
    Sum approved change orders.

    overallMarginPercentage = totalMarginImpact / totalClientAmount x 100,
    0 when the client total is not positive.
    """
    change_orders = list(change_orders)
    approved = [co for co in change_orders if co.status == ChangeOrderStatus.APPROVED]

    total_client = sum((co.client_amount for co in approved), ZERO)
    total_cost = sum((co.cost_impact for co in approved), ZERO)
    total_margin = sum((co.margin_impact for co in approved), ZERO)

    return ChangeOrderRollupSchema(
        totalClientAmount=total_client,
        totalCostImpact=total_cost,
        totalMarginImpact=total_margin,
        overallMarginPercentage=percent_of(total_margin, total_client),
        totalContingencyBilled=sum((co.contingency_billed_to_client for co in approved), ZERO),
        approvedCount=len(approved),
        totalCount=len(change_orders),
    )


class ChangeOrderService:
    """Service for change order business logic (Async)"""

    def __init__(
        self,
        repository: ChangeOrderRepository = None,
        project_repository: ProjectRepository = None
    ):
        self.repository = repository or ChangeOrderRepository()
        self.project_repository = project_repository or ProjectRepository()

    def rollup(self, records: List[ChangeOrderRecordSchema]) -> ChangeOrderRollupSchema:
        """Rollup over unsaved figures (no database access)."""
        return rollup_change_orders(ChangeOrderFigures.from_schema(r) for r in records)

    async def create_change_order(self, data: ChangeOrderCreateSchema) -> ChangeOrderResponseSchema:
        if not await self.project_repository.get_by_id(data.projectId):
            raise NotFoundError(f"Project {data.projectId} not found")

        number = data.changeOrderNumber
        if not number:
            existing = await self.repository.count_by_project(data.projectId)
            number = f"CO-{existing + 1:03d}"

        change_order = await self.repository.create_change_order({
            "project_id": data.projectId,
            "change_order_number": number,
            "description": data.description,
            "status": ChangeOrderStatus.PENDING,
            "client_amount": data.clientAmount,
            "cost_impact": data.costImpact,
            "margin_impact": data.clientAmount - data.costImpact,
            "includes_contingency": data.includesContingency,
            "contingency_billed_to_client": data.contingencyBilledToClient,
        })
        return self._to_response(change_order)

    async def list_for_project(self, project_id: str) -> ChangeOrderListResponseSchema:
        change_orders = await self.repository.list_by_project(project_id)
        return ChangeOrderListResponseSchema(
            changeOrders=[self._to_response(co) for co in change_orders],
            rollup=rollup_change_orders(ChangeOrderFigures.from_document(co) for co in change_orders),
        )

    async def approve(self, change_order_id: str, on: date = None) -> ChangeOrderResponseSchema:
        change_order = await self._transition(change_order_id, ChangeOrderStatus.APPROVED)
        change_order.approved_date = on or date.today()
        await self.repository.save(change_order)
        return self._to_response(change_order)

    async def reject(self, change_order_id: str) -> ChangeOrderResponseSchema:
        change_order = await self._transition(change_order_id, ChangeOrderStatus.REJECTED)
        change_order.approved_date = None
        await self.repository.save(change_order)
        return self._to_response(change_order)

    async def _transition(self, change_order_id: str, target: ChangeOrderStatus) -> ChangeOrder:
        change_order = await self.repository.get_by_id(change_order_id)
        if not change_order:
            raise NotFoundError(f"Change order {change_order_id} not found")

        if target not in CHANGE_ORDER_TRANSITIONS.get(change_order.status, set()):
            raise InvalidStatusTransition("change order", change_order.status.value, target.value)

        logger.info(
            "Change order %s: %s -> %s",
            change_order_id, change_order.status.value, target.value
        )
        change_order.status = target
        return change_order

    @staticmethod
    def _to_response(change_order: ChangeOrder) -> ChangeOrderResponseSchema:
        return ChangeOrderResponseSchema(
            changeOrderId=str(change_order.id),
            projectId=change_order.project_id,
            changeOrderNumber=change_order.change_order_number,
            description=change_order.description,
            status=change_order.status,
            clientAmount=change_order.client_amount,
            costImpact=change_order.cost_impact,
            marginImpact=change_order.margin_impact,
            includesContingency=change_order.includes_contingency,
            contingencyBilledToClient=change_order.contingency_billed_to_client,
            approvedDate=change_order.approved_date,
            createdAt=change_order.created_at,
            updatedAt=change_order.updated_at,
        )


def get_change_order_service() -> ChangeOrderService:
    """
    Factory function to create ChangeOrderService instance.
    """
    return ChangeOrderService()
