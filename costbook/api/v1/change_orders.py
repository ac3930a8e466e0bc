"""
Change Order API Routes

- POST / - Create change order (pending)
- POST /rollup - Rollup over unsaved change orders (no save)
- GET /project/{project_id} - Project change orders with rollup
- POST /{change_order_id}/approve | /reject - Status changes
"""
from fastapi import APIRouter, status

from costbook.schemas.change_order import (
    ChangeOrderCreateSchema,
    ChangeOrderResponseSchema,
    ChangeOrderListResponseSchema,
    ChangeOrderRollupRequestSchema,
    ChangeOrderRollupSchema,
)
from costbook.services.change_order_service import get_change_order_service

router = APIRouter()


@router.post(
    "/",
    response_model=ChangeOrderResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create change order"
)
async def create_change_order(data: ChangeOrderCreateSchema):
    service = get_change_order_service()
    return await service.create_change_order(data)


@router.post(
    "/rollup",
    response_model=ChangeOrderRollupSchema,
    summary="Roll up change orders",
    description="Totals over approved change orders only. Nothing is saved."
)
async def rollup_change_orders(request: ChangeOrderRollupRequestSchema):
    service = get_change_order_service()
    return service.rollup(request.changeOrders)


@router.get(
    "/project/{project_id}",
    response_model=ChangeOrderListResponseSchema,
    summary="List project change orders"
)
async def list_project_change_orders(project_id: str):
    service = get_change_order_service()
    return await service.list_for_project(project_id)


@router.post("/{change_order_id}/approve", response_model=ChangeOrderResponseSchema, summary="Approve change order")
async def approve_change_order(change_order_id: str):
    service = get_change_order_service()
    return await service.approve(change_order_id)


@router.post("/{change_order_id}/reject", response_model=ChangeOrderResponseSchema, summary="Reject change order")
async def reject_change_order(change_order_id: str):
    service = get_change_order_service()
    return await service.reject(change_order_id)
