"""
Estimate API Routes

Endpoints for estimate operations:
- POST /calculate - Real-time calculation (no save)
- POST /markup-mode - Switch a line item between percent and amount markup
- POST /draft - Create draft estimate
- GET / - List estimates
- GET /recent - Recently viewed estimates
- GET /export.csv - CSV export
- GET /{estimate_id} - Get estimate by ID
- PUT /{estimate_id} - Update draft estimate
- POST /{estimate_id}/status - Change status
- POST|GET /{estimate_id}/versions - Version chain
- POST /{estimate_id}/make-current - Make this version current
- GET /{estimate_id}/summary(.csv) - Totals and contingency
- GET /{estimate_id}/contingency - Contingency ledger
- POST /{estimate_id}/contingency/allocations - Allocate contingency
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import Response
from typing import Optional, List

from costbook.core.dependencies import get_recently_viewed, get_viewer_id
from costbook.models.estimate import EstimateStatus
from costbook.schemas.estimate import (
    CalculationRequestSchema,
    CalculationResponseSchema,
    EstimateCreateSchema,
    EstimateResponseSchema,
    EstimateStatusUpdateSchema,
    EstimateSummary,
    EstimateVersionSchema,
    ContingencyAllocationRequestSchema,
    ContingencyAllocationResponseSchema,
    ContingencyLedgerSchema,
    RecentlyViewedSchema,
)
from costbook.schemas.line_item import LineItemSchema, MarkupSwitchSchema
from costbook.services.contingency_service import get_contingency_service
from costbook.services.estimate_service import get_estimate_service
from costbook.services.export_service import export_filename
from costbook.services.recently_viewed_service import RecentlyViewedService

router = APIRouter()


def _not_found(estimate_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Estimate with ID {estimate_id} not found"
    )


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.post(
    "/calculate",
    response_model=CalculationResponseSchema,
    summary="Calculate estimate totals",
    description="Real-time calculation of line item prices, totals and contingency without saving. Used for frontend live updates."
)
async def calculate_estimate(request: CalculationRequestSchema):
    """
    Calculate estimate totals in real-time.
    """
    service = get_estimate_service()
    return service.calculate_estimate(request)


@router.post(
    "/markup-mode",
    response_model=LineItemSchema,
    summary="Switch markup mode",
    description="Convert a line item's markup between percent and amount, keeping its price."
)
async def switch_markup_mode(request: MarkupSwitchSchema):
    service = get_estimate_service()
    return service.switch_markup_mode(request)


@router.post(
    "/draft",
    response_model=EstimateResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create draft estimate",
    description="Create a new draft estimate (version 1) and save to database."
)
async def create_draft_estimate(estimate_data: EstimateCreateSchema):
    """
    Create a draft estimate.
    """
    service = get_estimate_service()
    return await service.create_draft_estimate(estimate_data)


@router.get(
    "/",
    response_model=List[EstimateResponseSchema],
    summary="List estimates",
    description="List estimates newest first, optionally filtered by project and status."
)
async def list_estimates(
    project_id: Optional[str] = Query(None, description="Filter by project"),
    status_filter: Optional[EstimateStatus] = Query(None, description="Filter by status"),
    current_only: bool = Query(False, description="Only current versions")
):
    service = get_estimate_service()
    return await service.list_estimates(project_id, status_filter, current_only)


@router.get(
    "/recent",
    response_model=RecentlyViewedSchema,
    summary="Recently viewed estimates",
    description="Estimate IDs the viewer opened most recently, newest first."
)
async def recently_viewed(
    viewer: str = Depends(get_viewer_id),
    registry: Optional[RecentlyViewedService] = Depends(get_recently_viewed)
):
    estimate_ids = registry.recent(viewer) if registry else []
    return RecentlyViewedSchema(viewer=viewer, estimateIds=estimate_ids)


@router.get(
    "/export.csv",
    summary="Export estimates as CSV",
    response_class=Response,
)
async def export_estimates(
    project_id: Optional[str] = Query(None),
    current_only: bool = Query(False),
    include_project_details: bool = Query(False),
    include_financial_summary: bool = Query(False)
):
    service = get_estimate_service()
    content = await service.export_estimates(
        project_id=project_id,
        current_only=current_only,
        include_project_details=include_project_details,
        include_financial_summary=include_financial_summary,
    )
    return _csv_response(content, export_filename("estimates_export"))


@router.get(
    "/{estimate_id}",
    response_model=EstimateResponseSchema,
    summary="Get estimate by ID",
    description="Retrieve a specific estimate by ID with all details."
)
async def get_estimate(
    estimate_id: str,
    viewer: str = Depends(get_viewer_id),
    registry: Optional[RecentlyViewedService] = Depends(get_recently_viewed)
):
    """
    Get estimate by ID and record the view.
    """
    service = get_estimate_service()
    estimate = await service.get_estimate(estimate_id)

    if not estimate:
        raise _not_found(estimate_id)

    if registry:
        registry.record(viewer, estimate.estimateId)
    return estimate


@router.put(
    "/{estimate_id}",
    response_model=EstimateResponseSchema,
    summary="Update draft estimate",
    description="Replace the content of a draft estimate."
)
async def update_draft_estimate(estimate_id: str, estimate_data: EstimateCreateSchema):
    """
    Update a draft estimate.
    """
    service = get_estimate_service()
    estimate = await service.update_draft_estimate(estimate_id, estimate_data)

    if not estimate:
        raise _not_found(estimate_id)

    return estimate


@router.post(
    "/{estimate_id}/status",
    response_model=EstimateResponseSchema,
    summary="Change estimate status"
)
async def change_status(estimate_id: str, update: EstimateStatusUpdateSchema):
    service = get_estimate_service()
    return await service.change_status(estimate_id, update.status)


@router.post(
    "/{estimate_id}/versions",
    response_model=EstimateResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create new version",
    description="Copy an approved estimate into a new draft version of the same chain."
)
async def create_version(estimate_id: str):
    service = get_estimate_service()
    return await service.create_version(estimate_id)


@router.get(
    "/{estimate_id}/versions",
    response_model=List[EstimateVersionSchema],
    summary="List versions"
)
async def list_versions(estimate_id: str):
    service = get_estimate_service()
    versions = await service.list_versions(estimate_id)

    if versions is None:
        raise _not_found(estimate_id)

    return versions


@router.post(
    "/{estimate_id}/make-current",
    response_model=EstimateResponseSchema,
    summary="Make version current"
)
async def make_current(estimate_id: str):
    service = get_estimate_service()
    return await service.set_current_version(estimate_id)


@router.get(
    "/{estimate_id}/summary",
    response_model=EstimateSummary,
    summary="Estimate summary"
)
async def get_summary(estimate_id: str):
    service = get_estimate_service()
    summary = await service.get_summary(estimate_id)

    if summary is None:
        raise _not_found(estimate_id)

    return summary


@router.get(
    "/{estimate_id}/summary.csv",
    summary="Estimate summary as CSV",
    response_class=Response,
)
async def get_summary_csv(estimate_id: str):
    service = get_estimate_service()
    content = await service.get_summary_csv(estimate_id)

    if content is None:
        raise _not_found(estimate_id)

    return _csv_response(content, export_filename(f"estimate_{estimate_id}_summary"))


@router.get(
    "/{estimate_id}/contingency",
    response_model=ContingencyLedgerSchema,
    summary="Contingency ledger"
)
async def get_contingency(estimate_id: str):
    service = get_contingency_service()
    return await service.get_ledger(estimate_id)


@router.post(
    "/{estimate_id}/contingency/allocations",
    response_model=ContingencyAllocationResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Allocate contingency",
    description="Book a planned expense against the estimate's contingency reserve."
)
async def allocate_contingency(estimate_id: str, request: ContingencyAllocationRequestSchema):
    service = get_contingency_service()
    return await service.allocate(estimate_id, request.amount, request.description)
