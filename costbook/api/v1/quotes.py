"""
Quote API Routes

- POST / - Record a vendor quote
- GET / - List quotes (expires stale pending quotes)
- POST /compare - Compare unsaved estimate and quote lines (no save)
- GET /{quote_id} - Get quote
- POST /{quote_id}/accept | /reject | /reopen - Status changes
- GET /{quote_id}/comparison - Compare to the linked estimate
"""
from fastapi import APIRouter, HTTPException, status, Query
from typing import Optional

from costbook.models.quote import QuoteStatus
from costbook.schemas.quote import (
    QuoteCreateSchema,
    QuoteRejectSchema,
    QuoteResponseSchema,
    QuoteListResponseSchema,
    QuoteComparisonRequestSchema,
    QuoteComparisonSchema,
)
from costbook.services.quote_service import get_quote_service

router = APIRouter()


@router.post(
    "/",
    response_model=QuoteResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create quote"
)
async def create_quote(quote_data: QuoteCreateSchema):
    service = get_quote_service()
    return await service.create_quote(quote_data)


@router.get(
    "/",
    response_model=QuoteListResponseSchema,
    summary="List quotes",
    description="Lists quotes. Pending quotes past their valid-until date are expired first."
)
async def list_quotes(
    project_id: Optional[str] = Query(None),
    estimate_id: Optional[str] = Query(None),
    status_filter: Optional[QuoteStatus] = Query(None)
):
    service = get_quote_service()
    return await service.list_quotes(project_id, estimate_id, status_filter)


@router.post(
    "/compare",
    response_model=QuoteComparisonSchema,
    summary="Compare line items",
    description="Estimate vs quote margin analysis on unsaved line items."
)
async def compare_line_items(request: QuoteComparisonRequestSchema):
    service = get_quote_service()
    return service.compare_line_items(request)


@router.get(
    "/{quote_id}",
    response_model=QuoteResponseSchema,
    summary="Get quote by ID"
)
async def get_quote(quote_id: str):
    service = get_quote_service()
    quote = await service.get_quote(quote_id)

    if not quote:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Quote with ID {quote_id} not found"
        )

    return quote


@router.post("/{quote_id}/accept", response_model=QuoteResponseSchema, summary="Accept quote")
async def accept_quote(quote_id: str):
    service = get_quote_service()
    return await service.accept_quote(quote_id)


@router.post("/{quote_id}/reject", response_model=QuoteResponseSchema, summary="Reject quote")
async def reject_quote(quote_id: str, request: Optional[QuoteRejectSchema] = None):
    service = get_quote_service()
    return await service.reject_quote(quote_id, request.reason if request else None)


@router.post("/{quote_id}/reopen", response_model=QuoteResponseSchema, summary="Reopen rejected quote")
async def reopen_quote(quote_id: str):
    service = get_quote_service()
    return await service.reopen_quote(quote_id)


@router.get(
    "/{quote_id}/comparison",
    response_model=QuoteComparisonSchema,
    summary="Compare quote to estimate"
)
async def compare_quote(quote_id: str):
    service = get_quote_service()
    return await service.compare_to_estimate(quote_id)
