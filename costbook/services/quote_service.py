"""
Quote Service - vendor quotes and their lifecycle

Status flow:
    pending  -> accepted | rejected | expired
    rejected -> pending  (reopen)
    accepted, expired: terminal

A pending quote whose valid_until lies before today is expired whenever it
is loaded. The sweep updates each quote on its own and is safe to repeat.
"""
from typing import Optional, List
from datetime import date, datetime
import logging
import uuid

from costbook.core.exceptions import InvalidStatusTransition, NotFoundError
from costbook.models.quote import Quote, QuoteStatus
from costbook.models.line_item import QuoteLineItem
from costbook.repositories.estimate_repository import EstimateRepository
from costbook.repositories.quote_repository import QuoteRepository
from costbook.schemas.line_item import QuoteLineItemSchema, QuoteLineItemInputSchema
from costbook.schemas.quote import (
    QuoteCreateSchema,
    QuoteResponseSchema,
    QuoteListResponseSchema,
    QuoteComparisonRequestSchema,
    QuoteComparisonSchema,
)
from costbook.services.calculation_service import calculation_service
from costbook.services.comparison_service import comparison_service
from costbook.services.estimate_service import price_inputs
from costbook.services.pricing_service import pricing_service

logger = logging.getLogger(__name__)

QUOTE_TRANSITIONS = {
    QuoteStatus.PENDING: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.REJECTED: {QuoteStatus.PENDING},
}


def find_expired_quotes(quotes: List[Quote], today: date = None) -> List[Quote]:
    """Pending quotes whose validity ended before today."""
    today = today or date.today()
    return [
        quote for quote in quotes
        if quote.status == QuoteStatus.PENDING and quote.is_past_validity(today)
    ]


def price_quote_inputs(line_items: List[QuoteLineItemInputSchema]) -> List[QuoteLineItem]:
    return pricing_service.price_line_items(
        [item.to_model(position) for position, item in enumerate(line_items)]
    )


def generate_quote_number() -> str:
    return f"Q-{datetime.utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class QuoteService:
    """Service for quote business logic (Async)"""

    def __init__(
        self,
        repository: QuoteRepository = None,
        estimate_repository: EstimateRepository = None
    ):
        self.repository = repository or QuoteRepository()
        self.estimate_repository = estimate_repository or EstimateRepository()

    async def create_quote(self, data: QuoteCreateSchema) -> QuoteResponseSchema:
        if data.estimateId and not await self.estimate_repository.get_by_id(data.estimateId):
            raise NotFoundError(f"Estimate {data.estimateId} not found")

        items = price_quote_inputs(data.lineItems)
        totals = calculation_service.aggregate(items)

        fields = {
            "project_id": data.projectId,
            "estimate_id": data.estimateId,
            "quote_number": data.quoteNumber or generate_quote_number(),
            "quoted_by": data.quotedBy,
            "status": QuoteStatus.PENDING,
            "total_amount": totals.totalAmount,
            "notes": data.notes,
            "valid_until": data.validUntil,
            "line_items": items,
        }
        if data.dateReceived:
            fields["date_received"] = data.dateReceived

        quote = await self.repository.create_quote(fields)
        return self._quote_to_response(quote)

    async def list_quotes(
        self,
        project_id: Optional[str] = None,
        estimate_id: Optional[str] = None,
        status: Optional[QuoteStatus] = None,
        today: date = None
    ) -> QuoteListResponseSchema:
        """List quotes, expiring stale pending ones first."""
        quotes = await self.repository.list_quotes(project_id=project_id, estimate_id=estimate_id)
        expired_ids = await self._expire_stale(quotes, today)

        if status:
            quotes = [quote for quote in quotes if quote.status == status]

        return QuoteListResponseSchema(
            quotes=[self._quote_to_response(quote) for quote in quotes],
            expiredQuoteIds=expired_ids,
        )

    async def get_quote(self, quote_id: str, today: date = None) -> Optional[QuoteResponseSchema]:
        quote = await self._load(quote_id, today)
        if not quote:
            return None
        return self._quote_to_response(quote)

    async def accept_quote(self, quote_id: str, today: date = None) -> QuoteResponseSchema:
        quote = await self._transition(
            quote_id, QuoteStatus.ACCEPTED, today, accepted_date=today or date.today()
        )
        return self._quote_to_response(quote)

    async def reject_quote(self, quote_id: str, reason: Optional[str] = None, today: date = None) -> QuoteResponseSchema:
        quote = await self._transition(quote_id, QuoteStatus.REJECTED, today, rejection_reason=reason)
        return self._quote_to_response(quote)

    async def reopen_quote(self, quote_id: str, today: date = None) -> QuoteResponseSchema:
        quote = await self._transition(quote_id, QuoteStatus.PENDING, today, rejection_reason=None)
        return self._quote_to_response(quote)

    async def compare_to_estimate(self, quote_id: str) -> QuoteComparisonSchema:
        """Compare a saved quote to the estimate it answers."""
        quote = await self._load(quote_id)
        if not quote:
            raise NotFoundError(f"Quote {quote_id} not found")
        if not quote.estimate_id:
            raise NotFoundError(f"Quote {quote_id} is not linked to an estimate")

        estimate = await self.estimate_repository.get_by_id(quote.estimate_id)
        if not estimate:
            raise NotFoundError(f"Estimate {quote.estimate_id} not found")

        return comparison_service.compare(
            estimate.line_items,
            quote.line_items,
            target_margin_percent=estimate.target_margin_percent,
            quote_id=str(quote.id),
            estimate_id=str(estimate.id),
        )

    def compare_line_items(self, request: QuoteComparisonRequestSchema) -> QuoteComparisonSchema:
        """Compare unsaved line items (no database access)."""
        return comparison_service.compare(
            price_inputs(request.estimateLineItems),
            price_quote_inputs(request.quoteLineItems),
            target_margin_percent=request.targetMarginPercent,
        )

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    async def _expire_stale(self, quotes: List[Quote], today: date = None) -> List[str]:
        expired_ids = []
        for quote in find_expired_quotes(quotes, today):
            quote_id = str(quote.id)
            if await self.repository.mark_expired(quote_id):
                logger.info("Quote %s expired (valid until %s)", quote_id, quote.valid_until)
                quote.status = QuoteStatus.EXPIRED
                expired_ids.append(quote_id)
        return expired_ids

    async def _load(self, quote_id: str, today: date = None) -> Optional[Quote]:
        quote = await self.repository.get_by_id(quote_id)
        if quote:
            await self._expire_stale([quote], today)
        return quote

    async def _transition(self, quote_id: str, target: QuoteStatus, today: date = None, **fields) -> Quote:
        """
        Apply a status change as a write guarded on the status just read.

        A quote changed by someone else in between (expired, accepted) is
        re-read and reported as an InvalidStatusTransition.
        """
        quote = await self._load(quote_id, today)
        if not quote:
            raise NotFoundError(f"Quote {quote_id} not found")

        if target not in QUOTE_TRANSITIONS.get(quote.status, set()):
            raise InvalidStatusTransition("quote", quote.status.value, target.value)

        if not await self.repository.update_status(quote_id, quote.status, target, fields):
            current = await self.repository.get_by_id(quote_id)
            if not current:
                raise NotFoundError(f"Quote {quote_id} not found")
            raise InvalidStatusTransition("quote", current.status.value, target.value)

        logger.info("Quote %s: %s -> %s", quote_id, quote.status.value, target.value)
        quote.status = target
        for name, value in fields.items():
            setattr(quote, name, value)
        return quote

    def _quote_to_response(self, quote: Quote) -> QuoteResponseSchema:
        return QuoteResponseSchema(
            quoteId=str(quote.id),
            projectId=quote.project_id,
            estimateId=quote.estimate_id,
            quoteNumber=quote.quote_number,
            quotedBy=quote.quoted_by,
            status=quote.status,
            dateReceived=quote.date_received,
            validUntil=quote.valid_until,
            acceptedDate=quote.accepted_date,
            rejectionReason=quote.rejection_reason,
            notes=quote.notes,
            lineItems=[
                QuoteLineItemSchema.from_model(
                    item, pricing_service.margin_percent(item.price_per_unit, item.cost_per_unit)
                )
                for item in quote.line_items
            ],
            totals=calculation_service.aggregate(quote.line_items),
            createdAt=quote.created_at,
            updatedAt=quote.updated_at,
        )


def get_quote_service() -> QuoteService:
    """
    Factory function to create QuoteService instance.
    """
    return QuoteService()
