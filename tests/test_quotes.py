"""
test_quotes.py - quote lifecycle, expiry sweep and comparison.
"""
import asyncio
from datetime import date
from decimal import Decimal

import pytest

from costbook.core.exceptions import InvalidStatusTransition, NotFoundError
from costbook.models.line_item import LineItemCategory
from costbook.models.quote import QuoteStatus
from costbook.schemas.quote import QuoteCreateSchema, Recommendation
from costbook.services.quote_service import QuoteService, find_expired_quotes

TODAY = date(2026, 6, 15)


@pytest.fixture
def service(quote_repo, estimate_repo):
    return QuoteService(repository=quote_repo, estimate_repository=estimate_repo)


class TestExpiry:

    def test_find_expired(self, stored_quote):
        stale = stored_quote(valid_until=date(2026, 6, 14))
        due_today = stored_quote(valid_until=TODAY)
        open_ended = stored_quote(valid_until=None)
        accepted = stored_quote(valid_until=date(2026, 1, 1), status=QuoteStatus.ACCEPTED)

        expired = find_expired_quotes([stale, due_today, open_ended, accepted], TODAY)

        assert expired == [stale]

    def test_listing_expires_stale_quotes(self, service, stored_quote):
        stale = stored_quote(valid_until=date(2026, 6, 1))
        fresh = stored_quote(valid_until=date(2026, 7, 1))

        listing = asyncio.run(service.list_quotes(project_id="project-1", today=TODAY))

        assert listing.expiredQuoteIds == [str(stale.id)]
        statuses = {q.quoteId: q.status for q in listing.quotes}
        assert statuses[str(stale.id)] == QuoteStatus.EXPIRED
        assert statuses[str(fresh.id)] == QuoteStatus.PENDING

    def test_sweep_is_idempotent(self, service, stored_quote, quote_repo):
        stored_quote(valid_until=date(2026, 6, 1))
        asyncio.run(service.list_quotes(today=TODAY))
        calls = quote_repo.mark_expired_calls

        again = asyncio.run(service.list_quotes(today=TODAY))

        assert again.expiredQuoteIds == []
        assert quote_repo.mark_expired_calls == calls

    def test_status_filter_applies_after_sweep(self, service, stored_quote):
        stored_quote(valid_until=date(2026, 6, 1))
        fresh = stored_quote(valid_until=date(2026, 7, 1))

        listing = asyncio.run(service.list_quotes(status=QuoteStatus.PENDING, today=TODAY))

        assert [q.quoteId for q in listing.quotes] == [str(fresh.id)]

    def test_single_load_expires(self, service, stored_quote):
        stale = stored_quote(valid_until=date(2026, 6, 1))
        loaded = asyncio.run(service.get_quote(str(stale.id), today=TODAY))
        assert loaded.status == QuoteStatus.EXPIRED


class TestLifecycle:

    def test_accept_sets_date(self, service, stored_quote):
        quote = stored_quote()
        accepted = asyncio.run(service.accept_quote(str(quote.id), today=TODAY))
        assert accepted.status == QuoteStatus.ACCEPTED
        assert accepted.acceptedDate == TODAY

    def test_accepted_is_terminal(self, service, stored_quote):
        quote = stored_quote()
        asyncio.run(service.accept_quote(str(quote.id), today=TODAY))
        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.reject_quote(str(quote.id), today=TODAY))

    def test_reject_then_reopen(self, service, stored_quote):
        quote = stored_quote()
        rejected = asyncio.run(service.reject_quote(str(quote.id), "Too expensive", today=TODAY))
        assert rejected.rejectionReason == "Too expensive"

        reopened = asyncio.run(service.reopen_quote(str(quote.id), today=TODAY))
        assert reopened.status == QuoteStatus.PENDING
        assert reopened.rejectionReason is None

    def test_stale_quote_cannot_be_accepted(self, service, stored_quote):
        quote = stored_quote(valid_until=date(2026, 6, 1))
        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.accept_quote(str(quote.id), today=TODAY))
        assert quote.status == QuoteStatus.EXPIRED

    def test_expired_cannot_be_reopened(self, service, stored_quote):
        quote = stored_quote(status=QuoteStatus.EXPIRED)
        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.reopen_quote(str(quote.id), today=TODAY))

    def test_accept_after_concurrent_expiry_keeps_expired(self, service, stored_quote):
        quote = stored_quote(valid_until=date(2026, 6, 1), status=QuoteStatus.EXPIRED)

        class SnapshotRepository(type(service.repository)):
            async def get_by_id(self, quote_id):
                found = await super().get_by_id(quote_id)
                return found.model_copy(update={"status": QuoteStatus.PENDING}) if found else None

        snapshots = SnapshotRepository()
        snapshots.records = service.repository.records
        service.repository = snapshots

        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.accept_quote(str(quote.id), today=TODAY))

        assert quote.status == QuoteStatus.EXPIRED
        assert quote.accepted_date is None

    def test_reject_after_concurrent_accept_is_refused(self, service, stored_quote):
        quote = stored_quote()

        class SnapshotRepository(type(service.repository)):
            async def get_by_id(self, quote_id):
                found = await super().get_by_id(quote_id)
                snapshot = found.model_copy()
                found.status = QuoteStatus.ACCEPTED
                return snapshot

        snapshots = SnapshotRepository()
        snapshots.records = service.repository.records
        service.repository = snapshots

        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.reject_quote(str(quote.id), "Too late", today=TODAY))

        assert quote.status == QuoteStatus.ACCEPTED
        assert quote.rejection_reason is None

    def test_unknown_quote(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.accept_quote("missing"))


class TestCreateAndCompare:

    def _create_schema(self, estimate_id=None):
        return QuoteCreateSchema(
            projectId="project-1",
            estimateId=estimate_id,
            quotedBy="Ace Electric",
            lineItems=[{
                "category": "subcontractors",
                "description": "Rough-in electrical",
                "quantity": "1",
                "costPerUnit": "4500",
                "markup": None,
            }],
        )

    def test_create_prices_items(self, service):
        created = asyncio.run(service.create_quote(self._create_schema()))
        assert created.status == QuoteStatus.PENDING
        assert created.quoteNumber.startswith("Q-")
        assert created.totals.totalAmount == Decimal("4500")
        assert created.lineItems[0].pricePerUnit == Decimal("4500")

    def test_create_with_unknown_estimate(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.create_quote(self._create_schema(estimate_id="missing")))

    def test_compare_to_linked_estimate(self, service, stored_estimate, make_item):
        estimate = stored_estimate(
            target_margin_percent=Decimal("20"),
            line_items=[make_item(LineItemCategory.SUBCONTRACTORS, cost="4000", percent="25")],
        )
        created = asyncio.run(service.create_quote(self._create_schema(str(estimate.id))))

        comparison = asyncio.run(service.compare_to_estimate(created.quoteId))

        assert comparison.estimateId == str(estimate.id)
        assert comparison.overall.minimumAcceptableQuote == Decimal("4800")
        assert comparison.overall.recommendation == Recommendation.ACCEPT

    def test_compare_requires_linked_estimate(self, service):
        created = asyncio.run(service.create_quote(self._create_schema()))
        with pytest.raises(NotFoundError):
            asyncio.run(service.compare_to_estimate(created.quoteId))
