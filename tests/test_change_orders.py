"""
test_change_orders.py - change order lifecycle and rollup.
"""
import asyncio
from datetime import date
from decimal import Decimal

import pytest

from costbook.core.exceptions import InvalidStatusTransition, NotFoundError, PersistenceError
from costbook.models.change_order import ChangeOrderStatus
from costbook.schemas.change_order import ChangeOrderCreateSchema, ChangeOrderRecordSchema
from costbook.services.change_order_service import (
    ChangeOrderFigures,
    ChangeOrderService,
    rollup_change_orders,
)


@pytest.fixture
def service(change_order_repo, project_repo, stored_project):
    stored_project(key="project-1")
    stored_project(key="project-2")
    return ChangeOrderService(repository=change_order_repo, project_repository=project_repo)


def _create(service, client_amount="1000", cost_impact="800", project_id="project-1", **extra):
    data = ChangeOrderCreateSchema(
        projectId=project_id,
        description="Add pot lights",
        clientAmount=Decimal(client_amount),
        costImpact=Decimal(cost_impact),
        **extra
    )
    return asyncio.run(service.create_change_order(data))


class TestRollup:

    def test_only_approved_count(self):
        rollup = rollup_change_orders([
            ChangeOrderFigures(ChangeOrderStatus.APPROVED, Decimal("1000"), Decimal("800"), Decimal("200")),
            ChangeOrderFigures(ChangeOrderStatus.PENDING, Decimal("500"), Decimal("100"), Decimal("400")),
            ChangeOrderFigures(ChangeOrderStatus.REJECTED, Decimal("300"), Decimal("200"), Decimal("100")),
        ])
        assert rollup.totalClientAmount == Decimal("1000")
        assert rollup.totalCostImpact == Decimal("800")
        assert rollup.totalMarginImpact == Decimal("200")
        assert rollup.overallMarginPercentage == Decimal("20")
        assert rollup.approvedCount == 1
        assert rollup.totalCount == 3

    def test_empty_rollup(self):
        rollup = rollup_change_orders([])
        assert rollup.totalClientAmount == 0
        assert rollup.overallMarginPercentage == 0
        assert rollup.totalCount == 0

    def test_contingency_billed_summed(self):
        rollup = rollup_change_orders([
            ChangeOrderFigures(ChangeOrderStatus.APPROVED, contingency_billed_to_client=Decimal("150")),
            ChangeOrderFigures(ChangeOrderStatus.APPROVED, contingency_billed_to_client=Decimal("50")),
            ChangeOrderFigures(ChangeOrderStatus.PENDING, contingency_billed_to_client=Decimal("999")),
        ])
        assert rollup.totalContingencyBilled == Decimal("200")

    def test_unsaved_records_derive_margin(self, service):
        rollup = service.rollup([
            ChangeOrderRecordSchema(status="approved", clientAmount=Decimal("1000"), costImpact=Decimal("800")),
            ChangeOrderRecordSchema(
                status="approved", clientAmount=Decimal("500"), costImpact=Decimal("300"),
                marginImpact=Decimal("250")
            ),
        ])
        assert rollup.totalMarginImpact == Decimal("450")
        assert rollup.overallMarginPercentage == Decimal("30")


class TestLifecycle:

    def test_created_pending_with_derived_margin(self, service):
        created = _create(service, "3000", "2400")
        assert created.status == ChangeOrderStatus.PENDING
        assert created.marginImpact == Decimal("600")
        assert created.approvedDate is None

    def test_numbers_assigned_per_project(self, service):
        assert _create(service).changeOrderNumber == "CO-001"
        assert _create(service).changeOrderNumber == "CO-002"
        assert _create(service, project_id="project-2").changeOrderNumber == "CO-001"

    def test_explicit_number_kept(self, service):
        assert _create(service, changeOrderNumber="CO-A7").changeOrderNumber == "CO-A7"

    def test_unknown_project_rejected(self, service, change_order_repo):
        with pytest.raises(NotFoundError):
            _create(service, project_id="no-such-project")
        assert change_order_repo.records == {}

    def test_approve_sets_date(self, service):
        created = _create(service)
        approved = asyncio.run(service.approve(created.changeOrderId, on=date(2026, 3, 1)))
        assert approved.status == ChangeOrderStatus.APPROVED
        assert approved.approvedDate == date(2026, 3, 1)

    def test_reject_clears_date(self, service):
        created = _create(service)
        asyncio.run(service.approve(created.changeOrderId))
        rejected = asyncio.run(service.reject(created.changeOrderId))
        assert rejected.status == ChangeOrderStatus.REJECTED
        assert rejected.approvedDate is None

    def test_rejected_can_be_reapproved(self, service):
        created = _create(service)
        asyncio.run(service.reject(created.changeOrderId))
        approved = asyncio.run(service.approve(created.changeOrderId))
        assert approved.status == ChangeOrderStatus.APPROVED

    def test_double_approve_not_allowed(self, service):
        created = _create(service)
        asyncio.run(service.approve(created.changeOrderId))
        with pytest.raises(InvalidStatusTransition):
            asyncio.run(service.approve(created.changeOrderId))

    def test_unknown_change_order(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.approve("missing"))

    def test_failed_insert_raises_persistence_error(self, service, change_order_repo):
        change_order_repo.fail_writes = True
        with pytest.raises(PersistenceError):
            _create(service)

    def test_project_listing_includes_rollup(self, service):
        first = _create(service, "1000", "800")
        _create(service, "500", "100")
        asyncio.run(service.approve(first.changeOrderId))

        listing = asyncio.run(service.list_for_project("project-1"))

        assert len(listing.changeOrders) == 2
        assert listing.rollup.totalClientAmount == Decimal("1000")
        assert listing.rollup.overallMarginPercentage == Decimal("20")
        assert listing.rollup.approvedCount == 1
