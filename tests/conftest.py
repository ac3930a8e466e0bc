"""
Shared fixtures.

Settings require DATABASE_URL, so it is set before any costbook import.
Services are exercised against in-memory repositories holding plain
pydantic records (the document field models plus an ``id``), so no
MongoDB is needed.
"""
import os

os.environ.setdefault("DATABASE_URL", "mongodb://localhost:27017/costbook_test")

from decimal import Decimal
from typing import Dict, List, Optional

import pytest
from beanie import PydanticObjectId
from pydantic import Field

from costbook.core.exceptions import PersistenceError
from costbook.models import (
    ChangeOrderBase,
    ClientBase,
    EstimateBase,
    EstimateStatus,
    ExpenseBase,
    LineItem,
    LineItemCategory,
    PercentMarkup,
    AmountMarkup,
    ProjectBase,
    QuickBooksAccountMappingBase,
    QuickBooksTransactionSyncBase,
    QuoteBase,
    QuoteLineItem,
    QuoteStatus,
    TransactionType,
)
from costbook.services.pricing_service import pricing_service


# ---------------------------------------------------------------------------
# In-memory records
# ---------------------------------------------------------------------------

class StoredEstimate(EstimateBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredQuote(QuoteBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredChangeOrder(ChangeOrderBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredExpense(ExpenseBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredClient(ClientBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredProject(ProjectBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredAccountMapping(QuickBooksAccountMappingBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class StoredSync(QuickBooksTransactionSyncBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


# ---------------------------------------------------------------------------
# In-memory repositories (same async interface as costbook.repositories)
# ---------------------------------------------------------------------------

class InMemoryEstimateRepository:
    def __init__(self):
        self.records: Dict[str, StoredEstimate] = {}
        self.fail_increment = False
        self.increment_calls = 0

    async def create_estimate(self, data: dict) -> StoredEstimate:
        estimate = StoredEstimate(**data)
        self.records[str(estimate.id)] = estimate
        return estimate

    async def get_by_id(self, estimate_id: str) -> Optional[StoredEstimate]:
        return self.records.get(estimate_id)

    async def list_estimates(self, project_id=None, status=None, current_only=False, limit=100):
        estimates = list(self.records.values())
        if project_id:
            estimates = [e for e in estimates if e.project_id == project_id]
        if status:
            estimates = [e for e in estimates if e.status == status]
        if current_only:
            estimates = [e for e in estimates if e.is_current_version]
        return sorted(estimates, key=lambda e: e.created_at, reverse=True)[:limit]

    async def get_current_for_project(self, project_id: str) -> Optional[StoredEstimate]:
        current = await self.list_estimates(project_id=project_id, current_only=True)
        return current[0] if current else None

    async def list_versions(self, root_estimate_id: str) -> List[StoredEstimate]:
        chain = [
            e for e in self.records.values()
            if str(e.id) == root_estimate_id or e.parent_estimate_id == root_estimate_id
        ]
        return sorted(chain, key=lambda e: e.version_number)

    async def save(self, estimate: StoredEstimate) -> StoredEstimate:
        self.records[str(estimate.id)] = estimate
        return estimate

    async def set_current_version(self, root_estimate_id: str, estimate_id: str) -> bool:
        if estimate_id not in self.records:
            return False
        for version in await self.list_versions(root_estimate_id):
            version.is_current_version = str(version.id) == estimate_id
        return True

    async def increment_contingency_used(self, estimate_id: str, expected_used: Decimal, amount: Decimal) -> bool:
        self.increment_calls += 1
        estimate = self.records.get(estimate_id)
        if self.fail_increment or estimate is None or estimate.contingency_used != expected_used:
            return False
        estimate.contingency_used = expected_used + amount
        return True


class InMemoryExpenseRepository:
    def __init__(self):
        self.records: Dict[str, StoredExpense] = {}
        self.fail_delete = False
        self.fail_create = False

    async def create_expense(self, data: dict) -> StoredExpense:
        if self.fail_create:
            raise PersistenceError("Expense insert failed: connection reset")
        expense = StoredExpense(**data)
        self.records[str(expense.id)] = expense
        return expense

    async def delete_expense(self, expense_id: str) -> bool:
        if self.fail_delete:
            return False
        return self.records.pop(expense_id, None) is not None

    async def list_by_project(self, project_id: str, transaction_type=TransactionType.EXPENSE):
        return [
            e for e in self.records.values()
            if e.project_id == project_id and (transaction_type is None or e.transaction_type == transaction_type)
        ]


class InMemoryQuoteRepository:
    def __init__(self):
        self.records: Dict[str, StoredQuote] = {}
        self.mark_expired_calls = 0

    async def create_quote(self, data: dict) -> StoredQuote:
        quote = StoredQuote(**data)
        self.records[str(quote.id)] = quote
        return quote

    async def get_by_id(self, quote_id: str) -> Optional[StoredQuote]:
        return self.records.get(quote_id)

    async def list_quotes(self, project_id=None, estimate_id=None, status=None):
        quotes = list(self.records.values())
        if project_id:
            quotes = [q for q in quotes if q.project_id == project_id]
        if estimate_id:
            quotes = [q for q in quotes if q.estimate_id == estimate_id]
        if status:
            quotes = [q for q in quotes if q.status == status]
        return quotes

    async def list_accepted_for_project(self, project_id: str):
        return await self.list_quotes(project_id=project_id, status=QuoteStatus.ACCEPTED)

    async def update_status(self, quote_id: str, expected: QuoteStatus, target: QuoteStatus, fields=None) -> bool:
        quote = self.records.get(quote_id)
        if quote is None or quote.status != expected:
            return False
        quote.status = target
        for name, value in (fields or {}).items():
            setattr(quote, name, value)
        return True

    async def mark_expired(self, quote_id: str) -> bool:
        self.mark_expired_calls += 1
        return await self.update_status(quote_id, QuoteStatus.PENDING, QuoteStatus.EXPIRED)


class InMemoryChangeOrderRepository:
    def __init__(self):
        self.records: Dict[str, StoredChangeOrder] = {}
        self.fail_writes = False

    async def create_change_order(self, data: dict) -> StoredChangeOrder:
        if self.fail_writes:
            raise PersistenceError("Change order insert failed: connection reset")
        change_order = StoredChangeOrder(**data)
        self.records[str(change_order.id)] = change_order
        return change_order

    async def get_by_id(self, change_order_id: str) -> Optional[StoredChangeOrder]:
        return self.records.get(change_order_id)

    async def list_by_project(self, project_id: str):
        return [co for co in self.records.values() if co.project_id == project_id]

    async def count_by_project(self, project_id: str) -> int:
        return len(await self.list_by_project(project_id))

    async def save(self, change_order: StoredChangeOrder) -> StoredChangeOrder:
        if self.fail_writes:
            raise PersistenceError("Change order save failed: connection reset")
        self.records[str(change_order.id)] = change_order
        return change_order


class InMemoryClientRepository:
    def __init__(self):
        self.records: Dict[str, StoredClient] = {}

    async def create_client(self, data: dict) -> StoredClient:
        client = StoredClient(**data)
        self.records[str(client.id)] = client
        return client

    async def get_by_id(self, client_id: str) -> Optional[StoredClient]:
        return self.records.get(client_id)

    async def list_clients(self, active_only: bool = True):
        clients = [c for c in self.records.values() if c.is_active or not active_only]
        return sorted(clients, key=lambda c: c.client_name)


class InMemoryProjectRepository:
    def __init__(self):
        self.records: Dict[str, StoredProject] = {}

    async def create_project(self, data: dict) -> StoredProject:
        project = StoredProject(**data)
        self.records[str(project.id)] = project
        return project

    async def get_by_id(self, project_id: str) -> Optional[StoredProject]:
        return self.records.get(project_id)

    async def get_by_number(self, project_number: str) -> Optional[StoredProject]:
        return next((p for p in self.records.values() if p.project_number == project_number), None)

    async def list_projects(self, client_id: Optional[str] = None):
        return [p for p in self.records.values() if client_id is None or p.client_id == client_id]

    async def get_many(self, project_ids: List[str]):
        return [self.records[pid] for pid in project_ids if pid in self.records]


class InMemoryQuickBooksRepository:
    def __init__(self, syncs=None, mappings=None):
        self.syncs = list(syncs or [])
        self.mappings = list(mappings or [])

    async def list_recent_syncs(self, limit: int):
        return self.syncs[:limit]

    async def list_account_mappings(self, active_only: bool = True):
        return [m for m in self.mappings if m.is_active or not active_only]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def estimate_repo():
    return InMemoryEstimateRepository()


@pytest.fixture
def expense_repo():
    return InMemoryExpenseRepository()


@pytest.fixture
def quote_repo():
    return InMemoryQuoteRepository()


@pytest.fixture
def change_order_repo():
    return InMemoryChangeOrderRepository()


@pytest.fixture
def client_repo():
    return InMemoryClientRepository()


@pytest.fixture
def project_repo():
    return InMemoryProjectRepository()


@pytest.fixture
def make_item():
    """Build a priced estimate line item."""
    def _make(
        category=LineItemCategory.MATERIALS,
        quantity="1",
        cost="0",
        percent=None,
        amount=None,
        description="",
        item_id=None,
        **extra
    ) -> LineItem:
        markup = None
        if percent is not None:
            markup = PercentMarkup(value=Decimal(str(percent)))
        elif amount is not None:
            markup = AmountMarkup(value=Decimal(str(amount)))
        fields = dict(
            category=category,
            quantity=Decimal(str(quantity)),
            cost_per_unit=Decimal(str(cost)),
            markup=markup,
            description=description,
            **extra
        )
        if item_id:
            fields["id"] = item_id
        return pricing_service.price_line_item(LineItem(**fields))
    return _make


@pytest.fixture
def make_quote_item():
    """Build a priced quote line item (no markup unless given)."""
    def _make(
        category=LineItemCategory.SUBCONTRACTORS,
        quantity="1",
        cost="0",
        percent=None,
        estimate_line_item_id=None,
        description="",
        item_id=None
    ) -> QuoteLineItem:
        fields = dict(
            category=category,
            quantity=Decimal(str(quantity)),
            cost_per_unit=Decimal(str(cost)),
            markup=PercentMarkup(value=Decimal(str(percent))) if percent is not None else None,
            estimate_line_item_id=estimate_line_item_id,
            description=description,
        )
        if item_id:
            fields["id"] = item_id
        return pricing_service.price_line_item(QuoteLineItem(**fields))
    return _make


@pytest.fixture
def stored_estimate(estimate_repo):
    """Insert an estimate record directly into the in-memory repository."""
    def _store(**fields) -> StoredEstimate:
        fields.setdefault("project_id", "project-1")
        fields.setdefault("status", EstimateStatus.DRAFT)
        estimate = StoredEstimate(**fields)
        estimate_repo.records[str(estimate.id)] = estimate
        return estimate
    return _store


@pytest.fixture
def stored_quote(quote_repo):
    def _store(**fields) -> StoredQuote:
        fields.setdefault("project_id", "project-1")
        fields.setdefault("quoted_by", "Ace Electric")
        quote = StoredQuote(**fields)
        quote_repo.records[str(quote.id)] = quote
        return quote
    return _store


@pytest.fixture
def stored_sync():
    return StoredSync


@pytest.fixture
def stored_mapping():
    return StoredAccountMapping


@pytest.fixture
def quickbooks_repo():
    """Build an in-memory sync history repository."""
    return InMemoryQuickBooksRepository


@pytest.fixture
def stored_project(project_repo):
    """Insert a project record, optionally under a readable key instead of its id."""
    def _store(key: str = None, **fields) -> StoredProject:
        fields.setdefault("project_number", f"P-{len(project_repo.records) + 1:04d}")
        fields.setdefault("project_name", "Kitchen Remodel")
        project = StoredProject(**fields)
        project_repo.records[key or str(project.id)] = project
        return project
    return _store
