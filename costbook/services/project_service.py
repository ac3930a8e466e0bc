"""
Project Service

Clients, projects, and the per-project financial views:
- variance analysis (estimated vs quoted vs actual per category)
- margin validation warnings
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from costbook.core.exceptions import DuplicateRecordError, NotFoundError
from costbook.models.customer import Client, Project
from costbook.models.expense import Expense
from costbook.models.line_item import LineItem, LineItemCategory, CATEGORY_DISPLAY_MAP
from costbook.repositories.estimate_repository import EstimateRepository
from costbook.repositories.expense_repository import ExpenseRepository
from costbook.repositories.project_repository import ClientRepository, ProjectRepository
from costbook.repositories.quote_repository import QuoteRepository
from costbook.schemas.project import (
    ClientCreateSchema,
    ClientResponseSchema,
    ProjectCreateSchema,
    ProjectResponseSchema,
    VarianceLineItemSchema,
    CategoryVarianceSchema,
    VarianceTotalsSchema,
    VarianceReportSchema,
    MarginWarningsSchema,
)
from costbook.services.margin_validation import validate_project_margin
from costbook.services.pricing_service import percent_of, ZERO

logger = logging.getLogger(__name__)

UNNAMED_ITEM = "Unnamed Item"


@dataclass
class _Amounts:
    estimated: Decimal = ZERO
    quoted: Decimal = ZERO
    actual: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return self.estimated <= 0 and self.quoted <= 0 and self.actual <= 0


@dataclass
class _CategoryBucket(_Amounts):
    by_description: Dict[str, _Amounts] = field(default_factory=dict)

    def add(self, description: str, column: str, amount: Decimal):
        line = self.by_description.setdefault(description or UNNAMED_ITEM, _Amounts())
        setattr(line, column, getattr(line, column) + amount)
        setattr(self, column, getattr(self, column) + amount)


def build_variance_rows(
    estimate_items: List[LineItem],
    quote_items: List[LineItem],
    expenses: List[Expense]
) -> List[CategoryVarianceSchema]:
    """
    Group estimated, quoted and actual amounts by category, then by
    description. Rows with nothing positive are dropped; categories are
    sorted by display name.
    """
    buckets: Dict[LineItemCategory, _CategoryBucket] = {}

    for item in estimate_items:
        buckets.setdefault(item.category, _CategoryBucket()).add(item.description, "estimated", item.total)
    for item in quote_items:
        buckets.setdefault(item.category, _CategoryBucket()).add(item.description, "quoted", item.total)
    for expense in expenses:
        buckets.setdefault(expense.category, _CategoryBucket()).add(expense.description, "actual", expense.amount)

    rows = []
    for category, bucket in buckets.items():
        if bucket.is_empty:
            continue

        rows.append(CategoryVarianceSchema(
            category=category,
            categoryName=CATEGORY_DISPLAY_MAP[category],
            estimated=bucket.estimated,
            quoted=bucket.quoted,
            actual=bucket.actual,
            variance=bucket.actual - bucket.estimated,
            variancePercentage=percent_of(bucket.actual - bucket.estimated, bucket.estimated),
            lineItems=[
                VarianceLineItemSchema(
                    description=description,
                    estimated=amounts.estimated,
                    quoted=amounts.quoted,
                    actual=amounts.actual,
                    variance=amounts.actual - amounts.estimated,
                    variancePercentage=percent_of(amounts.actual - amounts.estimated, amounts.estimated),
                )
                for description, amounts in bucket.by_description.items()
                if not amounts.is_empty
            ],
        ))

    rows.sort(key=lambda row: row.categoryName)
    return rows


def variance_totals(rows: List[CategoryVarianceSchema]) -> VarianceTotalsSchema:
    return VarianceTotalsSchema(
        estimated=sum((r.estimated for r in rows), ZERO),
        quoted=sum((r.quoted for r in rows), ZERO),
        actual=sum((r.actual for r in rows), ZERO),
        variance=sum((r.variance for r in rows), ZERO),
    )


class ProjectService:
    """Service for clients, projects and project financials (Async)"""

    def __init__(
        self,
        project_repository: ProjectRepository = None,
        client_repository: ClientRepository = None,
        estimate_repository: EstimateRepository = None,
        quote_repository: QuoteRepository = None,
        expense_repository: ExpenseRepository = None
    ):
        self.project_repository = project_repository or ProjectRepository()
        self.client_repository = client_repository or ClientRepository()
        self.estimate_repository = estimate_repository or EstimateRepository()
        self.quote_repository = quote_repository or QuoteRepository()
        self.expense_repository = expense_repository or ExpenseRepository()

    # ========================================================================
    # Clients
    # ========================================================================

    async def create_client(self, data: ClientCreateSchema) -> ClientResponseSchema:
        client = await self.client_repository.create_client({
            "client_name": data.clientName.strip(),
            "company_name": data.companyName,
            "email": data.email.strip().lower() if data.email else None,
            "phone": data.phone,
            "address": data.address,
        })
        return self._client_to_response(client)

    async def list_clients(self) -> List[ClientResponseSchema]:
        clients = await self.client_repository.list_clients()
        return [self._client_to_response(c) for c in clients]

    # ========================================================================
    # Projects
    # ========================================================================

    async def create_project(self, data: ProjectCreateSchema) -> ProjectResponseSchema:
        if await self.project_repository.get_by_number(data.projectNumber.strip()):
            raise DuplicateRecordError(f"Project number {data.projectNumber} already exists")

        client_name = None
        if data.clientId:
            client = await self.client_repository.get_by_id(data.clientId)
            if not client:
                raise NotFoundError(f"Client {data.clientId} not found")
            client_name = client.client_name

        project = await self.project_repository.create_project({
            "project_number": data.projectNumber.strip(),
            "project_name": data.projectName.strip(),
            "client_id": data.clientId,
            "client_name": client_name,
            "address": data.address,
            "contracted_amount": data.contractedAmount,
            "original_est_costs": data.originalEstCosts,
            "adjusted_est_costs": data.adjustedEstCosts,
        })
        return self._project_to_response(project)

    async def get_project(self, project_id: str) -> Optional[ProjectResponseSchema]:
        project = await self.project_repository.get_by_id(project_id)
        if not project:
            return None
        return self._project_to_response(project)

    async def list_projects(self, client_id: Optional[str] = None) -> List[ProjectResponseSchema]:
        projects = await self.project_repository.list_projects(client_id)
        return [self._project_to_response(p) for p in projects]

    # ========================================================================
    # Financial views
    # ========================================================================

    async def get_variance_report(self, project_id: str) -> VarianceReportSchema:
        """
        Estimated: current estimate line totals
        Quoted:    accepted quote line totals
        Actual:    booked expenses
        """
        await self._require_project(project_id)

        estimate = await self.estimate_repository.get_current_for_project(project_id)
        quotes = await self.quote_repository.list_accepted_for_project(project_id)
        expenses = await self.expense_repository.list_by_project(project_id)

        rows = build_variance_rows(
            estimate.line_items if estimate else [],
            [item for quote in quotes for item in quote.line_items],
            expenses,
        )
        return VarianceReportSchema(
            projectId=project_id,
            estimateId=str(estimate.id) if estimate else None,
            variances=rows,
            totals=variance_totals(rows),
        )

    async def get_margin_warnings(self, project_id: str) -> MarginWarningsSchema:
        project = await self._require_project(project_id)
        quotes = await self.quote_repository.list_quotes(project_id=project_id)

        warnings = validate_project_margin(
            contracted_amount=project.contracted_amount,
            original_costs=project.original_est_costs,
            adjusted_costs=project.adjusted_est_costs,
            quote_items=[item for quote in quotes for item in quote.line_items],
        )
        if warnings:
            logger.info("Project %s has %d margin warning(s)", project_id, len(warnings))
        return MarginWarningsSchema(projectId=project_id, warnings=warnings)

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    async def _require_project(self, project_id: str) -> Project:
        project = await self.project_repository.get_by_id(project_id)
        if not project:
            raise NotFoundError(f"Project with ID {project_id} not found")
        return project

    @staticmethod
    def _client_to_response(client: Client) -> ClientResponseSchema:
        return ClientResponseSchema(
            clientId=str(client.id),
            clientName=client.client_name,
            companyName=client.company_name,
            email=client.email,
            phone=client.phone,
            address=client.address,
            isActive=client.is_active,
            createdAt=client.created_at,
        )

    @staticmethod
    def _project_to_response(project: Project) -> ProjectResponseSchema:
        return ProjectResponseSchema(
            projectId=str(project.id),
            projectNumber=project.project_number,
            projectName=project.project_name,
            displayName=project.display_name,
            clientId=project.client_id,
            clientName=project.client_name,
            address=project.address,
            status=project.status,
            contractedAmount=project.contracted_amount,
            originalEstCosts=project.original_est_costs,
            adjustedEstCosts=project.adjusted_est_costs,
            createdAt=project.created_at,
        )


def get_project_service() -> ProjectService:
    """
    Factory function to create ProjectService instance.
    """
    return ProjectService()
