"""
Estimate Service - Business Logic Layer

Orchestrates estimate operations by coordinating between:
- Pricing Service (line item prices and totals)
- Calculation Service (document totals and contingency)
- Estimate Repository (database operations)

This is the main service layer that API routes will use.
"""
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import logging
import re
import uuid

from costbook.core.exceptions import EstimateStateError, InvalidStatusTransition, NotFoundError
from costbook.models.estimate import Estimate, EstimateStatus
from costbook.models.line_item import LineItem
from costbook.repositories.estimate_repository import EstimateRepository
from costbook.repositories.project_repository import ProjectRepository
from costbook.schemas.estimate import (
    EstimateCreateSchema,
    EstimateSummary,
    CalculationRequestSchema,
    CalculationResponseSchema,
    EstimateResponseSchema,
    EstimateVersionSchema,
)
from costbook.schemas.line_item import LineItemInputSchema, LineItemSchema, MarkupSwitchSchema
from costbook.services.calculation_service import calculation_service
from costbook.services.contingency_service import ContingencyLedger
from costbook.services.export_service import export_estimates_csv, export_totals_csv
from costbook.services.pricing_service import pricing_service

logger = logging.getLogger(__name__)

# Approved estimates only change through new versions.
ESTIMATE_TRANSITIONS = {
    EstimateStatus.DRAFT: {EstimateStatus.SENT, EstimateStatus.APPROVED, EstimateStatus.REJECTED},
    EstimateStatus.SENT: {
        EstimateStatus.DRAFT,
        EstimateStatus.APPROVED,
        EstimateStatus.REJECTED,
        EstimateStatus.EXPIRED,
    },
    EstimateStatus.REJECTED: {EstimateStatus.DRAFT},
    EstimateStatus.EXPIRED: {EstimateStatus.DRAFT},
}


def price_inputs(line_items: List[LineItemInputSchema]) -> List[LineItem]:
    """Convert request line items to priced models, keeping their order."""
    return pricing_service.price_line_items(
        [item.to_model(position) for position, item in enumerate(line_items)]
    )


def line_item_to_schema(item: LineItem) -> LineItemSchema:
    return LineItemSchema.from_model(
        item, pricing_service.margin_percent(item.price_per_unit, item.cost_per_unit)
    )


def negative_markup_warnings(items: List[LineItem]) -> List[str]:
    """Save-time warnings for items priced below cost."""
    warnings = []
    for item in pricing_service.find_negative_markup_items(items):
        label = item.description or item.id
        markup = pricing_service.realized_markup_percent(item)
        warnings.append(f"Line item '{label}' is priced below cost (markup {markup:.2f}%)")
    return warnings


# "-v3" style suffix carried by later versions of a chain
VERSION_SUFFIX = re.compile(r"-v\d+$")


def generate_estimate_number() -> str:
    return f"EST-{datetime.utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class EstimateService:
    """Service for estimate business logic (Async)"""

    def __init__(
        self,
        repository: EstimateRepository = None,
        project_repository: ProjectRepository = None
    ):
        """
        Initialize service.
        No database session required for Beanie.
        """
        self.repository = repository or EstimateRepository()
        self.project_repository = project_repository or ProjectRepository()

    def calculate_estimate(self, request: CalculationRequestSchema) -> CalculationResponseSchema:
        """
        Calculate estimate totals in real-time (no database save).
        This method remains synchronous as it does no I/O.
        """
        items = price_inputs(request.lineItems)
        summary = calculation_service.summarize_estimate(items, request.contingencyPercent)

        return CalculationResponseSchema(
            lineItems=[line_item_to_schema(item) for item in items],
            summary=summary,
            warnings=negative_markup_warnings(items),
        )

    def switch_markup_mode(self, request: MarkupSwitchSchema) -> LineItemSchema:
        item = pricing_service.switch_markup_mode(request.lineItem.to_model(), request.mode)
        return line_item_to_schema(item)

    async def create_draft_estimate(self, estimate_data: EstimateCreateSchema) -> EstimateResponseSchema:
        """
        Create a draft estimate (version 1, current) and save to database.
        """
        items = price_inputs(estimate_data.lineItems)
        summary = calculation_service.summarize_estimate(items, estimate_data.contingencyPercent)

        estimate = await self.repository.create_estimate({
            "project_id": estimate_data.projectId,
            "estimate_number": estimate_data.estimateNumber or generate_estimate_number(),
            "status": EstimateStatus.DRAFT,
            "notes": estimate_data.notes,
            "total_amount": summary.totals.totalAmount,
            "total_cost": summary.totals.totalCost,
            "contingency_percent": summary.contingencyPercent,
            "contingency_amount": summary.contingencyAmount,
            "contingency_used": Decimal("0"),
            "target_margin_percent": estimate_data.targetMarginPercent,
            "version_number": 1,
            "parent_estimate_id": None,
            "is_current_version": True,
            "valid_until": estimate_data.validUntil,
            "line_items": items,
        })

        return self._estimate_to_response(estimate, negative_markup_warnings(items))

    async def update_draft_estimate(
        self,
        estimate_id: str,
        estimate_data: EstimateCreateSchema
    ) -> Optional[EstimateResponseSchema]:
        """Replace a draft's content. Returns None if the estimate does not exist."""
        estimate = await self.repository.get_by_id(estimate_id)
        if not estimate:
            return None
        if estimate.status != EstimateStatus.DRAFT:
            raise EstimateStateError(f"Only draft estimates can be edited (status is '{estimate.status.value}')")

        items = price_inputs(estimate_data.lineItems)
        summary = calculation_service.summarize_estimate(items, estimate_data.contingencyPercent)

        if summary.contingencyAmount < estimate.contingency_used:
            raise EstimateStateError(
                f"Contingency of {summary.contingencyAmount} would be below the "
                f"{estimate.contingency_used} already allocated"
            )

        estimate.project_id = estimate_data.projectId
        if estimate_data.estimateNumber:
            estimate.estimate_number = estimate_data.estimateNumber
        estimate.notes = estimate_data.notes
        estimate.line_items = items
        estimate.total_amount = summary.totals.totalAmount
        estimate.total_cost = summary.totals.totalCost
        estimate.contingency_percent = summary.contingencyPercent
        estimate.contingency_amount = summary.contingencyAmount
        estimate.target_margin_percent = estimate_data.targetMarginPercent
        estimate.valid_until = estimate_data.validUntil

        await self.repository.save(estimate)
        return self._estimate_to_response(estimate, negative_markup_warnings(items))

    async def get_estimate(self, estimate_id: str) -> Optional[EstimateResponseSchema]:
        """Get estimate by ID."""
        estimate = await self.repository.get_by_id(estimate_id)
        if not estimate:
            return None
        return self._estimate_to_response(estimate)

    async def list_estimates(
        self,
        project_id: Optional[str] = None,
        status: Optional[EstimateStatus] = None,
        current_only: bool = False
    ) -> List[EstimateResponseSchema]:
        estimates = await self.repository.list_estimates(project_id, status, current_only)
        return [self._estimate_to_response(est) for est in estimates]

    async def change_status(self, estimate_id: str, status: EstimateStatus) -> EstimateResponseSchema:
        estimate = await self._require(estimate_id)

        if status not in ESTIMATE_TRANSITIONS.get(estimate.status, set()):
            raise InvalidStatusTransition("estimate", estimate.status.value, status.value)

        logger.info("Estimate %s: %s -> %s", estimate_id, estimate.status.value, status.value)
        estimate.status = status
        await self.repository.save(estimate)
        return self._estimate_to_response(estimate)

    # ========================================================================
    # Version Chain
    # ========================================================================

    async def create_version(self, estimate_id: str) -> EstimateResponseSchema:
        """
        Start a new version from an approved estimate.

        The new version is a non-current draft numbered max(chain) + 1 whose
        line items are copies with fresh IDs and whose contingency is unspent.
        Its estimate number is the root's number with a "-v{n}" suffix.
        """
        source = await self._require(estimate_id)
        if source.status != EstimateStatus.APPROVED:
            raise EstimateStateError(
                f"New versions can only be created from approved estimates (status is '{source.status.value}')"
            )

        root_id = source.root_estimate_id
        chain = await self.repository.list_versions(root_id)
        next_version = max((v.version_number for v in chain), default=source.version_number) + 1

        root = next((v for v in chain if str(v.id) == root_id), source)
        base_number = VERSION_SUFFIX.sub("", root.estimate_number)
        estimate_number = f"{base_number}-v{next_version}"

        items = [item.model_copy(update={"id": str(uuid.uuid4())}) for item in source.line_items]
        summary = calculation_service.summarize_estimate(items, source.contingency_percent)

        estimate = await self.repository.create_estimate({
            "project_id": source.project_id,
            "estimate_number": estimate_number,
            "status": EstimateStatus.DRAFT,
            "notes": source.notes,
            "total_amount": summary.totals.totalAmount,
            "total_cost": summary.totals.totalCost,
            "contingency_percent": summary.contingencyPercent,
            "contingency_amount": summary.contingencyAmount,
            "contingency_used": Decimal("0"),
            "target_margin_percent": source.target_margin_percent,
            "version_number": next_version,
            "parent_estimate_id": root_id,
            "is_current_version": False,
            "valid_until": None,
            "line_items": items,
        })
        logger.info("Estimate %s: created version %s (%s)", root_id, next_version, estimate.id)
        return self._estimate_to_response(estimate)

    async def list_versions(self, estimate_id: str) -> Optional[List[EstimateVersionSchema]]:
        estimate = await self.repository.get_by_id(estimate_id)
        if not estimate:
            return None

        chain = await self.repository.list_versions(estimate.root_estimate_id)
        return [
            EstimateVersionSchema(
                estimateId=str(version.id),
                versionNumber=version.version_number,
                status=version.status,
                isCurrentVersion=version.is_current_version,
                totalAmount=version.total_amount,
                updatedAt=version.updated_at,
            )
            for version in sorted(chain, key=lambda v: v.version_number)
        ]

    async def set_current_version(self, estimate_id: str) -> EstimateResponseSchema:
        """Make this estimate the one current member of its chain."""
        estimate = await self._require(estimate_id)
        if not await self.repository.set_current_version(estimate.root_estimate_id, str(estimate.id)):
            raise NotFoundError(f"Estimate with ID {estimate_id} not found")

        estimate.is_current_version = True
        logger.info("Estimate %s: version %s is now current", estimate.root_estimate_id, estimate.version_number)
        return self._estimate_to_response(estimate)

    # ========================================================================
    # Summaries
    # ========================================================================

    async def get_summary(self, estimate_id: str) -> Optional[EstimateSummary]:
        estimate = await self.repository.get_by_id(estimate_id)
        if not estimate:
            return None
        return calculation_service.summarize_estimate(estimate.line_items, estimate.contingency_percent)

    async def get_summary_csv(self, estimate_id: str) -> Optional[str]:
        summary = await self.get_summary(estimate_id)
        if summary is None:
            return None
        return export_totals_csv(summary.totals)

    async def export_estimates(
        self,
        project_id: Optional[str] = None,
        current_only: bool = False,
        include_project_details: bool = False,
        include_financial_summary: bool = False
    ) -> str:
        """CSV of estimates with their project and client names."""
        estimates = await self.repository.list_estimates(project_id, None, current_only)
        project_ids = sorted({e.project_id for e in estimates if e.project_id})
        projects = await self.project_repository.get_many(project_ids)

        return export_estimates_csv(
            estimates,
            {str(p.id): p for p in projects},
            include_project_details=include_project_details,
            include_financial_summary=include_financial_summary,
        )

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    async def _require(self, estimate_id: str) -> Estimate:
        estimate = await self.repository.get_by_id(estimate_id)
        if not estimate:
            raise NotFoundError(f"Estimate with ID {estimate_id} not found")
        return estimate

    def _estimate_to_response(self, estimate: Estimate, warnings: List[str] = None) -> EstimateResponseSchema:
        """Convert database estimate to response schema."""
        return EstimateResponseSchema(
            estimateId=str(estimate.id),
            projectId=estimate.project_id,
            estimateNumber=estimate.estimate_number,
            status=estimate.status,
            notes=estimate.notes,
            versionNumber=estimate.version_number,
            parentEstimateId=estimate.parent_estimate_id,
            isCurrentVersion=estimate.is_current_version,
            targetMarginPercent=estimate.target_margin_percent,
            contingency=ContingencyLedger.from_estimate(estimate).to_schema(),
            lineItems=[line_item_to_schema(item) for item in estimate.line_items],
            totals=calculation_service.aggregate(estimate.line_items),
            createdAt=estimate.created_at,
            updatedAt=estimate.updated_at,
            validUntil=estimate.valid_until,
            warnings=warnings or [],
        )


def get_estimate_service() -> EstimateService:
    """
    Factory function to create EstimateService instance.
    """
    return EstimateService()
