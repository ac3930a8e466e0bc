from typing import Optional, List
from decimal import Decimal
from datetime import datetime
import logging

from beanie import PydanticObjectId
from beanie.operators import Or, Set

from costbook.core.database import database_write
from costbook.models.estimate import Estimate, EstimateStatus

# Logger setup
logger = logging.getLogger(__name__)


class EstimateRepository:
    """
    Repository for estimate database operations (MongoDB/Beanie).
    Handles persistence of estimates and their version chains.
    """

    @database_write("Estimate insert")
    async def create_estimate(self, data: dict) -> Estimate:
        """Insert a new estimate built from already priced fields."""
        estimate = Estimate(**data)
        await estimate.insert()
        logger.info("Created estimate %s (version %s)", estimate.id, estimate.version_number)
        return estimate

    async def get_by_id(self, estimate_id: str) -> Optional[Estimate]:
        """Get estimate by ID; None for unknown or malformed IDs."""
        if not PydanticObjectId.is_valid(estimate_id):
            return None
        return await Estimate.get(PydanticObjectId(estimate_id))

    async def list_estimates(
        self,
        project_id: Optional[str] = None,
        status: Optional[EstimateStatus] = None,
        current_only: bool = False,
        limit: int = 100
    ) -> List[Estimate]:
        """List estimates newest first with optional filters."""
        query = Estimate.find_all()
        if project_id:
            query = query.find(Estimate.project_id == project_id)
        if status:
            query = query.find(Estimate.status == status)
        if current_only:
            query = query.find(Estimate.is_current_version == True)  # noqa: E712

        return await query.sort("-created_at").limit(limit).to_list()

    async def get_current_for_project(self, project_id: str) -> Optional[Estimate]:
        """Current version of the project's most recent estimate."""
        return await Estimate.find(
            Estimate.project_id == project_id,
            Estimate.is_current_version == True,  # noqa: E712
        ).sort("-created_at").first_or_none()

    async def list_versions(self, root_estimate_id: str) -> List[Estimate]:
        """All members of a version chain ordered by version number."""
        if not PydanticObjectId.is_valid(root_estimate_id):
            return []
        return await Estimate.find(
            Or(
                Estimate.id == PydanticObjectId(root_estimate_id),
                Estimate.parent_estimate_id == root_estimate_id,
            )
        ).sort("+version_number").to_list()

    @database_write("Estimate save")
    async def save(self, estimate: Estimate) -> Estimate:
        await estimate.save()
        return estimate

    @database_write("Current version update")
    async def set_current_version(self, root_estimate_id: str, estimate_id: str) -> bool:
        """
        Make ``estimate_id`` the one current member of its chain.

        Clears the flag on the rest of the chain with a single update_many,
        then sets it on the target.

        Returns:
            False when the target is not in the chain
        """
        if not PydanticObjectId.is_valid(root_estimate_id) or not PydanticObjectId.is_valid(estimate_id):
            return False

        target_id = PydanticObjectId(estimate_id)
        now = datetime.utcnow()
        chain = Or(
            Estimate.id == PydanticObjectId(root_estimate_id),
            Estimate.parent_estimate_id == root_estimate_id,
        )

        await Estimate.find(chain, Estimate.id != target_id).update(
            Set({Estimate.is_current_version: False, Estimate.updated_at: now})
        )
        result = await Estimate.find_one(chain, Estimate.id == target_id).update(
            Set({Estimate.is_current_version: True, Estimate.updated_at: now})
        )
        return getattr(result, "matched_count", 0) == 1

    @database_write("Contingency update")
    async def increment_contingency_used(
        self,
        estimate_id: str,
        expected_used: Decimal,
        amount: Decimal
    ) -> bool:
        """
        Compare-and-set on contingency_used.

        Only applies when the stored value still equals ``expected_used``, so
        two concurrent allocations cannot both spend the same remainder.

        Returns:
            True when exactly one document was updated
        """
        if not PydanticObjectId.is_valid(estimate_id):
            return False

        result = await Estimate.find_one(
            Estimate.id == PydanticObjectId(estimate_id),
            Estimate.contingency_used == expected_used,
        ).update(
            Set({
                Estimate.contingency_used: expected_used + amount,
                Estimate.updated_at: datetime.utcnow(),
            })
        )
        updated = getattr(result, "modified_count", 0) == 1
        if not updated:
            logger.warning("Contingency update on estimate %s matched no document", estimate_id)
        return updated
