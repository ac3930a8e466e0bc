from typing import Optional, List
import logging

from beanie import PydanticObjectId

from costbook.core.database import database_write
from costbook.models.change_order import ChangeOrder

logger = logging.getLogger(__name__)


class ChangeOrderRepository:
    """Repository for change order database operations (MongoDB/Beanie)."""

    @database_write("Change order insert")
    async def create_change_order(self, data: dict) -> ChangeOrder:
        change_order = ChangeOrder(**data)
        await change_order.insert()
        logger.info("Created change order %s on project %s", change_order.id, change_order.project_id)
        return change_order

    async def get_by_id(self, change_order_id: str) -> Optional[ChangeOrder]:
        if not PydanticObjectId.is_valid(change_order_id):
            return None
        return await ChangeOrder.get(PydanticObjectId(change_order_id))

    async def list_by_project(self, project_id: str) -> List[ChangeOrder]:
        return await ChangeOrder.find(
            ChangeOrder.project_id == project_id
        ).sort("+created_at").to_list()

    async def count_by_project(self, project_id: str) -> int:
        return await ChangeOrder.find(ChangeOrder.project_id == project_id).count()

    @database_write("Change order save")
    async def save(self, change_order: ChangeOrder) -> ChangeOrder:
        await change_order.save()
        return change_order
