from typing import Optional, List
from datetime import datetime
import logging

from beanie import PydanticObjectId
from beanie.operators import Set

from costbook.core.database import database_write
from costbook.models.quote import Quote, QuoteStatus

logger = logging.getLogger(__name__)


class QuoteRepository:
    """Repository for vendor quote database operations (MongoDB/Beanie)."""

    @database_write("Quote insert")
    async def create_quote(self, data: dict) -> Quote:
        quote = Quote(**data)
        await quote.insert()
        logger.info("Created quote %s from %s", quote.id, quote.quoted_by)
        return quote

    async def get_by_id(self, quote_id: str) -> Optional[Quote]:
        if not PydanticObjectId.is_valid(quote_id):
            return None
        return await Quote.get(PydanticObjectId(quote_id))

    async def list_quotes(
        self,
        project_id: Optional[str] = None,
        estimate_id: Optional[str] = None,
        status: Optional[QuoteStatus] = None
    ) -> List[Quote]:
        """List quotes, most recently received first."""
        query = Quote.find_all()
        if project_id:
            query = query.find(Quote.project_id == project_id)
        if estimate_id:
            query = query.find(Quote.estimate_id == estimate_id)
        if status:
            query = query.find(Quote.status == status)

        return await query.sort("-date_received").to_list()

    async def list_accepted_for_project(self, project_id: str) -> List[Quote]:
        return await Quote.find(
            Quote.project_id == project_id,
            Quote.status == QuoteStatus.ACCEPTED,
        ).to_list()

    @database_write("Quote status update")
    async def update_status(
        self,
        quote_id: str,
        expected: QuoteStatus,
        target: QuoteStatus,
        fields: Optional[dict] = None
    ) -> bool:
        """
        Move a quote from ``expected`` to ``target`` and set ``fields``.

        Only applies while the stored status still equals ``expected``.

        Returns:
            True when exactly one document was updated
        """
        if not PydanticObjectId.is_valid(quote_id):
            return False

        changes = {
            Quote.status: target,
            Quote.updated_at: datetime.utcnow(),
        }
        changes.update(fields or {})

        result = await Quote.find_one(
            Quote.id == PydanticObjectId(quote_id),
            Quote.status == expected,
        ).update(Set(changes))
        updated = getattr(result, "modified_count", 0) == 1
        if not updated:
            logger.warning("Quote %s was no longer '%s'", quote_id, expected.value)
        return updated

    async def mark_expired(self, quote_id: str) -> bool:
        """
        Move a quote from pending to expired.

        Guarded on the pending status so repeated sweeps are no-ops.
        """
        return await self.update_status(quote_id, QuoteStatus.PENDING, QuoteStatus.EXPIRED)
