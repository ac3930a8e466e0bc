from typing import List

from costbook.models.quickbooks import QuickBooksAccountMapping, QuickBooksTransactionSync


class QuickBooksRepository:
    """Read-only access to the QuickBooks sync tables."""

    async def list_recent_syncs(self, limit: int) -> List[QuickBooksTransactionSync]:
        return await QuickBooksTransactionSync.find_all().sort(
            "-sync_started_at"
        ).limit(limit).to_list()

    async def list_account_mappings(self, active_only: bool = True) -> List[QuickBooksAccountMapping]:
        query = QuickBooksAccountMapping.find_all()
        if active_only:
            query = query.find(QuickBooksAccountMapping.is_active == True)  # noqa: E712
        return await query.sort("+qb_account_name").to_list()
