"""
QuickBooks Service - sync history

Reads what the QuickBooks import job wrote. Talking to QuickBooks itself
happens elsewhere.
"""
from datetime import datetime
from typing import List, Optional

from costbook.core.config import settings
from costbook.models.quickbooks import QuickBooksTransactionSync, SyncStatus
from costbook.repositories.quickbooks_repository import QuickBooksRepository
from costbook.schemas.quickbooks import (
    SyncRecordSchema,
    SyncSummarySchema,
    SyncHistorySchema,
    AccountMappingSchema,
)

IN_PROGRESS_DURATION = "—"


def format_duration(started: datetime, completed: Optional[datetime]) -> str:
    """'42s' or '3m 5s'; a dash while the sync is still running."""
    if completed is None:
        return IN_PROGRESS_DURATION

    seconds = round((completed - started).total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}m {remaining}s"


def summarize_syncs(syncs: List[QuickBooksTransactionSync]) -> SyncSummarySchema:
    def count(status: SyncStatus) -> int:
        return sum(1 for s in syncs if s.sync_status == status)

    return SyncSummarySchema(
        totalSyncs=len(syncs),
        completed=count(SyncStatus.COMPLETED),
        failed=count(SyncStatus.FAILED),
        inProgress=count(SyncStatus.IN_PROGRESS),
        expensesImported=sum(s.expenses_imported for s in syncs),
        revenuesImported=sum(s.revenues_imported for s in syncs),
        duplicatesSkipped=sum(s.duplicates_skipped for s in syncs),
    )


class QuickBooksService:
    """Service for QuickBooks sync history (Async)"""

    def __init__(self, repository: QuickBooksRepository = None, history_limit: int = None):
        self.repository = repository or QuickBooksRepository()
        self.history_limit = history_limit or settings.SYNC_HISTORY_LIMIT

    async def get_sync_history(self) -> SyncHistorySchema:
        syncs = await self.repository.list_recent_syncs(self.history_limit)
        syncs = sorted(syncs, key=lambda s: s.sync_started_at, reverse=True)[:self.history_limit]

        return SyncHistorySchema(
            syncs=[
                SyncRecordSchema(
                    syncId=str(s.id),
                    syncStartedAt=s.sync_started_at,
                    syncCompletedAt=s.sync_completed_at,
                    syncStatus=s.sync_status,
                    duration=format_duration(s.sync_started_at, s.sync_completed_at),
                    startDate=s.start_date,
                    endDate=s.end_date,
                    transactionsFetched=s.transactions_fetched,
                    expensesImported=s.expenses_imported,
                    revenuesImported=s.revenues_imported,
                    duplicatesSkipped=s.duplicates_skipped,
                    errorMessage=s.error_message,
                    environment=s.environment,
                )
                for s in syncs
            ],
            summary=summarize_syncs(syncs),
        )

    async def list_account_mappings(self) -> List[AccountMappingSchema]:
        mappings = await self.repository.list_account_mappings()
        return [
            AccountMappingSchema(
                qbAccountId=m.qb_account_id,
                qbAccountName=m.qb_account_name,
                qbAccountFullPath=m.qb_account_full_path,
                appCategory=m.app_category,
                isActive=m.is_active,
            )
            for m in mappings
        ]


def get_quickbooks_service() -> QuickBooksService:
    """
    Factory function to create QuickBooksService instance.
    """
    return QuickBooksService()
