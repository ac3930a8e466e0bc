from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime, date

from costbook.models.line_item import LineItemCategory
from costbook.models.quickbooks import SyncStatus


class SyncRecordSchema(BaseModel):
    syncId: str
    syncStartedAt: datetime
    syncCompletedAt: Optional[datetime] = None
    syncStatus: SyncStatus
    duration: str
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    transactionsFetched: int
    expensesImported: int
    revenuesImported: int
    duplicatesSkipped: int
    errorMessage: Optional[str] = None
    environment: str


class SyncSummarySchema(BaseModel):
    totalSyncs: int
    completed: int
    failed: int
    inProgress: int
    expensesImported: int
    revenuesImported: int
    duplicatesSkipped: int


class SyncHistorySchema(BaseModel):
    syncs: List[SyncRecordSchema]
    summary: SyncSummarySchema


class AccountMappingSchema(BaseModel):
    qbAccountId: str
    qbAccountName: str
    qbAccountFullPath: Optional[str] = None
    appCategory: LineItemCategory
    isActive: bool
