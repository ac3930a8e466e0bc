from beanie import Document
from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional
import enum

from costbook.models.line_item import LineItemCategory


class SyncStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class QuickBooksAccountMappingBase(BaseModel):
    qb_account_id: str
    qb_account_name: str
    qb_account_full_path: Optional[str] = None
    app_category: LineItemCategory = LineItemCategory.OTHER
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class QuickBooksAccountMapping(Document, QuickBooksAccountMappingBase):
    """
    Maps a QuickBooks account to a local expense category.
    Written by the sync job; read-only here.
    """

    class Settings:
        name = "quickbooks_account_mappings"


class QuickBooksTransactionSyncBase(BaseModel):
    sync_started_at: datetime
    sync_completed_at: Optional[datetime] = None
    sync_status: SyncStatus = SyncStatus.IN_PROGRESS
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    transactions_fetched: int = 0
    expenses_imported: int = 0
    revenues_imported: int = 0
    duplicates_skipped: int = 0
    error_message: Optional[str] = None
    environment: str = "sandbox"
    created_at: datetime = Field(default_factory=datetime.utcnow)


class QuickBooksTransactionSync(Document, QuickBooksTransactionSyncBase):
    """One run of the QuickBooks transaction import."""

    class Settings:
        name = "quickbooks_transaction_syncs"
