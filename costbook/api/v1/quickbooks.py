"""
QuickBooks API Routes (read-only)

- GET /syncs - Recent sync runs with summary
- GET /account-mappings - Active account to category mappings
"""
from fastapi import APIRouter
from typing import List

from costbook.schemas.quickbooks import SyncHistorySchema, AccountMappingSchema
from costbook.services.quickbooks_service import get_quickbooks_service

router = APIRouter()


@router.get("/syncs", response_model=SyncHistorySchema, summary="Sync history")
async def get_sync_history():
    service = get_quickbooks_service()
    return await service.get_sync_history()


@router.get("/account-mappings", response_model=List[AccountMappingSchema], summary="Account mappings")
async def list_account_mappings():
    service = get_quickbooks_service()
    return await service.list_account_mappings()
