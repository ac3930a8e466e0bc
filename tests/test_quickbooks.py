"""
test_quickbooks.py - sync history formatting and summary.
"""
import asyncio
from datetime import datetime, timedelta

import pytest

from costbook.models.line_item import LineItemCategory
from costbook.models.quickbooks import SyncStatus
from costbook.services.quickbooks_service import QuickBooksService, format_duration


STARTED = datetime(2026, 5, 1, 9, 0, 0)


class TestDuration:

    def test_seconds(self):
        assert format_duration(STARTED, STARTED + timedelta(seconds=42)) == "42s"

    def test_minutes_and_seconds(self):
        assert format_duration(STARTED, STARTED + timedelta(seconds=185)) == "3m 5s"

    def test_whole_minutes(self):
        assert format_duration(STARTED, STARTED + timedelta(minutes=2)) == "2m 0s"

    def test_in_progress(self):
        assert format_duration(STARTED, None) == "—"


class TestSyncHistory:

    @pytest.fixture
    def syncs(self, stored_sync):
        return [
            stored_sync(
                sync_started_at=STARTED,
                sync_completed_at=STARTED + timedelta(seconds=30),
                sync_status=SyncStatus.COMPLETED,
                expenses_imported=12,
                revenues_imported=3,
                duplicates_skipped=1,
            ),
            stored_sync(
                sync_started_at=STARTED + timedelta(days=1),
                sync_status=SyncStatus.FAILED,
                sync_completed_at=STARTED + timedelta(days=1, seconds=5),
                error_message="Token expired",
            ),
            stored_sync(sync_started_at=STARTED + timedelta(days=2)),
        ]

    def test_newest_first_with_summary(self, syncs, quickbooks_repo):
        service = QuickBooksService(repository=quickbooks_repo(syncs=syncs))

        history = asyncio.run(service.get_sync_history())

        assert [s.syncStatus for s in history.syncs] == [
            SyncStatus.IN_PROGRESS, SyncStatus.FAILED, SyncStatus.COMPLETED,
        ]
        assert history.syncs[0].duration == "—"
        assert history.syncs[2].duration == "30s"
        assert history.summary.totalSyncs == 3
        assert history.summary.completed == 1
        assert history.summary.failed == 1
        assert history.summary.inProgress == 1
        assert history.summary.expensesImported == 12
        assert history.summary.duplicatesSkipped == 1

    def test_history_limit(self, syncs, quickbooks_repo):
        service = QuickBooksService(repository=quickbooks_repo(syncs=syncs), history_limit=2)
        history = asyncio.run(service.get_sync_history())
        assert len(history.syncs) == 2

    def test_account_mappings(self, stored_mapping, quickbooks_repo):
        repository = quickbooks_repo(mappings=[
            stored_mapping(qb_account_id="80", qb_account_name="Job Materials", app_category=LineItemCategory.MATERIALS),
            stored_mapping(qb_account_id="81", qb_account_name="Old Account", is_active=False),
        ])
        service = QuickBooksService(repository=repository)

        mappings = asyncio.run(service.list_account_mappings())

        assert [m.qbAccountId for m in mappings] == ["80"]
        assert mappings[0].appCategory == LineItemCategory.MATERIALS
