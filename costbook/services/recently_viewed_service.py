"""
Recently Viewed Estimates Service

Keeps a short most-recent-first list of estimate IDs per viewer.
Owned by the application: created on startup, stored on ``app.state``
and cleared on shutdown. Nothing is persisted.
"""
from collections import OrderedDict
from typing import Dict, List
import logging

from costbook.core.config import settings

logger = logging.getLogger(__name__)


class RecentlyViewedService:
    """In-memory recently viewed registry"""

    def __init__(self, limit: int = None):
        self.limit = limit or settings.RECENTLY_VIEWED_LIMIT
        self._views: Dict[str, "OrderedDict[str, None]"] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        self._views.clear()
        self._running = True
        logger.info("Recently viewed registry started (limit %s)", self.limit)

    def stop(self):
        self._views.clear()
        self._running = False
        logger.info("Recently viewed registry stopped")

    def record(self, viewer: str, estimate_id: str) -> List[str]:
        """Register a view; returns the viewer's list after the update."""
        if not self._running:
            return []

        views = self._views.setdefault(viewer, OrderedDict())
        views.pop(estimate_id, None)
        views[estimate_id] = None
        while len(views) > self.limit:
            views.popitem(last=False)
        return self.recent(viewer)

    def recent(self, viewer: str) -> List[str]:
        """Most recently viewed first."""
        return list(reversed(self._views.get(viewer, OrderedDict())))

