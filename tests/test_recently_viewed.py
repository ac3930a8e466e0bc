"""
test_recently_viewed.py - per-viewer recently viewed estimates.
"""
from costbook.services.recently_viewed_service import RecentlyViewedService


class TestRecentlyViewed:

    def test_inactive_before_start(self):
        registry = RecentlyViewedService(limit=3)
        assert registry.record("alex", "e1") == []
        assert registry.recent("alex") == []

    def test_newest_first_without_duplicates(self):
        registry = RecentlyViewedService(limit=3)
        registry.start()
        registry.record("alex", "e1")
        registry.record("alex", "e2")
        assert registry.record("alex", "e1") == ["e1", "e2"]

    def test_oldest_dropped_past_limit(self):
        registry = RecentlyViewedService(limit=3)
        registry.start()
        for estimate_id in ["e1", "e2", "e3", "e4"]:
            registry.record("alex", estimate_id)
        assert registry.recent("alex") == ["e4", "e3", "e2"]

    def test_viewers_are_separate(self):
        registry = RecentlyViewedService(limit=3)
        registry.start()
        registry.record("alex", "e1")
        registry.record("sam", "e2")
        assert registry.recent("alex") == ["e1"]
        assert registry.recent("sam") == ["e2"]

    def test_stop_clears(self):
        registry = RecentlyViewedService()
        registry.start()
        registry.record("alex", "e1")
        registry.stop()
        assert not registry.is_running
        assert registry.recent("alex") == []

    def test_default_limit(self):
        registry = RecentlyViewedService()
        registry.start()
        for n in range(15):
            registry.record("alex", f"e{n}")
        assert len(registry.recent("alex")) == 10
