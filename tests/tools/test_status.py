"""Tests for stackbuddy.tools.status - ToolStatusTracker"""

import pytest

from stackbuddy.tools import ToolStatus, ToolStatusTracker


@pytest.fixture
def tracker():
    return ToolStatusTracker()


class TestSets:

    def test_starts_empty_and_settled(self, tracker):
        assert tracker.is_empty() is True
        assert tracker.is_settled() is True
        assert tracker.describe() is None

    def test_sets_are_disjoint(self, tracker):
        tracker.set_status("fieldRemove", ToolStatus.EXECUTING)
        tracker.set_status("fieldRemove", ToolStatus.ERROR)
        tracker.set_status("fieldRemove", ToolStatus.COMPLETED)
        assert tracker.executing == frozenset()
        assert tracker.errors == frozenset()
        assert tracker.completed == frozenset({"fieldRemove"})

    def test_accepts_string_status(self, tracker):
        tracker.set_status("a", "executing")
        assert tracker.status_of("a") == ToolStatus.EXECUTING

    def test_rejects_unknown_status(self, tracker):
        with pytest.raises(ValueError):
            tracker.set_status("a", "paused")

    def test_settled_ignores_completed_and_errors(self, tracker):
        tracker.set_status("a", ToolStatus.COMPLETED)
        tracker.set_status("b", ToolStatus.ERROR)
        assert tracker.is_settled() is True
        tracker.set_status("c", ToolStatus.EXECUTING)
        assert tracker.is_settled() is False

    def test_reset_clears_everything(self, tracker):
        tracker.set_status("a", ToolStatus.EXECUTING)
        tracker.set_status("b", ToolStatus.ERROR)
        tracker.reset()
        assert tracker.is_empty() is True
        assert tracker.to_dict() == {"executing": [], "completed": [], "errors": []}


class TestDescribe:

    def test_executing_has_priority(self, tracker):
        tracker.set_status("a", ToolStatus.COMPLETED)
        tracker.set_status("b", ToolStatus.ERROR)
        tracker.set_status("c", ToolStatus.EXECUTING)
        assert tracker.describe() == "Working on: c"

    def test_completed_before_errors(self, tracker):
        tracker.set_status("a", ToolStatus.ERROR)
        tracker.set_status("b", ToolStatus.COMPLETED)
        assert tracker.describe() == "Completed: b"

    def test_errors_only(self, tracker):
        tracker.set_status("a", ToolStatus.ERROR)
        assert tracker.describe() == "Encountered errors in: a"

    def test_names_listed_in_order(self, tracker):
        tracker.set_status("first", ToolStatus.EXECUTING)
        tracker.set_status("second", ToolStatus.EXECUTING)
        assert tracker.describe() == "Working on: first, second"


class TestSnapshot:

    def test_snapshot_changes_with_status(self, tracker):
        tracker.set_status("a", ToolStatus.EXECUTING)
        before = tracker.snapshot()
        tracker.set_status("a", ToolStatus.COMPLETED)
        assert tracker.snapshot() != before

    def test_snapshot_is_hashable(self, tracker):
        tracker.set_status("a", ToolStatus.EXECUTING)
        assert hash(tracker.snapshot()) == hash(tracker.snapshot())
