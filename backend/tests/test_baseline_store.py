"""Tests for sprint baseline capture and persistence."""

import json

from conftest import make_item

from services.baseline_store import Baseline, baseline_key, is_corrupted
from services.kv_store import JsonFileStore


def _items(count, prefix="T"):
    return [make_item(f"{prefix}-{n}", original_estimate_hours=1.0) for n in range(count)]


class TestCapture:
    """Test Baseline.capture."""

    def test_excludes_terminal_items(self):
        items = [
            make_item("A-1", status="In Progress"),
            make_item("A-2", status="Done"),
            make_item("A-3", status="Closed")
        ]
        baseline = Baseline.capture(42, items, "2024-01-01T09:00:00+00:00")

        assert baseline.keys == {"A-1"}

    def test_entry_fields(self, parent_with_subtasks):
        baseline = Baseline.capture(42, parent_with_subtasks, "2024-01-01T09:00:00+00:00")
        entry = baseline.entry("PROJ-2")

        assert entry["originalEstimate"] == 3.0
        assert entry["timeSpent"] == 1.0
        assert entry["isSubtask"] is True
        assert entry["parentKey"] == "PROJ-1"
        assert baseline.entry("PROJ-1")["subtaskKeys"] == ["PROJ-2", "PROJ-3"]
        assert baseline.entry("PROJ-404") is None

    def test_dict_round_trip_accepts_legacy_created_at(self):
        data = {"sprintId": 42, "createdAt": "2024-01-01", "issues": [{"key": "A-1"}]}
        baseline = Baseline.from_dict(data)

        assert baseline.captured_at == "2024-01-01"
        assert baseline.to_dict()["issueCount"] == 1

    def test_filter_by_assignee_is_a_view(self, parent_with_subtasks):
        baseline = Baseline.capture(42, parent_with_subtasks, "2024-01-01")
        filtered = baseline.filter_by_assignee("Bob")

        assert filtered.keys == {"PROJ-3"}
        assert baseline.issue_count == 3
        assert baseline.filter_by_assignee("All") is baseline


class TestCorruptionHeuristic:

    def test_close_counts_not_corrupted(self):
        baseline = Baseline(42, "2024-01-01", issues=[{"key": f"T-{n}"} for n in range(20)])
        assert is_corrupted(baseline, 23) is False

    def test_tiny_baseline_corrupted(self):
        baseline = Baseline(42, "2024-01-01", issues=[{"key": "T-1"}, {"key": "T-2"}])
        assert is_corrupted(baseline, 20) is True

    def test_floor_protects_large_baselines(self):
        """Twelve entries is never stale, even against 100 active issues."""
        baseline = Baseline(42, "2024-01-01", issues=[{"key": f"T-{n}"} for n in range(12)])
        assert is_corrupted(baseline, 100) is False


class TestBaselineStore:
    """Test BaselineStore policy."""

    def test_get_or_create_persists_first_capture(self, baseline_store, memory_store):
        baseline = baseline_store.get_or_create(42, _items(3))

        assert baseline.issue_count == 3
        assert baseline.captured_at == "2024-01-01T09:00:00+00:00"
        assert memory_store.get(baseline_key(42))["issueCount"] == 3

    def test_stored_baseline_is_stable(self, baseline_store):
        first = baseline_store.get_or_create(42, _items(12))
        second = baseline_store.ensure(42, _items(12) + _items(5, prefix="NEW"))

        assert second.keys == first.keys
        assert second.captured_at == first.captured_at

    def test_ensure_repairs_stale_baseline(self, baseline_store):
        baseline_store.get_or_create(42, _items(2))
        repaired = baseline_store.ensure(42, _items(20))

        assert repaired.issue_count == 20
        assert baseline_store.get(42).issue_count == 20

    def test_ensure_without_persist_does_not_save(self, baseline_store):
        baseline = baseline_store.ensure(42, _items(4), persist=False)

        assert baseline.issue_count == 4
        assert baseline_store.get(42) is None

    def test_ensure_without_persist_keeps_stored(self, baseline_store):
        baseline_store.get_or_create(42, _items(2))
        baseline = baseline_store.ensure(42, _items(20), persist=False)

        assert baseline.issue_count == 2

    def test_reset_recreates(self, baseline_store):
        baseline_store.get_or_create(42, _items(12))
        baseline = baseline_store.reset(42, _items(3, prefix="R"))

        assert baseline.keys == {"R-0", "R-1", "R-2"}

    def test_delete(self, baseline_store):
        baseline_store.get_or_create(42, _items(1))
        baseline_store.delete(42)
        assert baseline_store.get(42) is None


class TestJsonFileStore:

    def test_set_get_delete(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "data" / "store.json"))
        store.set("baseline-1", {"issues": []})

        assert store.get("baseline-1") == {"issues": []}
        store.delete("baseline-1")
        assert store.get("baseline-1") is None

    def test_unreadable_file_reads_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")

        assert JsonFileStore(str(path)).get("anything") is None

    def test_file_is_plain_json(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(str(path)).set("config-default", {"teamSize": 4})

        assert json.loads(path.read_text()) == {"config-default": {"teamSize": 4}}
