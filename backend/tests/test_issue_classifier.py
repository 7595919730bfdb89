"""Tests for subtask-aware effective values."""

from conftest import make_item

from services.issue_classifier import IssueClassifier, default_is_parent, default_is_subtask
from services.work_items import WorkItem, filter_by_assignee


class TestDetection:
    """Test default subtask / parent predicates."""

    def test_subtask_by_flag(self):
        assert default_is_subtask(make_item("A-1", is_subtask=True)) is True

    def test_subtask_by_type_name(self):
        assert default_is_subtask(make_item("A-1", issue_type="Sub-task")) is True
        assert default_is_subtask(make_item("A-2", issue_type="Development Subtask")) is True
        assert default_is_subtask(make_item("A-3", issue_type="Story")) is False

    def test_parent_by_subtask_list(self):
        assert default_is_parent(make_item("A-1", subtask_keys=["A-2"])) is True

    def test_parent_by_type_name(self):
        assert default_is_parent(make_item("A-1", issue_type="Main Task")) is True
        assert default_is_parent(make_item("A-2", issue_type="Task")) is False

    def test_custom_predicates(self):
        """Detection can follow another tracker's naming convention."""
        classifier = IssueClassifier(
            is_subtask=lambda i: i.issue_type == "Child",
            is_parent=lambda i: i.issue_type == "Container"
        )
        items = [
            make_item("C-1", issue_type="Container", original_estimate_hours=10.0),
            make_item("C-2", issue_type="Child", parent_key="C-1", original_estimate_hours=4.0)
        ]
        assert classifier.totals(items)["original"] == 4.0


class TestClassify:
    """Test the effective-value rule."""

    def test_plain_items_pass_through(self):
        items = [
            make_item("A-1", original_estimate_hours=4.0, remaining_estimate_hours=2.0,
                      logged_hours=2.5),
            make_item("A-2", original_estimate_hours=1.0, remaining_estimate_hours=1.0)
        ]
        totals = IssueClassifier().totals(items)
        assert totals == {"original": 5.0, "remaining": 3.0, "logged": 2.5}

    def test_parent_uses_present_subtasks_not_own_field(self, parent_with_subtasks):
        """Parent + subtasks must not double count."""
        totals = IssueClassifier().totals(parent_with_subtasks)
        assert totals["original"] == 6.0
        assert totals["remaining"] == 6.0
        assert totals["logged"] == 1.0

    def test_assignee_filter_counts_only_owned_subtask(self, parent_with_subtasks):
        """Alice owns the parent and one of two 3h subtasks: 3h, not 6h."""
        items = filter_by_assignee(parent_with_subtasks, "Alice")
        results = {e.item.key: e for e in IssueClassifier().classify(items)}

        assert results["PROJ-1"].counted is True
        assert results["PROJ-1"].remaining == 3.0
        assert results["PROJ-1"].subtasks_present == ["PROJ-2"]
        assert results["PROJ-2"].counted is False
        assert IssueClassifier().totals(items)["remaining"] == 3.0

    def test_parent_without_present_subtasks_is_skipped(self):
        items = [
            make_item("P-1", original_estimate_hours=8.0, remaining_estimate_hours=8.0,
                      subtask_keys=["P-2"]),
            make_item("T-1", original_estimate_hours=2.0, remaining_estimate_hours=2.0)
        ]
        results = IssueClassifier().classify(items)

        parent = results[0]
        assert parent.skipped_in_total is True
        assert parent.counted is False
        assert parent.to_dict()["skippedInTotal"] is True
        assert IssueClassifier().totals(items)["remaining"] == 2.0

    def test_subtask_without_parent_in_set_counts_once(self, parent_with_subtasks):
        """Bob owns only a subtask; it forms its own group."""
        items = filter_by_assignee(parent_with_subtasks, "Bob")
        results = IssueClassifier().classify(items)

        assert len(results) == 1
        assert results[0].counted is True
        assert results[0].is_subtask is True
        assert IssueClassifier().totals(items)["remaining"] == 3.0

    def test_contributions_sum_to_effective_total(self, parent_with_subtasks):
        classifier = IssueClassifier()
        items = parent_with_subtasks + [make_item("T-9", original_estimate_hours=2.5)]
        contributions = classifier.contributions(items)

        assert contributions["PROJ-1"] == 0.0
        assert contributions["PROJ-2"] == 3.0
        assert sum(contributions.values()) == classifier.totals(items)["original"]

    def test_countable_keys_exclude_parents(self, parent_with_subtasks):
        keys = IssueClassifier().countable_keys(parent_with_subtasks)
        assert keys == ["PROJ-2", "PROJ-3"]

    def test_issue_detail_shape(self, parent_with_subtasks):
        detail = IssueClassifier().classify(parent_with_subtasks)[0].to_dict()
        assert detail["key"] == "PROJ-1"
        assert detail["hasSubtasks"] is True
        assert detail["subtaskCount"] == 2
        assert detail["originalEstimate"] == 6.0


class TestWorkItemFromJira:

    def test_maps_fields(self, sample_jira_issue):
        item = WorkItem.from_jira(sample_jira_issue)

        assert item.key == "PROJ-123"
        assert item.priority == "High"
        assert item.assignee == "Alice"
        assert item.original_estimate_hours == 8.0
        assert item.remaining_estimate_hours == 4.0
        assert item.logged_hours == 5.0
        assert item.due_date.isoformat() == "2024-01-10"
        assert item.parent_key == "PROJ-50"
        assert item.subtask_keys == ["PROJ-124"]
        assert item.fix_versions[0]["name"] == "v1.0"

    def test_missing_fields_get_defaults(self):
        item = WorkItem.from_jira({"key": "X-1", "fields": {}})
        assert item.status == "To Do"
        assert item.priority == "Medium"
        assert item.assignee is None
        assert item.original_estimate_hours == 0.0
        assert item.is_subtask is False
