"""Tests for the admin review queue."""

from datetime import timedelta

import pytest

from autograde.errors import NotFoundError, ValidationError
from autograde.tools.review_queue import ReviewQueue


@pytest.fixture
def flagged_store(store, base_time):
    """Two flagged submissions and one graded one."""
    store.add_submission("sub-old", "task-1", "student-1", content="a", status="pending_review",
                         needs_review=True, ai_score=60, points=60, feedback="AI feedback (60)",
                         auto_graded_at=base_time)
    store.add_submission("sub-new", "task-gone", "student-gone", content="b", status="pending_review",
                         needs_review=True, ai_score=40, points=40, feedback="AI feedback (40)",
                         auto_graded_at=base_time + timedelta(hours=1))
    store.add_submission("sub-done", "task-1", "student-2", content="c", status="graded",
                         ai_score=90, points=95, auto_graded_at=base_time + timedelta(hours=2))
    return store


class TestListFlagged:

    def test_most_recent_first(self, flagged_store):
        queue = ReviewQueue(flagged_store)
        flagged = queue.list_flagged()
        assert [s['id'] for s in flagged] == ["sub-new", "sub-old"]

    def test_enriched_with_student_and_task(self, flagged_store):
        entry = ReviewQueue(flagged_store).list_flagged()[1]

        assert entry['student'] == {'id': 'student-1', 'full_name': 'Aysel Məmmədova'}
        assert entry['task'] == {'id': 'task-1', 'title': 'Python List Operations', 'max_score': 100}
        assert entry['ai_score'] == 60
        assert entry['needs_review'] is True
        assert 'student_name' not in entry
        assert isinstance(entry['auto_graded_at'], str)

    def test_missing_join_targets_get_placeholders(self, flagged_store):
        entry = ReviewQueue(flagged_store).list_flagged()[0]
        assert entry['student'] == {'id': 'student-gone', 'full_name': 'Unknown Student'}
        assert entry['task'] == {'id': 'task-gone', 'title': 'Unknown Task', 'max_score': 100}

    def test_page_size(self, flagged_store):
        assert len(ReviewQueue(flagged_store, page_size=1).list_flagged()) == 1
        assert len(ReviewQueue(flagged_store).list_flagged(limit=1)) == 1

    def test_empty(self, store):
        assert ReviewQueue(store).list_flagged() == []


class TestApplyDecision:

    def test_approve_keeps_ai_points_and_feedback(self, flagged_store):
        updated = ReviewQueue(flagged_store).apply_decision("sub-old", True)

        assert updated['status'] == "graded"
        assert updated['needs_review'] is False
        assert updated['points'] == 60
        assert updated['feedback'] == "AI feedback (60)"
        assert updated['graded_at'] is not None
        assert flagged_store.count_review_queue() == 1

    def test_approve_with_overrides(self, flagged_store):
        updated = ReviewQueue(flagged_store).apply_decision(
            "sub-old", True, final_points=72.5, feedback="Admin adjusted"
        )
        assert updated['points'] == 72.5
        assert updated['feedback'] == "Admin adjusted"
        assert updated['ai_score'] == 60

    def test_reapprove_graded_submission(self, store, base_time):
        """Approving an already graded row keeps its grade and refreshes graded_at."""
        store.add_submission("sub-graded", "task-1", "student-1", content="x", status="graded",
                             needs_review=True, ai_score=90, points=95, feedback="AI feedback (95)",
                             auto_graded_at=base_time, graded_at=base_time)

        updated = ReviewQueue(store).apply_decision("sub-graded", True)

        assert updated['status'] == "graded"
        assert updated['points'] == 95
        assert updated['feedback'] == "AI feedback (95)"
        assert updated['needs_review'] is False
        row = store.get_submission("sub-graded")
        assert row.graded_at is not None
        assert row.graded_at.replace(tzinfo=None) != base_time

    def test_reject_leaves_points(self, flagged_store):
        updated = ReviewQueue(flagged_store).apply_decision("sub-new", False, final_points=99, feedback="ignored")

        assert updated['status'] == "rejected"
        assert updated['needs_review'] is False
        assert updated['points'] == 40
        assert updated['feedback'] == "AI feedback (40)"
        assert updated['graded_at'] is not None

    @pytest.mark.parametrize("submission_id", [None, ""])
    def test_missing_id(self, flagged_store, submission_id):
        with pytest.raises(ValidationError, match="Submission ID required"):
            ReviewQueue(flagged_store).apply_decision(submission_id, True)

    @pytest.mark.parametrize("approved", [None, "true", 1, 0])
    def test_approved_must_be_bool(self, flagged_store, approved):
        with pytest.raises(ValidationError):
            ReviewQueue(flagged_store).apply_decision("sub-old", approved)

    @pytest.mark.parametrize("final_points", ["80", True, [80]])
    def test_final_points_must_be_number(self, flagged_store, final_points):
        with pytest.raises(ValidationError):
            ReviewQueue(flagged_store).apply_decision("sub-old", True, final_points=final_points)

    def test_feedback_must_be_string(self, flagged_store):
        with pytest.raises(ValidationError):
            ReviewQueue(flagged_store).apply_decision("sub-old", True, feedback=42)

    def test_unknown_submission(self, flagged_store):
        with pytest.raises(NotFoundError):
            ReviewQueue(flagged_store).apply_decision("sub-missing", True)

    def test_validation_happens_before_lookup(self, flagged_store):
        """Malformed requests never touch the store."""
        with pytest.raises(ValidationError):
            ReviewQueue(flagged_store).apply_decision("sub-missing", "yes")
        assert flagged_store.get_submission("sub-old").status == "pending_review"
