"""Review queue: list flagged submissions and apply admin decisions."""

import logging
from numbers import Number
from typing import Any, Dict, List, Optional

from autograde.errors import NotFoundError, ValidationError
from autograde.libs.submission_store import SubmissionStore
from autograde.tools.auto_grading.models import Submission, SubmissionStatus, utcnow

LOG = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class ReviewQueue:
    """Manages submissions that need a human decision."""

    def __init__(self, store: SubmissionStore, page_size: int = DEFAULT_PAGE_SIZE):
        """
        Args:
            store: Submission store
            page_size: Maximum number of flagged submissions returned per listing
        """
        self.store = store
        self.page_size = page_size

    def list_flagged(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Flagged submissions, most recently auto-graded first.

        Each entry is enriched with ``student`` and ``task`` objects; missing
        join targets get placeholder values instead of failing the listing.
        """
        flagged = self.store.list_review_queue(limit or self.page_size)
        return [self._enrich(submission) for submission in flagged]

    @staticmethod
    def _enrich(submission: Submission) -> Dict[str, Any]:
        data = submission.model_dump(
            mode="json",
            exclude={"student_name", "task_title", "task_instructions", "task_max_score"},
        )
        data['student'] = {
            'id': submission.student_id,
            'full_name': submission.student_name or 'Unknown Student',
        }
        data['task'] = {
            'id': submission.task_id,
            'title': submission.task_title or 'Unknown Task',
            'max_score': submission.task_max_score if submission.task_max_score is not None else 100,
        }
        return data

    def apply_decision(self, submission_id: Optional[str], approved: Any,
                       final_points: Optional[float] = None,
                       feedback: Optional[str] = None) -> Dict[str, Any]:
        """
        Approve or reject a flagged submission.

        Approval marks it graded and keeps the AI points and feedback unless
        overrides are given. Rejection marks it rejected and leaves points and
        feedback untouched. Both clear ``needs_review`` and stamp ``graded_at``.

        Args:
            submission_id: Submission to decide on
            approved: True to approve, False to reject
            final_points: Optional points override (approval only)
            feedback: Optional feedback override (approval only)

        Returns:
            The updated submission as a JSON-ready dict

        Raises:
            ValidationError: If the id is missing or the arguments are malformed
            NotFoundError: If the submission does not exist
        """
        if not submission_id:
            raise ValidationError("Submission ID required")
        if not isinstance(approved, bool):
            raise ValidationError("'approved' must be true or false")
        if final_points is not None and (isinstance(final_points, bool) or not isinstance(final_points, Number)):
            raise ValidationError("'finalPoints' must be a number")
        if feedback is not None and not isinstance(feedback, str):
            raise ValidationError("'feedback' must be a string")

        if self.store.get_submission(submission_id) is None:
            raise NotFoundError(f"Submission {submission_id} not found")

        updates: Dict[str, Any] = {
            'needs_review': False,
            'graded_at': utcnow(),
        }
        if approved:
            updates['status'] = SubmissionStatus.GRADED.value
            if final_points is not None:
                updates['points'] = final_points
            if feedback is not None:
                updates['feedback'] = feedback
        else:
            updates['status'] = SubmissionStatus.REJECTED.value

        updated = self.store.update_submission(submission_id, updates)
        LOG.info(f"Submission {submission_id} {'approved' if approved else 'rejected'} by admin")
        return updated.model_dump(
            mode="json",
            exclude={"student_name", "task_title", "task_instructions", "task_max_score"},
        )
