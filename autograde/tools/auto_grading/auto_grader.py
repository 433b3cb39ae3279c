"""Batch auto-grader: grade pending submissions one at a time and persist the outcome."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx
from tqdm import tqdm

from autograde.errors import NoContentError, ScoreExtractionError
from autograde.libs.config_loader import ConfigType
from .gateway import ModelGateway
from .grader import SubmissionGrader
from .models import (
    ERROR_STATUS, AutoGradeResult, BatchRunSummary, GradingPolicy, Submission,
    SubmissionStatus, utcnow,
)
from .notebook import resolve_submission_text

if TYPE_CHECKING:
    from autograde.libs.submission_store import SubmissionStore

LOG = logging.getLogger(__name__)

UNKNOWN_STUDENT = "Unknown Student"

EMPTY_SUBMISSION_FEEDBACK = (
    "Təqdimat boşdur - məzmun və ya fayl tapılmadı. Admin tərəfindən yoxlanılmalıdır."
)
UNREADABLE_SUBMISSION_FEEDBACK = (
    "Təqdim olunan faylın məzmunu oxuna bilmədi. Admin tərəfindən yoxlanılmalıdır."
)


@dataclass(frozen=True)
class Decision:
    """Business-rule outcome for an extracted score."""
    final_score: int
    status: str
    needs_review: bool
    bonus_applied: bool


def decide(ai_score: int, task_max_score: int, policy: GradingPolicy) -> Decision:
    """
    Apply the bonus/review rules to a model score.

    Scores at or above the bonus threshold are finalized with bonus points,
    capped by both the task maximum and the hard cap. Anything lower keeps its
    score and goes to the review queue.
    """
    if ai_score >= policy.bonus_threshold:
        boosted = ai_score + policy.bonus_points
        final_score = min(task_max_score, min(policy.max_score, boosted))
        return Decision(
            final_score=final_score,
            status=SubmissionStatus.GRADED.value,
            needs_review=False,
            bonus_applied=boosted == final_score,
        )
    return Decision(
        final_score=ai_score,
        status=SubmissionStatus.PENDING_REVIEW.value,
        needs_review=True,
        bonus_applied=False,
    )


class AutoGrader:
    """Grade a bounded batch of pending submissions sequentially."""

    def __init__(self, configs: ConfigType, store: "SubmissionStore",
                 gateway: Optional[ModelGateway] = None,
                 policy: Optional[GradingPolicy] = None,
                 model: Optional[str] = None,
                 http_transport: Optional[httpx.AsyncBaseTransport] = None,
                 show_progress: bool = False):
        """
        Initialize the auto-grader.

        Args:
            configs: Configuration dictionary
            store: Submission store to read from and write to
            gateway: Model gateway (built from configs when omitted)
            policy: Business constants (read from the ``grading`` config section when omitted)
            model: Optional model override
            http_transport: Transport used to fetch uploaded files
            show_progress: Show a progress bar while grading

        Raises:
            ConfigurationError: If the model API key is missing
        """
        self.configs = configs
        self.store = store
        self.policy = policy or GradingPolicy.from_config(configs)
        self.gateway = gateway or ModelGateway(configs, model=model)
        self.grader = SubmissionGrader(self.gateway, self.policy.prompt_char_limit)
        self.http_transport = http_transport
        self.show_progress = show_progress

        LOG.info(f"AutoGrader initialized with batch_size={self.policy.batch_size}, "
                 f"bonus_threshold={self.policy.bonus_threshold}")

    async def grade_batch_async(self, batch_size: Optional[int] = None) -> BatchRunSummary:
        """
        Grade the oldest pending submissions.

        Args:
            batch_size: Number of submissions to take (defaults to the policy's batch size)

        Returns:
            BatchRunSummary with one result per fetched submission

        Raises:
            PersistenceError: If the pending submissions cannot be fetched
        """
        batch_size = batch_size or self.policy.batch_size
        pending = self.store.fetch_pending(batch_size)
        summary = BatchRunSummary(fetched=len(pending))
        if not pending:
            LOG.info("No pending submissions to process")
            return summary

        LOG.info(f"Grading {len(pending)} pending submissions")
        async with httpx.AsyncClient(timeout=self.policy.fetch_timeout_seconds,
                                     transport=self.http_transport) as client:
            for submission in tqdm(pending, desc="Grading submissions", disable=not self.show_progress):
                result = await self._grade_single_submission_async(submission, client)
                summary.results.append(result)

        LOG.info(summary.message)
        return summary

    def grade_batch(self, batch_size: Optional[int] = None) -> BatchRunSummary:
        """Synchronous wrapper for grade_batch_async."""
        return asyncio.run(self.grade_batch_async(batch_size))

    async def _grade_single_submission_async(self, submission: Submission,
                                             client: httpx.AsyncClient) -> AutoGradeResult:
        """Grade one submission; every failure becomes an ``error`` result."""
        student_name = submission.student_name or UNKNOWN_STUDENT
        task = submission.task()

        try:
            if not submission.has_payload:
                return self._flag_for_manual_review(
                    submission, student_name, EMPTY_SUBMISSION_FEEDBACK,
                    "Empty submission - flagged for admin review",
                )

            try:
                text = await resolve_submission_text(submission.content, submission.file_url, client)
            except NoContentError as e:
                return self._flag_for_manual_review(
                    submission, student_name, UNREADABLE_SUBMISSION_FEEDBACK,
                    f"{e} - flagged for admin review",
                )

            grading = await self.grader.grade_async(text, student_name, task)
            if grading.score is None:
                raise ScoreExtractionError("AI did not return a suggested score")

            decision = decide(grading.score, task.max_score, self.policy)
            now = utcnow()
            self.store.update_submission(submission.id, {
                'points': decision.final_score,
                'feedback': grading.feedback,
                'status': decision.status,
                'ai_score': grading.score,
                'needs_review': decision.needs_review,
                'auto_graded_at': now,
                'graded_at': now if decision.status == SubmissionStatus.GRADED.value else None,
            })

            LOG.info(f"[Auto-Grade] {student_name}: AI={grading.score}, "
                     f"Final={decision.final_score}, Status={decision.status}")

            return AutoGradeResult(
                submission_id=submission.id,
                student_name=student_name,
                ai_score=grading.score,
                final_score=decision.final_score,
                status=decision.status,
                bonus_applied=decision.bonus_applied,
            )

        except Exception as e:  # pylint: disable=broad-except
            LOG.error(f"Error processing submission {submission.id}: {e}")
            return AutoGradeResult(
                submission_id=submission.id,
                student_name=student_name,
                ai_score=None,
                final_score=None,
                status=ERROR_STATUS,
                error=str(e) or type(e).__name__,
            )

    def _flag_for_manual_review(self, submission: Submission, student_name: str,
                                feedback: str, reason: str) -> AutoGradeResult:
        """Route an ungradable submission to the review queue with a zero score."""
        self.store.update_submission(submission.id, {
            'status': SubmissionStatus.PENDING_REVIEW.value,
            'needs_review': True,
            'feedback': feedback,
            'ai_score': 0,
            'points': 0,
            'auto_graded_at': utcnow(),
        })
        LOG.warning(f"[Auto-Grade] {student_name}: {reason}")
        return AutoGradeResult(
            submission_id=submission.id,
            student_name=student_name,
            ai_score=0,
            final_score=0,
            status=SubmissionStatus.PENDING_REVIEW.value,
            error=reason,
        )

    def status(self) -> Dict[str, Any]:
        """Pending and review-queue counts plus the active configuration."""
        return status_report(self.store, self.policy)


def status_report(store: "SubmissionStore", policy: GradingPolicy) -> Dict[str, Any]:
    """Status probe payload; needs no model credentials."""
    last = store.last_auto_graded_at()
    return {
        'pendingSubmissions': store.count_pending(),
        'reviewQueueCount': store.count_review_queue(),
        'lastAutoGradedAt': last.isoformat() if last else None,
        'config': policy.to_dict(),
    }
