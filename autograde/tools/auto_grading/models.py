"""Data models for the auto-grading pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from autograde.libs.config_loader import ConfigType, get_config


class SubmissionStatus(str, Enum):
    """Lifecycle status of a submission row."""
    SUBMITTED = "submitted"
    PENDING_REVIEW = "pending_review"
    GRADED = "graded"
    REJECTED = "rejected"


# Per-item batch outcome only; never written to the store.
ERROR_STATUS = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(BaseModel):
    """Grading context for a submission. Read-only to the pipeline."""
    id: str = Field(description="Task identifier")
    title: str = Field(default="Task", description="Task title")
    instructions: str = Field(default="No instructions", description="Instructions shown to the student")
    max_score: int = Field(default=100, description="Maximum score for the task")


class Submission(BaseModel):
    """One student's answer to one task, joined with task and student metadata."""
    id: str = Field(description="Submission identifier")
    task_id: Optional[str] = Field(default=None, description="Task reference")
    student_id: Optional[str] = Field(default=None, description="Student reference")
    content: Optional[str] = Field(default=None, description="Free-text or notebook JSON content")
    file_url: Optional[str] = Field(default=None, description="URL of an uploaded file")
    status: str = Field(default=SubmissionStatus.SUBMITTED.value, description="Lifecycle status")
    ai_score: Optional[int] = Field(default=None, description="Score suggested by the model")
    points: Optional[float] = Field(default=None, description="Final points, possibly admin-adjusted")
    feedback: Optional[str] = Field(default=None, description="Feedback text")
    needs_review: bool = Field(default=False, description="Whether an admin must adjudicate")
    submitted_at: Optional[datetime] = None
    auto_graded_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None

    # Joined fields
    student_name: Optional[str] = Field(default=None, description="Student display name")
    task_title: Optional[str] = None
    task_instructions: Optional[str] = None
    task_max_score: Optional[int] = None

    @property
    def has_payload(self) -> bool:
        """True when either content or a file reference is present."""
        return bool(self.content) or bool(self.file_url)

    def task(self) -> Task:
        """Task metadata with safe defaults for anything missing."""
        return Task(
            id=self.task_id or "",
            title=self.task_title or "Task",
            instructions=self.task_instructions or "No instructions",
            max_score=self.task_max_score or 100,
        )


class GradingResult(BaseModel):
    """Outcome of one model grading call. Consumed immediately, never stored."""
    feedback: str = Field(description="Raw model feedback text")
    score: Optional[int] = Field(default=None, description="Extracted score, clamped to the task max")
    model: str = Field(description="Model identifier used")
    tokens_used: Optional[int] = Field(default=None, description="Total tokens reported by the endpoint")
    total_code_cells: int = Field(default=0, description="Code cells found in a notebook submission")
    run_code_cells: int = Field(default=0, description="Code cells with outputs or an execution count")


@dataclass(frozen=True)
class GradingPolicy:
    """Business constants for one grading run."""
    bonus_threshold: int = 70
    bonus_points: int = 5
    max_score: int = 100
    batch_size: int = 3
    prompt_char_limit: int = 15_000
    review_page_size: int = 50
    fetch_timeout_seconds: float = 60.0

    @classmethod
    def from_config(cls, configs: ConfigType) -> "GradingPolicy":
        """Build a policy from the ``grading`` config section, keeping defaults for missing keys."""
        section = get_config("grading", configs, default={}) or {}
        overrides = {
            name: section[name]
            for name in cls.__dataclass_fields__.keys()  # type: ignore[attr-defined]
            if name in section
        }
        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bonusThreshold': self.bonus_threshold,
            'bonusPoints': self.bonus_points,
            'maxScore': self.max_score,
            'batchSize': self.batch_size,
        }


@dataclass
class AutoGradeResult:
    """Per-submission outcome of a batch run."""
    submission_id: str
    student_name: str
    ai_score: Optional[int]
    final_score: Optional[float]
    status: str
    bonus_applied: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape returned by the batch endpoint."""
        data = {
            'submissionId': self.submission_id,
            'studentName': self.student_name,
            'aiScore': self.ai_score,
            'finalScore': self.final_score,
            'status': self.status,
            'bonusApplied': self.bonus_applied,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class BatchRunSummary:
    """Aggregate result of one batch run."""
    results: List[AutoGradeResult] = field(default_factory=list)
    fetched: int = 0
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.status != ERROR_STATUS)

    @property
    def graded(self) -> int:
        return sum(1 for r in self.results if r.status == SubmissionStatus.GRADED.value)

    @property
    def flagged_for_review(self) -> int:
        return sum(1 for r in self.results if r.status == SubmissionStatus.PENDING_REVIEW.value)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status == ERROR_STATUS)

    @property
    def message(self) -> str:
        if not self.fetched:
            return "No pending submissions to process"
        return f"Processed {self.processed} of {self.fetched} submissions"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'message': self.message,
            'processed': self.processed,
            'graded': self.graded,
            'flaggedForReview': self.flagged_for_review,
            'errors': self.errors,
            'results': [r.to_dict() for r in self.results],
        }
