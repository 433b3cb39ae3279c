"""Auto-grading of pending submissions with an LLM grading model."""

from .auto_grader import AutoGrader, Decision, decide
from .gateway import Completion, ModelGateway
from .grader import SubmissionGrader
from .models import (
    AutoGradeResult, BatchRunSummary, GradingPolicy, GradingResult, Submission,
    SubmissionStatus, Task,
)
from .notebook import flatten_notebook, parse_notebook
from .score_extractor import extract_score

__all__ = [
    'AutoGrader',
    'Decision',
    'decide',
    'Completion',
    'ModelGateway',
    'SubmissionGrader',
    'AutoGradeResult',
    'BatchRunSummary',
    'GradingPolicy',
    'GradingResult',
    'Submission',
    'SubmissionStatus',
    'Task',
    'flatten_notebook',
    'parse_notebook',
    'extract_score',
]
