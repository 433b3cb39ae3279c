"""Admin review queue for submissions flagged by the auto-grader."""

from .review_queue import ReviewQueue

__all__ = ['ReviewQueue']
