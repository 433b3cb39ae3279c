"""LMS auto-grading pipeline: batch model grading and admin review queue."""
