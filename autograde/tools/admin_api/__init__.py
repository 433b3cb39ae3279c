"""HTTP admin API for triggering auto-grading and working the review queue."""

from .app import create_app, run_server

__all__ = ['create_app', 'run_server']
