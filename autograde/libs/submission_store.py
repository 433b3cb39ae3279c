"""SQLAlchemy-backed store for submissions, tasks and student profiles."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import (
    Boolean, Column, DateTime, Float, Integer, MetaData, String, Table, Text,
    create_engine, func, insert, select, update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from autograde.errors import NotFoundError, PersistenceError
from autograde.libs.config_loader import ConfigType, get_config
from autograde.tools.auto_grading.models import Submission, SubmissionStatus, Task, utcnow

LOG = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./autograde.db"

metadata = MetaData()

tasks = Table(
    "tasks", metadata,
    Column("id", String, primary_key=True),
    Column("title", String),
    Column("instructions", Text),
    Column("max_score", Integer),
)

user_profiles = Table(
    "user_profiles", metadata,
    Column("id", String, primary_key=True),
    Column("full_name", String),
)

# No foreign keys: rows may reference tasks or students that were removed.
submissions = Table(
    "submissions", metadata,
    Column("id", String, primary_key=True),
    Column("task_id", String),
    Column("student_id", String),
    Column("content", Text),
    Column("file_url", String),
    Column("status", String, nullable=False, default=SubmissionStatus.SUBMITTED.value),
    Column("ai_score", Integer),
    Column("points", Float),
    Column("feedback", Text),
    Column("needs_review", Boolean, nullable=False, default=False),
    Column("submitted_at", DateTime(timezone=True)),
    Column("auto_graded_at", DateTime(timezone=True)),
    Column("graded_at", DateTime(timezone=True)),
)

UPDATABLE_FIELDS = frozenset({
    "status", "points", "feedback", "ai_score", "needs_review", "auto_graded_at", "graded_at",
})


class SubmissionStore:
    """Read and update submission rows, joined with task and student metadata."""

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, engine: Optional[Engine] = None):
        self.database_url = database_url
        self.engine = engine or create_engine(database_url, pool_pre_ping=True)

    @classmethod
    def from_config(cls, configs: ConfigType) -> "SubmissionStore":
        url = get_config("store.database_url", configs, default=None) or DEFAULT_DATABASE_URL
        return cls(url)

    @contextmanager
    def _connect(self, write: bool = False) -> Iterator[Connection]:
        try:
            if write:
                with self.engine.begin() as conn:
                    yield conn
            else:
                with self.engine.connect() as conn:
                    yield conn
        except SQLAlchemyError as e:
            LOG.error(f"Submission store error: {e}")
            raise PersistenceError(str(e)) from e

    def create_schema(self) -> None:
        """Create the tables if they do not exist."""
        with self._connect(write=True) as conn:
            metadata.create_all(conn)

    def _joined_select(self):
        joined = (
            submissions
            .outerjoin(tasks, submissions.c.task_id == tasks.c.id)
            .outerjoin(user_profiles, submissions.c.student_id == user_profiles.c.id)
        )
        return select(
            submissions,
            user_profiles.c.full_name.label("student_name"),
            tasks.c.title.label("task_title"),
            tasks.c.instructions.label("task_instructions"),
            tasks.c.max_score.label("task_max_score"),
        ).select_from(joined)

    def fetch_pending(self, limit: int) -> List[Submission]:
        """Oldest ``submitted`` rows first, at most ``limit`` of them."""
        stmt = (
            self._joined_select()
            .where(submissions.c.status == SubmissionStatus.SUBMITTED.value)
            .order_by(submissions.c.submitted_at.asc())
            .limit(limit)
        )
        with self._connect() as conn:
            return [Submission(**row._mapping) for row in conn.execute(stmt)]

    def list_review_queue(self, limit: int) -> List[Submission]:
        """Rows flagged for review, most recently auto-graded first."""
        stmt = (
            self._joined_select()
            .where(submissions.c.needs_review.is_(True))
            .order_by(submissions.c.auto_graded_at.desc())
            .limit(limit)
        )
        with self._connect() as conn:
            return [Submission(**row._mapping) for row in conn.execute(stmt)]

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        stmt = self._joined_select().where(submissions.c.id == submission_id)
        with self._connect() as conn:
            row = conn.execute(stmt).first()
        return Submission(**row._mapping) if row else None

    def update_submission(self, submission_id: str, fields: Dict[str, Any]) -> Submission:
        """
        Update grading fields of one submission.

        Raises:
            ValueError: If a field outside the grading fields is given
            NotFoundError: If the submission does not exist
            PersistenceError: If the database write fails
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update submission fields: {sorted(unknown)}")

        with self._connect(write=True) as conn:
            result = conn.execute(
                update(submissions).where(submissions.c.id == submission_id).values(**fields)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Submission {submission_id} not found")

        LOG.debug(f"Updated submission {submission_id}: {sorted(fields)}")
        return self.get_submission(submission_id)

    def count_pending(self) -> int:
        stmt = select(func.count()).select_from(submissions).where(
            submissions.c.status == SubmissionStatus.SUBMITTED.value
        )
        with self._connect() as conn:
            return conn.execute(stmt).scalar_one()

    def count_review_queue(self) -> int:
        stmt = select(func.count()).select_from(submissions).where(submissions.c.needs_review.is_(True))
        with self._connect() as conn:
            return conn.execute(stmt).scalar_one()

    def last_auto_graded_at(self) -> Optional[datetime]:
        stmt = select(func.max(submissions.c.auto_graded_at))
        with self._connect() as conn:
            return conn.execute(stmt).scalar()

    # Seeding helpers; submissions are normally created by the student-facing app.

    def add_task(self, task: Task) -> None:
        with self._connect(write=True) as conn:
            conn.execute(insert(tasks).values(**task.model_dump()))

    def add_student(self, student_id: str, full_name: str) -> None:
        with self._connect(write=True) as conn:
            conn.execute(insert(user_profiles).values(id=student_id, full_name=full_name))

    def add_submission(self, submission_id: str, task_id: Optional[str], student_id: Optional[str],
                       content: Optional[str] = None, file_url: Optional[str] = None,
                       submitted_at: Optional[datetime] = None, **fields: Any) -> None:
        values = {
            "id": submission_id,
            "task_id": task_id,
            "student_id": student_id,
            "content": content,
            "file_url": file_url,
            "submitted_at": submitted_at or utcnow(),
        }
        values.update(fields)
        with self._connect(write=True) as conn:
            conn.execute(insert(submissions).values(**values))
