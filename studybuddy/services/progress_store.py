"""Persistence for progress records and attempts.

``ProgressStore`` wraps one SQLAlchemy session. It converts between ORM rows
and the engine's pydantic records (timestamps become timezone-aware UTC on
the way out) and performs the guarded read-modify-write that ingests an
attempt.

Concurrency
-----------
Progress rows carry a ``version``. ``set`` writes
``WHERE user_id = :uid AND version = :version_read`` and bumps the version;
zero affected rows means another writer got there first. A first-time insert
racing another insert trips the unique ``user_id`` constraint. Both surface
as :class:`ConflictError` after rolling the transaction back, and
``record_attempt`` retries the whole cycle a bounded number of times.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone, tzinfo

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studybuddy.config import settings
from studybuddy.core.errors import ConflictError, NotFoundError
from studybuddy.db.models import LearningProgress, Quiz, QuizAttempt
from studybuddy.schemas.attempt import AttemptRecord
from studybuddy.schemas.progress import ProgressRead, TopicProgress
from studybuddy.schemas.quiz import QuestionRead
from studybuddy.services.grading import grade_answers
from studybuddy.services.progress_engine import ensure_aware, ingest, validate_attempt
from studybuddy.services.topics import apply_attempt_topics, refresh_classification

logger = logging.getLogger(__name__)


def _to_record(row: LearningProgress) -> ProgressRead:
    return ProgressRead(
        user_id=row.user_id,
        topics=[TopicProgress.model_validate(t) for t in (row.topics or [])],
        total_quizzes_taken=row.total_quizzes_taken,
        average_score=row.average_score,
        streak_days=row.streak_days,
        last_study_date=(
            ensure_aware(row.last_study_date) if row.last_study_date else None
        ),
        study_time_total=row.study_time_total,
        weak_topics=list(row.weak_topics or []),
        strong_topics=list(row.strong_topics or []),
        version=row.version,
    )


def _to_columns(progress: ProgressRead) -> dict:
    return {
        "topics": [t.model_dump(mode="json") for t in progress.topics],
        "total_quizzes_taken": progress.total_quizzes_taken,
        "average_score": progress.average_score,
        "streak_days": progress.streak_days,
        "last_study_date": progress.last_study_date,
        "study_time_total": progress.study_time_total,
        "weak_topics": list(progress.weak_topics),
        "strong_topics": list(progress.strong_topics),
    }


def _attempt_record(row: QuizAttempt) -> AttemptRecord:
    record = AttemptRecord.model_validate(row)
    return record.model_copy(update={"completed_at": ensure_aware(row.completed_at)})


class ProgressStore:
    """Progress and attempt persistence bound to one session."""

    def __init__(
        self,
        db: Session,
        *,
        tz: tzinfo | str | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.db = db
        self.tz = tz
        self.max_retries = (
            settings.PROGRESS_WRITE_RETRIES if max_retries is None else max_retries
        )

    # ── progress records ──────────────────────────────────────────────────

    def get(self, user_id: uuid.UUID) -> ProgressRead:
        """Return the stored record. Raises NotFoundError if there is none."""
        row = (
            self.db.query(LearningProgress)
            .filter(LearningProgress.user_id == user_id)
            .populate_existing()
            .first()
        )
        if row is None:
            raise NotFoundError(f"No learning progress for user {user_id}")
        return _to_record(row)

    def get_or_create(self, user_id: uuid.UUID) -> ProgressRead:
        """Return the record, creating a zeroed one on first access."""
        try:
            return self.get(user_id)
        except NotFoundError:
            logger.info("Creating initial learning progress for user %s", user_id)

        try:
            stored = self.set(ProgressRead(user_id=user_id))
            self.db.commit()
            return stored
        except ConflictError:
            # Another request created it between our read and insert.
            return self.get(user_id)

    def set(self, progress: ProgressRead) -> ProgressRead:
        """Write *progress* if nobody else has written since it was read.

        Does not commit. On conflict the transaction is rolled back and
        ConflictError is raised.
        """
        values = _to_columns(progress)

        if progress.version == 0:
            self.db.add(LearningProgress(user_id=progress.user_id, version=1, **values))
            try:
                self.db.flush()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError(
                    f"Learning progress for user {progress.user_id} already exists"
                ) from exc
            return progress.model_copy(update={"version": 1})

        result = self.db.execute(
            update(LearningProgress)
            .where(
                LearningProgress.user_id == progress.user_id,
                LearningProgress.version == progress.version,
            )
            .values(version=progress.version + 1, **values)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise ConflictError(
                f"Learning progress for user {progress.user_id} changed concurrently",
                details={"expected_version": progress.version},
            )
        return progress.model_copy(update={"version": progress.version + 1})

    # ── attempts ──────────────────────────────────────────────────────────

    def list_attempts(
        self,
        user_id: uuid.UUID,
        quiz_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[AttemptRecord]:
        """Attempts for *user_id*, newest first."""
        q = self.db.query(QuizAttempt).filter(QuizAttempt.user_id == user_id)
        if quiz_id is not None:
            q = q.filter(QuizAttempt.quiz_id == quiz_id)
        q = q.order_by(QuizAttempt.completed_at.desc())
        if limit is not None:
            q = q.limit(limit)
        return [_attempt_record(row) for row in q.all()]

    def append_attempt(self, attempt: AttemptRecord) -> uuid.UUID:
        row = QuizAttempt(
            quiz_id=attempt.quiz_id,
            user_id=attempt.user_id,
            answers=list(attempt.answers),
            score=attempt.score,
            total_questions=attempt.total_questions,
            time_spent=attempt.time_spent,
            completed_at=ensure_aware(attempt.completed_at),
        )
        self.db.add(row)
        self.db.flush()
        return row.id

    # ── ingestion ─────────────────────────────────────────────────────────

    def record_attempt(
        self,
        user_id: uuid.UUID,
        quiz: Quiz,
        answers: Sequence[int | None],
        *,
        time_spent: int = 0,
        completed_at: datetime | None = None,
    ) -> tuple[AttemptRecord, ProgressRead]:
        """Grade, store and ingest one attempt atomically.

        The attempt row and the progress update commit together. Invalid
        attempts raise ValidationError before anything is written.

        Raises:
            ValidationError: malformed answers or attempt.
            ConflictError: still conflicting after ``max_retries`` retries.
        """
        questions = [QuestionRead.model_validate(q) for q in quiz.questions]
        subject = quiz.subject
        marks = grade_answers(questions, answers)

        attempt = AttemptRecord(
            quiz_id=quiz.id,
            user_id=user_id,
            answers=list(answers),
            score=sum(marks),
            total_questions=len(questions),
            completed_at=ensure_aware(
                completed_at or datetime.now(timezone.utc)
            ).astimezone(timezone.utc),
            time_spent=time_spent,
        )
        validate_attempt(attempt)

        for attempt_no in range(self.max_retries + 1):
            try:
                current = self.get(user_id)
            except NotFoundError:
                current = ProgressRead(user_id=user_id)

            updated = ingest(attempt, current, self.tz)
            updated = updated.model_copy(
                update={
                    "topics": apply_attempt_topics(
                        updated.topics,
                        questions,
                        attempt.answers,
                        attempt.completed_at,
                        subject=subject,
                    )
                }
            )
            updated = refresh_classification(updated)

            try:
                attempt_id = self.append_attempt(attempt)
                stored = self.set(updated)
                self.db.commit()
            except ConflictError:
                logger.warning(
                    "Progress write conflict for user %s (try %d/%d)",
                    user_id,
                    attempt_no + 1,
                    self.max_retries + 1,
                )
                continue

            logger.info(
                "Recorded attempt %s for user %s: %d/%d, avg=%d streak=%d",
                attempt_id,
                user_id,
                attempt.score,
                attempt.total_questions,
                stored.average_score,
                stored.streak_days,
            )
            return attempt.model_copy(update={"id": attempt_id}), stored

        raise ConflictError(
            "Could not save progress because of concurrent updates; please retry",
            details={"retries": self.max_retries},
        )
