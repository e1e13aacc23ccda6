"""Attempt submission and retrieval routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from studybuddy.api.deps import get_current_user, get_progress_store
from studybuddy.api.quizzes import get_owned_quiz
from studybuddy.db.models import User
from studybuddy.db.session import get_db
from studybuddy.schemas.attempt import (
    AttemptRead,
    AttemptRecord,
    AttemptResult,
    AttemptSubmit,
)
from studybuddy.services.progress_engine import percentage
from studybuddy.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_read(attempt: AttemptRecord) -> AttemptRead:
    return AttemptRead(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        score=attempt.score,
        total_questions=attempt.total_questions,
        percentage=percentage(attempt.score, attempt.total_questions),
        time_spent=attempt.time_spent,
        completed_at=attempt.completed_at,
    )


@router.post("/", response_model=AttemptResult, status_code=status.HTTP_201_CREATED)
def submit_attempt(
    body: AttemptSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: ProgressStore = Depends(get_progress_store),
):
    """Grade a quiz submission, store it and fold it into the user's progress.

    1. Grades every answer against the quiz's correct option
    2. Appends the attempt
    3. Updates streak, averages, study time and per-topic mastery
    Steps 2 and 3 commit together.
    """
    quiz = get_owned_quiz(db, body.quiz_id, current_user)
    attempt, progress = store.record_attempt(
        current_user.id,
        quiz,
        body.answers,
        time_spent=body.time_spent,
        completed_at=body.completed_at,
    )
    return AttemptResult(attempt=_to_read(attempt), progress=progress)


@router.get("/", response_model=list[AttemptRead])
def list_attempts(
    quiz_id: uuid.UUID | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    store: ProgressStore = Depends(get_progress_store),
):
    """List the current user's attempts, newest first."""
    return [
        _to_read(a)
        for a in store.list_attempts(current_user.id, quiz_id=quiz_id, limit=limit)
    ]
