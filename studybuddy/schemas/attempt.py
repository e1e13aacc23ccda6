"""Attempt schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

from studybuddy.schemas.progress import ProgressRead


class AttemptSubmit(BaseModel):
    """POST /api/attempts/: submit all answers for a quiz.

    ``answers`` is parallel to the quiz's question order; ``None`` marks a
    skipped question.
    """

    quiz_id: uuid.UUID
    answers: list[StrictInt | None]
    time_spent: int = Field(default=0, ge=0)  # seconds
    completed_at: datetime | None = None


class AttemptRecord(BaseModel):
    """In-memory attempt handed to the progress engine.

    Deliberately unconstrained: the engine's own validation decides what is
    acceptable and raises :class:`~studybuddy.core.errors.ValidationError`.
    """

    id: uuid.UUID | None = None
    quiz_id: uuid.UUID
    user_id: uuid.UUID
    answers: list[int | None] = []
    score: int
    total_questions: int
    completed_at: datetime
    time_spent: int = 0

    model_config = {"from_attributes": True}


class AttemptRead(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    score: int
    total_questions: int
    percentage: int
    time_spent: int
    completed_at: datetime


class AttemptResult(BaseModel):
    """Response to a submission: the stored attempt and the updated progress."""

    attempt: AttemptRead
    progress: ProgressRead
