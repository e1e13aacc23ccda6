"""Quiz schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionCreate(BaseModel):
    """One multiple-choice question as authored or generated."""

    prompt: str
    options: list[str] = Field(min_length=2, max_length=6)
    correct_answer: int = Field(ge=0)
    explanation: str = ""
    topic: str = "General"
    concept: str | None = None

    @model_validator(mode="after")
    def correct_answer_in_range(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index into options")
        return self


class QuizCreate(BaseModel):
    """POST /api/quizzes/: store an authored quiz."""

    title: str
    subject: str = "General"
    difficulty: Difficulty = Difficulty.MEDIUM
    questions: list[QuestionCreate] = Field(min_length=1)


class QuizGenerateRequest(BaseModel):
    """POST /api/quizzes/generate: build a quiz from study content via Gemini."""

    subject: str = "General"
    content: str = Field(min_length=1)
    title: str | None = None
    difficulty: Difficulty = Difficulty.MEDIUM
    count: int = Field(default=5, ge=1, le=30)


class QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    prompt: str
    options: list[str]
    correct_answer: int
    explanation: str
    topic: str
    concept: str | None = None

    model_config = {"from_attributes": True}


class QuizRead(BaseModel):
    """Full quiz with its questions in order."""

    id: uuid.UUID
    title: str
    subject: str
    difficulty: Difficulty
    question_count: int
    questions: list[QuestionRead]
    created_at: datetime

    model_config = {"from_attributes": True}
