"""Daily goal schemas."""

from datetime import date

from pydantic import BaseModel, Field


class DailyGoalWrite(BaseModel):
    """PUT /api/goals/{date}"""

    target_study_time: int = Field(default=30, ge=0)  # minutes
    actual_study_time: int = Field(default=0, ge=0)
    target_quizzes: int = Field(default=1, ge=0)
    completed_quizzes: int = Field(default=0, ge=0)
    topics: list[str] = []


class DailyGoalRead(DailyGoalWrite):
    date: date
    completed: bool
