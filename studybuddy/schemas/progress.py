"""Progress / analytics schemas."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field


class TopicProgress(BaseModel):
    """Per-topic mastery snapshot embedded in a progress record."""

    topic: str
    subject: str = "General"
    mastery_level: int = Field(default=0, ge=0, le=100)
    quizzes_taken: int = 0
    average_score: int = 0
    last_studied: datetime | None = None
    concepts_covered: list[str] = []
    questions_answered: int = 0
    questions_correct: int = 0


class ProgressRead(BaseModel):
    """A user's learning-progress record.

    ``version`` is owned by the store; 0 means the record has never been
    written.
    """

    user_id: uuid.UUID
    topics: list[TopicProgress] = []
    total_quizzes_taken: int = 0
    average_score: int = 0
    streak_days: int = 0
    last_study_date: datetime | None = None
    study_time_total: int = 0  # minutes
    weak_topics: list[str] = []
    strong_topics: list[str] = []
    version: int = 0


class TopicMasterySummary(BaseModel):
    """Question volume and derived correctness for one topic."""

    topic: str
    correct: int
    total: int
    percentage: int
    band: str | None = None  # "weak" | "strong" | None


class TopicsRead(BaseModel):
    topics: list[TopicMasterySummary] = []
    top_topics: list[TopicMasterySummary] = []
    weak_topics: list[str] = []
    strong_topics: list[str] = []


# ── Display series ────────────────────────────────────────────────────────────


class DailyActivity(BaseModel):
    date: date
    label: str  # "Mon", "Tue", …
    count: int = 0
    minutes: int = 0


class ScorePoint(BaseModel):
    label: str
    score: int
    completed_at: datetime


class TopicShare(BaseModel):
    topic: str
    value: int  # percent of question volume
    color: str


class OverviewStats(BaseModel):
    streak_days: int = 0
    total_quizzes_taken: int = 0
    average_score: int = 0
    study_time_total: int = 0
    topics_tracked: int = 0


class Achievement(BaseModel):
    key: str
    title: str
    description: str
    icon: str
    unlocked: bool


class AnalyticsRead(BaseModel):
    overview: OverviewStats
    daily_activity: list[DailyActivity]
    score_history: list[ScorePoint] = []
    topic_distribution: list[TopicShare] = []
    achievements: list[Achievement] = []


# ── Recommendations ───────────────────────────────────────────────────────────


class StudyRecommendation(BaseModel):
    topic: str
    subject: str = "General"
    reason: str = ""
    priority: str = "medium"  # high | medium | low
    suggested_resources: list[str] = []
    estimated_time: int = 30  # minutes


class RecommendationsRead(BaseModel):
    source: str  # "genai" | "cache" | "fallback"
    recommendations: list[StudyRecommendation] = []
