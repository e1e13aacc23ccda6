"""Progress & analytics routes."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from studybuddy.api.deps import (
    get_current_user,
    get_genai_cache,
    get_genai_client,
    get_progress_store,
    require_genai_rate_limit,
)
from studybuddy.config import settings
from studybuddy.core.errors import UpstreamError
from studybuddy.db.models import Quiz, QuizAttempt, User
from studybuddy.db.session import get_db
from studybuddy.schemas.progress import (
    AnalyticsRead,
    ProgressRead,
    RecommendationsRead,
    StudyRecommendation,
    TopicProgress,
    TopicsRead,
)
from studybuddy.services.analytics import build_analytics
from studybuddy.services.genai_cache import GenAICache
from studybuddy.services.genai_client import GenAIClient
from studybuddy.services.progress_store import ProgressStore
from studybuddy.services.topics import aggregate_topics, top_topics

logger = logging.getLogger(__name__)
router = APIRouter()

_RECENT_TOPICS = 5


def _attempted_quizzes(db: Session, user: User) -> list[Quiz]:
    """Quizzes the user has submitted at least once."""
    attempted = (
        select(QuizAttempt.quiz_id)
        .where(QuizAttempt.user_id == user.id)
        .distinct()
    )
    return db.query(Quiz).filter(Quiz.id.in_(attempted)).all()


def _recent_topics(topics: list[TopicProgress]) -> list[str]:
    dated = [t for t in topics if t.last_studied is not None]
    dated.sort(key=lambda t: t.last_studied, reverse=True)
    return [t.topic for t in dated[:_RECENT_TOPICS]]


def _fallback_recommendations(progress: ProgressRead) -> list[StudyRecommendation]:
    """Rule-based suggestions used when Gemini is unavailable."""
    by_topic = {t.topic: t for t in progress.topics}
    recs: list[StudyRecommendation] = []
    for name in progress.weak_topics:
        topic = by_topic.get(name)
        if topic is None:
            continue
        recs.append(
            StudyRecommendation(
                topic=name,
                subject=topic.subject,
                reason=(
                    f"Your mastery is {topic.mastery_level}%, below "
                    f"{settings.WEAK_TOPIC_THRESHOLD}%. Review it before moving on."
                ),
                priority="high",
            )
        )
    return recs


@router.get("/", response_model=ProgressRead)
def get_progress(
    current_user: User = Depends(get_current_user),
    store: ProgressStore = Depends(get_progress_store),
):
    """Return the current user's progress record, creating it on first access."""
    return store.get_or_create(current_user.id)


@router.get("/topics", response_model=TopicsRead)
def get_topics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: ProgressStore = Depends(get_progress_store),
):
    """Per-topic question volume and mastery across attempted quizzes."""
    progress = store.get_or_create(current_user.id)
    summaries = aggregate_topics(_attempted_quizzes(db, current_user), progress.topics)
    return TopicsRead(
        topics=summaries,
        top_topics=top_topics(summaries),
        weak_topics=progress.weak_topics,
        strong_topics=progress.strong_topics,
    )


@router.get("/analytics", response_model=AnalyticsRead)
def get_analytics(
    history: int = Query(default=settings.SCORE_HISTORY_LIMIT, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: ProgressStore = Depends(get_progress_store),
):
    """Chart series: daily activity, score history, topic distribution."""
    progress = store.get_or_create(current_user.id)
    attempts = store.list_attempts(current_user.id)
    summaries = aggregate_topics(_attempted_quizzes(db, current_user), progress.topics)
    return build_analytics(progress, attempts, summaries, history=history)


@router.get("/recommendations", response_model=RecommendationsRead)
def get_recommendations(
    current_user: User = Depends(get_current_user),
    store: ProgressStore = Depends(get_progress_store),
    client: GenAIClient = Depends(get_genai_client),
    cache: GenAICache = Depends(get_genai_cache),
    _rl: None = Depends(require_genai_rate_limit),
):
    """Personalised study recommendations from Gemini.

    Falls back to weak-topic suggestions when Gemini fails.
    """
    progress = store.get_or_create(current_user.id)
    if not progress.topics:
        return RecommendationsRead(source="fallback", recommendations=[])

    recent = _recent_topics(progress.topics)
    params = {
        "topics": [(t.topic, t.mastery_level) for t in progress.topics],
        "weak": progress.weak_topics,
        "recent": recent,
    }
    cached = cache.get("recommendations", params)
    if cached is not None:
        return RecommendationsRead(
            source="cache",
            recommendations=[StudyRecommendation.model_validate(r) for r in cached],
        )

    try:
        recs = client.generate_recommendations(
            progress.topics, progress.weak_topics, recent
        )
    except UpstreamError as exc:
        logger.warning(
            "Recommendations unavailable for user %s, using fallback: %s",
            current_user.id,
            exc,
        )
        return RecommendationsRead(
            source="fallback", recommendations=_fallback_recommendations(progress)
        )

    cache.set("recommendations", params, [r.model_dump() for r in recs])
    return RecommendationsRead(source="genai", recommendations=recs)
