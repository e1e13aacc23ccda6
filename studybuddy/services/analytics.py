"""Chart-ready views over a progress record and attempt history.

Everything here is a pure function of its inputs, safe to recompute on every
request, and returns zeroed or empty structures instead of raising when
there is no history yet.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone, tzinfo

from studybuddy.config import settings
from studybuddy.schemas.attempt import AttemptRecord
from studybuddy.schemas.progress import (
    Achievement,
    AnalyticsRead,
    DailyActivity,
    OverviewStats,
    ProgressRead,
    ScorePoint,
    TopicMasterySummary,
    TopicShare,
)
from studybuddy.services.progress_engine import (
    ensure_aware,
    local_date,
    percentage,
    round_half_up,
)
from studybuddy.services.topics import top_topics

ACTIVITY_WINDOW_DAYS = 7
PALETTE = ["#3b82f6", "#22c55e", "#f59e0b", "#ef4444", "#8b5cf6"]
_WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def daily_activity(
    attempts: Sequence[AttemptRecord],
    today: date | None = None,
    tz: tzinfo | str | None = None,
) -> list[DailyActivity]:
    """Attempt counts for the trailing 7 calendar days, oldest first.

    Days without attempts are present with ``count == 0``.
    """
    if today is None:
        today = local_date(datetime.now(timezone.utc), tz)

    days = [
        today - timedelta(days=offset)
        for offset in range(ACTIVITY_WINDOW_DAYS - 1, -1, -1)
    ]
    counts = {d: 0 for d in days}
    seconds = {d: 0 for d in days}

    for attempt in attempts:
        day = local_date(attempt.completed_at, tz)
        if day in counts:
            counts[day] += 1
            seconds[day] += max(attempt.time_spent, 0)

    return [
        DailyActivity(
            date=d,
            label=_WEEKDAY_LABELS[d.weekday()],
            count=counts[d],
            minutes=round_half_up(seconds[d] / 60),
        )
        for d in days
    ]


def score_history(
    attempts: Sequence[AttemptRecord], limit: int | None = None
) -> list[ScorePoint]:
    """Percent scores of the latest *limit* attempts in chronological order."""
    limit = settings.SCORE_HISTORY_LIMIT if limit is None else limit
    if limit <= 0:
        return []

    scored = [a for a in attempts if a.total_questions > 0]
    latest = sorted(scored, key=lambda a: ensure_aware(a.completed_at), reverse=True)[:limit]
    latest.reverse()

    return [
        ScorePoint(
            label=f"Quiz {i + 1}",
            score=percentage(a.score, a.total_questions),
            completed_at=ensure_aware(a.completed_at),
        )
        for i, a in enumerate(latest)
    ]


def topic_distribution(
    summaries: Sequence[TopicMasterySummary], limit: int | None = None
) -> list[TopicShare]:
    """Share of all question volume held by each displayed topic.

    Colours follow position in the list, not topic identity.
    """
    volume = sum(s.total for s in summaries)
    if volume <= 0:
        return []
    return [
        TopicShare(
            topic=s.topic,
            value=percentage(s.total, volume),
            color=PALETTE[i % len(PALETTE)],
        )
        for i, s in enumerate(top_topics(summaries, limit))
    ]


def overview(progress: ProgressRead) -> OverviewStats:
    return OverviewStats(
        streak_days=progress.streak_days,
        total_quizzes_taken=progress.total_quizzes_taken,
        average_score=progress.average_score,
        study_time_total=progress.study_time_total,
        topics_tracked=len(progress.topics),
    )


def achievements(
    progress: ProgressRead, attempts: Sequence[AttemptRecord]
) -> list[Achievement]:
    high_score = any(
        a.total_questions > 0 and a.score / a.total_questions >= 0.9 for a in attempts
    )
    badges = [
        ("first_steps", "First Steps", "Complete your first quiz", "🎯",
         progress.total_quizzes_taken >= 1),
        ("quiz_master", "Quiz Master", "Complete 10 quizzes", "📚",
         progress.total_quizzes_taken >= 10),
        ("streak_starter", "Streak Starter", "Study for 3 days in a row", "🔥",
         progress.streak_days >= 3),
        ("week_warrior", "Week Warrior", "Study for 7 days in a row", "⚔️",
         progress.streak_days >= 7),
        ("high_achiever", "High Achiever", "Score 90%+ on any quiz", "⭐", high_score),
        ("dedicated_learner", "Dedicated Learner", "Study for 100+ minutes", "🏆",
         progress.study_time_total >= 100),
    ]
    return [
        Achievement(key=key, title=title, description=desc, icon=icon, unlocked=unlocked)
        for key, title, desc, icon, unlocked in badges
    ]


def build_analytics(
    progress: ProgressRead,
    attempts: Sequence[AttemptRecord],
    summaries: Sequence[TopicMasterySummary],
    *,
    history: int | None = None,
    today: date | None = None,
    tz: tzinfo | str | None = None,
) -> AnalyticsRead:
    return AnalyticsRead(
        overview=overview(progress),
        daily_activity=daily_activity(attempts, today=today, tz=tz),
        score_history=score_history(attempts, history),
        topic_distribution=topic_distribution(summaries),
        achievements=achievements(progress, attempts),
    )
