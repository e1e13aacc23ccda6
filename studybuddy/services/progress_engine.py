"""Attempt ingestion: how one completed quiz moves a user's progress record.

``ingest`` is a pure function. It reads the current record, returns the next
one, and leaves persistence to :mod:`studybuddy.services.progress_store`.

Update rules
------------
- score percent     round(100 * score / total)
- average score     incremental mean over ``total_quizzes_taken`` attempts
- streak            same calendar day → unchanged, next day → +1,
                    anything else (gap, backdated, first attempt) → 1
- last study date   always the attempt's completion time
- study time        += round(time_spent / 60) minutes

Calendar days are taken in the configured study timezone. All rounding is
half-up so 62.5 becomes 63, matching what learners see in the UI.
"""

import logging
import math
from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from studybuddy.config import settings
from studybuddy.core.errors import ValidationError
from studybuddy.schemas.attempt import AttemptRecord
from studybuddy.schemas.progress import ProgressRead

logger = logging.getLogger(__name__)


# ── numeric / calendar helpers ────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage; 0 when *whole* is 0."""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


def resolve_timezone(tz: tzinfo | str | None = None) -> tzinfo:
    if tz is None:
        tz = settings.STUDY_TIMEZONE
    if isinstance(tz, str):
        return timezone.utc if tz.upper() == "UTC" else ZoneInfo(tz)
    return tz


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def local_date(moment: datetime, tz: tzinfo | str | None = None) -> date:
    return ensure_aware(moment).astimezone(resolve_timezone(tz)).date()


def calendar_days_between(
    earlier: datetime | None, later: datetime, tz: tzinfo | str | None = None
) -> int | None:
    """Whole calendar days from *earlier* to *later*; None without *earlier*."""
    if earlier is None:
        return None
    return (local_date(later, tz) - local_date(earlier, tz)).days


# ── validation ────────────────────────────────────────────────────────────────


def validate_attempt(attempt: AttemptRecord) -> None:
    """Reject attempts the ingestor cannot apply. Raises ValidationError."""
    problems: list[str] = []
    if attempt.total_questions < 1:
        problems.append("total_questions must be at least 1")
    if attempt.score < 0:
        problems.append("score must not be negative")
    elif attempt.score > attempt.total_questions:
        problems.append("score must not exceed total_questions")
    if attempt.time_spent < 0:
        problems.append("time_spent must not be negative")
    if len(attempt.answers) != attempt.total_questions:
        problems.append("answers must have one entry per question")

    if problems:
        raise ValidationError(
            "Invalid quiz attempt: " + "; ".join(problems),
            details={"problems": problems},
        )


# ── ingestion ─────────────────────────────────────────────────────────────────


def next_streak(
    streak_days: int,
    last_study_date: datetime | None,
    completed_at: datetime,
    tz: tzinfo | str | None = None,
) -> int:
    days = calendar_days_between(last_study_date, completed_at, tz)
    if days == 0:
        return streak_days
    if days == 1:
        return streak_days + 1
    # Gap, first attempt, or an attempt dated before the last one.
    return 1


def ingest(
    attempt: AttemptRecord,
    current: ProgressRead,
    tz: tzinfo | str | None = None,
) -> ProgressRead:
    """Return the progress record that results from applying *attempt*.

    Topic-level fields are left alone; see
    :func:`studybuddy.services.topics.apply_attempt_topics`.
    Applying the same attempt twice counts it twice.
    """
    validate_attempt(attempt)

    score_percent = percentage(attempt.score, attempt.total_questions)
    taken = current.total_quizzes_taken
    new_total = taken + 1
    new_average = round_half_up(
        (current.average_score * taken + score_percent) / new_total
    )
    new_average = min(100, max(0, new_average))

    streak = next_streak(
        current.streak_days, current.last_study_date, attempt.completed_at, tz
    )

    logger.debug(
        "Ingest attempt user=%s score=%s%% avg %s→%s streak %s→%s",
        attempt.user_id,
        score_percent,
        current.average_score,
        new_average,
        current.streak_days,
        streak,
    )

    return current.model_copy(
        update={
            "total_quizzes_taken": new_total,
            "average_score": new_average,
            "streak_days": streak,
            "last_study_date": ensure_aware(attempt.completed_at),
            "study_time_total": current.study_time_total
            + round_half_up(attempt.time_spent / 60),
        },
        deep=True,
    )
