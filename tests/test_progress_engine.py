"""Unit tests for attempt ingestion (streak, averages, study time)."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from studybuddy.core.errors import ValidationError
from studybuddy.schemas.attempt import AttemptRecord
from studybuddy.schemas.progress import ProgressRead, TopicProgress
from studybuddy.services.progress_engine import (
    calendar_days_between,
    ingest,
    next_streak,
    percentage,
    round_half_up,
    validate_attempt,
)

USER_ID = uuid.uuid4()
QUIZ_ID = uuid.uuid4()


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


def _attempt(score: int, total: int, completed_at: datetime, time_spent: int = 0):
    return AttemptRecord(
        quiz_id=QUIZ_ID,
        user_id=USER_ID,
        answers=[0] * score + [None] * max(total - score, 0),
        score=score,
        total_questions=total,
        completed_at=completed_at,
        time_spent=time_spent,
    )


def _progress(**kwargs) -> ProgressRead:
    return ProgressRead(user_id=USER_ID, **kwargs)


# ── helpers ────────────────────────────────────────────────────────────────────


def test_round_half_up_rounds_halves_upward():
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4999) == 2


def test_percentage_of_zero_total_is_zero():
    assert percentage(3, 0) == 0
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67


def test_calendar_days_ignore_time_of_day():
    late = datetime(2024, 1, 1, 23, 59, tzinfo=timezone.utc)
    early = datetime(2024, 1, 2, 0, 1, tzinfo=timezone.utc)
    assert calendar_days_between(late, early) == 1
    assert calendar_days_between(None, early) is None


def test_calendar_days_use_study_timezone():
    # 23:30 UTC on Jan 1 is already Jan 2 in Tokyo.
    first = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    second = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)
    assert calendar_days_between(first, second, "UTC") == 0
    assert calendar_days_between(first, second, "Asia/Tokyo") == 1


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    assert calendar_days_between(naive, _at(2)) == 1


# ── streak law ────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "completed_day, expected",
    [
        (10, 4),  # same day: unchanged
        (11, 5),  # next day: +1
        (12, 1),  # gap: reset
        (9, 1),   # backdated: reset
    ],
)
def test_streak_law(completed_day, expected):
    assert next_streak(4, _at(10), _at(completed_day)) == expected


def test_first_attempt_starts_streak_at_one():
    updated = ingest(_attempt(1, 2, _at(5)), _progress())
    assert updated.streak_days == 1
    assert updated.last_study_date == _at(5)


def test_backdated_attempt_still_moves_last_study_date():
    current = _progress(total_quizzes_taken=3, streak_days=3, last_study_date=_at(10))
    updated = ingest(_attempt(1, 1, _at(8)), current)
    assert updated.streak_days == 1
    assert updated.last_study_date == _at(8)


# ── averages and study time ───────────────────────────────────────────────────


def test_weighted_average_law():
    current = _progress(total_quizzes_taken=3, average_score=70, last_study_date=_at(1))
    updated = ingest(_attempt(9, 10, _at(1)), current)
    # round((70 * 3 + 90) / 4) = round(75.0)
    assert updated.average_score == 75
    assert updated.total_quizzes_taken == 4


def test_average_rounds_half_up():
    current = _progress(total_quizzes_taken=1, average_score=50, last_study_date=_at(1))
    updated = ingest(_attempt(3, 4, _at(1)), current)
    # (50 + 75) / 2 = 62.5
    assert updated.average_score == 63


def test_study_time_is_added_in_rounded_minutes():
    updated = ingest(_attempt(1, 1, _at(1), time_spent=90), _progress(study_time_total=5))
    assert updated.study_time_total == 7  # 5 + round(1.5)


def test_zero_score_is_valid():
    updated = ingest(_attempt(0, 5, _at(1)), _progress())
    assert updated.average_score == 0
    assert updated.total_quizzes_taken == 1


def test_ingest_is_not_idempotent():
    attempt = _attempt(5, 10, _at(1))
    current = _progress(total_quizzes_taken=1, average_score=100, last_study_date=_at(1))

    once = ingest(attempt, current)
    assert once.total_quizzes_taken == 2
    assert once.average_score == 75  # (100 + 50) / 2

    twice = ingest(attempt, once)
    assert twice.total_quizzes_taken == 3
    assert twice.average_score == 67  # (75 * 2 + 50) / 3 = 66.67


def test_ingest_leaves_topics_and_input_untouched():
    topics = [TopicProgress(topic="Cells", mastery_level=40)]
    current = _progress(topics=topics, weak_topics=["Cells"])
    updated = ingest(_attempt(1, 1, _at(1)), current)
    assert updated.topics == topics
    assert updated.weak_topics == ["Cells"]
    assert current.total_quizzes_taken == 0


def test_ranges_hold_over_many_attempts():
    progress = _progress()
    start = _at(1)
    for i in range(40):
        attempt = _attempt(i % 11, 10, start + timedelta(hours=13 * i), time_spent=45)
        progress = ingest(attempt, progress)
        assert 0 <= progress.average_score <= 100
        assert progress.streak_days >= 0
    assert progress.total_quizzes_taken == 40


# ── scenarios ─────────────────────────────────────────────────────────────────


def test_scenario_next_day_then_same_day_then_gap():
    state = _progress(
        total_quizzes_taken=0, average_score=0, streak_days=0, last_study_date=_at(1)
    )

    state = ingest(_attempt(8, 10, _at(2), time_spent=600), state)
    assert state.total_quizzes_taken == 1
    assert state.average_score == 80
    assert state.streak_days == 1
    assert state.last_study_date == _at(2)
    assert state.study_time_total == 10

    state = ingest(_attempt(5, 10, _at(2, hour=18), time_spent=300), state)
    assert state.total_quizzes_taken == 2
    assert state.average_score == 65
    assert state.streak_days == 1
    assert state.study_time_total == 15

    state = ingest(_attempt(10, 10, _at(4)), state)
    assert state.streak_days == 1


# ── validation ────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "score, total, time_spent",
    [
        (0, 0, 0),    # no questions
        (-1, 5, 0),   # negative score
        (6, 5, 0),    # score above total
        (1, 5, -30),  # negative time
    ],
)
def test_invalid_attempts_are_rejected(score, total, time_spent):
    attempt = _attempt(score, total, _at(1), time_spent=time_spent)
    with pytest.raises(ValidationError) as exc_info:
        ingest(attempt, _progress())
    assert exc_info.value.status_code == 422
    assert exc_info.value.details["problems"]


def test_answers_must_match_question_count():
    attempt = _attempt(1, 3, _at(1)).model_copy(update={"answers": [0, 1]})
    with pytest.raises(ValidationError):
        validate_attempt(attempt)


def test_empty_answers_are_rejected():
    attempt = _attempt(0, 3, _at(1)).model_copy(update={"answers": []})
    with pytest.raises(ValidationError) as exc_info:
        validate_attempt(attempt)
    assert "answers must have one entry per question" in exc_info.value.details["problems"]
