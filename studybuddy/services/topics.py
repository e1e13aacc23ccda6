"""Topic mastery: the one place mastery math lives.

Every surface that shows per-topic numbers (progress record, topic
summaries, charts, recommendation input) goes through this module.

Bands
-----
- weak    percentage <  WEAK_TOPIC_THRESHOLD   (50)
- strong  percentage >= STRONG_TOPIC_THRESHOLD (70)
- neither in between

Topic labels are whatever the question carries; they are compared as exact
strings and never normalised.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from studybuddy.config import settings
from studybuddy.schemas.progress import ProgressRead, TopicMasterySummary, TopicProgress
from studybuddy.services.grading import grade_answers
from studybuddy.services.progress_engine import ensure_aware, percentage, round_half_up

WEAK = "weak"
STRONG = "strong"


def classify(
    value: int,
    *,
    weak_below: int | None = None,
    strong_from: int | None = None,
) -> str | None:
    """Return ``"weak"``, ``"strong"`` or None for a 0–100 value."""
    weak_below = settings.WEAK_TOPIC_THRESHOLD if weak_below is None else weak_below
    strong_from = (
        settings.STRONG_TOPIC_THRESHOLD if strong_from is None else strong_from
    )
    if value < weak_below:
        return WEAK
    if value >= strong_from:
        return STRONG
    return None


def split_weak_strong(topics: Iterable[TopicProgress]) -> tuple[list[str], list[str]]:
    weak: list[str] = []
    strong: list[str] = []
    for t in topics:
        band = classify(t.mastery_level)
        if band == WEAK:
            weak.append(t.topic)
        elif band == STRONG:
            strong.append(t.topic)
    return weak, strong


def refresh_classification(progress: ProgressRead) -> ProgressRead:
    """Recompute ``weak_topics`` / ``strong_topics`` from ``topics``."""
    weak, strong = split_weak_strong(progress.topics)
    return progress.model_copy(update={"weak_topics": weak, "strong_topics": strong})


# ── Summaries for display ─────────────────────────────────────────────────────


def aggregate_topics(
    quizzes: Iterable[Any],
    progress_topics: Iterable[TopicProgress],
) -> list[TopicMasterySummary]:
    """Summarise question volume per topic across *quizzes*.

    ``correct`` is estimated from the stored mastery level of the matching
    topic (0 if the user has no record for it). Sorted by question volume,
    largest first; equal volumes keep first-seen order.
    """
    totals: dict[str, int] = {}
    for quiz in quizzes:
        for question in quiz.questions:
            totals[question.topic] = totals.get(question.topic, 0) + 1

    mastery = {t.topic: t.mastery_level for t in progress_topics}

    summaries: list[TopicMasterySummary] = []
    for topic, total in totals.items():
        correct = 0
        if topic in mastery:
            correct = round_half_up(mastery[topic] / 100 * total)
        pct = percentage(correct, total)
        summaries.append(
            TopicMasterySummary(
                topic=topic,
                correct=correct,
                total=total,
                percentage=pct,
                band=classify(pct),
            )
        )

    summaries.sort(key=lambda s: s.total, reverse=True)
    return summaries


def top_topics(
    summaries: Sequence[TopicMasterySummary], limit: int | None = None
) -> list[TopicMasterySummary]:
    limit = settings.TOPIC_DISPLAY_LIMIT if limit is None else limit
    return list(summaries[:limit])


# ── Folding an attempt into per-topic progress ────────────────────────────────


def apply_attempt_topics(
    topics: Sequence[TopicProgress],
    questions: Sequence[Any],
    answers: Sequence[int | None],
    completed_at: datetime,
    subject: str = "General",
) -> list[TopicProgress]:
    """Return a new topic list with one attempt's answers folded in.

    *questions* are in quiz order and *answers* parallel to them. Topics the
    attempt did not touch are returned unchanged.
    """
    marks = grade_answers(questions, answers)
    completed_at = ensure_aware(completed_at)

    tallies: dict[str, dict[str, Any]] = {}
    for question, is_correct in zip(questions, marks):
        bucket = tallies.setdefault(
            question.topic, {"correct": 0, "total": 0, "concepts": []}
        )
        bucket["total"] += 1
        if is_correct:
            bucket["correct"] += 1
        concept = getattr(question, "concept", None)
        if concept and concept not in bucket["concepts"]:
            bucket["concepts"].append(concept)

    updated = [t.model_copy(deep=True) for t in topics]
    index = {t.topic: i for i, t in enumerate(updated)}

    for name, tally in tallies.items():
        if name in index:
            entry = updated[index[name]]
        else:
            entry = TopicProgress(topic=name, subject=subject)
            index[name] = len(updated)
            updated.append(entry)

        attempt_pct = percentage(tally["correct"], tally["total"])
        answered = entry.questions_answered + tally["total"]
        correct = entry.questions_correct + tally["correct"]
        taken = entry.quizzes_taken

        concepts = list(entry.concepts_covered)
        concepts.extend(c for c in tally["concepts"] if c not in concepts)

        updated[index[name]] = entry.model_copy(
            update={
                "questions_answered": answered,
                "questions_correct": correct,
                "mastery_level": percentage(correct, answered),
                "quizzes_taken": taken + 1,
                "average_score": round_half_up(
                    (entry.average_score * taken + attempt_pct) / (taken + 1)
                ),
                "last_studied": completed_at,
                "concepts_covered": concepts,
            }
        )

    return updated
