"""Grading for multiple-choice answers.

Answers are option indices parallel to the quiz's question order; ``None``
means the learner skipped the question and is never correct.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from studybuddy.core.errors import ValidationError

logger = logging.getLogger(__name__)


def grade_answer(selected: int | None, correct_answer: int) -> bool:
    if selected is None:
        return False
    return selected == correct_answer


def grade_answers(
    questions: Sequence[Any], answers: Sequence[int | None]
) -> list[bool]:
    """Mark each answer against its question's ``correct_answer``.

    Raises:
        ValidationError: if the answer list is not parallel to the questions
            or selects an option the question does not have.
    """
    if len(answers) != len(questions):
        raise ValidationError(
            f"Expected {len(questions)} answers, got {len(answers)}",
            details={"expected": len(questions), "received": len(answers)},
        )

    marks: list[bool] = []
    for position, (question, selected) in enumerate(zip(questions, answers)):
        options = getattr(question, "options", None)
        if selected is not None and (
            selected < 0 or (options is not None and selected >= len(options))
        ):
            raise ValidationError(
                f"Answer {position + 1} selects option {selected}, "
                f"which does not exist",
                details={"position": position, "selected": selected},
            )
        marks.append(grade_answer(selected, question.correct_answer))

    logger.debug("Graded %d answers: %d correct", len(marks), sum(marks))
    return marks
