"""Quiz authoring, generation and retrieval routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studybuddy.api.deps import (
    get_current_user,
    get_genai_client,
    require_genai_rate_limit,
)
from studybuddy.db.models import Quiz, QuizQuestion, User
from studybuddy.db.session import get_db
from studybuddy.schemas.quiz import (
    QuestionCreate,
    QuestionRead,
    QuizCreate,
    QuizGenerateRequest,
    QuizRead,
)
from studybuddy.services.genai_client import GenAIClient

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_read(quiz: Quiz) -> QuizRead:
    return QuizRead(
        id=quiz.id,
        title=quiz.title,
        subject=quiz.subject,
        difficulty=quiz.difficulty,
        question_count=len(quiz.questions),
        questions=[QuestionRead.model_validate(q) for q in quiz.questions],
        created_at=quiz.created_at,
    )


def _save_quiz(
    db: Session,
    owner: User,
    *,
    title: str,
    subject: str,
    difficulty: str,
    questions: list[QuestionCreate],
    source_content: str | None = None,
) -> Quiz:
    quiz = Quiz(
        user_id=owner.id,
        title=title,
        subject=subject,
        difficulty=difficulty,
        source_content=source_content,
    )
    db.add(quiz)
    db.flush()

    for position, q in enumerate(questions):
        db.add(
            QuizQuestion(
                quiz_id=quiz.id,
                position=position,
                prompt=q.prompt,
                options=list(q.options),
                correct_answer=q.correct_answer,
                explanation=q.explanation,
                topic=q.topic,
                concept=q.concept,
            )
        )

    db.commit()
    db.refresh(quiz)
    return quiz


def get_owned_quiz(db: Session, quiz_id: uuid.UUID, user: User) -> Quiz:
    """Return the caller's quiz or raise 404."""
    quiz = (
        db.query(Quiz).filter(Quiz.id == quiz_id, Quiz.user_id == user.id).first()
    )
    if quiz is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found"
        )
    return quiz


@router.post("/", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
def create_quiz(
    body: QuizCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store a quiz whose questions the client already has."""
    quiz = _save_quiz(
        db,
        current_user,
        title=body.title,
        subject=body.subject,
        difficulty=body.difficulty.value,
        questions=body.questions,
    )
    logger.info("Created quiz %s (%d questions)", quiz.id, len(body.questions))
    return _to_read(quiz)


@router.post("/generate", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
def generate_quiz(
    body: QuizGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client: GenAIClient = Depends(get_genai_client),
    _rl: None = Depends(require_genai_rate_limit),
):
    """Generate topic-tagged questions from study content with Gemini."""
    questions = client.generate_quiz(
        content=body.content,
        subject=body.subject,
        difficulty=body.difficulty.value,
        count=body.count,
    )
    quiz = _save_quiz(
        db,
        current_user,
        title=body.title or f"{body.subject} quiz",
        subject=body.subject,
        difficulty=body.difficulty.value,
        questions=questions,
        source_content=body.content,
    )
    logger.info("Generated quiz %s (%d questions)", quiz.id, len(questions))
    return _to_read(quiz)


@router.get("/", response_model=list[QuizRead])
def list_quizzes(
    skip: int = 0,
    limit: int = 20,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's quizzes, newest first."""
    rows = (
        db.query(Quiz)
        .filter(Quiz.user_id == current_user.id)
        .order_by(Quiz.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return [_to_read(q) for q in rows]


@router.get("/{quiz_id}", response_model=QuizRead)
def get_quiz(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_read(get_owned_quiz(db, quiz_id, current_user))
