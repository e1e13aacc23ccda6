"""Daily study goal routes."""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studybuddy.api.deps import get_current_user
from studybuddy.core.errors import NotFoundError
from studybuddy.db.models import DailyGoal, User
from studybuddy.db.session import get_db
from studybuddy.schemas.goal import DailyGoalRead, DailyGoalWrite

router = APIRouter()


def goal_met(goal: DailyGoalWrite) -> bool:
    return (
        goal.actual_study_time >= goal.target_study_time
        and goal.completed_quizzes >= goal.target_quizzes
    )


def _to_read(goal: DailyGoal) -> DailyGoalRead:
    return DailyGoalRead(
        date=goal.goal_date,
        target_study_time=goal.target_study_time,
        actual_study_time=goal.actual_study_time,
        target_quizzes=goal.target_quizzes,
        completed_quizzes=goal.completed_quizzes,
        topics=list(goal.topics or []),
        completed=goal.completed,
    )


def _find(db: Session, user: User, goal_date: date) -> DailyGoal | None:
    return (
        db.query(DailyGoal)
        .filter(DailyGoal.user_id == user.id, DailyGoal.goal_date == goal_date)
        .first()
    )


@router.get("/{goal_date}", response_model=DailyGoalRead)
def get_goal(
    goal_date: date,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = _find(db, current_user, goal_date)
    if goal is None:
        raise NotFoundError(
            f"No goal set for {goal_date.isoformat()}",
            details={"date": goal_date.isoformat()},
        )
    return _to_read(goal)


@router.put("/{goal_date}", response_model=DailyGoalRead)
def put_goal(
    goal_date: date,
    body: DailyGoalWrite,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or replace the goal for one day. `completed` is recomputed."""
    goal = _find(db, current_user, goal_date)
    if goal is None:
        goal = DailyGoal(user_id=current_user.id, goal_date=goal_date)
        db.add(goal)

    goal.target_study_time = body.target_study_time
    goal.actual_study_time = body.actual_study_time
    goal.target_quizzes = body.target_quizzes
    goal.completed_quizzes = body.completed_quizzes
    goal.topics = list(body.topics)
    goal.completed = goal_met(body)

    db.commit()
    db.refresh(goal)
    return _to_read(goal)
