"""Pydantic schemas — re‑exported for convenience."""

from studybuddy.schemas.common import ErrorResponse  # noqa: F401
from studybuddy.schemas.user import (  # noqa: F401
    AuthResponse,
    UserCreate,
    UserLogin,
    UserRead,
)
from studybuddy.schemas.quiz import (  # noqa: F401
    QuestionCreate,
    QuestionRead,
    QuizCreate,
    QuizGenerateRequest,
    QuizRead,
)
from studybuddy.schemas.attempt import (  # noqa: F401
    AttemptRead,
    AttemptRecord,
    AttemptResult,
    AttemptSubmit,
)
from studybuddy.schemas.progress import (  # noqa: F401
    AnalyticsRead,
    ProgressRead,
    RecommendationsRead,
    TopicMasterySummary,
    TopicProgress,
    TopicsRead,
)
from studybuddy.schemas.goal import DailyGoalRead, DailyGoalWrite  # noqa: F401
