"""API route package — imports all routers for main.py."""

from studybuddy.api.health import router as health_router  # noqa: F401
from studybuddy.api.users import router as users_router  # noqa: F401
from studybuddy.api.quizzes import router as quizzes_router  # noqa: F401
from studybuddy.api.attempts import router as attempts_router  # noqa: F401
from studybuddy.api.progress import router as progress_router  # noqa: F401
from studybuddy.api.goals import router as goals_router  # noqa: F401
