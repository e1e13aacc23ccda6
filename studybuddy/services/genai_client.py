"""Google Gemini client for quiz generation and study recommendations.

The progress engine treats everything returned here as opaque input: topic
strings are accepted as-is. Any failure (missing key, API error, network
error, unparseable output) surfaces as :class:`UpstreamError`; callers decide
on a fallback.
"""

import json
import logging
import time
from typing import Any

import httpx
from google import genai
from google.genai import errors, types
from pydantic import ValidationError as PydanticValidationError

from studybuddy.config import settings
from studybuddy.core.errors import UpstreamError
from studybuddy.schemas.progress import StudyRecommendation, TopicProgress
from studybuddy.schemas.quiz import QuestionCreate

logger = logging.getLogger(__name__)


_QUIZ_PROMPT = """\
You are an expert quiz generator for educational purposes. Based on the following \
study content, generate {count} multiple-choice questions at {difficulty} difficulty level.

Study Content:
{content}

Subject: {subject}

Generate questions that test understanding, not just memorization. Include a mix of \
conceptual, application and analysis questions.

Return ONLY a valid JSON array with this exact structure (no markdown, no code blocks):
[
  {{
    "prompt": "Question text here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correct_answer": 0,
    "explanation": "Why this answer is correct",
    "topic": "Specific topic this question covers",
    "concept": "The single key concept being tested"
  }}
]

Make sure each question has exactly 4 options and correct_answer is the index (0-3) \
of the correct option."""


_RECOMMENDATION_PROMPT = """\
You are a personalized learning advisor. Based on the student's learning progress, \
generate study recommendations.

Current Progress:
{progress}

Weak Topics (need more practice):
{weak_topics}

Recently Studied Topics:
{recent_topics}

Generate 3-5 personalized study recommendations. Return ONLY a valid JSON array (no markdown):
[
  {{
    "topic": "Topic name",
    "subject": "Subject area",
    "reason": "Why this is recommended",
    "priority": "high|medium|low",
    "suggested_resources": ["Resource 1", "Resource 2"],
    "estimated_time": 30
  }}
]

Prioritize:
1. Topics where the student is struggling
2. Topics that haven't been studied recently
3. Topics that build on what the student has already learned
4. Balance between strengthening weak areas and advancing knowledge"""


class GenAIClient:
    """Thin wrapper around ``google.genai`` with retry on server errors."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model_name: str | None = None,
        temperature: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        api_key = settings.GOOGLE_API_KEY if api_key is None else api_key
        self.model_name = model_name or settings.GEMINI_MODEL
        self.temperature = (
            settings.GEMINI_TEMPERATURE if temperature is None else temperature
        )
        self.max_retries = (
            settings.GEMINI_MAX_RETRIES if max_retries is None else max_retries
        )
        self.retry_delay = (
            settings.GEMINI_RETRY_DELAY if retry_delay is None else retry_delay
        )
        self._client = genai.Client(api_key=api_key) if api_key else None

    @property
    def configured(self) -> bool:
        return self._client is not None

    # ── low-level ─────────────────────────────────────────────────────────

    def _generate(self, prompt: str) -> str:
        if self._client is None:
            raise UpstreamError("GOOGLE_API_KEY is not configured")

        config = types.GenerateContentConfig(temperature=self.temperature)
        attempts = max(self.max_retries, 1)
        for attempt in range(attempts):
            try:
                response = self._client.models.generate_content(
                    model=self.model_name, contents=prompt, config=config
                )
                return response.text or ""
            except errors.ServerError as exc:
                if attempt < attempts - 1:
                    wait_time = self.retry_delay * (2**attempt)
                    logger.warning(
                        "Gemini server error (attempt %d/%d): %s. Retrying in %.1fs",
                        attempt + 1,
                        attempts,
                        exc,
                        wait_time,
                    )
                    time.sleep(wait_time)
                    continue
                raise UpstreamError(f"Gemini unavailable: {exc}") from exc
            except (errors.APIError, httpx.HTTPError) as exc:
                raise UpstreamError(f"Gemini request failed: {exc}") from exc
        raise UpstreamError("Gemini returned no response")

    @staticmethod
    def _extract_json_array(text: str) -> list[Any]:
        """Pull the outermost JSON array out of a model response."""
        normalized = (text or "").strip()
        start = normalized.find("[")
        end = normalized.rfind("]")
        if start == -1 or end == -1 or end < start:
            preview = normalized[:200].replace("\n", " ")
            raise UpstreamError(
                f"Model did not return a JSON array. Preview: {preview!r}"
            )
        try:
            payload = json.loads(normalized[start : end + 1])
        except json.JSONDecodeError as exc:
            raise UpstreamError(f"Model returned invalid JSON ({exc.msg})") from exc
        if not isinstance(payload, list):
            raise UpstreamError("Model JSON was not an array")
        return payload

    # ── quiz generation ───────────────────────────────────────────────────

    def generate_quiz(
        self,
        *,
        content: str,
        subject: str = "General",
        difficulty: str = "medium",
        count: int = 5,
    ) -> list[QuestionCreate]:
        prompt = _QUIZ_PROMPT.format(
            count=count, difficulty=difficulty, content=content, subject=subject
        )
        logger.info(
            "Generating quiz via Gemini (subject=%r, difficulty=%s, count=%d)",
            subject,
            difficulty,
            count,
        )
        payload = self._extract_json_array(self._generate(prompt))
        try:
            questions = [QuestionCreate.model_validate(item) for item in payload]
        except PydanticValidationError as exc:
            raise UpstreamError(
                f"Model returned malformed questions: {exc.error_count()} errors"
            ) from exc
        if not questions:
            raise UpstreamError("Model returned no questions")
        return questions

    # ── recommendations ───────────────────────────────────────────────────

    def generate_recommendations(
        self,
        topics: list[TopicProgress],
        weak_topics: list[str],
        recent_topics: list[str],
    ) -> list[StudyRecommendation]:
        prompt = _RECOMMENDATION_PROMPT.format(
            progress=json.dumps([t.model_dump(mode="json") for t in topics], indent=2),
            weak_topics=", ".join(weak_topics) or "none",
            recent_topics=", ".join(recent_topics) or "none",
        )
        logger.info(
            "Generating recommendations via Gemini (topics=%d, weak=%d)",
            len(topics),
            len(weak_topics),
        )
        payload = self._extract_json_array(self._generate(prompt))
        recommendations = []
        for item in payload:
            try:
                recommendations.append(StudyRecommendation.model_validate(item))
            except PydanticValidationError:
                logger.warning("Dropping malformed recommendation: %r", item)
        if not recommendations:
            raise UpstreamError("Model returned no usable recommendations")
        return recommendations
