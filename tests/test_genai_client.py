"""Tests for the Gemini wrapper. The google-genai client is replaced with a mock."""

import json
from unittest.mock import MagicMock

import pytest
from google.genai import errors

from studybuddy.core.errors import UpstreamError
from studybuddy.schemas.progress import TopicProgress
from studybuddy.services.genai_client import GenAIClient


def _client_returning(*texts: str) -> GenAIClient:
    client = GenAIClient(api_key="test-key", retry_delay=0)
    client._client = MagicMock()
    client._client.models.generate_content.side_effect = [
        MagicMock(text=t) for t in texts
    ]
    return client


QUESTIONS = [
    {
        "prompt": "What does DNA stand for?",
        "options": ["Deoxyribonucleic acid", "Ribonucleic acid", "Amino acid", "None"],
        "correct_answer": 0,
        "explanation": "By definition.",
        "topic": "Genetics",
        "concept": "Nucleic acids",
    }
]


def test_unconfigured_client_raises_upstream_error():
    client = GenAIClient(api_key="")
    assert not client.configured
    with pytest.raises(UpstreamError):
        client.generate_quiz(content="anything")


def test_generate_quiz_parses_fenced_json():
    client = _client_returning("```json\n" + json.dumps(QUESTIONS) + "\n```")
    questions = client.generate_quiz(content="DNA notes", subject="Biology", count=1)
    assert len(questions) == 1
    assert questions[0].topic == "Genetics"
    assert questions[0].correct_answer == 0


def test_generate_quiz_rejects_non_json():
    client = _client_returning("Sorry, I cannot help with that.")
    with pytest.raises(UpstreamError):
        client.generate_quiz(content="DNA notes")


def test_generate_quiz_rejects_malformed_questions():
    bad = [{"prompt": "?", "options": ["only one"], "correct_answer": 3}]
    client = _client_returning(json.dumps(bad))
    with pytest.raises(UpstreamError):
        client.generate_quiz(content="DNA notes")


def test_recommendations_drop_malformed_items():
    payload = [
        {"topic": "Genetics", "reason": "Low mastery", "priority": "high"},
        {"reason": "missing topic"},
    ]
    client = _client_returning(json.dumps(payload))
    recs = client.generate_recommendations(
        [TopicProgress(topic="Genetics", mastery_level=20)], ["Genetics"], []
    )
    assert [r.topic for r in recs] == ["Genetics"]
    prompt = client._client.models.generate_content.call_args.kwargs["contents"]
    assert "Genetics" in prompt


def test_server_errors_are_retried():
    client = GenAIClient(api_key="test-key", max_retries=3, retry_delay=0)
    client._client = MagicMock()
    client._client.models.generate_content.side_effect = [
        errors.ServerError(503, {"error": {"message": "overloaded", "status": "UNAVAILABLE"}}),
        MagicMock(text=json.dumps(QUESTIONS)),
    ]
    questions = client.generate_quiz(content="DNA notes")
    assert len(questions) == 1
    assert client._client.models.generate_content.call_count == 2


def test_server_errors_exhaust_retries():
    client = GenAIClient(api_key="test-key", max_retries=2, retry_delay=0)
    client._client = MagicMock()
    client._client.models.generate_content.side_effect = errors.ServerError(
        500, {"error": {"message": "boom", "status": "INTERNAL"}}
    )
    with pytest.raises(UpstreamError):
        client.generate_quiz(content="DNA notes")
    assert client._client.models.generate_content.call_count == 2


def test_client_errors_are_not_retried():
    client = GenAIClient(api_key="test-key", max_retries=3, retry_delay=0)
    client._client = MagicMock()
    client._client.models.generate_content.side_effect = errors.ClientError(
        400, {"error": {"message": "bad request", "status": "INVALID_ARGUMENT"}}
    )
    with pytest.raises(UpstreamError):
        client.generate_quiz(content="DNA notes")
    assert client._client.models.generate_content.call_count == 1


def test_recommendations_with_nothing_usable_raise():
    client = _client_returning(json.dumps([{"priority": "high"}]), "[]")
    with pytest.raises(UpstreamError):
        client.generate_recommendations([], ["Genetics"], [])
    with pytest.raises(UpstreamError):
        client.generate_recommendations([], ["Genetics"], [])
