"""Pytest configuration and shared fixtures.

This module provides survey builders and in-memory collaborators used across
all tests.
"""

import asyncio
import os
from typing import Any, Callable, Optional

import pytest

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("API_BASE_URL", "http://survey-api.test")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("CLASSIFIER_TIMEOUT_SECONDS", "1")

from survey_flow.schemas.survey import AntiAbuseFields, Question, QuestionType, Survey
from survey_flow.services.exceptions import SubmissionError, SurveyLoadError


def text_question(question_id: str, order: int, required: bool = True, next_id: Optional[str] = None) -> dict:
    """Build a text question payload (camelCase, as served by the API)."""
    return {
        "id": question_id,
        "type": "text",
        "questionText": f"Question {question_id}?",
        "required": required,
        "order": order,
        "nextQuestionId": next_id,
    }


def choice_question(
    question_id: str,
    order: int,
    options: dict,
    required: bool = True,
    next_id: Optional[str] = None,
    question_type: str = "multiple-choice",
) -> dict:
    """Build a multiple-choice or classifier payload.

    Args:
        options: Mapping of option id -> branch target (or None)
    """
    return {
        "id": question_id,
        "type": question_type,
        "questionText": f"Question {question_id}?",
        "required": required if question_type != "classifier" else False,
        "order": order,
        "nextQuestionId": next_id,
        "options": [
            {"id": option_id, "label": f"Label {option_id}", "nextQuestionId": target}
            for option_id, target in options.items()
        ],
    }


def classifier(question_id: str, order: int, options: dict, next_id: Optional[str] = None) -> dict:
    return choice_question(question_id, order, options, next_id=next_id, question_type="classifier")


def finish(question_id: str, order: int) -> dict:
    return {"id": question_id, "type": "finish", "questionText": "Thanks!", "order": order}


def build_survey(*questions: dict, contact_info: Optional[dict] = None, **extra: Any) -> Survey:
    """Validate a survey payload the way the API client does."""
    data = {
        "id": extra.pop("id", "survey-1"),
        "title": extra.pop("title", "Test Survey"),
        "questions": list(questions),
        "visitorContext": extra.pop("visitor_context", {"referrer": "test"}),
        **extra,
    }
    if contact_info is not None:
        data["contactInfo"] = contact_info
    return Survey.model_validate(data)


def build_question(**fields: Any) -> Question:
    fields.setdefault("question_text", "Question?")
    return Question(**fields)


class FakeSurveySource:
    """Survey fetch collaborator returning a fixed survey (or raising)."""

    def __init__(self, survey: Optional[Survey] = None, error: Optional[Exception] = None):
        self.survey = survey
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def fetch_survey(self, tenant_id: str, survey_id: str) -> Survey:
        self.calls.append((tenant_id, survey_id))
        if self.error is not None:
            raise self.error
        if self.survey is None:
            raise SurveyLoadError("Survey not found")
        return self.survey


class FakeGateway:
    """Classification and submission collaborator with scripted behaviour.

    Args:
        decisions: Mapping of classifier question id -> option id to return.
            The classifier is identified by the candidate option ids it receives.
        classify: Optional callable(options) used instead of ``decisions``;
            may raise or return a coroutine result
        submit_failures: Number of submissions to reject before accepting
    """

    def __init__(
        self,
        decisions: Optional[dict] = None,
        classify: Optional[Callable[[list], Any]] = None,
        submit_failures: int = 0,
        submit_error: Optional[Exception] = None,
    ):
        self.decisions = decisions or {}
        self.classify = classify
        self.submit_failures = submit_failures
        self.submit_error = submit_error or SubmissionError("Failed to submit survey")
        self.classify_calls: list[dict] = []
        self.submissions: list[dict] = []

    async def classify_visitor(self, tenant_id: str, survey_id: str, visitor_context: dict, options: list) -> Optional[str]:
        self.classify_calls.append(
            {"tenant_id": tenant_id, "survey_id": survey_id, "visitor_context": visitor_context, "options": options}
        )
        if self.classify is not None:
            result = self.classify(options)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        option_ids = {option["id"] for option in options}
        for chosen in self.decisions.values():
            if chosen in option_ids:
                return chosen
        return None

    async def submit_response(self, tenant_id: str, survey_id: str, payload) -> None:
        self.submissions.append(payload.to_wire())
        if self.submit_failures > 0:
            self.submit_failures -= 1
            raise self.submit_error


@pytest.fixture
def anti_abuse() -> AntiAbuseFields:
    """Fixed anti-abuse fields so submitted payloads are predictable."""
    return AntiAbuseFields(honeypot="", form_timestamp=1700000000000)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def three_question_survey() -> Survey:
    """Three required plain questions, no contact info, no classifiers."""
    return build_survey(
        text_question("q1", 1),
        text_question("q2", 2),
        text_question("q3", 3),
    )
