"""Unit tests for survey loader service.

Tests YAML loading, caching, and validation.
"""

import pytest
import tempfile
import os
import threading
from pathlib import Path

from survey_flow.services.exceptions import SurveyLoadError
from survey_flow.services.survey_loader import (
    SurveyLoader,
    SurveyNotFoundError,
    SurveyValidationError,
)
from survey_flow.services.survey_validator import SurveyValidator
from survey_flow.schemas.survey import QuestionType, Survey

BUNDLED_SURVEYS_DIR = Path(__file__).resolve().parents[2] / "surveys"


class TestSurveyLoader:
    """Tests for SurveyLoader class."""

    @pytest.fixture
    def temp_surveys_dir(self):
        """Create temporary directory for test surveys."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def valid_survey_yaml(self):
        """Return valid survey YAML content."""
        return """
title: Test Survey
description: A test survey
contactInfo:
  collectEmail: true
questions:
  - id: q1
    type: multiple-choice
    questionText: Pick one
    required: true
    order: 1
    options:
      - id: a
        label: Option A
        nextQuestionId: q2
      - id: b
        label: Option B
  - id: q2
    type: text
    questionText: Why?
    order: 2
"""

    def _write(self, surveys_dir: str, tenant_id: str, survey_id: str, content: str) -> None:
        tenant_dir = os.path.join(surveys_dir, tenant_id)
        os.makedirs(tenant_dir, exist_ok=True)
        with open(os.path.join(tenant_dir, f"{survey_id}.yaml"), "w") as f:
            f.write(content)

    def test_load_valid_survey(self, temp_surveys_dir, valid_survey_yaml):
        """Test loading a valid survey."""
        self._write(temp_surveys_dir, "acme", "test_survey", valid_survey_yaml)
        loader = SurveyLoader(temp_surveys_dir)

        survey = loader.load_survey("acme", "test_survey")

        assert isinstance(survey, Survey)
        assert survey.id == "test_survey"
        assert survey.title == "Test Survey"
        assert survey.contact_info.collect_email is True
        assert len(survey.questions) == 2
        assert survey.questions[0].options[0].next_question_id == "q2"

    def test_explicit_id_kept(self, temp_surveys_dir, valid_survey_yaml):
        """Test an id in the file wins over the filename."""
        self._write(temp_surveys_dir, "acme", "file-name", "id: real-id\n" + valid_survey_yaml)
        survey = SurveyLoader(temp_surveys_dir).load_survey("acme", "file-name")
        assert survey.id == "real-id"

    def test_load_nonexistent_survey(self, temp_surveys_dir):
        """Test loading a survey that doesn't exist."""
        loader = SurveyLoader(temp_surveys_dir)

        with pytest.raises(SurveyNotFoundError) as exc_info:
            loader.load_survey("acme", "nonexistent")

        assert str(exc_info.value) == "Survey not found"
        assert isinstance(exc_info.value, SurveyLoadError)

    def test_tenant_isolation(self, temp_surveys_dir, valid_survey_yaml):
        """Test a survey is only found under its own tenant."""
        self._write(temp_surveys_dir, "acme", "test_survey", valid_survey_yaml)
        loader = SurveyLoader(temp_surveys_dir)

        with pytest.raises(SurveyNotFoundError):
            loader.load_survey("other-tenant", "test_survey")

    def test_load_invalid_yaml(self, temp_surveys_dir):
        """Test loading a file with invalid YAML syntax."""
        self._write(temp_surveys_dir, "acme", "broken", "title: [unclosed\n  questions: {")
        loader = SurveyLoader(temp_surveys_dir)

        with pytest.raises(SurveyValidationError) as exc_info:
            loader.load_survey("acme", "broken")

        assert str(exc_info.value) == "Failed to load survey"

    def test_load_non_mapping(self, temp_surveys_dir):
        """Test a YAML list is rejected."""
        self._write(temp_surveys_dir, "acme", "list", "- a\n- b\n")
        with pytest.raises(SurveyValidationError):
            SurveyLoader(temp_surveys_dir).load_survey("acme", "list")

    def test_load_invalid_schema(self, temp_surveys_dir):
        """Test a survey failing model validation."""
        self._write(
            temp_surveys_dir,
            "acme",
            "bad",
            """
title: Bad
questions:
  - id: q1
    type: multiple-choice
    questionText: No options here
""",
        )
        with pytest.raises(SurveyValidationError):
            SurveyLoader(temp_surveys_dir).load_survey("acme", "bad")

    def test_survey_caching(self, temp_surveys_dir, valid_survey_yaml):
        """Test that surveys are cached per loader call arguments."""
        self._write(temp_surveys_dir, "acme", "test_survey", valid_survey_yaml)
        loader = SurveyLoader(temp_surveys_dir)

        first = loader.load_survey("acme", "test_survey")
        second = loader.load_survey("acme", "test_survey")
        assert first is second

        loader.load_survey.cache_clear()
        third = loader.load_survey("acme", "test_survey")
        assert third is not first
        assert third == first

    @pytest.mark.asyncio
    async def test_fetch_survey(self, temp_surveys_dir, valid_survey_yaml):
        """Test the async fetch interface used by the collector."""
        self._write(temp_surveys_dir, "acme", "test_survey", valid_survey_yaml)
        survey = await SurveyLoader(temp_surveys_dir).fetch_survey("acme", "test_survey")
        assert survey.title == "Test Survey"

    @pytest.mark.asyncio
    async def test_fetch_survey_reads_off_the_event_loop(self, temp_surveys_dir, valid_survey_yaml):
        """Test the YAML read runs in a worker thread, not the loop thread."""
        class RecordingLoader(SurveyLoader):
            def load_survey(self, tenant_id, survey_id):
                self.read_thread = threading.current_thread()
                return super().load_survey(tenant_id, survey_id)

        self._write(temp_surveys_dir, "acme", "test_survey", valid_survey_yaml)
        loader = RecordingLoader(temp_surveys_dir)

        await loader.fetch_survey("acme", "test_survey")

        assert loader.read_thread is not threading.current_thread()

    def test_list_surveys(self, temp_surveys_dir, valid_survey_yaml):
        """Test listing a tenant's surveys."""
        self._write(temp_surveys_dir, "acme", "zeta", valid_survey_yaml)
        self._write(temp_surveys_dir, "acme", "alpha", valid_survey_yaml)
        loader = SurveyLoader(temp_surveys_dir)

        assert loader.list_surveys("acme") == ["alpha", "zeta"]
        assert loader.list_surveys("nobody") == []

    def test_missing_directory_does_not_raise(self, temp_surveys_dir):
        """Test creating a loader for a missing directory only warns."""
        loader = SurveyLoader(os.path.join(temp_surveys_dir, "missing"))
        assert loader.list_surveys("acme") == []


class TestBundledSurveys:
    """Tests for the demo surveys shipped with the service."""

    def test_demo_survey_is_well_formed(self):
        """Test the bundled demo survey loads and passes structural checks."""
        loader = SurveyLoader(str(BUNDLED_SURVEYS_DIR))

        survey = loader.load_survey("demo-tenant", "studio-intake")

        assert survey.title == "Find your class"
        assert survey.questions[0].type == QuestionType.CLASSIFIER
        assert survey.requests_contact
        assert SurveyValidator.find_problems(survey) == []
