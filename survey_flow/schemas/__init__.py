"""Pydantic schemas for data validation.

This package contains the survey graph models and response payloads.
"""

from survey_flow.schemas.survey import (
    QuestionType,
    QuestionOption,
    Question,
    ContactInfoSettings,
    ContactInfo,
    SurveyAnswer,
    AntiAbuseFields,
    SubmissionPayload,
    Survey,
)

__all__ = [
    "QuestionType",
    "QuestionOption",
    "Question",
    "ContactInfoSettings",
    "ContactInfo",
    "SurveyAnswer",
    "AntiAbuseFields",
    "SubmissionPayload",
    "Survey",
]
