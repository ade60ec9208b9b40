"""Pydantic schemas for the response session HTTP API.

Request bodies sent by the survey page and the session view returned after
every action. Field names are camelCase on the wire, matching the survey
schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from survey_flow.schemas.survey import Question, QuestionType
from survey_flow.services.response_collector import ResponseCollector, Step


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OpenSessionRequest(ApiModel):
    """Body for opening a response session.

    Attributes:
        honeypot: Hidden form field; real visitors leave it empty
    """
    honeypot: str = Field("", alias="_hp", description="Hidden spam-trap field")


class ContactRequest(ApiModel):
    """Contact details entered before the questions."""
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)


class AnswerRequest(ApiModel):
    """Answer to the current question.

    Attributes:
        answer: Free text, or the chosen option id; omitted for finish nodes
    """
    answer: Optional[str] = Field(None, max_length=5000)


class OptionView(ApiModel):
    id: str
    label: str


class QuestionView(ApiModel):
    """Respondent-facing view of a question (no branch targets)."""
    id: str
    question_text: str
    type: QuestionType
    required: bool
    options: list[OptionView] = Field(default_factory=list)

    @classmethod
    def from_question(cls, question: Question) -> "QuestionView":
        return cls(
            id=question.id,
            question_text=question.question_text,
            type=question.type,
            required=question.required,
            options=[OptionView(id=o.id, label=o.label) for o in question.options or ()],
        )


class SessionView(ApiModel):
    """State of a response session as shown to the survey page.

    Attributes:
        session_id: Session identifier for follow-up calls
        step: contact, question or done
        title: Survey title
        description: Survey description
        question: Question to show (None at the contact and done steps)
        previous_answer: Earlier answer to the question, restored after going back
        progress: Percent of respondent-facing questions answered
        error: Last load or submission failure
        can_retry: Whether a failed submission can be resent
    """
    session_id: str
    step: Optional[Step]
    title: Optional[str] = None
    description: Optional[str] = None
    question: Optional[QuestionView] = None
    previous_answer: Optional[str] = None
    progress: int = 0
    error: Optional[str] = None
    can_retry: bool = False

    @classmethod
    def from_collector(cls, session_id: str, collector: ResponseCollector) -> "SessionView":
        survey = collector.survey
        current = collector.current_question
        return cls(
            session_id=session_id,
            step=collector.step,
            title=survey.title if survey else None,
            description=survey.description if survey else None,
            question=QuestionView.from_question(current) if current else None,
            previous_answer=collector.previous_answer,
            progress=collector.progress_percent,
            error=collector.error,
            can_retry=collector.can_retry_submission,
        )


class RejectedView(ApiModel):
    """Body returned when an action is rejected."""
    detail: str
    session: SessionView
