"""Pydantic schemas for survey flow graphs and response payloads.

This module defines the question graph served by the tenant data API and the
payloads the engine sends back. Wire names are camelCase; attributes are
snake_case. ``Survey.model_validate`` is the single deserialization boundary
for a survey payload.

All models are frozen: a loaded survey is a value and is never mutated while
a respondent moves through it.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Node kinds in a survey flow graph.

    ``multiple-choice`` and ``text`` are answered by the respondent.
    ``classifier`` and ``finish`` are structural nodes.
    """
    MULTIPLE_CHOICE = "multiple-choice"
    TEXT = "text"
    CLASSIFIER = "classifier"
    FINISH = "finish"

    @property
    def is_respondent_facing(self) -> bool:
        return self in (QuestionType.MULTIPLE_CHOICE, QuestionType.TEXT)


class SurveyModel(BaseModel):
    """Base for survey schemas: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class QuestionOption(SurveyModel):
    """A selectable option on a multiple-choice or classifier question.

    Attributes:
        id: Option identifier, stored as the answer when selected
        label: Text shown to the respondent (or passed to the classifier)
        next_question_id: Branch target when this option is chosen
    """
    id: str = Field(..., min_length=1, description="Option identifier")
    label: str = Field(..., description="Option label")
    next_question_id: Optional[str] = Field(None, description="Branch target for this option")


class Question(SurveyModel):
    """A node in the survey flow graph.

    Attributes:
        id: Identifier, stable for the lifetime of the survey
        question_text: Prompt shown to the respondent
        type: Node kind
        options: Ordered options (multiple-choice and classifier only)
        required: Whether an empty answer is rejected (respondent-facing types only)
        order: Sequencing key used when the survey has no authored edges
        next_question_id: Default edge, followed when no option branch applies
    """
    id: str = Field(..., min_length=1, description="Question identifier")
    question_text: str = Field("", description="Prompt text")
    type: QuestionType = Field(..., description="Node kind")
    options: Optional[tuple[QuestionOption, ...]] = Field(None, description="Options")
    required: bool = Field(False, description="Whether an answer is mandatory")
    order: int = Field(0, description="Default sequencing key")
    next_question_id: Optional[str] = Field(None, description="Default next question")

    @model_validator(mode='after')
    def validate_node_requirements(self):
        """Validate node-specific requirements based on type."""
        if self.type != QuestionType.FINISH and not self.question_text.strip():
            raise ValueError(f"Question '{self.id}' must have question text")

        if self.type in (QuestionType.MULTIPLE_CHOICE, QuestionType.CLASSIFIER):
            if not self.options:
                raise ValueError(f"{self.type.value} question '{self.id}' must have at least one option")
            option_ids = [option.id for option in self.options]
            if len(option_ids) != len(set(option_ids)):
                raise ValueError(f"Question '{self.id}' has duplicate option IDs")
        elif self.options:
            raise ValueError(f"{self.type.value} question '{self.id}' cannot have options")

        return self

    @property
    def is_classifier(self) -> bool:
        return self.type == QuestionType.CLASSIFIER

    def get_option(self, option_id: Optional[str]) -> Optional[QuestionOption]:
        """Get option by ID.

        Args:
            option_id: Option identifier (None never matches)

        Returns:
            QuestionOption if found, None otherwise
        """
        if option_id is None:
            return None
        for option in self.options or ():
            if option.id == option_id:
                return option
        return None

    def edge_targets(self) -> list[str]:
        """List every authored edge target of this node, options first."""
        targets = [
            option.next_question_id
            for option in self.options or ()
            if option.next_question_id
        ]
        if self.next_question_id:
            targets.append(self.next_question_id)
        return targets


class ContactInfoSettings(SurveyModel):
    """Survey-level switches for contact details collected up front."""
    collect_name: bool = False
    name_required: bool = False
    collect_email: bool = False
    email_required: bool = False
    collect_phone: bool = False
    phone_required: bool = False

    @property
    def requests_any(self) -> bool:
        return self.collect_name or self.collect_email or self.collect_phone


class ContactInfo(SurveyModel):
    """Contact details given by a respondent."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class SurveyAnswer(SurveyModel):
    """One answer in a response trail.

    Attributes:
        question_id: Question being answered
        answer: Free text for text questions, option ID for multiple-choice
            and classifier questions (empty when a classifier had no decision)
    """
    question_id: str = Field(..., min_length=1)
    answer: str = ""


class AntiAbuseFields(SurveyModel):
    """Spam-protection values forwarded untouched with a submission.

    Attributes:
        honeypot: Hidden form field, empty for humans
        form_timestamp: Epoch milliseconds when the response session opened
    """
    honeypot: str = Field("", alias="_hp")
    form_timestamp: int = Field(..., alias="_ts")


class SubmissionPayload(SurveyModel):
    """Final response sent to the submission collaborator."""
    answers: tuple[SurveyAnswer, ...]
    contact_info: Optional[ContactInfo] = None
    anti_abuse: AntiAbuseFields

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the request body expected by the tenant data API.

        Returns:
            Dict with ``answers``, optional ``contactInfo``, ``_hp`` and ``_ts``
        """
        body: dict[str, Any] = {
            "answers": [answer.model_dump(by_alias=True) for answer in self.answers],
        }
        if self.contact_info is not None:
            body["contactInfo"] = self.contact_info.model_dump(by_alias=True, exclude_none=True)
        body.update(self.anti_abuse.model_dump(by_alias=True))
        return body


class Survey(SurveyModel):
    """Survey aggregate as returned by the survey fetch collaborator.

    Attributes:
        id: Survey identifier
        title: Survey title
        description: Optional intro text
        contact_info: Contact fields to collect before the questions
        questions: Flow graph nodes
        visitor_context: Opaque visitor details handed to the classifier
    """
    id: str = Field(..., min_length=1, description="Survey identifier")
    title: str = Field(..., description="Survey title")
    description: Optional[str] = Field(None, description="Survey description")
    contact_info: Optional[ContactInfoSettings] = Field(None, description="Contact collection settings")
    questions: tuple[Question, ...] = Field(default_factory=tuple)
    visitor_context: Optional[dict[str, Any]] = Field(None, description="Visitor details for classification")

    @field_validator('questions')
    @classmethod
    def question_ids_unique(cls, v):
        """Reject duplicate question IDs; edges would be ambiguous."""
        question_ids = [question.id for question in v]
        if len(question_ids) != len(set(question_ids)):
            duplicates = sorted({qid for qid in question_ids if question_ids.count(qid) > 1})
            raise ValueError(f"Duplicate question IDs found: {duplicates}")
        return v

    @property
    def requests_contact(self) -> bool:
        return self.contact_info is not None and self.contact_info.requests_any

    @property
    def respondent_question_count(self) -> int:
        """Number of questions counted by the progress indicator."""
        return sum(1 for question in self.questions if not question.is_classifier)

    def get_question(self, question_id: Optional[str]) -> Optional[Question]:
        """Get question by ID.

        Args:
            question_id: Question identifier

        Returns:
            Question if found, None otherwise
        """
        if question_id is None:
            return None
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
