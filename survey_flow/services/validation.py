"""Input validation for survey answers and contact details.

Validation failures are values, not exceptions: a rejected answer blocks the
transition and carries a message for the respondent.
"""

import re
from typing import Optional
from dataclasses import dataclass

from survey_flow.schemas.survey import ContactInfo, ContactInfoSettings, Question, QuestionType
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class ValidationResult:
    """Result of input validation.

    Attributes:
        is_valid: Whether input passed validation
        normalized_value: Cleaned/normalized input value
        error_message: Error message if validation failed
    """
    is_valid: bool
    normalized_value: Optional[str]
    error_message: Optional[str]


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class InputValidator:
    """Service for validating respondent input."""

    @staticmethod
    def validate_answer(question: Question, user_input: Optional[str]) -> ValidationResult:
        """Validate an answer against a question.

        - required questions reject empty (whitespace-only) input
        - multiple-choice answers must name one of the question's options
        - finish and classifier nodes never take typed answers

        Args:
            question: Question being answered
            user_input: Raw answer from the respondent

        Returns:
            ValidationResult with validation status and trimmed value

        Example:
            >>> result = InputValidator.validate_answer(required_text_question, "  ")
            >>> result.is_valid
            False
        """
        normalized = _clean(user_input)

        if not question.type.is_respondent_facing:
            logger.error(f"Attempt to answer non-respondent question {question.id} ({question.type.value})")
            return ValidationResult(
                is_valid=False,
                normalized_value=None,
                error_message="This question cannot be answered."
            )

        if not normalized:
            if question.required:
                return ValidationResult(
                    is_valid=False,
                    normalized_value=None,
                    error_message="Please answer this question."
                )
            return ValidationResult(is_valid=True, normalized_value="", error_message=None)

        if question.type == QuestionType.MULTIPLE_CHOICE and question.get_option(normalized) is None:
            return ValidationResult(
                is_valid=False,
                normalized_value=None,
                error_message="Please choose one of the options."
            )

        return ValidationResult(is_valid=True, normalized_value=normalized, error_message=None)

    @staticmethod
    def validate_contact(settings: ContactInfoSettings, contact: ContactInfo) -> ValidationResult:
        """Validate contact details against the survey's collection settings.

        Only collected fields are checked. A required field must be non-empty
        after trimming; an email, when given, must look like an address.

        Args:
            settings: Which fields are collected and required
            contact: Values entered by the respondent

        Returns:
            ValidationResult (normalized_value is unused)
        """
        name = _clean(contact.name)
        email = _clean(contact.email)
        phone = _clean(contact.phone)

        if settings.collect_name and settings.name_required and not name:
            return ValidationResult(False, None, "Please enter your name.")
        if settings.collect_email and settings.email_required and not email:
            return ValidationResult(False, None, "Please enter your email address.")
        if settings.collect_phone and settings.phone_required and not phone:
            return ValidationResult(False, None, "Please enter your phone number.")
        if settings.collect_email and email and not EMAIL_PATTERN.match(email):
            return ValidationResult(False, None, "Please enter a valid email address.")

        return ValidationResult(is_valid=True, normalized_value=None, error_message=None)
