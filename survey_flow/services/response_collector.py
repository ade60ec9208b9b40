"""Response collector for driving a respondent through a survey.

This module owns one response session: it loads the survey, collects contact
details, walks the question graph (resolving classifier nodes on the way),
accumulates answers and submits the final response.

States:
    contact  -> question  (all required contact fields given)
    question -> question  (answer accepted, another visible question follows)
    question -> question  (go_back to the previous respondent answer)
    question -> done      (submission succeeded)

The collector is driven by discrete respondent actions. At most one
operation runs at a time; calls made while one is in flight are rejected.
After ``close()`` any in-flight result is discarded without touching state.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Optional, Sequence

from survey_flow.config import get_settings
from survey_flow.schemas.survey import (
    AntiAbuseFields,
    ContactInfo,
    Question,
    QuestionType,
    SubmissionPayload,
    Survey,
    SurveyAnswer,
)
from survey_flow.services.classifier_bridge import ClassifierBridge
from survey_flow.services.exceptions import SubmissionError, SurveyLoadError
from survey_flow.services.flow_resolver import (
    build_question_path,
    get_start_question,
    resolve_next_question,
)
from survey_flow.services.survey_validator import SurveyValidator
from survey_flow.services.validation import InputValidator
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)

SESSION_CLOSED_MESSAGE = "This survey session has ended."
BUSY_MESSAGE = "Please wait for the current request to finish."
SUBMIT_FAILED_MESSAGE = "Failed to submit survey"
LOAD_FAILED_MESSAGE = "Failed to load survey"


class Step(str, Enum):
    """Response session steps."""
    CONTACT = "contact"
    QUESTION = "question"
    DONE = "done"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a respondent action.

    Attributes:
        accepted: Whether the action changed the session
        error_message: Why the action was rejected or failed
    """
    accepted: bool
    error_message: Optional[str] = None


ACCEPTED = StepResult(accepted=True)


class ResponseCollector:
    """Stateful orchestrator for a single survey response.

    Args:
        tenant_id: Tenant owning the survey
        survey_id: Survey to answer
        source: Collaborator with async ``fetch_survey(tenant_id, survey_id)``
        gateway: Collaborator with async ``classify_visitor`` and ``submit_response``
        classifier_timeout_seconds: Bound on each classification call
            (defaults to settings.classifier_timeout_seconds)
        anti_abuse: Spam-protection fields forwarded with the submission
        session_id: Identifier used in log records
    """

    def __init__(
        self,
        tenant_id: str,
        survey_id: str,
        source: Any,
        gateway: Any,
        classifier_timeout_seconds: Optional[float] = None,
        anti_abuse: Optional[AntiAbuseFields] = None,
        session_id: Optional[str] = None,
    ):
        if classifier_timeout_seconds is None:
            classifier_timeout_seconds = get_settings().classifier_timeout_seconds

        self.tenant_id = tenant_id
        self.survey_id = survey_id
        self.source = source
        self.gateway = gateway
        self.anti_abuse = anti_abuse or AntiAbuseFields(
            honeypot="",
            form_timestamp=int(time.time() * 1000),
        )
        self.bridge = ClassifierBridge(gateway, tenant_id, survey_id, classifier_timeout_seconds)
        log_context = {"tenant_id": tenant_id, "survey_id": survey_id}
        if session_id is not None:
            log_context["session_id"] = session_id
        self.log = logging.LoggerAdapter(logger, log_context)

        self._survey: Optional[Survey] = None
        self._step: Optional[Step] = None
        self._current: Optional[Question] = None
        self._previous_answer: Optional[str] = None
        self._answers: tuple[SurveyAnswer, ...] = ()
        self._contact: Optional[ContactInfo] = None
        self._pending_payload: Optional[SubmissionPayload] = None
        self._error: Optional[str] = None
        self._pending = False
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only session state
    # ------------------------------------------------------------------

    @property
    def survey(self) -> Optional[Survey]:
        return self._survey

    @property
    def step(self) -> Optional[Step]:
        """Current step, or None until the survey is loaded."""
        return self._step

    @property
    def current_question(self) -> Optional[Question]:
        return self._current

    @property
    def previous_answer(self) -> Optional[str]:
        """Answer given earlier to the current question, restored by go_back()."""
        return self._previous_answer

    @property
    def answers(self) -> tuple[SurveyAnswer, ...]:
        return self._answers

    @property
    def error(self) -> Optional[str]:
        """Last load or submission failure shown to the respondent."""
        return self._error

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def can_retry_submission(self) -> bool:
        return self._pending_payload is not None and self._step == Step.QUESTION

    @property
    def progress_percent(self) -> int:
        """Share of respondent-facing questions answered, 0-100.

        Classifier nodes and their answers are left out of both counts.
        """
        if self._survey is None:
            return 0
        total = self._survey.respondent_question_count
        if total == 0:
            return 0
        classifier_ids = {q.id for q in self._survey.questions if q.is_classifier}
        answered = sum(1 for answer in self._answers if answer.question_id not in classifier_ids)
        return int(answered * 100 / total + 0.5)

    # ------------------------------------------------------------------
    # Respondent actions
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch the survey and enter the first step.

        Starts at the contact step when the survey asks for any contact
        field, otherwise goes straight to the first visible question.

        Raises:
            SurveyLoadError: If the survey cannot be fetched
        """
        if self._closed or self._pending or self._survey is not None:
            return

        self._pending = True
        try:
            try:
                survey = await self.source.fetch_survey(self.tenant_id, self.survey_id)
            except SurveyLoadError as e:
                self._error = str(e) or LOAD_FAILED_MESSAGE
                raise
            except Exception as e:
                self.log.error(f"Unexpected error loading survey: {e}", exc_info=True)
                self._error = LOAD_FAILED_MESSAGE
                raise SurveyLoadError(LOAD_FAILED_MESSAGE) from e

            if self._closed:
                self.log.debug("Session closed during survey load; discarding result")
                return

            try:
                problems = SurveyValidator.find_problems(survey)
            except Exception as e:
                self.log.error(f"Survey structure check failed: {e}", exc_info=True)
                problems = []
            if problems:
                self.log.warning(f"Survey has configuration problems: {problems}")

            self._survey = survey
            self._error = None

            if survey.requests_contact:
                self._step = Step.CONTACT
                self.log.info("Survey loaded; collecting contact details")
            else:
                self.log.info("Survey loaded; starting questions")
                await self._enter_questions()
        finally:
            self._pending = False

    async def submit_contact(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> StepResult:
        """Accept contact details and move on to the questions.

        Nothing is fetched or classified when a required field is missing.

        Args:
            name: Respondent name
            email: Respondent email
            phone: Respondent phone

        Returns:
            StepResult
        """
        rejection = self._check_ready(Step.CONTACT)
        if rejection is not None:
            return rejection

        settings = self._survey.contact_info
        contact = ContactInfo(name=name, email=email, phone=phone)
        result = InputValidator.validate_contact(settings, contact)
        if not result.is_valid:
            return StepResult(False, result.error_message)

        self._contact = ContactInfo(
            name=(name or "").strip() if settings.collect_name else None,
            email=(email or "").strip() if settings.collect_email else None,
            phone=(phone or "").strip() if settings.collect_phone else None,
        )
        return await self._guarded(self._enter_questions())

    async def submit_answer(self, value: Optional[str]) -> StepResult:
        """Answer the current question and advance.

        Args:
            value: Free text, or the chosen option id for multiple-choice

        Returns:
            StepResult
        """
        rejection = self._check_ready(Step.QUESTION)
        if rejection is not None:
            return rejection

        current = self._current
        if current is None:
            return StepResult(False, "There is no question to answer.")

        if current.type == QuestionType.FINISH:
            return await self._guarded(self._submit(self._answers))

        result = InputValidator.validate_answer(current, value)
        if not result.is_valid:
            return StepResult(False, result.error_message)

        return await self._guarded(self._advance(current, result.normalized_value))

    async def retry_submission(self) -> StepResult:
        """Resend the last failed submission unchanged."""
        rejection = self._check_ready(Step.QUESTION)
        if rejection is not None:
            return rejection
        if self._pending_payload is None:
            return StepResult(False, "There is no submission to retry.")

        self.log.info("Retrying submission")
        return await self._guarded(self._send(self._pending_payload))

    def go_back(self) -> StepResult:
        """Return to the previous respondent-facing question.

        Drops the last respondent answer together with the classifier answers
        recorded after it, then replays the remaining trail to find the
        question to show. Classifiers before that answer keep their recorded
        decisions and are not called again. The dropped answer is offered as
        ``previous_answer``.

        Returns:
            StepResult
        """
        rejection = self._check_ready(Step.QUESTION)
        if rejection is not None:
            return rejection

        survey = self._survey
        classifier_ids = {q.id for q in survey.questions if q.is_classifier}
        trail = list(self._answers)
        dropped: Optional[SurveyAnswer] = None
        while trail:
            answer = trail.pop()
            if answer.question_id not in classifier_ids:
                dropped = answer
                break

        if dropped is None:
            return StepResult(False, "There is no previous question.")

        path = build_question_path(survey.questions, trail)
        if path.next is None or path.next.id != dropped.question_id or len(path.visited) != len(trail):
            self.log.error(f"Answer trail does not replay back to '{dropped.question_id}'; staying put")
            return StepResult(False, "Cannot go back from this question.")

        self._answers = tuple(trail)
        self._current = path.next
        self._previous_answer = dropped.answer
        self._pending_payload = None
        self._error = None
        self.log.debug(f"Went back to '{path.next.id}'")
        return ACCEPTED

    def close(self) -> None:
        """Tear the session down; later results from in-flight calls are dropped."""
        if not self._closed:
            self._closed = True
            self.log.info(f"Response session closed at step {self._step.value if self._step else 'loading'}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _enter_questions(self) -> StepResult:
        """Enter the question step at the start question."""
        survey = self._survey
        start = get_start_question(survey.questions)
        advance = await self.bridge.advance_past_classifiers(
            start, (), survey.visitor_context, survey.questions
        )
        if self._closed:
            return self._discarded()

        self._step = Step.QUESTION
        self._error = None
        visible = self._visible(advance.question, advance.answers)
        if visible is not None:
            self._answers = advance.answers
            self._current = visible
            self._previous_answer = None
            return ACCEPTED

        self.log.info("No visible question at start; submitting")
        return await self._submit(advance.answers)

    async def _advance(self, current: Question, answer_value: str) -> StepResult:
        """Record an accepted answer and move to the next visible question."""
        survey = self._survey
        updated = self._answers + (SurveyAnswer(question_id=current.id, answer=answer_value),)

        next_question = resolve_next_question(survey.questions, current, answer_value)
        if next_question is None or self._revisits(next_question, updated):
            return await self._submit(updated)

        advance = await self.bridge.advance_past_classifiers(
            next_question, updated, survey.visitor_context, survey.questions
        )
        if self._closed:
            return self._discarded()

        visible = self._visible(advance.question, advance.answers)
        if visible is not None:
            self._answers = advance.answers
            self._current = visible
            self._previous_answer = None
            self._error = None
            self.log.debug(f"Advanced from '{current.id}' to '{visible.id}'")
            return ACCEPTED

        return await self._submit(advance.answers)

    def _visible(
        self,
        question: Optional[Question],
        answers: Sequence[SurveyAnswer],
    ) -> Optional[Question]:
        """Filter a resolved question down to one that may be shown next.

        A classifier left over from a cycle, or a question already in the
        answer trail, is a survey authoring defect and ends the survey.
        """
        if question is None or self._revisits(question, answers):
            return None
        if question.is_classifier:
            self.log.error(f"Classifier '{question.id}' could not be resolved; submitting instead")
            return None
        return question

    def _revisits(self, question: Question, answers: Sequence[SurveyAnswer]) -> bool:
        if any(answer.question_id == question.id for answer in answers):
            self.log.error(f"Flow revisits answered question '{question.id}'; submitting instead")
            return True
        return False

    async def _submit(self, answers: Sequence[SurveyAnswer]) -> StepResult:
        payload = SubmissionPayload(
            answers=tuple(answers),
            contact_info=self._contact_payload(),
            anti_abuse=self.anti_abuse,
        )
        self._pending_payload = payload
        return await self._send(payload)

    async def _send(self, payload: SubmissionPayload) -> StepResult:
        """Send a payload; only success changes the accumulated answers."""
        try:
            await self.gateway.submit_response(self.tenant_id, self.survey_id, payload)
        except SubmissionError as e:
            message = str(e) or SUBMIT_FAILED_MESSAGE
        except Exception as e:
            self.log.error(f"Unexpected error submitting response: {e}", exc_info=True)
            message = SUBMIT_FAILED_MESSAGE
        else:
            if self._closed:
                return self._discarded()
            self._answers = payload.answers
            self._current = None
            self._previous_answer = None
            self._pending_payload = None
            self._error = None
            self._step = Step.DONE
            self.log.info(f"Response submitted with {len(payload.answers)} answers")
            return ACCEPTED

        if self._closed:
            return self._discarded()
        self._error = message
        self.log.warning(f"Submission failed: {message}")
        return StepResult(False, message)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_ready(self, expected: Step) -> Optional[StepResult]:
        if self._closed:
            return StepResult(False, SESSION_CLOSED_MESSAGE)
        if self._pending:
            return StepResult(False, BUSY_MESSAGE)
        if self._survey is None:
            return StepResult(False, "The survey has not been loaded.")
        if self._step == Step.DONE:
            return StepResult(False, "This survey has already been submitted.")
        if self._step != expected:
            return StepResult(False, f"Not available during the {self._step.value} step.")
        return None

    async def _guarded(self, operation: Awaitable[StepResult]) -> StepResult:
        """Run an operation with the session marked busy."""
        self._pending = True
        try:
            return await operation
        finally:
            self._pending = False

    def _discarded(self) -> StepResult:
        self.log.debug("Session closed while a call was in flight; discarding result")
        return StepResult(False, SESSION_CLOSED_MESSAGE)

    def _contact_payload(self) -> Optional[ContactInfo]:
        if self._contact is None:
            return None
        values = {
            "name": self._contact.name or None,
            "email": self._contact.email or None,
            "phone": self._contact.phone or None,
        }
        if not any(values.values()):
            return None
        return ContactInfo(**values)
