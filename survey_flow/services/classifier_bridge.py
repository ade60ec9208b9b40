"""Classifier bridge for resolving AI-routed survey nodes.

Classifier questions are never shown to the respondent. Each one asks an
external classification call to pick one of its options for the visitor, the
choice is recorded as an answer, and the flow continues along that option's
branch until a respondent-facing question (or the end of the survey) is
reached.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from survey_flow.schemas.survey import Question, SurveyAnswer
from survey_flow.services.flow_resolver import resolve_next_question
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassifierAdvance:
    """Outcome of advancing past classifier nodes.

    Attributes:
        question: First non-classifier question reached, or None for end of survey.
            Still a classifier only when a classifier cycle stopped the walk.
        answers: Answer trail including one record per classifier visited
    """
    question: Optional[Question]
    answers: tuple[SurveyAnswer, ...]


class ClassifierBridge:
    """Resolves runs of consecutive classifier nodes without respondent input.

    Args:
        classifier: Collaborator with an async ``classify_visitor`` method
        tenant_id: Tenant owning the survey
        survey_id: Survey being answered
        timeout_seconds: Upper bound on each classification call
    """

    def __init__(self, classifier: Any, tenant_id: str, survey_id: str, timeout_seconds: float):
        self.classifier = classifier
        self.tenant_id = tenant_id
        self.survey_id = survey_id
        self.timeout_seconds = timeout_seconds

    async def advance_past_classifiers(
        self,
        question: Optional[Question],
        answers: Sequence[SurveyAnswer],
        visitor_context: Optional[dict],
        questions: Sequence[Question],
    ) -> ClassifierAdvance:
        """Walk forward through classifier nodes.

        Every classifier visited produces an answer record, even when the
        classification call fails, so the trail shows what was decided. Reaching
        a classifier that was already visited (in this walk or earlier in the
        trail) is a survey authoring defect: it is logged and the walk stops
        there, returning that classifier.

        Args:
            question: Question the flow is about to show
            answers: Answers accumulated so far (not modified)
            visitor_context: Visitor details passed to the classifier
            questions: All survey questions

        Returns:
            ClassifierAdvance with the next visible question and updated answers
        """
        current = question
        accumulated = list(answers)
        # Questions already in the trail count as visited
        visited = {answer.question_id for answer in answers}

        while current is not None and current.is_classifier:
            if current.id in visited:
                logger.error(
                    f"Classifier cycle detected at '{current.id}' in survey {self.survey_id}; "
                    "stopping classifier resolution"
                )
                break
            visited.add(current.id)

            candidates = [{"id": option.id, "label": option.label} for option in current.options or ()]
            chosen = await self._classify(current, visitor_context or {}, candidates)

            accumulated.append(SurveyAnswer(question_id=current.id, answer=chosen or ""))
            current = resolve_next_question(questions, current, chosen)

        return ClassifierAdvance(question=current, answers=tuple(accumulated))

    async def _classify(
        self,
        question: Question,
        visitor_context: dict,
        candidates: list[dict],
    ) -> Optional[str]:
        """Call the classifier, turning every failure into "no decision".

        Args:
            question: Classifier question being resolved
            visitor_context: Visitor details
            candidates: Option ids and labels to choose between

        Returns:
            Chosen option id, or None
        """
        try:
            chosen = await asyncio.wait_for(
                self.classifier.classify_visitor(
                    self.tenant_id,
                    self.survey_id,
                    visitor_context,
                    candidates,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Classifier '{question.id}' timed out after {self.timeout_seconds}s; "
                "continuing without a decision"
            )
            return None
        except Exception as e:
            logger.warning(f"Classifier '{question.id}' failed: {e}; continuing without a decision")
            return None

        if not chosen:
            logger.info(f"Classifier '{question.id}' made no decision")
            return None

        if question.get_option(chosen) is None:
            logger.warning(f"Classifier '{question.id}' returned unknown option '{chosen}'; ignoring")
            return None

        logger.debug(f"Classifier '{question.id}' chose option '{chosen}'")
        return chosen
