"""Flow resolution for survey question graphs.

Pure functions that decide where a respondent starts and where an answer
leads. Nothing here performs I/O or keeps state, so replaying the same
question and answer always yields the same branch.

Convention for "no next question id":
    A survey with no authored edges at all is a plain ordered questionnaire
    and advances by ``order``. Once any question or option carries a
    ``next_question_id``, the graph is authored explicitly and a missing edge
    means the response is ready to submit.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from survey_flow.schemas.survey import Question, SurveyAnswer
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


def _ordered(questions: Sequence[Question]) -> list[Question]:
    """Sort by order, keeping input position for ties."""
    ranked = sorted(enumerate(questions), key=lambda item: (item[1].order, item[0]))
    return [question for _, question in ranked]


def get_start_question(questions: Sequence[Question]) -> Optional[Question]:
    """Return the entry question of a survey.

    The entry point is the question with the lowest ``order``; ties go to
    whichever comes first in the input.

    Args:
        questions: Survey questions in stored order

    Returns:
        Start question, or None for an empty survey
    """
    if not questions:
        return None
    return _ordered(questions)[0]


def get_next_question_id(current: Question, answer_value: Optional[str]) -> Optional[str]:
    """Determine the branch target for an answer.

    Resolution order:
    1. The option whose id equals ``answer_value``, if it has a target
    2. The question's own default ``next_question_id``
    3. None

    Args:
        current: Question just answered (or classified)
        answer_value: Answer text or chosen option id

    Returns:
        Target question id, or None when no edge applies
    """
    option = current.get_option(answer_value)
    if option is not None and option.next_question_id:
        return option.next_question_id

    if current.next_question_id:
        return current.next_question_id

    return None


def has_authored_edges(questions: Sequence[Question]) -> bool:
    """Check whether any question or option in the survey carries an edge."""
    return any(question.edge_targets() for question in questions)


def get_following_question(questions: Sequence[Question], current: Question) -> Optional[Question]:
    """Return the question after ``current`` in default order.

    Args:
        questions: Survey questions in stored order
        current: Question to advance from

    Returns:
        Next question by (order, input position), or None if ``current`` is last
    """
    ordered = _ordered(questions)
    for position, question in enumerate(ordered):
        if question.id == current.id:
            if position + 1 < len(ordered):
                return ordered[position + 1]
            return None
    return None


def resolve_next_question(
    questions: Sequence[Question],
    current: Question,
    answer_value: Optional[str],
) -> Optional[Question]:
    """Resolve the question that follows an answer.

    Args:
        questions: Survey questions in stored order
        current: Question just answered (or classified)
        answer_value: Answer text or chosen option id

    Returns:
        Next question, or None when the response should be submitted
    """
    next_id = get_next_question_id(current, answer_value)

    if next_id is not None:
        for question in questions:
            if question.id == next_id:
                return question
        logger.error(
            f"Question '{current.id}' points to missing question '{next_id}'; "
            "treating as end of survey"
        )
        return None

    if has_authored_edges(questions):
        return None

    return get_following_question(questions, current)


@dataclass(frozen=True)
class QuestionPath:
    """Result of replaying an answer trail.

    Attributes:
        visited: Ids of the questions the replayed answers belong to, in order
        next: Question the trail leads to, or None when it ends the survey
    """
    visited: tuple[str, ...]
    next: Optional[Question]


def build_question_path(
    questions: Sequence[Question],
    answers: Sequence[SurveyAnswer],
) -> QuestionPath:
    """Replay an answer trail from the start question.

    Each answer is applied to the question the flow is on. Replay stops at the
    first answer that belongs to a different question (off the path) or to a
    question already visited; answers after that point are ignored.

    Args:
        questions: Survey questions in stored order
        answers: Answer trail, oldest first

    Returns:
        QuestionPath with the questions answered along the path and the next one
    """
    visited: list[str] = []
    current = get_start_question(questions)

    for answer in answers:
        if current is None or answer.question_id != current.id or current.id in visited:
            break
        visited.append(current.id)
        current = resolve_next_question(questions, current, answer.answer)

    if current is not None and current.id in visited:
        logger.error(f"Answer trail leads back to answered question '{current.id}'")
        current = None

    return QuestionPath(visited=tuple(visited), next=current)
