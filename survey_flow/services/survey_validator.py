"""Survey graph validator for structural analysis.

This module validates the survey flow graph to ensure:
- All edge targets exist
- There is exactly one entry point
- Classifier nodes cannot be answered by the respondent
- No circular references
"""

from typing import Set, Dict, List
from collections import defaultdict, deque

from survey_flow.schemas.survey import Survey, QuestionType
from survey_flow.services.flow_resolver import get_start_question, has_authored_edges
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


class SurveyStructureError(Exception):
    """Raised when survey structure is invalid."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class SurveyValidator:
    """Service for validating survey flow graph structure."""

    @staticmethod
    def validate(survey: Survey) -> None:
        """Validate survey structure.

        Args:
            survey: Survey to validate

        Raises:
            SurveyStructureError: If structure is invalid

        Example:
            >>> survey = loader.load_survey("acme", "intake")
            >>> SurveyValidator.validate(survey)  # Raises if invalid
        """
        problems = SurveyValidator.find_problems(survey)
        if problems:
            raise SurveyStructureError(problems)

        logger.info(f"Survey {survey.id} validated successfully")

    @staticmethod
    def is_well_formed(survey: Survey) -> bool:
        """Check the survey against every structural rule without raising."""
        return not SurveyValidator.find_problems(survey)

    @staticmethod
    def find_problems(survey: Survey) -> List[str]:
        """Collect structural problems in a survey.

        Checks:
        1. Survey has at least one question
        2. Exactly one question holds the lowest order (single entry point)
        3. Every option and default next reference points to an existing question
        4. Classifier nodes are not required and have at least one option
        5. No circular references among authored edges

        Unreachable questions are logged as warnings, not reported.

        Args:
            survey: Survey to analyze

        Returns:
            List of human-readable problem descriptions (empty if well-formed)
        """
        problems: List[str] = []

        if not survey.questions:
            return ["Survey has no questions"]

        start = get_start_question(survey.questions)
        tied = [q.id for q in survey.questions if q.order == start.order]
        if len(tied) > 1:
            problems.append(f"Ambiguous entry point: questions {tied} share order {start.order}")

        question_ids = {q.id for q in survey.questions}
        for question in survey.questions:
            for target in question.edge_targets():
                if target not in question_ids:
                    problems.append(f"Question '{question.id}' references missing question '{target}'")

        for question in survey.questions:
            if question.type == QuestionType.CLASSIFIER:
                if question.required:
                    problems.append(f"Classifier '{question.id}' cannot be required")
                if not question.options:
                    problems.append(f"Classifier '{question.id}' has no options")

        graph = SurveyValidator._build_graph(survey)
        if SurveyValidator._has_cycles(graph, [q.id for q in survey.questions]):
            problems.append("Survey contains circular references")

        if has_authored_edges(survey.questions):
            reachable = SurveyValidator._get_reachable_questions(graph, start.id)
            unreachable = sorted(question_ids - reachable)
            if unreachable:
                logger.warning(f"Survey {survey.id} has unreachable questions: {unreachable}")

        return problems

    @staticmethod
    def _build_graph(survey: Survey) -> Dict[str, List[str]]:
        """Build adjacency list representation of survey flow.

        Args:
            survey: Survey to analyze

        Returns:
            Dictionary mapping question_id -> list of next question IDs
        """
        graph = defaultdict(list)

        for question in survey.questions:
            graph[question.id].extend(question.edge_targets())

        return graph

    @staticmethod
    def _has_cycles(graph: Dict[str, List[str]], node_ids: List[str]) -> bool:
        """Detect cycles in survey flow using an iterative DFS.

        Every node is used as a root so cycles in unreachable parts of the
        graph are found too. An explicit stack keeps long question chains
        within bounded Python stack depth.

        Args:
            graph: Adjacency list representation
            node_ids: All question IDs

        Returns:
            True if cycle detected, False otherwise
        """
        visited = set()
        rec_stack = set()

        for root in node_ids:
            if root in visited:
                continue

            visited.add(root)
            rec_stack.add(root)
            stack = [(root, iter(graph.get(root, [])))]

            while stack:
                node, neighbors = stack[-1]
                for neighbor in neighbors:
                    if neighbor in rec_stack:
                        # Back edge found = cycle
                        return True
                    if neighbor not in visited:
                        visited.add(neighbor)
                        rec_stack.add(neighbor)
                        stack.append((neighbor, iter(graph.get(neighbor, []))))
                        break
                else:
                    rec_stack.remove(node)
                    stack.pop()

        return False

    @staticmethod
    def _get_reachable_questions(graph: Dict[str, List[str]], start_id: str) -> Set[str]:
        """Get all questions reachable from start using BFS.

        Args:
            graph: Adjacency list representation
            start_id: Starting question ID

        Returns:
            Set of reachable question IDs
        """
        reachable = {start_id}
        queue = deque([start_id])

        while queue:
            current = queue.popleft()

            for neighbor in graph.get(current, []):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)

        return reachable
