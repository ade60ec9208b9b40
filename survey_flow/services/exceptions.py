"""Exceptions raised by the survey collaborators.

Both are user-facing: the message is safe to show to a respondent.
"""


class SurveyLoadError(Exception):
    """Raised when a survey cannot be loaded (not found or transport error)."""
    pass


class SubmissionError(Exception):
    """Raised when a survey response could not be submitted."""
    pass
