"""Routes package for FastAPI endpoints.

This package contains all API route modules for the survey flow service.
"""

from survey_flow.routes import health, sessions, surveys

__all__ = ["health", "sessions", "surveys"]
