"""Health check endpoint for monitoring and deployment verification.

Reports whether the application is running and how many response sessions
it is currently holding.
"""

from fastapi import APIRouter, Request

from survey_flow.config import get_settings
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        dict: Health status, survey source and active session count

    Example response:
        {
            "status": "healthy",
            "survey_source": "api",
            "active_sessions": 3
        }
    """
    settings = get_settings()
    registry = getattr(request.app.state, "session_registry", None)

    logger.debug("Health check passed")

    return {
        "status": "healthy",
        "survey_source": settings.survey_source,
        "active_sessions": len(registry) if registry is not None else 0,
    }
