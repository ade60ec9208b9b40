"""FastAPI application entry point for the survey flow service.

This module initializes the FastAPI application, sets up logging, wires the
survey collaborators into the session registry, registers routers, and
handles global exception handling.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from survey_flow.config import get_settings
from survey_flow.logging_config import setup_logging, get_logger
from survey_flow.routes import health, sessions, surveys
from survey_flow.services.session_registry import SessionRegistry
from survey_flow.services.survey_api import SurveyApiClient
from survey_flow.services.survey_loader import SurveyLoader

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Create the tenant API client and the survey source
    - Create the session registry

    Shutdown:
    - Close open response sessions
    - Close the HTTP client

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings = get_settings()
    setup_logging()

    api_client = SurveyApiClient(settings.api_base_url, timeout_seconds=settings.api_timeout_seconds)
    if settings.survey_source == "local":
        source = SurveyLoader(settings.surveys_dir)
    else:
        source = api_client

    app.state.session_registry = SessionRegistry(
        source=source,
        gateway=api_client,
        timeout_minutes=settings.session_timeout_minutes,
        classifier_timeout_seconds=settings.classifier_timeout_seconds,
    )

    logger.info(
        f"Survey Flow service starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Survey source: {settings.survey_source}, "
        f"API: {settings.api_base_url}"
    )

    yield

    app.state.session_registry.close_all()
    await api_client.aclose()
    logger.info("Survey Flow service shutting down")


# Initialize FastAPI application
app = FastAPI(
    title="Survey Flow",
    description="Branching survey response engine with AI-routed classifier questions",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_allowed_origins_list(),
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


# Root endpoint
@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information.

    Returns:
        dict: API information and status
    """
    settings = get_settings()
    return {
        "service": "Survey Flow",
        "version": "1.0.0",
        "environment": settings.environment,
        "status": "operational"
    }


# Register routers
app.include_router(health.router, tags=["Health"])
app.include_router(sessions.router, tags=["Sessions"])
app.include_router(surveys.router, tags=["Surveys"])


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Logs all unhandled exceptions and returns a generic error response
    to prevent leaking internal details.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Generic error response
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
