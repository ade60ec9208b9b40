"""HTTP client for the tenant data API.

Wraps the three collaborator calls the engine depends on:

- survey fetch:   GET  /api/data/tenants/{tenant}/surveys/{survey}
- classification: POST /api/data/tenants/{tenant}/surveys/{survey}/classify
- submission:     POST /api/data/tenants/{tenant}/surveys/{survey}

Responses use the envelope ``{"success": bool, "data": ..., "error": str}``.
"""

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from survey_flow.schemas.survey import Survey, SubmissionPayload
from survey_flow.services.exceptions import SubmissionError, SurveyLoadError
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


class SurveyApiClient:
    """Async client for survey fetch, visitor classification and submission.

    Usage:
        async with SurveyApiClient("https://api.example.com") as client:
            survey = await client.fetch_survey("acme", "intake")
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the tenant data API
            timeout_seconds: Per-request timeout
            transport: Optional transport (used by tests to stub the API)
        """
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "SurveyApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _survey_path(tenant_id: str, survey_id: str) -> str:
        return f"/api/data/tenants/{tenant_id}/surveys/{survey_id}"

    async def fetch_survey(self, tenant_id: str, survey_id: str) -> Survey:
        """Fetch and validate a survey.

        Args:
            tenant_id: Tenant owning the survey
            survey_id: Survey identifier

        Returns:
            Validated Survey

        Raises:
            SurveyLoadError: If the survey is missing, the request fails, or
                the payload does not describe a valid survey
        """
        path = self._survey_path(tenant_id, survey_id)
        try:
            response = await self._http.get(path)
        except httpx.HTTPError as e:
            logger.error(f"Transport error fetching survey {tenant_id}/{survey_id}: {e}")
            raise SurveyLoadError("Failed to load survey") from e

        if response.status_code == 404:
            logger.info(f"Survey not found: {tenant_id}/{survey_id}")
            raise SurveyLoadError("Survey not found")

        body = self._json_body(response)
        if response.status_code >= 400 or not body.get("success") or not body.get("data"):
            logger.error(
                f"Survey fetch for {tenant_id}/{survey_id} failed: "
                f"status={response.status_code}, error={body.get('error')}"
            )
            raise SurveyLoadError(body.get("error") or "Survey not found")

        try:
            survey = Survey.model_validate(body["data"])
        except ValidationError as e:
            logger.error(f"Invalid survey payload for {tenant_id}/{survey_id}: {e}")
            raise SurveyLoadError("Failed to load survey") from e

        logger.info(f"Loaded survey {tenant_id}/{survey_id} ({len(survey.questions)} questions)")
        return survey

    async def classify_visitor(
        self,
        tenant_id: str,
        survey_id: str,
        visitor_context: dict,
        options: list[dict],
    ) -> Optional[str]:
        """Ask the API to pick a classifier option for the visitor.

        Never raises: any failure is reported as "no decision".

        Args:
            tenant_id: Tenant owning the survey
            survey_id: Survey identifier
            visitor_context: Visitor details collected by the page
            options: Candidate ``{"id", "label"}`` dicts

        Returns:
            Chosen option id, or None
        """
        path = f"{self._survey_path(tenant_id, survey_id)}/classify"
        try:
            response = await self._http.post(
                path,
                json={"visitorContext": visitor_context, "options": options},
            )
            body = self._json_body(response)
        except httpx.HTTPError as e:
            logger.warning(f"Classification request failed for {tenant_id}/{survey_id}: {e}")
            return None

        if response.status_code >= 400 or not body.get("success"):
            logger.warning(
                f"Classification for {tenant_id}/{survey_id} returned no decision: "
                f"status={response.status_code}, error={body.get('error')}"
            )
            return None

        data = body.get("data") or {}
        option_id = data.get("optionId") if isinstance(data, dict) else None
        return option_id or None

    async def submit_response(self, tenant_id: str, survey_id: str, payload: SubmissionPayload) -> None:
        """Submit a completed survey response.

        Args:
            tenant_id: Tenant owning the survey
            survey_id: Survey identifier
            payload: Answers, contact details and anti-abuse fields

        Raises:
            SubmissionError: If the API rejects the response or cannot be reached
        """
        path = self._survey_path(tenant_id, survey_id)
        try:
            response = await self._http.post(path, json=payload.to_wire())
        except httpx.HTTPError as e:
            logger.error(f"Transport error submitting response for {tenant_id}/{survey_id}: {e}")
            raise SubmissionError("Failed to submit survey") from e

        body = self._json_body(response)
        if response.status_code >= 400 or not body.get("success"):
            logger.error(
                f"Submission for {tenant_id}/{survey_id} rejected: "
                f"status={response.status_code}, error={body.get('error')}"
            )
            raise SubmissionError(body.get("error") or "Failed to submit survey")

        logger.info(f"Submitted response for {tenant_id}/{survey_id} ({len(payload.answers)} answers)")

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON envelope, treating anything else as an empty body."""
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
