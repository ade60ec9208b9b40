"""Survey listing for the local YAML source.

Lets the survey page (or a developer) discover which bundled surveys a
tenant has when the service runs with SURVEY_SOURCE=local.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from survey_flow.routes.sessions import get_registry
from survey_flow.services.session_registry import SessionRegistry
from survey_flow.services.survey_loader import SurveyLoader
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/api/tenants/{tenant_id}/surveys")
async def list_surveys(
    tenant_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> dict:
    """List survey ids available to a tenant.

    Raises:
        HTTPException: 404 when surveys are served by the tenant data API
    """
    source = registry.source
    if not isinstance(source, SurveyLoader):
        raise HTTPException(status_code=404, detail="Survey listing is only available for local surveys")

    survey_ids = source.list_surveys(tenant_id)
    logger.debug(f"Listed {len(survey_ids)} surveys for tenant {tenant_id}")
    return {"tenantId": tenant_id, "surveys": survey_ids}
