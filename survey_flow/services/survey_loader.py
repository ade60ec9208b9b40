"""Local survey source backed by YAML files, with caching and validation.

Surveys live at ``{surveys_dir}/{tenant_id}/{survey_id}.yaml`` and use the
same field names as the tenant data API. This source stands in for the API
during development and serves the bundled demo surveys.
"""

import asyncio
from pathlib import Path
from functools import lru_cache
from typing import Optional
import yaml
from pydantic import ValidationError

from survey_flow.config import get_settings
from survey_flow.schemas.survey import Survey
from survey_flow.services.exceptions import SurveyLoadError
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


class SurveyNotFoundError(SurveyLoadError):
    """Raised when a survey file is not found."""
    pass


class SurveyValidationError(SurveyLoadError):
    """Raised when a survey file fails validation."""
    pass


class SurveyLoader:
    """Service for loading and caching survey definitions from YAML.

    Results are cached per (tenant, survey) for the lifetime of the loader.
    """

    def __init__(self, surveys_dir: Optional[str] = None):
        """Initialize survey loader.

        Args:
            surveys_dir: Path to surveys directory (defaults to settings.surveys_dir)
        """
        if surveys_dir is None:
            surveys_dir = get_settings().surveys_dir

        self.surveys_dir = Path(surveys_dir)

        if not self.surveys_dir.exists():
            logger.warning(f"Surveys directory not found: {self.surveys_dir}")

    @lru_cache(maxsize=128)
    def load_survey(self, tenant_id: str, survey_id: str) -> Survey:
        """Load and validate a survey from YAML file.

        Results are cached for performance; edits to a survey file are
        picked up after a restart.

        Args:
            tenant_id: Tenant directory name
            survey_id: Survey identifier (YAML filename without .yaml)

        Returns:
            Validated Survey object

        Raises:
            SurveyNotFoundError: If survey file doesn't exist
            SurveyValidationError: If survey fails validation

        Example:
            >>> loader = SurveyLoader()
            >>> survey = loader.load_survey("demo-tenant", "studio-intake")
            >>> print(survey.title)
            'Find your class'
        """
        yaml_path = self.surveys_dir / tenant_id / f"{survey_id}.yaml"

        if not yaml_path.is_file():
            logger.error(f"Survey file not found: {yaml_path}")
            raise SurveyNotFoundError("Survey not found")

        try:
            with open(yaml_path, 'r') as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error for {tenant_id}/{survey_id}: {e}")
            raise SurveyValidationError("Failed to load survey") from e
        except OSError as e:
            logger.error(f"Error reading survey file {yaml_path}: {e}")
            raise SurveyValidationError("Failed to load survey") from e

        if not isinstance(raw_data, dict):
            logger.error(f"Survey file {yaml_path} does not contain a mapping")
            raise SurveyValidationError("Failed to load survey")

        raw_data.setdefault("id", survey_id)

        try:
            survey = Survey.model_validate(raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for survey {tenant_id}/{survey_id}: {e}")
            raise SurveyValidationError("Failed to load survey") from e

        logger.info(f"Successfully loaded survey: {tenant_id}/{survey_id}")
        return survey

    async def fetch_survey(self, tenant_id: str, survey_id: str) -> Survey:
        """Survey fetch collaborator interface over load_survey.

        File reads and YAML parsing run in a worker thread so the event loop
        is not blocked.

        Raises:
            SurveyLoadError: If the survey is missing or invalid
        """
        return await asyncio.to_thread(self.load_survey, tenant_id, survey_id)

    def list_surveys(self, tenant_id: str) -> list[str]:
        """List all survey IDs available for a tenant.

        Returns:
            Sorted survey IDs (filenames without .yaml extension)
        """
        tenant_dir = self.surveys_dir / tenant_id
        if not tenant_dir.is_dir():
            return []

        survey_ids = [f.stem for f in tenant_dir.glob("*.yaml")]

        logger.debug(f"Found {len(survey_ids)} surveys for {tenant_id}: {survey_ids}")
        return sorted(survey_ids)
