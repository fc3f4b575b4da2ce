"""
Outline generation endpoint.

POST /api/v1/outlines: run the outline pipeline synchronously

Always answers 200: pipeline failures come back in the ``error`` field.
"""

# No postponed annotations here: FastAPI resolves them through the rate-limit wrapper.
from fastapi import APIRouter, Request

from pitchdeck.agents.outline.graph import run_outline_pipeline
from pitchdeck.api.v1.deps import AuthenticatedUser, PipelineCollaborators
from pitchdeck.core.config import get_settings
from pitchdeck.core.logging import get_logger
from pitchdeck.core.security import limiter
from pitchdeck.schemas.schemas import OutlineGenerationRequest, OutlineResponse

router = APIRouter(prefix="/outlines", tags=["outlines"])
logger = get_logger(__name__)
settings = get_settings()


@router.post("", response_model=OutlineResponse)
@limiter.limit(settings.generation_rate_limit)
async def generate_outline(
    request: Request,
    body: OutlineGenerationRequest,
    collaborators: PipelineCollaborators,
    _api_key: AuthenticatedUser,
) -> OutlineResponse:
    """Generate a markdown pitch outline for one pitch."""
    logger.info("outline_requested", pitch_id=body.pitch_id, stage=body.pitch_stage)
    result = await run_outline_pipeline(
        body.model_dump(exclude_none=True),
        {"configurable": {"collaborators": collaborators}},
    )
    return OutlineResponse.model_validate(result)
