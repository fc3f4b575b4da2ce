"""
Slide generation endpoint.

POST /api/v1/slides: run the slide pipeline synchronously

Partial failures still return 200 with ``failedSlides > 0``; a run with no
usable slides answers 422.
"""

# No postponed annotations here: FastAPI resolves them through the rate-limit wrapper.
from fastapi import APIRouter, HTTPException, Request

from pitchdeck.agents.slides.graph import run_slide_pipeline
from pitchdeck.api.v1.deps import AuthenticatedUser, PipelineCollaborators
from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import SlideGenerationError
from pitchdeck.core.logging import get_logger
from pitchdeck.core.security import limiter
from pitchdeck.schemas.schemas import SlideGenerationRequest, SlideResponse

router = APIRouter(prefix="/slides", tags=["slides"])
logger = get_logger(__name__)
settings = get_settings()


@router.post("", response_model=SlideResponse)
@limiter.limit(settings.generation_rate_limit)
async def generate_slides(
    request: Request,
    body: SlideGenerationRequest,
    collaborators: PipelineCollaborators,
    _api_key: AuthenticatedUser,
) -> SlideResponse:
    """Generate structured content for every outlined slide."""
    logger.info("slides_requested", pitch_id=body.pitch_id, slide_count=len(body.slide_outlines))
    try:
        result = await run_slide_pipeline(
            body.model_dump(exclude_none=True),
            {"configurable": {"collaborators": collaborators}},
            on_progress=lambda message: logger.info("slides_progress", pitch_id=body.pitch_id, message=message),
        )
    except SlideGenerationError as e:
        logger.error("slides_request_failed", pitch_id=body.pitch_id, error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e
    return SlideResponse.model_validate(result)
