"""
Initializer node — validates the request and seeds progress tracking.
"""

from __future__ import annotations

import time

from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.slides.state import SlideState
from pitchdeck.core.exceptions import ValidationError
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)


async def initializer_node(state: SlideState, config: RunnableConfig) -> dict:
    request = state.get("input") or {}

    try:
        outlines = request.get("slide_outlines") or []
        if not outlines:
            raise ValidationError("no slide outlines provided for generation")
        if request.get("pitch_context") is None:
            raise ValidationError("no pitch context provided for generation")

        logger.info("slide_run_initialized", client=request.get("client_name"), slide_count=len(outlines))
        return {
            "context_data": request["pitch_context"],
            "slide_outlines": list(outlines),
            "slide_progress": {outline["id"]: "pending" for outline in outlines},
            "processing_metadata": {
                "start_time": time.time(),
                "total_slides": len(outlines),
                "completed_slides": 0,
                "failed_slides": 0,
            },
        }

    except Exception as e:
        logger.error("slide_initialization_error", error=str(e))
        return {"error": f"Initialization error: {e}"}
