"""
Terminal slide nodes — normal aggregation and the partial-failure handler.

Both build the single ``output`` of a run and store the slides on the pitch
record. ``handle_error`` is reached when the fan-out reported failures; it
keeps whatever slides did succeed.
"""

from __future__ import annotations

import time

from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators
from pitchdeck.agents.slides.state import (
    GeneratedSlideContent,
    GenerationMetadata,
    SlideResult,
    SlideState,
    sort_slides,
)
from pitchdeck.core.exceptions import AggregationFailure
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

PITCHES_COLLECTION = "pitches"


def _context_sources(slides: list[GeneratedSlideContent]) -> list[str]:
    seen: dict[str, None] = {}
    for slide in slides:
        for source in slide["metadata"].get("context_used") or []:
            seen.setdefault(source, None)
    return list(seen)


def build_result(state: SlideState) -> SlideResult:
    slides = sort_slides(state.get("generated_slides") or [])
    meta = state.get("processing_metadata") or {}
    total = meta.get("total_slides", len(state.get("slide_outlines") or []))
    start = meta.get("start_time")
    processing_time = round(time.time() - start, 3) if start else 0.0
    sources = _context_sources(slides)
    failed = total - len(slides)
    client = (state.get("input") or {}).get("client_name", "")

    summary = (
        f"Generated {len(slides)} of {total} slides successfully for {client}. "
        f"Processing completed in {round(processing_time)}s. "
        f"Context sources used: {', '.join(sources) or 'none'}."
    )
    if failed > 0:
        summary += f" {failed} slides failed to generate."

    return SlideResult(
        slides=slides,
        summary=summary,
        generation_metadata=GenerationMetadata(
            total_slides=total,
            successful_slides=len(slides),
            failed_slides=failed,
            processing_time=processing_time,
            context_sources=sources,
        ),
    )


async def _persist(state: SlideState, config: RunnableConfig, slides: list[GeneratedSlideContent]) -> None:
    pitch_id = (state.get("input") or {}).get("pitch_id")
    if not pitch_id:
        return
    try:
        await get_collaborators(config).store.update(
            PITCHES_COLLECTION, pitch_id, {"generated_slides": slides, "status": "slides-generated"}
        )
    except Exception as e:
        logger.error("slides_persist_failed", pitch_id=pitch_id, error=str(e))


async def aggregator_node(state: SlideState, config: RunnableConfig) -> dict:
    """Order the slides, compute run metadata and write the pitch record."""
    if state.get("error"):
        return {}

    try:
        if not state.get("generated_slides"):
            raise AggregationFailure("no slides were generated successfully")
        result = build_result(state)
    except Exception as e:
        logger.error("slide_aggregation_error", error=str(e))
        return {"error": f"Aggregation error: {e}"}

    await _persist(state, config, result["slides"])
    logger.info(
        "slide_run_aggregated",
        slides=result["generation_metadata"]["successful_slides"],
        processing_time=result["generation_metadata"]["processing_time"],
    )
    return {"output": result}


async def error_handler_node(state: SlideState, config: RunnableConfig) -> dict:
    """Terminal node after a fan-out with failures; keeps the slides that succeeded."""
    result = build_result(state)
    logger.warning(
        "slide_run_partial_failure",
        successful=result["generation_metadata"]["successful_slides"],
        failed=result["generation_metadata"]["failed_slides"],
        error=state.get("error"),
    )
    if result["slides"]:
        await _persist(state, config, result["slides"])
    return {"output": result}
