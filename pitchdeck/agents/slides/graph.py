"""
Slide graph: turns outline entries into structured slide content.

Flow:
  START → initialize → generate_slides (fan-out / fan-in)
        → (handle_error → END)
        | (review → (update_content → enhance_titles) | enhance_titles)
        → aggregate → END

Routers are closed: each returns a Literal naming exactly its destinations.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Literal

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END

from pitchdeck.agents.pipeline import PipelineBuilder
from pitchdeck.agents.slides.nodes.aggregator import aggregator_node, error_handler_node
from pitchdeck.agents.slides.nodes.content_updater import content_updater_node
from pitchdeck.agents.slides.nodes.generator import parallel_slide_generator_node
from pitchdeck.agents.slides.nodes.initializer import initializer_node
from pitchdeck.agents.slides.nodes.reviewer import reviewer_node
from pitchdeck.agents.slides.nodes.title_enhancer import title_enhancer_node
from pitchdeck.agents.slides.state import SlideRequest, SlideResult, SlideState
from pitchdeck.core.exceptions import SlideGenerationError
from pitchdeck.core.logging import get_logger, run_context

logger = get_logger(__name__)


def route_after_generation(state: SlideState) -> Literal["handle_error", "review"]:
    """Conditional edge: any fan-out failure goes to the error handler."""
    if state.get("error"):
        return "handle_error"
    return "review"


def route_after_review(state: SlideState) -> Literal["update_content", "enhance_titles"]:
    """Conditional edge: revise only when the reviewer asked for it."""
    if state.get("needs_revision"):
        return "update_content"
    return "enhance_titles"


def build_slide_graph(checkpointer=None):
    """
    Construct and compile the slide pipeline.

    Returns:
        Compiled graph ready for .ainvoke().
    """
    builder = PipelineBuilder(SlideState, name="slides")

    builder.add_stage("initialize", initializer_node)
    builder.add_stage("generate_slides", parallel_slide_generator_node)
    builder.add_stage("handle_error", error_handler_node)
    builder.add_stage("review", reviewer_node)
    builder.add_stage("update_content", content_updater_node)
    builder.add_stage("enhance_titles", title_enhancer_node)
    builder.add_stage("aggregate", aggregator_node)

    builder.set_entry("initialize")
    builder.add_edge("initialize", "generate_slides")
    builder.add_router("generate_slides", route_after_generation, ("handle_error", "review"))
    builder.add_edge("handle_error", END)
    builder.add_router("review", route_after_review, ("update_content", "enhance_titles"))
    builder.add_edge("update_content", "enhance_titles")
    builder.add_edge("enhance_titles", "aggregate")
    builder.add_edge("aggregate", END)

    return builder.compile(checkpointer=checkpointer)


ProgressCallback = Callable[[str], None]


_STAGE_MESSAGES = {
    "handle_error": "Collected the slides that generated successfully",
    "review": "Reviewed slides for quality and consistency",
    "update_content": "Revised the slides flagged in review",
    "enhance_titles": "Polished slide titles",
    "aggregate": "Aggregated slide results",
}


def progress_message(stage: str, patch: dict) -> str | None:
    """Human-readable progress line for a finished stage, or None for silent stages."""
    if stage == "initialize":
        total = (patch.get("processing_metadata") or {}).get("total_slides")
        return f"Initialized slide generation for {total} slides" if total is not None else None
    if stage == "generate_slides":
        statuses = list((patch.get("slide_progress") or {}).values())
        return f"Generated {statuses.count('completed')} of {len(statuses)} slides" if statuses else None
    return _STAGE_MESSAGES.get(stage)


def _report(on_progress: ProgressCallback | None, message: str | None) -> None:
    if on_progress is None or message is None:
        return
    try:
        on_progress(message)
    except Exception as e:
        # Listener errors are logged, never raised.
        logger.warning("progress_callback_failed", message=message, error=str(e))


async def run_slide_pipeline(
    request: SlideRequest,
    run_config: RunnableConfig | None = None,
    on_progress: ProgressCallback | None = None,
) -> SlideResult:
    """
    Run the slide pipeline.

    Args:
        request: pitch id, client, stage, slide outlines and pitch context.
        run_config: optional LangGraph config; ``configurable`` carries the
                    collaborators, a model override and the thread id.
        on_progress: optional callback receiving one message per finished stage.

    Raises:
        SlideGenerationError: the run produced no output, or no slide at all.
    """
    config: RunnableConfig = dict(run_config or {})
    configurable = dict(config.get("configurable") or {})
    configurable.setdefault("thread_id", str(uuid.uuid4()))
    config["configurable"] = configurable
    thread_id = configurable["thread_id"]

    with run_context("slides", thread_id):
        slide_count = len(request.get("slide_outlines") or [])
        logger.info("slide_run_started", pitch_id=request.get("pitch_id"), slide_count=slide_count)
        _report(on_progress, f"Starting slide generation for {request.get('client_name') or 'the client'}")

        final_state: dict = {}
        async for mode, chunk in build_slide_graph().astream(
            {"input": request}, config, stream_mode=["updates", "values"]
        ):
            if mode == "values":
                final_state = chunk
                continue
            for stage, patch in chunk.items():
                _report(on_progress, progress_message(stage, patch or {}))

        output = final_state.get("output")
        if not output:
            error = final_state.get("error") or "Slide generation produced no output"
            logger.error("slide_run_failed", error=error)
            raise SlideGenerationError(error)

        if not output["slides"]:
            error = final_state.get("error") or "No slides were generated successfully"
            logger.error("slide_run_failed", error=error)
            raise SlideGenerationError(error)

        logger.info(
            "slide_run_completed",
            successful=output["generation_metadata"]["successful_slides"],
            failed=output["generation_metadata"]["failed_slides"],
        )
        _report(on_progress, "Slide generation completed")
        return output
