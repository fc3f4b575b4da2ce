"""
Aggregator node — builds the run output and stores the outline on the pitch.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators
from pitchdeck.agents.outline.state import OutlineResult, OutlineState
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

PITCHES_COLLECTION = "pitches"
NO_OUTLINE_ERROR = "No outline was generated"


async def aggregate_outline_node(state: OutlineState, config: RunnableConfig) -> dict:
    error = state.get("error")
    outline_text = state.get("outline_text")

    if error or not outline_text:
        error = error or NO_OUTLINE_ERROR
        logger.warning("outline_aggregated_with_error", error=error)
        return {"output": OutlineResult(initial_outline="", error=error), "error": error}

    summary = state.get("outline_summary")
    pitch_id = (state.get("input") or {}).get("pitch_id")
    if pitch_id:
        try:
            await get_collaborators(config).store.update(
                PITCHES_COLLECTION,
                pitch_id,
                {"initial_outline": outline_text, "outline_summary": summary, "status": "outline-generated"},
            )
        except Exception as e:
            # The caller still gets the outline; only the stored copy is missing.
            logger.error("outline_persist_failed", pitch_id=pitch_id, error=str(e))

    logger.info("outline_aggregated", pitch_id=pitch_id, chars=len(outline_text))
    return {"output": OutlineResult(initial_outline=outline_text, summary=summary)}
