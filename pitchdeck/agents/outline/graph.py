"""
Outline graph: turns a pitch request into a markdown deck outline.

Flow:
  START → retrieve → enhance → generate → aggregate → END

Every stage short-circuits once ``error`` is set, so the aggregator always
runs and always produces exactly one output.
"""

from __future__ import annotations

import uuid

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END

from pitchdeck.agents.outline.nodes.aggregator import aggregate_outline_node
from pitchdeck.agents.outline.nodes.enhance import enhance_data_node
from pitchdeck.agents.outline.nodes.generate import generate_outline_node
from pitchdeck.agents.outline.nodes.retrieve import retrieve_data_node
from pitchdeck.agents.outline.state import OutlineRequest, OutlineResult, OutlineState
from pitchdeck.agents.pipeline import PipelineBuilder
from pitchdeck.core.logging import get_logger, run_context

logger = get_logger(__name__)

GENERIC_FAILURE = "Outline generation failed"


def build_outline_graph(checkpointer=None):
    """
    Construct and compile the outline pipeline.

    Returns:
        Compiled graph ready for .ainvoke().
    """
    builder = PipelineBuilder(OutlineState, name="outline")

    builder.add_stage("retrieve", retrieve_data_node)
    builder.add_stage("enhance", enhance_data_node)
    builder.add_stage("generate", generate_outline_node)
    builder.add_stage("aggregate", aggregate_outline_node)

    builder.set_entry("retrieve")
    builder.add_edge("retrieve", "enhance")
    builder.add_edge("enhance", "generate")
    builder.add_edge("generate", "aggregate")
    builder.add_edge("aggregate", END)

    return builder.compile(checkpointer=checkpointer)


def _with_thread_id(run_config: RunnableConfig | None) -> tuple[RunnableConfig, str]:
    config: RunnableConfig = dict(run_config or {})
    configurable = dict(config.get("configurable") or {})
    thread_id = configurable.get("thread_id") or str(uuid.uuid4())
    configurable["thread_id"] = thread_id
    config["configurable"] = configurable
    return config, thread_id


async def run_outline_pipeline(
    request: OutlineRequest, run_config: RunnableConfig | None = None
) -> OutlineResult:
    """Run the outline pipeline. Failures come back in ``error``, never as exceptions."""
    config, thread_id = _with_thread_id(run_config)

    with run_context("outline", thread_id):
        logger.info("outline_run_started", pitch_id=request.get("pitch_id"))

        try:
            final_state = await build_outline_graph().ainvoke({"input": request}, config)
        except Exception as e:
            logger.error("outline_run_failed", error=str(e))
            return OutlineResult(initial_outline="", error=f"{GENERIC_FAILURE}: {e}", thread_id=thread_id)

        output = final_state.get("output")
        if not output:
            # A stage raised and the run ended before aggregation.
            error = final_state.get("error") or GENERIC_FAILURE
            logger.warning("outline_run_without_output", error=error)
            return OutlineResult(initial_outline="", error=error, thread_id=thread_id)

        logger.info("outline_run_completed", has_error=bool(output.get("error")))
        return OutlineResult(**output, thread_id=thread_id)
