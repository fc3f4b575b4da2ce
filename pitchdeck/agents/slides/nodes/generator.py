"""
Slide generator — one model call per outline, all launched concurrently.

The node is a single graph step: it fans out with ``asyncio.gather`` and
fans back in before returning, so state is patched exactly once. A slide
that fails (call error, timeout, unparseable JSON) is recorded as failed;
every other slide is kept.
"""

from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, datetime

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators, get_model_override
from pitchdeck.agents.parsing import parse_model_json
from pitchdeck.agents.slides.state import (
    GeneratedSlideContent,
    PitchContext,
    SlideOutline,
    SlideRequest,
    SlideState,
)
from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import ContentParseError
from pitchdeck.core.logging import get_logger
from pitchdeck.services.llm_service import LLMService

logger = get_logger(__name__)

SLIDE_SYSTEM_PROMPT = """You write the content of one slide in an institutional banking pitch deck.

REQUIREMENTS:
1. Follow the slide outline exactly; keep to its purpose and key content
2. Professional, confident tone aimed at winning the business
3. Specific and concrete, never generic
4. Weave the supplied context in where it strengthens the message
5. Lead with value and client benefit
6. Use banking terminology where it fits
7. British English spelling and style throughout

SLIDE TYPE: {slide_type}
{outline_details}

Respond with a JSON object of exactly this shape:
{{
  "title": "concise, impactful slide title",
  "subtitle": "optional subtitle",
  "body": "main content as flowing text",
  "blocks": [
    {{"type": "heading|text|bullet", "content": "text", "level": 1}}
  ]
}}

Blocks are what appears on the slide: "heading" for section headers (level 1-3), \
"text" for paragraphs (level 1), "bullet" for points (level 1-2 for sub-points)."""

SLIDE_USER_PROMPT = """Generate content for slide {number}: "{title}"

CLIENT: {client_name}
PITCH STAGE: {pitch_stage}

CONTEXT AVAILABLE:{context}

Follow the outline, use the context to stay specific, and keep the focus on value to the client."""

_ADDITIONAL_CONTEXT_LABELS = (
    ("important_client_info", "Important Client Info"),
    ("important_to_client", "What's Important to Client"),
    ("our_advantages", "Our Advantages"),
    ("competitor_strengths", "Competitor Strengths"),
    ("pitch_focus", "Pitch Focus"),
    ("relevant_case_studies", "Relevant Case Studies"),
    ("key_metrics", "Key Metrics"),
    ("implementation_timeline", "Implementation Timeline"),
    ("expected_roi", "Expected ROI"),
)


# ═══════════════════════════════════════════════════════════════
# Prompt construction
# ═══════════════════════════════════════════════════════════════
def build_context(context: PitchContext | None) -> tuple[str, list[str]]:
    """Render the shared pitch context and name the sources it drew on."""
    context = context or {}
    text = ""
    sources: list[str] = []

    if context.get("client_details"):
        text += f"\n\nCLIENT DETAILS:\n{json.dumps(context['client_details'], indent=2, default=str)}"
        sources.append("Client Details")

    if context.get("competitor_details"):
        text += f"\n\nCOMPETITOR DETAILS:\n{json.dumps(context['competitor_details'], indent=2, default=str)}"
        sources.append("Competitor Analysis")

    additional = context.get("additional_context")
    if additional:
        text += "\n\nADDITIONAL CONTEXT:"
        for key, label in _ADDITIONAL_CONTEXT_LABELS:
            if additional.get(key):
                text += f"\n{label}: {additional[key]}"
        sources.append("Pitch Context")

    return text, sources


def _outline_details(outline: SlideOutline) -> str:
    parts: list[str] = []
    if outline.get("purpose"):
        parts.append(f"SLIDE PURPOSE: {outline['purpose']}")
    if outline.get("key_takeaway"):
        parts.append(f"KEY TAKEAWAY: {outline['key_takeaway']}")
    if outline.get("strategic_framing"):
        parts.append(f"STRATEGIC FRAMING: {outline['strategic_framing']}")
    if outline.get("key_content"):
        items = "\n".join(f"{i}. {item}" for i, item in enumerate(outline["key_content"], start=1))
        parts.append(f"CONTENT STRUCTURE TO FOLLOW:\n{items}")
    if outline.get("supporting_evidence"):
        items = "\n".join(f"- {item}" for item in outline["supporting_evidence"])
        parts.append(f"SUPPORTING EVIDENCE TO INCORPORATE:\n{items}")
    if outline.get("visual_recommendation"):
        parts.append(f"VISUAL RECOMMENDATION: {outline['visual_recommendation']}")
    for name, value in (outline.get("custom_sections") or {}).items():
        parts.append(f"{name.upper()}: {value}")
    if outline.get("raw_content"):
        parts.append(f"COMPLETE SLIDE OUTLINE:\n{outline['raw_content']}")
    return "\n\n".join(parts)


def normalise_blocks(blocks: list) -> list[dict]:
    return [
        {
            "type": (block or {}).get("type") or "text",
            "content": (block or {}).get("content") or "",
            "level": (block or {}).get("level") or 1,
        }
        for block in blocks
        if isinstance(block, dict)
    ]


# ═══════════════════════════════════════════════════════════════
# Per-slide task
# ═══════════════════════════════════════════════════════════════
async def generate_one_slide(
    llm: LLMService,
    outline: SlideOutline,
    request: SlideRequest,
    context: PitchContext | None,
    *,
    model_name: str,
) -> GeneratedSlideContent:
    """Generate a single slide; raises on any call or parse failure."""
    context_text, context_sources = build_context(context)
    messages = [
        SystemMessage(
            content=SLIDE_SYSTEM_PROMPT.format(
                slide_type=outline.get("slide_type", "content"),
                outline_details=_outline_details(outline),
            )
        ),
        HumanMessage(
            content=SLIDE_USER_PROMPT.format(
                number=outline.get("number"),
                title=outline.get("title", ""),
                client_name=request.get("client_name", ""),
                pitch_stage=request.get("pitch_stage", ""),
                context=context_text,
            )
        ),
    ]

    raw = await llm.complete(messages, model_name=model_name)
    parsed = parse_model_json(raw)
    if not parsed.get("title") or not isinstance(parsed.get("blocks"), list):
        raise ContentParseError(f"slide {outline.get('number')} response lacks a title or blocks list")

    return GeneratedSlideContent(
        id=outline["id"],
        type=outline.get("slide_type", "content"),
        content={
            "title": parsed["title"],
            "subtitle": parsed.get("subtitle") or "",
            "body": parsed.get("body") or "",
            "blocks": normalise_blocks(parsed["blocks"]),
        },
        metadata={
            "generated_at": datetime.now(UTC).isoformat(),
            "outline": outline,
            "context_used": context_sources,
        },
    )


# ═══════════════════════════════════════════════════════════════
# Fan-out / fan-in node
# ═══════════════════════════════════════════════════════════════
async def parallel_slide_generator_node(state: SlideState, config: RunnableConfig) -> dict:
    """Generate every outlined slide concurrently and collect the results."""
    if state.get("error"):
        return {}

    outlines = state.get("slide_outlines") or []
    request = state.get("input") or {}
    llm = get_collaborators(config).llm
    model_name = get_model_override(config) or get_settings().model_slides

    logger.info("slide_fan_out_started", slide_count=len(outlines), model=model_name)
    results = await asyncio.gather(
        *(
            generate_one_slide(llm, outline, request, state.get("context_data"), model_name=model_name)
            for outline in outlines
        ),
        return_exceptions=True,
    )

    slides: list[GeneratedSlideContent] = []
    progress: dict[str, str] = {}
    failures: list[str] = []
    for outline, result in zip(outlines, results):
        if isinstance(result, BaseException):
            progress[outline["id"]] = "failed"
            failures.append(f"Slide {outline.get('number')}: {result}")
            logger.warning("slide_generation_failed", number=outline.get("number"), error=str(result))
        else:
            progress[outline["id"]] = "completed"
            slides.append(result)

    logger.info("slide_fan_in_complete", completed=len(slides), failed=len(failures))

    patch: dict = {
        "generated_slides": slides,
        "slide_progress": progress,
        "processing_metadata": {
            "end_time": time.time(),
            "completed_slides": len(slides),
            "failed_slides": len(outlines) - len(slides),
        },
    }
    if failures:
        patch["error"] = f"Some slides failed: {'; '.join(failures)}"
    return patch
