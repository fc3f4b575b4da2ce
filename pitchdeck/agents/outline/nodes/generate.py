"""
Generate node — writes the markdown outline and a short summary of it.

Two model calls per run:
  - the outline itself (outline model, temperature 0.5, large token budget)
  - a 2–3 sentence summary of that outline (same model)

The slide structure comes from the caller's custom structure when given,
otherwise from the configured template for the pitch stage.
"""

from __future__ import annotations

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators, get_model_override
from pitchdeck.agents.outline.formatting import format_outline
from pitchdeck.agents.outline.state import OutlineRequest, OutlineState
from pitchdeck.core.config import get_settings
from pitchdeck.core.logging import get_logger
from pitchdeck.core.security import sanitize_prompt_text

logger = get_logger(__name__)

OUTLINE_TEMPERATURE = 0.5

OUTLINE_SYSTEM_PROMPT = """# Pitch Deck Outline Instructions

You write outlines for institutional pitch decks in banking and financial services. \
Produce a strategic, complete outline that shows a clear grasp of the client's needs \
and of the competitive field.

Write in British English throughout.

## Output Format
Return a markdown outline. Every slide MUST use exactly this shape:

## Slide [Number]: [Title]

**Key Takeaway:** [the one sentence the audience should remember]

**Key Points:**
- [point]
- [point]
- [point]

**Value Framing:** [why this puts us ahead of the competition]

**Supporting Evidence:** [data, case studies or proof points behind the claims]

**Visual Recommendation:** [diagram, chart or visual to use]

**Relationship Building Opportunity:** [how this slide builds trust or shows understanding]

## Required Slides
Cover each of these slides; titles may be sharpened for this client:

{slide_structure}

## Principles
{key_principles}

# Client Context

**Client Name:** {client_name}
**Industry:** {industry}
**Size/Scope:** {size}
**Revenue:** {revenue}
**Pitch Stage:** {pitch_stage}
**Client Sentiment:** {sentiment_label} ({sentiment}/100)
**Pitch Focus/Goals:** {pitch_focus}

**Key Client Information:**
{important_client_info}

**Client Needs/Goals:**
{important_to_client}

**Our Competitive Advantages:**
{our_advantages}

**Competitor Strengths to Address:**
{competitor_strengths}

**Known Competitors:**
{competitors}

**Selected Data Source Categories:**
{data_sources}

**Uploaded Files/Resources:**
{files}

**Relevant Case Studies/Success Stories:**
{relevant_case_studies}

**Key Metrics/Benchmarks:**
{key_metrics}

**Implementation Timeline Requirements:**
{implementation_timeline}

**Expected ROI/Financial Expectations:**
{expected_roi}

# Strategic Considerations

1. **Early engagement:** lead with insight and thought leadership, not a hard sell.
2. **Competitive pitch:** give every major section a differentiator that survives a day of back-to-back presentations.
3. **Closing:** answer likely objections, stress total value over price, and make next steps explicit.
4. **Senior involvement:** show where senior leadership stays engaged with the client.
5. **Follow-up:** suggest leave-behind material that adds value after the meeting.

This is an OUTLINE, not the deck. Every slide must carry all the sections listed above."""

OUTLINE_USER_PROMPT = "Generate a comprehensive pitch deck outline from the information provided."

SUMMARY_PROMPT = """Here is a pitch deck outline:

{outline}

Summarise it in 2–3 sentences, focusing on its main strengths and how it addresses the client's needs."""

_FREE_TEXT_FIELDS = (
    "important_client_info",
    "important_to_client",
    "our_advantages",
    "competitor_strengths",
    "pitch_focus",
    "relevant_case_studies",
    "key_metrics",
    "implementation_timeline",
    "expected_roi",
)


def sentiment_label(score: int | None) -> str:
    """Bucket a 0-100 sentiment score into one of five labels."""
    if not score:
        return "Unknown"
    if score <= 20:
        return "Cynic"
    if score <= 40:
        return "Skeptic"
    if score <= 60:
        return "Neutral"
    if score <= 80:
        return "Optimist"
    return "Advocate"


def _numbered_structure(slides: list[dict]) -> str:
    return "\n".join(
        f"{i}. **{slide.get('title', '')}** - {slide.get('description', '')}"
        for i, slide in enumerate(slides, start=1)
    )


def _numbered_principles(principles: list[dict]) -> str:
    return "\n\n".join(
        f"{i}. **{p.get('title', '')}:** {p.get('description', '')}"
        for i, p in enumerate(principles, start=1)
    )


def build_outline_prompt(
    request: OutlineRequest,
    state: OutlineState,
    *,
    pitch_stage_name: str,
    slide_structures: list[dict],
    key_principles: list[dict],
) -> str:
    processed = (state.get("enhanced_client_data") or {}).get("processed_data") or {}
    client_name = (
        request.get("client_name")
        or (state.get("enhanced_client_data") or {}).get("name")
        or (state.get("client_data") or {}).get("name")
        or "Unknown Client"
    )
    competitors = ", ".join(
        c.get("name") or "Unnamed Competitor" for c in (state.get("enhanced_competitor_data") or {}).values()
    )
    files = request.get("uploaded_file_names") or []
    sentiment = request.get("client_sentiment")

    free_text = {
        field: sanitize_prompt_text(request.get(field) or "") or "Not specified"
        for field in _FREE_TEXT_FIELDS
    }

    return OUTLINE_SYSTEM_PROMPT.format(
        slide_structure=_numbered_structure(slide_structures),
        key_principles=_numbered_principles(key_principles),
        client_name=client_name,
        industry=processed.get("industry", "Unknown Industry"),
        size=processed.get("size", "Unknown Size"),
        revenue=processed.get("revenue", "Unknown Revenue"),
        pitch_stage=pitch_stage_name,
        sentiment_label=sentiment_label(sentiment),
        sentiment=sentiment if sentiment is not None else "N/A",
        competitors=competitors,
        data_sources=state.get("data_source_content") or "No specific data sources selected",
        files=", ".join(files) if files else "No files uploaded",
        **free_text,
    )


async def generate_outline_node(state: OutlineState, config: RunnableConfig) -> dict:
    """Ask the outline model for the deck outline, then for its summary."""
    if state.get("error"):
        return {}

    request = state.get("input") or {}
    collaborators = get_collaborators(config)
    settings = get_settings()
    model_name = get_model_override(config) or settings.model_outline

    try:
        template = await collaborators.settings_service.get_stage_template(request.get("pitch_stage"))
        pitch_stage = template["pitch_stage"]
        stage_name = (pitch_stage or {}).get("name") or request.get("pitch_stage") or "Not specified"

        custom = request.get("custom_slide_structure") or []
        if custom:
            logger.info("outline_custom_structure_used", slide_count=len(custom))
        slide_structures = custom or template["slide_structures"]

        system_prompt = build_outline_prompt(
            request,
            state,
            pitch_stage_name=stage_name,
            slide_structures=slide_structures,
            key_principles=template["key_principles"],
        )

        outline_text = await collaborators.llm.complete(
            [SystemMessage(content=system_prompt), HumanMessage(content=OUTLINE_USER_PROMPT)],
            model_name=model_name,
            temperature=OUTLINE_TEMPERATURE,
            max_tokens=settings.outline_max_tokens,
        )
        logger.info("outline_generated", model=model_name, chars=len(outline_text))

        summary = await collaborators.llm.complete(
            [HumanMessage(content=SUMMARY_PROMPT.format(outline=outline_text))],
            model_name=model_name,
        )

        return {"outline_text": format_outline(outline_text), "outline_summary": summary}

    except Exception as e:
        logger.error("outline_generation_error", model=model_name, error=str(e))
        return {"error": f"Outline generation error: {e}"}
