"""
Title enhancer node — one model call proposing a title per slide number.

Optional polish: any failure leaves the slides as they are.
"""

from __future__ import annotations

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators, get_model_override
from pitchdeck.agents.parsing import parse_model_json
from pitchdeck.agents.slides.state import GeneratedSlideContent, SlideState, slide_number, sort_slides
from pitchdeck.core.config import get_settings
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

TITLE_SYSTEM_PROMPT = """You write slide titles for executive pitch decks. Titles should:

1. Grab attention with active, specific language
2. Stay consistent in style and tone across the deck
3. Carry the narrative from one slide to the next
4. Name a concrete benefit or outcome where possible
5. Be 5-8 words, professional, in British English

Respond with a JSON object:
{
  "enhancedTitles": {"<slide number>": "New title"},
  "titleStrategy": "one sentence on the approach"
}"""

TITLE_USER_PROMPT = """Improve the titles of this pitch deck for {client_name}:

PITCH CONTEXT:
- Client: {client_name}
- Stage: {pitch_stage}
- Focus: {pitch_focus}

CURRENT SLIDES AND TITLES:
{slides}"""


def _slide_summary(slide: GeneratedSlideContent) -> str:
    outline = slide["metadata"]["outline"]
    blocks = slide["content"].get("blocks", [])[:3]
    return (
        f'SLIDE {outline.get("number")}: "{slide["content"].get("title", "")}"\n'
        f"Purpose: {outline.get('purpose') or 'Not specified'}\n"
        f"Key Takeaway: {outline.get('key_takeaway') or 'Not specified'}\n"
        f"Content Summary: {' | '.join(b['content'] for b in blocks) or 'No content'}\n"
        "---"
    )


def apply_titles(
    slides: list[GeneratedSlideContent], titles: dict[str, str]
) -> tuple[list[GeneratedSlideContent], dict[str, str]]:
    """Patch in titles that differ from the current ones; return slides and what was applied."""
    applied: dict[str, str] = {}
    result: list[GeneratedSlideContent] = []
    for slide in slides:
        key = str(slide_number(slide))
        title = titles.get(key)
        if not isinstance(title, str) or not title.strip() or title == slide["content"].get("title"):
            result.append(slide)
            continue
        applied[key] = title
        result.append(
            {
                **slide,
                "content": {**slide["content"], "title": title},
                "metadata": {**slide["metadata"], "enhanced_title": title},
            }
        )
    return result, applied


async def title_enhancer_node(state: SlideState, config: RunnableConfig) -> dict:
    if state.get("error"):
        return {}

    slides = state.get("generated_slides") or []
    request = state.get("input") or {}
    additional = (request.get("pitch_context") or {}).get("additional_context") or {}
    model_name = get_model_override(config) or get_settings().model_slides

    messages = [
        SystemMessage(content=TITLE_SYSTEM_PROMPT),
        HumanMessage(
            content=TITLE_USER_PROMPT.format(
                client_name=request.get("client_name", ""),
                pitch_stage=request.get("pitch_stage", ""),
                pitch_focus=additional.get("pitch_focus") or "Not specified",
                slides="\n\n".join(_slide_summary(s) for s in sort_slides(slides)),
            )
        ),
    ]

    try:
        raw = await get_collaborators(config).llm.complete(messages, model_name=model_name)
        parsed = parse_model_json(raw)
    except Exception as e:
        logger.warning("title_enhancement_skipped", error=str(e))
        return {}

    titles = parsed.get("enhancedTitles", parsed.get("enhanced_titles"))
    if not isinstance(titles, dict) or not titles:
        logger.warning("title_enhancement_skipped", error="no enhancedTitles in response")
        return {}

    enhanced, applied = apply_titles(slides, {str(k): v for k, v in titles.items()})
    logger.info("titles_enhanced", applied=len(applied), strategy=parsed.get("titleStrategy"))
    if not applied:
        return {}
    return {"generated_slides": enhanced, "enhanced_titles": applied}
