"""
Content updater node — rewrites slides the reviewer flagged.

Each flagged slide is re-prompted with its own content, its issues and a
digest of the other slides. A failed call or bad JSON keeps the original
slide; slides without issues are passed through untouched.
"""

from __future__ import annotations

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators, get_model_override
from pitchdeck.agents.parsing import parse_model_json
from pitchdeck.agents.slides.nodes.generator import normalise_blocks
from pitchdeck.agents.slides.state import GeneratedSlideContent, SlideState, slide_number
from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import ContentParseError
from pitchdeck.core.logging import get_logger
from pitchdeck.services.llm_service import LLMService

logger = get_logger(__name__)

UPDATE_SYSTEM_PROMPT = """You edit pitch deck slides. Revise the slide below so it answers the \
reviewer's feedback.

GUIDELINES:
1. Remove content repeated elsewhere in the deck
2. Smooth the transitions into and out of this slide
3. Keep the tone professional and the wording tight
4. Preserve the slide's original purpose and structure
5. British English spelling and style throughout

Respond with a JSON object:
{
  "title": "slide title",
  "subtitle": "optional subtitle",
  "body": "main content as flowing text",
  "blocks": [
    {"type": "heading|text|bullet", "content": "revised text", "level": 1}
  ]
}"""

UPDATE_USER_PROMPT = """Revise this slide:

SLIDE {number}: {title}

ORIGINAL CONTENT:
{original}

ISSUES TO ADDRESS:
{issues}

CONTEXT FROM OTHER SLIDES:
{siblings}"""


def issues_by_slide(review: dict | None) -> dict[int, list[dict]]:
    grouped: dict[int, list[dict]] = {}
    for issue in (review or {}).get("issues") or []:
        for number in issue.get("affected_slides") or []:
            grouped.setdefault(number, []).append(issue)
    return grouped


def _blocks_text(slide: GeneratedSlideContent, sep: str) -> str:
    return sep.join(f"{b['type']}: {b['content']}" for b in slide["content"].get("blocks", []))


async def revise_slide(
    llm: LLMService,
    slide: GeneratedSlideContent,
    issues: list[dict],
    siblings: list[GeneratedSlideContent],
    *,
    model_name: str,
) -> GeneratedSlideContent:
    outline = slide["metadata"]["outline"]
    prompt = UPDATE_USER_PROMPT.format(
        number=outline.get("number"),
        title=outline.get("title") or "Untitled",
        original=_blocks_text(slide, "\n") or "No content",
        issues="\n".join(
            f"- {issue['type'].upper()}: {issue['description']}\n  Recommendation: {issue['recommendation']}"
            for issue in issues
        ),
        siblings="\n".join(
            f"Slide {slide_number(s)}: {s['metadata']['outline'].get('title', '')} - "
            f"{' | '.join(b['content'] for b in s['content'].get('blocks', [])) or 'No content'}"
            for s in siblings
        ),
    )

    raw = await llm.complete(
        [SystemMessage(content=UPDATE_SYSTEM_PROMPT), HumanMessage(content=prompt)],
        model_name=model_name,
    )
    parsed = parse_model_json(raw)
    if not isinstance(parsed.get("blocks"), list):
        raise ContentParseError(f"revision of slide {outline.get('number')} has no blocks list")

    return {
        **slide,
        "content": {
            "title": parsed.get("title") or slide["content"]["title"],
            "subtitle": parsed.get("subtitle") or slide["content"].get("subtitle", ""),
            "body": parsed.get("body") or slide["content"].get("body", ""),
            "blocks": normalise_blocks(parsed["blocks"]),
        },
        "metadata": {
            **slide["metadata"],
            "revised": True,
            "revision_reason": ", ".join(issue["type"] for issue in issues),
        },
    }


async def content_updater_node(state: SlideState, config: RunnableConfig) -> dict:
    """Revise every slide implicated by a review issue."""
    if state.get("error"):
        return {}

    slides = state.get("generated_slides") or []
    grouped = issues_by_slide(state.get("review_results"))
    if not grouped:
        logger.info("slide_update_skipped", reason="no_issues")
        return {}

    llm = get_collaborators(config).llm
    model_name = get_model_override(config) or get_settings().model_slides

    updated: list[GeneratedSlideContent] = []
    for slide in slides:
        number = slide_number(slide)
        issues = grouped.get(number)
        if not issues:
            updated.append(slide)
            continue

        siblings = [s for s in slides if slide_number(s) != number]
        try:
            updated.append(await revise_slide(llm, slide, issues, siblings, model_name=model_name))
            logger.info("slide_revised", number=number, issue_count=len(issues))
        except Exception as e:
            logger.warning("slide_revision_kept_original", number=number, error=str(e))
            updated.append(slide)

    return {"generated_slides": updated}
