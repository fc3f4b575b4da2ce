"""
Reviewer node — scores the deck as a whole and flags slides to revise.

The review is advisory: a failed call or an unparseable answer falls back
to a neutral score of 7 with no issues, so the run carries on unrevised.
"""

from __future__ import annotations

import math

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators, get_model_override
from pitchdeck.agents.parsing import parse_model_json
from pitchdeck.agents.slides.state import GeneratedSlideContent, SlideState, sort_slides
from pitchdeck.core.config import get_settings
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

REVISION_THRESHOLD = 7
DEFAULT_REVIEW = {
    "issues": [],
    "overall_score": 7,
    "summary": "Review completed but results could not be parsed",
}

REVIEW_SYSTEM_PROMPT = """You review pitch decks. Read the slides below and look for:

1. REPETITIVE CONTENT: duplicated facts, near-identical bullets, messaging said twice
2. NARRATIVE GAPS: places where the story does not flow from one slide to the next
3. QUALITY ISSUES: weak structure or unclear messaging on a slide

For each issue give the affected slide numbers, a description, a concrete \
recommendation and a severity of HIGH, MEDIUM or LOW.

Respond with a JSON object:
{
  "issues": [
    {
      "type": "repetitive_content" | "narrative_gap" | "quality_issue",
      "severity": "HIGH" | "MEDIUM" | "LOW",
      "affectedSlides": [slide numbers],
      "description": "what is wrong",
      "recommendation": "how to fix it"
    }
  ],
  "overallScore": 1-10,
  "summary": "short summary of the findings"
}"""

REVIEW_USER_PROMPT = """Review these slides for a pitch to {client_name}:

PITCH CONTEXT:
- Client: {client_name}
- Stage: {pitch_stage}
- Focus: {pitch_focus}

SLIDES TO REVIEW:
{slides}"""


def slide_digest(slide: GeneratedSlideContent) -> str:
    outline = slide["metadata"]["outline"]
    blocks = " | ".join(f"{b['type']}: {b['content']}" for b in slide["content"].get("blocks", []))
    return (
        f"SLIDE {outline.get('number')}: {outline.get('title', '')}\n"
        f"Purpose: {outline.get('purpose') or 'Not specified'}\n"
        f"Key Content: {', '.join(outline.get('key_content') or []) or 'Not specified'}\n"
        f"Generated Content: {blocks or 'No content'}\n"
        f"Key Takeaway: {outline.get('key_takeaway') or 'Not specified'}\n"
        "---"
    )


def coerce_score(value) -> int | float | None:
    """Numeric score from the model's answer; booleans and non-numbers give None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = value
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(score):
        return None
    return int(score) if float(score).is_integer() else score


def normalise_review(parsed: dict) -> dict:
    """Map the model's camelCase answer onto the stored review shape."""
    issues = []
    for issue in parsed.get("issues") or []:
        if not isinstance(issue, dict):
            continue
        affected = issue.get("affectedSlides", issue.get("affected_slides")) or []
        issues.append(
            {
                "type": issue.get("type") or "quality_issue",
                "severity": str(issue.get("severity") or "LOW").upper(),
                "affected_slides": [int(n) for n in affected if str(n).isdigit()],
                "description": issue.get("description") or "",
                "recommendation": issue.get("recommendation") or "",
            }
        )

    score = coerce_score(parsed.get("overallScore", parsed.get("overall_score")))
    if score is None:
        score = DEFAULT_REVIEW["overall_score"]
    return {"issues": issues, "overall_score": score, "summary": parsed.get("summary") or ""}


def needs_revision(review: dict) -> bool:
    return review["overall_score"] < REVISION_THRESHOLD or any(
        issue["severity"] == "HIGH" for issue in review["issues"]
    )


async def reviewer_node(state: SlideState, config: RunnableConfig) -> dict:
    """Review the generated slides for repetition and narrative flow."""
    if state.get("error"):
        return {}

    slides = sort_slides(state.get("generated_slides") or [])
    request = state.get("input") or {}
    additional = (request.get("pitch_context") or {}).get("additional_context") or {}
    model_name = get_model_override(config) or get_settings().model_review

    messages = [
        SystemMessage(content=REVIEW_SYSTEM_PROMPT),
        HumanMessage(
            content=REVIEW_USER_PROMPT.format(
                client_name=request.get("client_name", ""),
                pitch_stage=request.get("pitch_stage", ""),
                pitch_focus=additional.get("pitch_focus") or "Not specified",
                slides="\n\n".join(slide_digest(s) for s in slides),
            )
        ),
    ]

    try:
        raw = await get_collaborators(config).llm.complete(messages, model_name=model_name)
        review = normalise_review(parse_model_json(raw))
    except Exception as e:
        logger.warning("slide_review_fallback", error=str(e))
        review = {**DEFAULT_REVIEW, "issues": []}

    revise = needs_revision(review)
    logger.info(
        "slide_review_complete",
        issues=len(review["issues"]),
        score=review["overall_score"],
        needs_revision=revise,
    )
    return {"review_results": review, "needs_revision": revise}
