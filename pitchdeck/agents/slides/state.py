"""
Slide pipeline state and record types.

Flow:
  initialize → generate_slides → (handle_error | review)
  review → (update_content | enhance_titles) → enhance_titles → aggregate

Uses Annotated reducers where several stages contribute to one field:
  - generated_slides: a list patch replaces, a single slide is appended
  - slide_progress / processing_metadata / enhanced_titles: shallow merge
  - error: may be replaced but never cleared
"""

from __future__ import annotations

from typing import Annotated, Literal, NotRequired, TypedDict

from pitchdeck.agents.reducers import append_or_replace, keep_error, merge_dicts

SlideType = Literal["title", "content", "chart", "table", "closing"]
SlideStatus = Literal["pending", "processing", "completed", "failed"]


class SlideOutline(TypedDict, total=False):
    """One slide of a finished outline. Read-only once a run starts."""

    id: str
    number: int
    title: str
    slide_type: SlideType
    raw_content: str
    purpose: str
    key_content: list[str]
    key_takeaway: str
    supporting_evidence: list[str]
    visual_recommendation: str
    strategic_framing: str
    custom_sections: dict[str, str]


class SlideContentBlock(TypedDict):
    type: str  # heading | text | bullet
    content: str
    level: int


class SlideBody(TypedDict):
    title: str
    subtitle: str
    body: str
    blocks: list[SlideContentBlock]


class SlideMetadata(TypedDict):
    generated_at: str
    outline: SlideOutline
    context_used: list[str]
    revised: NotRequired[bool]
    revision_reason: NotRequired[str]
    enhanced_title: NotRequired[str]


class GeneratedSlideContent(TypedDict):
    id: str
    type: SlideType
    content: SlideBody
    metadata: SlideMetadata


class PitchContext(TypedDict, total=False):
    client_details: dict
    competitor_details: dict[str, dict]
    additional_context: dict
    uploaded_files: list[dict]  # [{name, url}]
    data_sources_selected: dict[str, bool]


class SlideRequest(TypedDict, total=False):
    pitch_id: str
    client_name: str
    client_id: str
    pitch_stage: str
    slide_outlines: list[SlideOutline]
    pitch_context: PitchContext


class GenerationMetadata(TypedDict):
    total_slides: int
    successful_slides: int
    failed_slides: int
    processing_time: float  # seconds
    context_sources: list[str]


class SlideResult(TypedDict):
    slides: list[GeneratedSlideContent]
    summary: str
    generation_metadata: GenerationMetadata


class SlideState(TypedDict, total=False):
    # ── Run payload ─────────────────────────────────────────
    input: SlideRequest
    output: SlideResult | None
    error: Annotated[str | None, keep_error]
    failed_stage: str | None

    # ── Seeded by initialize ────────────────────────────────
    context_data: PitchContext
    slide_outlines: list[SlideOutline]

    # ── Generation ──────────────────────────────────────────
    generated_slides: Annotated[list[GeneratedSlideContent], append_or_replace]
    slide_progress: Annotated[dict[str, SlideStatus], merge_dicts]
    processing_metadata: Annotated[dict, merge_dicts]

    # ── Review / polish ─────────────────────────────────────
    review_results: dict | None
    needs_revision: bool
    enhanced_titles: Annotated[dict[str, str], merge_dicts]


def slide_number(slide: GeneratedSlideContent) -> int:
    """Outline number of a generated slide; 0 when unknown."""
    return ((slide.get("metadata") or {}).get("outline") or {}).get("number") or 0


def sort_slides(slides: list[GeneratedSlideContent]) -> list[GeneratedSlideContent]:
    return sorted(slides, key=slide_number)
