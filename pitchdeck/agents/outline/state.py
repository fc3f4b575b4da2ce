"""
Outline pipeline state: threaded through retrieve → enhance → generate → aggregate.

Every stage returns a partial patch; LangGraph merges it per key. ``error``
uses a reducer that can replace but never clear a message.
"""

from __future__ import annotations

from typing import Annotated, NotRequired, TypedDict

from pitchdeck.agents.reducers import keep_error


class OutlineRequest(TypedDict, total=False):
    pitch_id: str
    client_id: str
    client_name: str
    pitch_stage: str
    competitors_selected: dict[str, bool]

    # Context from the pitch form
    important_client_info: str
    important_to_client: str
    client_sentiment: int  # 0-100
    our_advantages: str
    competitor_strengths: str
    pitch_focus: str

    # Additional context
    relevant_case_studies: str
    key_metrics: str
    implementation_timeline: str
    expected_roi: str

    # Data sources
    data_sources_selected: dict[str, bool]
    sub_data_sources_selected: list[str]
    uploaded_file_names: list[str]

    # Research overlays, caller data wins over stored data
    client_details: dict
    competitor_details: dict[str, dict]

    custom_slide_structure: list[dict]  # [{title, description}]


class OutlineResult(TypedDict):
    initial_outline: str
    summary: NotRequired[str | None]
    error: NotRequired[str]
    thread_id: NotRequired[str]


class OutlineState(TypedDict, total=False):
    # ── Run payload ─────────────────────────────────────────
    input: OutlineRequest
    output: OutlineResult | None
    error: Annotated[str | None, keep_error]
    failed_stage: str | None

    # ── Retrieved / derived data ────────────────────────────
    client_data: dict | None
    competitor_data: dict[str, dict]
    enhanced_client_data: dict | None
    enhanced_competitor_data: dict[str, dict]
    data_source_content: str

    # ── Generation ──────────────────────────────────────────
    outline_text: str
    outline_summary: str
