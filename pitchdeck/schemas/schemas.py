"""
Pydantic v2 schemas for API request/response validation.

The wire format is camelCase (``clientId``, ``slideOutlines`` …); fields are
snake_case in Python and accept either spelling on input.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Outline generation ──────────────────────────────────────
class SlideStructureItem(CamelModel):
    title: str
    description: str = ""


class OutlineGenerationRequest(CamelModel):
    pitch_id: str
    client_id: str | None = None
    client_name: str | None = None
    pitch_stage: str
    competitors_selected: dict[str, bool] = Field(default_factory=dict)

    important_client_info: str | None = None
    important_to_client: str | None = None
    client_sentiment: int | None = Field(default=None, ge=0, le=100)
    our_advantages: str | None = None
    competitor_strengths: str | None = None
    pitch_focus: str | None = None

    relevant_case_studies: str | None = None
    key_metrics: str | None = None
    implementation_timeline: str | None = None
    expected_roi: str | None = Field(default=None, alias="expectedROI")

    data_sources_selected: dict[str, bool] | None = None
    sub_data_sources_selected: list[str] = Field(default_factory=list)
    uploaded_file_names: list[str] = Field(default_factory=list)

    client_details: dict | None = None
    competitor_details: dict[str, dict] | None = None

    custom_slide_structure: list[SlideStructureItem] = Field(default_factory=list)


class OutlineResponse(CamelModel):
    initial_outline: str
    summary: str | None = None
    error: str | None = None
    thread_id: str | None = None


# ── Slide generation ────────────────────────────────────────
class SlideOutlineSchema(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    number: int
    title: str
    slide_type: Literal["title", "content", "chart", "table", "closing"] = "content"
    raw_content: str | None = None
    purpose: str | None = None
    key_content: list[str] = Field(default_factory=list)
    key_takeaway: str | None = None
    supporting_evidence: list[str] = Field(default_factory=list)
    visual_recommendation: str | None = None
    strategic_framing: str | None = None
    custom_sections: dict[str, str] | None = None


class AdditionalContext(CamelModel):
    important_client_info: str | None = None
    important_to_client: str | None = None
    client_sentiment: int | None = Field(default=None, ge=0, le=100)
    our_advantages: str | None = None
    competitor_strengths: str | None = None
    pitch_focus: str | None = None
    relevant_case_studies: str | None = None
    key_metrics: str | None = None
    implementation_timeline: str | None = None
    expected_roi: str | None = Field(default=None, alias="expectedROI")


class UploadedFile(CamelModel):
    name: str
    url: str


class PitchContextSchema(CamelModel):
    client_details: dict | None = None
    competitor_details: dict[str, dict] | None = None
    additional_context: AdditionalContext | None = None
    uploaded_files: list[UploadedFile] = Field(default_factory=list)
    data_sources_selected: dict[str, bool] | None = None


class SlideGenerationRequest(CamelModel):
    pitch_id: str
    client_name: str
    client_id: str | None = None
    pitch_stage: str
    slide_outlines: list[SlideOutlineSchema] = Field(min_length=1)
    pitch_context: PitchContextSchema


class SlideContentBlockSchema(CamelModel):
    type: str
    content: str
    level: int = 1


class SlideBodySchema(CamelModel):
    title: str
    subtitle: str = ""
    body: str = ""
    blocks: list[SlideContentBlockSchema] = Field(default_factory=list)


class SlideMetadataSchema(CamelModel):
    generated_at: str
    outline: SlideOutlineSchema
    context_used: list[str] = Field(default_factory=list)
    revised: bool | None = None
    revision_reason: str | None = None
    enhanced_title: str | None = None


class GeneratedSlideSchema(CamelModel):
    id: str
    type: str
    content: SlideBodySchema
    metadata: SlideMetadataSchema


class GenerationMetadataSchema(CamelModel):
    total_slides: int
    successful_slides: int
    failed_slides: int
    processing_time: float
    context_sources: list[str] = Field(default_factory=list)


class SlideResponse(CamelModel):
    slides: list[GeneratedSlideSchema]
    summary: str
    generation_metadata: GenerationMetadataSchema


# ── Health check ────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = "0.1.0"
    environment: str
    database: str = "connected"
