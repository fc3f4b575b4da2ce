"""
Outline generator settings: pitch stages, slide structures and key principles.

Configured in the document store; the built-in template from
``settings_defaults`` is returned whenever a collection is empty or the store
cannot be read.
"""

from __future__ import annotations

from typing import TypedDict

from pitchdeck.core.logging import get_logger
from pitchdeck.services.document_store import DocumentStore
from pitchdeck.services.settings_defaults import (
    FALLBACK_KEY_PRINCIPLES,
    FALLBACK_PITCH_STAGES,
    FALLBACK_SLIDE_STRUCTURES,
    FALLBACK_STAGE_ID,
    LEGACY_STAGE_NAMES,
)

logger = get_logger(__name__)

PITCH_STAGES_COLLECTION = "pitch_stages"
SLIDE_STRUCTURES_COLLECTION = "slide_structures"
KEY_PRINCIPLES_COLLECTION = "key_principles"


class StageTemplate(TypedDict):
    pitch_stage: dict | None
    slide_structures: list[dict]
    key_principles: list[dict]


def _active_in_order(records: list[dict]) -> list[dict]:
    active = [r for r in records if r.get("is_active", True)]
    return sorted(active, key=lambda r: r.get("order", 0))


class PitchSettingsService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_active_pitch_stages(self) -> list[dict]:
        try:
            stages = _active_in_order(await self._store.query(PITCH_STAGES_COLLECTION, "is_active", True))
        except Exception as e:
            logger.error("pitch_stages_fetch_failed", error=str(e))
            stages = []
        return stages or [dict(s) for s in FALLBACK_PITCH_STAGES]

    async def get_slide_structures(self, pitch_stage_id: str) -> list[dict]:
        try:
            structures = _active_in_order(
                await self._store.query(SLIDE_STRUCTURES_COLLECTION, "pitch_stage_id", pitch_stage_id)
            )
        except Exception as e:
            logger.error("slide_structures_fetch_failed", stage=pitch_stage_id, error=str(e))
            structures = []
        if not structures:
            logger.info("slide_structures_fallback", stage=pitch_stage_id)
            return [dict(s) for s in FALLBACK_SLIDE_STRUCTURES]
        return structures

    async def get_key_principles(self) -> list[dict]:
        try:
            principles = _active_in_order(
                await self._store.query(KEY_PRINCIPLES_COLLECTION, "is_active", True)
            )
        except Exception as e:
            logger.error("key_principles_fetch_failed", error=str(e))
            principles = []
        return principles or [dict(p) for p in FALLBACK_KEY_PRINCIPLES]

    async def resolve_pitch_stage(self, stage_key: str | None) -> dict | None:
        """Find a stage by legacy key (stage1..stage5), id, or canonical name."""
        if not stage_key:
            return None
        target_name = LEGACY_STAGE_NAMES.get(stage_key, stage_key)
        for stage in await self.get_active_pitch_stages():
            if stage.get("name") == target_name or stage.get("id") == stage_key:
                return stage
        return None

    async def get_stage_template(self, stage_key: str | None) -> StageTemplate:
        pitch_stage = await self.resolve_pitch_stage(stage_key)
        stage_id = pitch_stage["id"] if pitch_stage else FALLBACK_STAGE_ID
        return StageTemplate(
            pitch_stage=pitch_stage,
            slide_structures=await self.get_slide_structures(stage_id),
            key_principles=await self.get_key_principles(),
        )
