"""
External collaborators handed to every stage through the run config.

Callers pass ``{"configurable": {"collaborators": Collaborators(...)}}``;
without one, stages fall back to the process-wide defaults built from Settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from langchain_core.runnables import RunnableConfig

from pitchdeck.models.database import get_session_factory
from pitchdeck.services.document_store import DocumentStore, SqlDocumentStore
from pitchdeck.services.llm_service import LLMService
from pitchdeck.services.settings_service import PitchSettingsService


@dataclass(frozen=True)
class Collaborators:
    store: DocumentStore
    llm: LLMService
    settings_service: PitchSettingsService


@lru_cache
def default_collaborators() -> Collaborators:
    store = SqlDocumentStore(get_session_factory())
    return Collaborators(store=store, llm=LLMService(), settings_service=PitchSettingsService(store))


def get_collaborators(config: RunnableConfig | None) -> Collaborators:
    configurable = (config or {}).get("configurable") or {}
    return configurable.get("collaborators") or default_collaborators()


def get_model_override(config: RunnableConfig | None) -> str | None:
    """Caller-selected model name, if the run config carries one."""
    configurable = (config or {}).get("configurable") or {}
    return configurable.get("model_name")
