"""
Retrieve node — loads the client and selected competitors from the store.

Lookups are best-effort: a missing client leaves ``client_data`` empty and a
missing competitor is skipped, so generation can still run on whatever the
caller supplied. Only a request with no client identifier at all is fatal.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.collaborators import get_collaborators
from pitchdeck.agents.outline.state import OutlineState
from pitchdeck.core.exceptions import LookupFailure, ValidationError
from pitchdeck.core.logging import get_logger
from pitchdeck.services.document_store import DocumentStore

logger = get_logger(__name__)

CLIENTS_COLLECTION = "clients"
COMPETITORS_COLLECTION = "competitors"
MANUAL_COMPETITOR_PREFIX = "manual-"


async def _load_client(store: DocumentStore, client_id: str | None, client_name: str | None) -> dict:
    if client_id:
        client = await store.get(CLIENTS_COLLECTION, client_id)
        if client is None:
            raise LookupFailure(f"client {client_id} not found")
        return client

    matches = await store.query(CLIENTS_COLLECTION, "name", client_name)
    if not matches:
        raise LookupFailure(f"client named '{client_name}' not found")
    return matches[0]


async def _load_competitors(store: DocumentStore, selected: dict[str, bool]) -> dict[str, dict]:
    competitors: dict[str, dict] = {}
    for competitor_id, is_selected in selected.items():
        if not is_selected:
            continue

        if competitor_id.startswith(MANUAL_COMPETITOR_PREFIX):
            # Typed in by the user; there is nothing to look up.
            name = competitor_id[len(MANUAL_COMPETITOR_PREFIX):]
            competitors[competitor_id] = {"id": competitor_id, "name": name}
            continue

        try:
            record = await store.get(COMPETITORS_COLLECTION, competitor_id)
        except Exception as e:
            logger.warning("competitor_lookup_failed", competitor_id=competitor_id, error=str(e))
            continue
        if record is None:
            logger.warning("competitor_not_found", competitor_id=competitor_id)
            continue
        competitors[competitor_id] = record
    return competitors


def _overlay(base: dict | None, details: dict | None) -> dict | None:
    """Caller-supplied research wins over what the store holds."""
    if not details:
        return base
    return {**(base or {}), **details}


async def retrieve_data_node(state: OutlineState, config: RunnableConfig) -> dict:
    """Fetch client and competitor records for the pitch."""
    request = state.get("input") or {}
    store = get_collaborators(config).store

    try:
        client_id = request.get("client_id")
        client_name = request.get("client_name")
        if not client_id and not client_name:
            raise ValidationError("missing client identifier")

        try:
            client_data: dict | None = await _load_client(store, client_id, client_name)
        except LookupFailure as e:
            logger.warning("client_not_found", client_id=client_id, client_name=client_name, error=str(e))
            client_data = None

        competitor_data = await _load_competitors(store, request.get("competitors_selected") or {})

        client_data = _overlay(client_data, request.get("client_details"))
        for competitor_id, details in (request.get("competitor_details") or {}).items():
            if details:
                competitor_data[competitor_id] = _overlay(competitor_data.get(competitor_id), details)

        logger.info(
            "outline_data_retrieved",
            client_found=client_data is not None,
            competitor_count=len(competitor_data),
        )
        return {"client_data": client_data, "competitor_data": competitor_data}

    except Exception as e:
        logger.error("outline_retrieve_error", error=str(e))
        return {"error": f"Data retrieval error: {e}"}
