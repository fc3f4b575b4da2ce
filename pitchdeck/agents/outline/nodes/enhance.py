"""
Enhance node — fills prompt-facing defaults and lists the selected data sources.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from pitchdeck.agents.outline.state import OutlineRequest, OutlineState
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)


def build_data_source_content(request: OutlineRequest) -> str:
    """Plain-text listing of the caller's selected categories, sub-sources and files."""
    sections: list[str] = []

    categories = [name for name, selected in (request.get("data_sources_selected") or {}).items() if selected]
    if request.get("data_sources_selected") is not None:
        sections.append("Selected Data Sources:\n" + "".join(f"- {c}\n" for c in categories))

    sub_sources = request.get("sub_data_sources_selected") or []
    if sub_sources:
        sections.append("Selected Sub-Data Sources:\n" + "".join(f"- {s}\n" for s in sub_sources))

    files = request.get("uploaded_file_names") or []
    if files:
        sections.append("Uploaded Files:\n" + "".join(f"- {f}\n" for f in files))

    return "\n".join(sections)


async def enhance_data_node(state: OutlineState, config: RunnableConfig) -> dict:
    if state.get("error"):
        return {}

    try:
        client = state.get("client_data")
        competitors = state.get("competitor_data") or {}
        if not client:
            logger.info("outline_enhance_skipped", reason="no_client_data")
            return {"enhanced_client_data": None, "enhanced_competitor_data": dict(competitors)}

        enhanced_client = {
            **client,
            "processed_data": {
                "industry": client.get("industry") or "Unknown Industry",
                "size": client.get("size") or "Unknown Size",
                "revenue": client.get("revenue") or "Unknown Revenue",
            },
        }
        enhanced_competitors = {
            competitor_id: {
                **competitor,
                "processed_data": {
                    "industry": competitor.get("industry") or "Unknown Industry",
                    "description": competitor.get("description") or "No description available",
                },
            }
            for competitor_id, competitor in competitors.items()
        }

        logger.info("outline_data_enhanced", competitor_count=len(enhanced_competitors))
        return {
            "enhanced_client_data": enhanced_client,
            "enhanced_competitor_data": enhanced_competitors,
            "data_source_content": build_data_source_content(state.get("input") or {}),
        }

    except Exception as e:
        logger.error("outline_enhance_error", error=str(e))
        return {"error": f"Data enhancement error: {e}"}
