"""
Shared FastAPI dependencies for v1 API routes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from pitchdeck.agents.collaborators import Collaborators, default_collaborators
from pitchdeck.core.config import Settings, get_settings
from pitchdeck.core.security import verify_api_key


def get_pipeline_collaborators() -> Collaborators:
    """Store, LLM and settings provider handed to every pipeline run."""
    return default_collaborators()


# Re-export for convenience in route files
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
AppSettings = Annotated[Settings, Depends(get_settings)]
PipelineCollaborators = Annotated[Collaborators, Depends(get_pipeline_collaborators)]
