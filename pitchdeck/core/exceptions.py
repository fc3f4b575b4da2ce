"""
Error taxonomy shared by both generation pipelines.

Stages raise these internally and convert them into an ``error`` patch at
their own boundary. Only ``run_slide_pipeline`` lets one escape to callers
(``SlideGenerationError``).
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every pipeline failure."""


class ValidationError(PipelineError):
    """Required input is missing. Always fatal to the run."""


class LookupFailure(PipelineError):
    """A best-effort store lookup returned nothing."""


class ContentParseError(PipelineError):
    """Model output could not be parsed into the expected JSON shape."""


class ExternalCallFailure(PipelineError):
    """The LLM or store call itself failed (network, quota, timeout)."""


class AggregationFailure(PipelineError):
    """The terminal stage found nothing to aggregate."""


class GraphConfigurationError(PipelineError):
    """A pipeline graph or collaborator is misconfigured."""


class SlideGenerationError(PipelineError):
    """The slide pipeline produced no usable output."""
