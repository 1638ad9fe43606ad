"""
Version constants for the extraction pipeline.

This module defines the version constants attached to every result so a
stored row can be traced back to the rule set and weights that produced it.
"""

from .models.results import PipelineVersion

EXTRACTOR_VERSION = "patterns-2.0.0"
FILTER_VERSION = "blacklist-2.0.0"
SCORER_VERSION = "scorer-weights-2.0.0"
ESCALATION_VERSION = "fallback-prompt-1.0.0"


def get_current_pipeline_version() -> PipelineVersion:
    """
    Get current pipeline version configuration.

    Returns:
        PipelineVersion instance with current versions
    """
    return PipelineVersion(
        extractor_version=EXTRACTOR_VERSION,
        filter_version=FILTER_VERSION,
        scorer_version=SCORER_VERSION,
        escalation_version=ESCALATION_VERSION,
    )
