# Data models for the extraction and scoring pipeline

from .candidates import (
    Candidate,
    CandidateKind,
    CandidateSet,
    SourceTier,
    normalize_code,
)
from .overlays import SourceRules
from .results import ExtractionResult, ExtractionStatus, PipelineVersion, ScoreBreakdown

__all__ = [
    "Candidate",
    "CandidateKind",
    "CandidateSet",
    "SourceTier",
    "normalize_code",
    "SourceRules",
    "ExtractionResult",
    "ExtractionStatus",
    "PipelineVersion",
    "ScoreBreakdown",
]
