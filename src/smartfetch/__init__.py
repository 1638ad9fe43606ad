"""
SmartFetch - promotional code extraction and confidence scoring.

Turns video descriptions, transcripts and posts into a scored set of
promo codes, links and discounts, and decides whether each result is
accepted, needs review, or is rejected.
"""

__version__ = "2.0.0"

from .escalation import EscalationController, LLMSecondaryScorer, SecondaryScorer, Thresholds
from .extraction import extract, join_segments
from .logging_config import setup_logging
from .models import CandidateSet, ExtractionResult, ExtractionStatus
from .pipeline import ExtractionPipeline, ItemFailure, PipelineStats, SourceItem
from .scoring import score

__all__ = [
    "EscalationController",
    "LLMSecondaryScorer",
    "SecondaryScorer",
    "Thresholds",
    "extract",
    "join_segments",
    "setup_logging",
    "CandidateSet",
    "ExtractionResult",
    "ExtractionStatus",
    "ExtractionPipeline",
    "ItemFailure",
    "PipelineStats",
    "SourceItem",
    "score",
]
