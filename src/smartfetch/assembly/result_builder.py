"""
Result Assembler.

Builds the immutable ExtractionResult for one source item from the final
candidate set, confidence and status. Performs no scoring of its own.
"""

from typing import Optional

import structlog

from ..models.candidates import CandidateSet
from ..models.results import ExtractionResult, ExtractionStatus, ScoreBreakdown
from ..version import get_current_pipeline_version


logger = structlog.get_logger(__name__)


def assemble(
    source_id: str,
    candidate_set: CandidateSet,
    confidence: float,
    status: ExtractionStatus,
    enhanced_by_fallback: bool = False,
    original_confidence: Optional[float] = None,
    fallback_reasoning: Optional[str] = None,
    fallback_recommendation: Optional[str] = None,
    escalation_error: Optional[str] = None,
    score_breakdown: Optional[ScoreBreakdown] = None,
) -> ExtractionResult:
    """
    Assemble the final result for one item.

    Args:
        source_id: Opaque ID of the originating item
        candidate_set: Final (possibly narrowed) candidates
        confidence: Final confidence in [0, 1]
        status: Status derived from `confidence`
        enhanced_by_fallback: True if the secondary scorer replaced the score
        original_confidence: Heuristic confidence, when escalated
        fallback_reasoning: Secondary scorer reasoning, when escalated
        fallback_recommendation: Secondary scorer recommendation, when escalated
        escalation_error: Failure message when escalation was attempted and failed
        score_breakdown: Transient scoring explanation

    Returns:
        ExtractionResult
    """
    result = ExtractionResult(
        source_id=source_id,
        candidate_set=candidate_set,
        confidence=confidence,
        status=status,
        enhanced_by_fallback=enhanced_by_fallback,
        original_confidence=original_confidence,
        fallback_reasoning=fallback_reasoning,
        fallback_recommendation=fallback_recommendation,
        escalation_error=escalation_error,
        score_breakdown=score_breakdown,
        pipeline_version=get_current_pipeline_version(),
    )

    logger.debug(
        "result_assembled",
        source_id=source_id,
        status=status.value,
        confidence=confidence,
        codes_count=len(candidate_set.code_candidates),
        enhanced_by_fallback=enhanced_by_fallback,
    )

    return result


def empty_result(source_id: str) -> ExtractionResult:
    """Zero-confidence REJECTED result for empty or invalid input."""
    return assemble(
        source_id=source_id,
        candidate_set=CandidateSet.empty(),
        confidence=0.0,
        status=ExtractionStatus.REJECTED,
        score_breakdown=ScoreBreakdown(),
    )
