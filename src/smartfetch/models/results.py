"""
Scoring and result models.

ScoreBreakdown explains how a confidence value was composed; ExtractionResult
is the immutable unit of output handed to the persistence sink.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .candidates import CandidateSet


class ExtractionStatus(str, Enum):
    """Final disposition of a source item."""
    ACCEPTED = "accepted"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"


class ScoreBreakdown(BaseModel):
    """
    Each contribution to a confidence score plus the clamped total.

    Transient: used for explainability and logging, reproducible from the
    CandidateSet (and optional raw text) alone.
    """

    model_config = ConfigDict(frozen=True)

    code_score: float = Field(default=0.0, ge=0.0)
    context_score: float = Field(default=0.0, ge=0.0)
    link_score: float = Field(default=0.0, ge=0.0)
    coherence_bonus: float = Field(default=0.0, ge=0.0)
    penalties: Dict[str, float] = Field(default_factory=dict)
    suspicious_codes: List[str] = Field(default_factory=list)
    mismatched_codes: List[str] = Field(default_factory=list)
    errors: List[str] = Field(
        default_factory=list, description="Contributions that fell back to 0 on malformed data"
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def penalty_total(self) -> float:
        return sum(self.penalties.values())

    @property
    def raw_total(self) -> float:
        """Sum of contributions minus penalties, before clamping."""
        return (
            self.code_score
            + self.context_score
            + self.link_score
            + self.coherence_bonus
            - self.penalty_total
        )


class PipelineVersion(BaseModel):
    """
    Immutable version contract for deterministic processing.

    Same versions + same input = same CandidateSet and same heuristic score.
    """

    extractor_version: str = Field(description="Pattern extractor rule set version")
    filter_version: str = Field(description="Candidate filter/blacklist version")
    scorer_version: str = Field(description="Confidence scorer weights version")
    escalation_version: str = Field(description="Secondary scorer prompt version")

    model_config = {"frozen": True}

    def to_repr(self) -> str:
        """Short representation for logging."""
        return f"{self.extractor_version}/{self.scorer_version}/{self.escalation_version}"


class ExtractionResult(BaseModel):
    """
    Final result for one source item.

    `source_id` is the join key the persistence sink uses to enforce
    at-most-once storage per item.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(description="Opaque ID of the originating video/post")
    candidate_set: CandidateSet = Field(default_factory=CandidateSet)
    confidence: float = Field(ge=0.0, le=1.0)
    status: ExtractionStatus
    enhanced_by_fallback: bool = Field(
        default=False, description="True if the secondary scorer replaced the heuristic score"
    )

    # Escalation audit
    original_confidence: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Heuristic confidence before escalation"
    )
    fallback_reasoning: Optional[str] = None
    fallback_recommendation: Optional[str] = None
    escalation_error: Optional[str] = Field(
        default=None, description="Retryable escalation failure message, if any"
    )

    # Transient explainability, not part of the persisted record
    score_breakdown: Optional[ScoreBreakdown] = Field(default=None, exclude=True)

    pipeline_version: Optional[PipelineVersion] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def codes(self) -> List[str]:
        return sorted(self.candidate_set.codes)

    @property
    def code_confidence(self) -> Dict[str, float]:
        return self.candidate_set.code_confidence

    def to_record(self) -> Dict[str, Any]:
        """
        Flatten to a sink-friendly row (one row per source item).

        Returns:
            Dict with list fields sorted for stable output
        """
        return {
            "source_id": self.source_id,
            "codes": self.codes,
            "code_confidence": self.code_confidence,
            "links": sorted(self.candidate_set.links),
            "percent_off": self.candidate_set.sorted_percent_off(),
            "flat_discount": self.candidate_set.sorted_flat_discount(),
            "confidence": round(self.confidence, 4),
            "status": self.status.value,
            "enhanced_by_fallback": self.enhanced_by_fallback,
            "original_confidence": self.original_confidence,
            "fallback_reasoning": self.fallback_reasoning,
            "fallback_recommendation": self.fallback_recommendation,
            "escalation_error": self.escalation_error,
            "created_at": self.created_at.isoformat(),
        }
