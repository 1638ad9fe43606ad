"""
Status thresholds and status derivation.

Status is a pure function of confidence and thresholds, so a score replaced
by the secondary scorer is re-derived with the same rule.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import settings
from ..models.results import ExtractionStatus


class Thresholds(BaseModel):
    """
    Confidence cut-offs.

    Attributes:
        accept: confidence >= accept → ACCEPTED
        review: review <= confidence < accept → NEEDS_REVIEW
        escalation: confidence < escalation → ask the secondary scorer
    """

    model_config = ConfigDict(frozen=True)

    accept: float = Field(default=0.6, ge=0.0, le=1.0)
    review: float = Field(default=0.3, ge=0.0, le=1.0)
    escalation: float = Field(default=0.4, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_ordering(self) -> "Thresholds":
        if self.review > self.accept:
            raise ValueError(
                f"review threshold ({self.review}) must not exceed accept threshold ({self.accept})"
            )
        return self

    @classmethod
    def from_settings(cls) -> "Thresholds":
        return cls(
            accept=settings.accept_threshold,
            review=settings.review_threshold,
            escalation=settings.ai_threshold,
        )

    def should_escalate(self, confidence: float) -> bool:
        return confidence < self.escalation


def determine_status(confidence: float, thresholds: Thresholds) -> ExtractionStatus:
    """
    Map a confidence to a status.

    Examples:
        >>> determine_status(0.797, Thresholds())
        <ExtractionStatus.ACCEPTED: 'accepted'>
        >>> determine_status(0.585, Thresholds())
        <ExtractionStatus.NEEDS_REVIEW: 'needs_review'>
    """
    if confidence >= thresholds.accept:
        return ExtractionStatus.ACCEPTED
    if confidence >= thresholds.review:
        return ExtractionStatus.NEEDS_REVIEW
    return ExtractionStatus.REJECTED
