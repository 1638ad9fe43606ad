"""
Pydantic schemas exchanged with the secondary scorer.

EscalationRequest is what the controller hands to a SecondaryScorer;
SecondaryAssessment is the validated answer.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.candidates import CandidateSet


RECOMMENDATIONS = ("accept", "review", "reject")


class EscalationRequest(BaseModel):
    """Input to a secondary scorer: heuristic outcome plus a text excerpt."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    candidate_set: CandidateSet
    confidence: float = Field(ge=0.0, le=1.0, description="Heuristic confidence")
    text_excerpt: str = Field(default="", description="Leading slice of the source text")

    def to_payload(self) -> dict:
        """JSON-safe form stored alongside a failure record."""
        cs = self.candidate_set
        return {
            "source_id": self.source_id,
            "codes": sorted(cs.codes),
            "code_confidence": cs.code_confidence,
            "links": sorted(cs.links),
            "percent_off": cs.sorted_percent_off(),
            "flat_discount": cs.sorted_flat_discount(),
            "confidence": self.confidence,
            "text_excerpt": self.text_excerpt,
        }


class SecondaryAssessment(BaseModel):
    """
    Validated secondary scorer verdict.

    Field aliases match the JSON keys requested in the prompt.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = Field(default="No reasoning provided")
    valid_codes: List[str] = Field(default_factory=list, alias="validCodes")
    is_promotional: bool = Field(default=False, alias="isPromotional")
    recommendation: str = Field(default="review")

    # Raw model output, for the audit trail only
    raw_response: Optional[str] = Field(default=None, exclude=True)

    @field_validator("valid_codes", mode="before")
    @classmethod
    def coerce_valid_codes(cls, v):
        if not isinstance(v, list):
            return []
        return [c for c in v if isinstance(c, str) and c.strip()]

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, v):
        if not v or not isinstance(v, str):
            return "No reasoning provided"
        return v

    @field_validator("recommendation", mode="before")
    @classmethod
    def coerce_recommendation(cls, v):
        if isinstance(v, str) and v.strip().lower() in RECOMMENDATIONS:
            return v.strip().lower()
        return "review"
