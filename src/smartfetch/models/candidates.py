"""
Data models for promotional artifact candidates.

A Candidate is one extracted artifact (code, link, percentage or flat
discount) tagged with the tier of the pattern that produced it. A
CandidateSet is the deduplicated, per-kind collection handed from the
extractor to the scorer.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class CandidateKind(str, Enum):
    """Kinds of promotional artifact."""
    CODE = "code"
    LINK = "link"
    PERCENT_OFF = "percent_off"
    FLAT_DISCOUNT = "flat_discount"


class SourceTier(str, Enum):
    """Provenance confidence of the pattern rule that produced a candidate."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def confidence(self) -> float:
        """Implied confidence of a code found by a rule of this tier."""
        return TIER_CONFIDENCE[self]

    @property
    def rank(self) -> int:
        """Ordering key: higher is stronger."""
        return TIER_RANK[self]


TIER_CONFIDENCE: Dict[SourceTier, float] = {
    SourceTier.HIGH: 0.9,
    SourceTier.MEDIUM: 0.6,
    SourceTier.LOW: 0.3,
}

TIER_RANK: Dict[SourceTier, int] = {
    SourceTier.HIGH: 3,
    SourceTier.MEDIUM: 2,
    SourceTier.LOW: 1,
}


def normalize_code(value: str) -> str:
    """Case-normalized dedup key for a code."""
    return value.strip().upper()


class Candidate(BaseModel):
    """
    A single extracted artifact.

    Immutable once created; the candidate filter either keeps or drops it.
    """

    model_config = ConfigDict(frozen=True)

    kind: CandidateKind = Field(description="Artifact kind")
    value: Union[float, str] = Field(description="Code text, URL, or discount magnitude")
    source_tier: SourceTier = Field(description="Tier of the pattern rule that produced it")
    rule_name: str = Field(default="", description="Name of the producing pattern rule")
    origin_span: Optional[str] = Field(
        default=None, description="Surrounding text the candidate was found in"
    )
    from_overlay: bool = Field(
        default=False, description="Produced by a per-source custom pattern"
    )

    @property
    def key(self) -> Union[float, str]:
        """Dedup key: codes are case-normalized, everything else compares by value."""
        if self.kind == CandidateKind.CODE:
            return normalize_code(str(self.value))
        return self.value


class CandidateSet(BaseModel):
    """
    Deduplicated candidates partitioned by kind.

    Codes keep their full Candidate (tier, rule, overlay flag) because the
    scorer needs provenance; links and discounts are plain value sets.
    Code dedup is case-insensitive, the first-seen casing is kept for display,
    and the strongest tier wins.
    """

    model_config = ConfigDict(frozen=True)

    code_candidates: Tuple[Candidate, ...] = Field(default=())
    links: FrozenSet[str] = Field(default_factory=frozenset)
    percent_off: FrozenSet[float] = Field(default_factory=frozenset)
    flat_discount: FrozenSet[float] = Field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "CandidateSet":
        return cls()

    @classmethod
    def from_candidates(cls, candidates: Iterable[Candidate]) -> "CandidateSet":
        """
        Build a CandidateSet from raw (possibly duplicated) candidates.

        Args:
            candidates: Candidates in extraction order

        Returns:
            Deduplicated CandidateSet
        """
        codes: Dict[str, Candidate] = {}
        links: List[str] = []
        percent_off: List[float] = []
        flat_discount: List[float] = []

        for cand in candidates:
            if cand.kind == CandidateKind.CODE:
                key = cand.key
                existing = codes.get(key)
                if existing is None:
                    codes[key] = cand
                elif cand.source_tier.rank > existing.source_tier.rank:
                    # Stronger tier wins, display casing stays first-seen
                    codes[key] = cand.model_copy(update={"value": existing.value})
            elif cand.kind == CandidateKind.LINK:
                links.append(str(cand.value))
            elif cand.kind == CandidateKind.PERCENT_OFF:
                percent_off.append(float(cand.value))
            elif cand.kind == CandidateKind.FLAT_DISCOUNT:
                flat_discount.append(float(cand.value))

        return cls(
            code_candidates=tuple(codes.values()),
            links=frozenset(links),
            percent_off=frozenset(percent_off),
            flat_discount=frozenset(flat_discount),
        )

    @property
    def codes(self) -> FrozenSet[str]:
        """Display values of all codes."""
        return frozenset(str(c.value) for c in self.code_candidates)

    @property
    def code_keys(self) -> FrozenSet[str]:
        """Case-normalized code keys."""
        return frozenset(c.key for c in self.code_candidates)

    @property
    def code_confidence(self) -> Dict[str, float]:
        """Per-code implied confidence from its source tier."""
        return {str(c.value): c.source_tier.confidence for c in self.code_candidates}

    def is_empty(self) -> bool:
        return not (self.code_candidates or self.links or self.percent_off or self.flat_discount)

    def with_code(self, candidate: Candidate) -> "CandidateSet":
        """Return a new set with one more code candidate merged in."""
        return CandidateSet.from_candidates(
            list(self.code_candidates) + [candidate] + self._non_code_candidates()
        )

    def restrict_codes(self, allowed: Iterable[str]) -> "CandidateSet":
        """
        Return a new set keeping only codes whose normalized value is in `allowed`.

        Args:
            allowed: Code values (any casing)

        Returns:
            CandidateSet with narrowed codes; other kinds unchanged
        """
        allowed_keys = {normalize_code(a) for a in allowed if isinstance(a, str)}
        return self.model_copy(
            update={
                "code_candidates": tuple(
                    c for c in self.code_candidates if c.key in allowed_keys
                )
            }
        )

    def sorted_percent_off(self) -> List[float]:
        return sorted(self.percent_off, reverse=True)

    def sorted_flat_discount(self) -> List[float]:
        return sorted(self.flat_discount, reverse=True)

    def _non_code_candidates(self) -> List[Candidate]:
        out = [
            Candidate(kind=CandidateKind.LINK, value=v, source_tier=SourceTier.MEDIUM)
            for v in self.links
        ]
        out += [
            Candidate(kind=CandidateKind.PERCENT_OFF, value=v, source_tier=SourceTier.HIGH)
            for v in self.percent_off
        ]
        out += [
            Candidate(kind=CandidateKind.FLAT_DISCOUNT, value=v, source_tier=SourceTier.HIGH)
            for v in self.flat_discount
        ]
        return out
