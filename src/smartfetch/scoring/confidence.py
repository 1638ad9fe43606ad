"""
Confidence scoring for extracted candidate sets.

Combines multiple signals into a single confidence in [0, 1]:
- Code quality (0.65) - strongest code tier blended with the average tier
- Discount context (0.20) - percentage (scaled by size) or flat discounts
- Link quality (0.10) - promotional > commercial > bare links
- Coherence bonus (up to 0.10) - code + discount, code + promotional link
minus bounded penalties:
- suspicious codes (overlay codes that fail the default structural rules)
- spam (too many non-HIGH codes)
- echo mismatch (code not present in the source text, when text is known)

Monotonic by construction: a valid HIGH-tier code can only raise the code
component and the coherence bonus, and is never counted as spam; a
suspicious or mismatched code is excluded from every positive term and only
adds a penalty.
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from ..candidates.filters import rejection_reason
from ..config import settings
from ..exceptions import ScoringError
from ..models.candidates import Candidate, CandidateSet, SourceTier, normalize_code
from ..models.results import ScoreBreakdown


logger = structlog.get_logger(__name__)


# Blend of strongest tier vs. average tier in the code component
CODE_TOP_WEIGHT = 0.7
CODE_AVG_WEIGHT = 0.3
MULTI_HIGH_BONUS = 0.1  # ≥2 distinct HIGH codes

# Discount context shaping
PERCENT_BASE = 0.6
PERCENT_SCALE_CAP = 50.0  # percentages above this add nothing more
FLAT_BASE = 0.7
BOTH_DISCOUNTS_BONUS = 0.1

# Link quality levels
LINK_QUALITY_PROMO = 1.0
LINK_QUALITY_COMMERCIAL = 0.6
LINK_QUALITY_BARE = 0.3

# Coherence split
COHERENCE_CODE_DISCOUNT = 0.6
COHERENCE_CODE_PROMO_LINK = 0.4

# Penalties: (per item, cap)
SUSPICIOUS_PENALTY = (0.1, 0.2)
SPAM_PENALTY = (0.05, 0.25)
MISMATCH_PENALTY = (0.1, 0.3)

PROMO_LINK_PATTERN = re.compile(
    r"(?i)(?:promo|coupon|discount|deal|offer|voucher|referral|sponsor|partner"
    r"|[?&](?:ref|aff|affiliate|tag|via|code|coupon|utm_[a-z]+)="
    r"|/ref/|/go/|bit\.ly|amzn\.to|geni\.us|howl\.me|shopmy\.us)"
)
COMMERCIAL_LINK_PATTERN = re.compile(
    r"(?i)(?:amazon\.|ebay\.|etsy\.|shop|store|buy|product|checkout|cart|/dp/|/p/)"
)


@dataclass(frozen=True)
class ScoreContext:
    """
    Optional inputs that refine a score.

    Attributes:
        raw_text: Source text; enables the echo-mismatch penalty
    """
    raw_text: Optional[str] = None


def default_weights() -> Dict[str, float]:
    return {
        "code": settings.score_weight_code,
        "context": settings.score_weight_context,
        "link": settings.score_weight_link,
        "coherence": settings.score_coherence_bonus,
    }


# ============================================================================
# CLASSIFICATION OF CODES
# ============================================================================

def is_suspicious_code(candidate: Candidate) -> bool:
    """
    An overlay-produced code that the default structural rules would reject.

    Such codes only survive filtering because of a per-source overlay.
    """
    if not candidate.from_overlay:
        return False
    return rejection_reason(str(candidate.value), blacklist=set()) is not None


def is_echo_mismatch(candidate: Candidate, raw_text: Optional[str]) -> bool:
    """A code whose literal value does not appear in the source text."""
    if raw_text is None:
        return False
    return normalize_code(str(candidate.value)) not in raw_text.upper()


def partition_codes(
    candidate_set: CandidateSet, context: ScoreContext
) -> Tuple[List[Candidate], List[Candidate], List[Candidate]]:
    """
    Split codes into (effective, suspicious, mismatched).

    Suspicious takes precedence over mismatched.
    """
    effective, suspicious, mismatched = [], [], []
    for cand in candidate_set.code_candidates:
        if is_suspicious_code(cand):
            suspicious.append(cand)
        elif is_echo_mismatch(cand, context.raw_text):
            mismatched.append(cand)
        else:
            effective.append(cand)
    return effective, suspicious, mismatched


def link_quality(url: str) -> float:
    """
    Quality of a single link.

    Returns:
        1.0 promotional shape, 0.6 generic commercial, 0.3 bare
    """
    if not isinstance(url, str) or not url:
        raise ScoringError(f"malformed link: {url!r}")
    if PROMO_LINK_PATTERN.search(url):
        return LINK_QUALITY_PROMO
    if COMMERCIAL_LINK_PATTERN.search(url):
        return LINK_QUALITY_COMMERCIAL
    return LINK_QUALITY_BARE


# ============================================================================
# COMPONENTS
# ============================================================================

def _code_component(effective: List[Candidate]) -> float:
    """Code quality in [0, 1] before weighting."""
    if not effective:
        return 0.0

    tier_values = []
    for cand in effective:
        if not isinstance(cand.source_tier, SourceTier):
            raise ScoringError(f"code {cand.value!r} has no source tier")
        tier_values.append(cand.source_tier.confidence)

    top = max(tier_values)
    avg = float(np.mean(tier_values))
    base = CODE_TOP_WEIGHT * top + CODE_AVG_WEIGHT * avg

    high_codes = {c.key for c in effective if c.source_tier == SourceTier.HIGH}
    if len(high_codes) >= 2:
        base += MULTI_HIGH_BONUS

    return float(np.clip(base, 0.0, 1.0))


def _finite_values(values: Iterable, kind: str, upper: float) -> List[float]:
    out = []
    for v in values:
        try:
            f = float(v)
        except (TypeError, ValueError) as e:
            raise ScoringError(f"non-numeric {kind}: {v!r}") from e
        if not math.isfinite(f) or not (0 < f <= upper):
            raise ScoringError(f"{kind} out of range: {v!r}")
        out.append(f)
    return out


def _context_component(candidate_set: CandidateSet) -> float:
    """Discount context in [0, 1] before weighting."""
    percents = _finite_values(candidate_set.percent_off, "percent_off", 100.0)
    flats = _finite_values(candidate_set.flat_discount, "flat_discount", settings.flat_discount_max)

    percent_part = 0.0
    if percents:
        scale = min(max(percents), PERCENT_SCALE_CAP) / PERCENT_SCALE_CAP
        percent_part = PERCENT_BASE + (1.0 - PERCENT_BASE) * scale

    flat_part = FLAT_BASE if flats else 0.0

    raw = max(percent_part, flat_part)
    if percents and flats:
        raw += BOTH_DISCOUNTS_BONUS
    return min(raw, 1.0)


def _link_component(candidate_set: CandidateSet) -> float:
    """Best link quality in [0, 1] before weighting."""
    if not candidate_set.links:
        return 0.0
    return max(link_quality(url) for url in candidate_set.links)


def _capped(count: int, penalty: Tuple[float, float]) -> float:
    per_item, cap = penalty
    return min(count * per_item, cap)


def _safe(name: str, fn: Callable[[], float], errors: List[str]) -> float:
    """Run one contribution; malformed data yields 0 for that contribution."""
    try:
        value = fn()
    except (ScoringError, TypeError, ValueError, AttributeError) as e:
        logger.warning("score_component_failed", component=name, error=str(e))
        errors.append(f"{name}: {e}")
        return 0.0
    if not math.isfinite(value):
        errors.append(f"{name}: non-finite value")
        return 0.0
    return value


# ============================================================================
# SCORE
# ============================================================================

def score(
    candidate_set: CandidateSet,
    context: Optional[ScoreContext] = None,
    weights: Optional[Dict[str, float]] = None,
    spam_code_limit: Optional[int] = None,
) -> ScoreBreakdown:
    """
    Score a candidate set.

    Pure: the breakdown depends only on the arguments. Never raises on
    malformed candidate data; the affected contribution falls back to 0 and
    the problem is listed in `errors`.

    Args:
        candidate_set: Filtered, deduplicated candidates
        context: Optional source text for the echo-mismatch check
        weights: Optional {"code", "context", "link", "coherence"} weights
        spam_code_limit: Non-HIGH codes allowed before the spam penalty

    Returns:
        ScoreBreakdown with confidence clamped to [0, 1]
    """
    if context is None:
        context = ScoreContext()
    if weights is None:
        weights = default_weights()
    if spam_code_limit is None:
        spam_code_limit = settings.score_spam_code_limit

    errors: List[str] = []

    effective, suspicious, mismatched = partition_codes(candidate_set, context)

    code_raw = _safe("code", lambda: _code_component(effective), errors)
    context_raw = _safe("context", lambda: _context_component(candidate_set), errors)
    link_raw = _safe("link", lambda: _link_component(candidate_set), errors)

    has_code = code_raw > 0
    has_discount = context_raw > 0
    has_promo_link = link_raw >= LINK_QUALITY_PROMO

    coherence_raw = 0.0
    if has_code and has_discount:
        coherence_raw += COHERENCE_CODE_DISCOUNT
    if has_code and has_promo_link:
        coherence_raw += COHERENCE_CODE_PROMO_LINK

    non_high = [c for c in effective if c.source_tier != SourceTier.HIGH]
    spam_excess = max(0, len(non_high) - spam_code_limit)

    penalties: Dict[str, float] = {}
    if suspicious:
        penalties["suspicious_codes"] = _capped(len(suspicious), SUSPICIOUS_PENALTY)
    if spam_excess:
        penalties["too_many_codes"] = _capped(spam_excess, SPAM_PENALTY)
    if mismatched:
        penalties["echo_mismatch"] = _capped(len(mismatched), MISMATCH_PENALTY)

    code_score = weights.get("code", 0.0) * code_raw
    context_score = weights.get("context", 0.0) * context_raw
    link_score = weights.get("link", 0.0) * link_raw
    coherence_bonus = weights.get("coherence", 0.0) * coherence_raw

    total = code_score + context_score + link_score + coherence_bonus - sum(penalties.values())
    confidence = round(float(np.clip(total, 0.0, 1.0)), 6)

    breakdown = ScoreBreakdown(
        code_score=round(code_score, 6),
        context_score=round(context_score, 6),
        link_score=round(link_score, 6),
        coherence_bonus=round(coherence_bonus, 6),
        penalties=penalties,
        suspicious_codes=sorted(str(c.value) for c in suspicious),
        mismatched_codes=sorted(str(c.value) for c in mismatched),
        errors=errors,
        confidence=confidence,
    )

    logger.debug(
        "candidate_set_scored",
        confidence=confidence,
        components={
            "code": code_score,
            "context": context_score,
            "link": link_score,
            "coherence": coherence_bonus,
        },
        penalties=penalties,
    )

    return breakdown
