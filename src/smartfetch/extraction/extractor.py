"""
Pattern extractor: raw text → filtered, deduplicated CandidateSet.

Pipeline stages:
1. Normalize input (join segments, trim); empty input → empty CandidateSet
2. Per-source custom patterns (HIGH tier) when an overlay is given
3. Built-in code rules in tier order, LOW tier gated on prior valid codes
4. Discounts (percentages and flat amounts) with range checks
5. Links, minus generic/boilerplate shapes
6. Candidate filter (blacklist ∪ overlay blacklist, structural rules)
7. Deduplication into a CandidateSet

Pure function of (text, overlay): no I/O, no shared state.
"""

import re
from typing import Iterable, List, Optional, Set, Union

import structlog

from ..candidates.filters import build_blacklist, filter_candidates, is_valid_code
from ..config import settings
from ..exceptions import InputError, PatternError
from ..models.candidates import Candidate, CandidateKind, CandidateSet, SourceTier
from ..models.overlays import SourceRules
from .diagnostics import Diagnostics
from .patterns import (
    CODE_RULES,
    FLAT_RULES,
    LINK_RULE,
    LINK_TRAILING_PUNCTUATION,
    PERCENT_RULES,
    TIER_ORDER,
    PatternRule,
    is_generic_link,
    rules_for_tier,
)


logger = structlog.get_logger(__name__)

RawText = Union[str, Iterable[str], None]

# Characters of context kept around each match
ORIGIN_CONTEXT_CHARS = 40


def join_segments(segments: Iterable) -> str:
    """
    Join transcript/description/post segments into one extraction string.

    Non-string and blank segments are dropped.

    Args:
        segments: Lines or fragments

    Returns:
        Single-space joined, trimmed text (may be empty)

    Examples:
        >>> join_segments(["Use code", None, "  ", "SAVE20"])
        'Use code SAVE20'
    """
    valid = [s.strip() for s in segments if isinstance(s, str) and s.strip()]
    return " ".join(valid).strip()


def normalize_raw_text(raw_text: RawText) -> str:
    """
    Coerce raw input into trimmed extraction text.

    Raises:
        InputError: If the input is missing, not text, or blank
    """
    if raw_text is None:
        raise InputError("raw text is missing")
    if isinstance(raw_text, str):
        text = raw_text.strip()
    elif isinstance(raw_text, (bytes, bytearray)):
        raise InputError("raw text must be str, got bytes")
    else:
        try:
            text = join_segments(raw_text)
        except TypeError as e:
            raise InputError(f"raw text is not iterable text: {e}") from e
    if not text:
        raise InputError("raw text is empty after trimming")
    return text


def compile_overlay_rules(
    overlay: Optional[SourceRules],
    diagnostics: Optional[Diagnostics] = None,
) -> List[PatternRule]:
    """
    Turn overlay custom patterns into HIGH-tier rules.

    Malformed patterns are reported to diagnostics and skipped.

    Args:
        overlay: Per-source rules (may be None)
        diagnostics: Collector for skipped rules

    Returns:
        Compiled overlay rules, in overlay order
    """
    if overlay is None:
        return []

    rules = []
    for name, pattern in overlay.custom_patterns.items():
        rule = PatternRule(
            name=f"overlay:{name}",
            tier=SourceTier.HIGH,
            kind=CandidateKind.CODE,
            pattern=pattern,
            flags=re.IGNORECASE,
            from_overlay=True,
        )
        try:
            rule.compile()
        except (re.error, TypeError) as e:
            error = PatternError(rule.name, f"invalid pattern {pattern!r}: {e}")
            logger.warning("overlay_pattern_invalid", rule=rule.name, error=str(e))
            if diagnostics is not None:
                diagnostics.add_pattern_error(error)
            continue
        rules.append(rule)
    return rules


def _origin_span(text: str, start: int, end: int) -> str:
    return text[max(0, start - ORIGIN_CONTEXT_CHARS): end + ORIGIN_CONTEXT_CHARS]


def _apply_code_rule(rule: PatternRule, text: str) -> List[Candidate]:
    found = []
    for match in rule.compile().finditer(text):
        value = rule.value_of(match)
        if not value or not value.strip():
            continue
        found.append(
            Candidate(
                kind=CandidateKind.CODE,
                value=value.strip(),
                source_tier=rule.tier,
                rule_name=rule.name,
                origin_span=_origin_span(text, match.start(), match.end()),
                from_overlay=rule.from_overlay,
            )
        )
    return found


def _apply_number_rule(rule: PatternRule, text: str, upper_bound: float) -> List[Candidate]:
    found = []
    for match in rule.compile().finditer(text):
        raw = rule.value_of(match)
        try:
            amount = float(raw.replace(",", ""))
        except (AttributeError, ValueError):
            continue
        # Range: (0, upper_bound]
        if not (0 < amount <= upper_bound):
            continue
        found.append(
            Candidate(
                kind=rule.kind,
                value=amount,
                source_tier=rule.tier,
                rule_name=rule.name,
                origin_span=_origin_span(text, match.start(), match.end()),
            )
        )
    return found


def _apply_link_rule(text: str) -> List[Candidate]:
    found = []
    for match in LINK_RULE.compile().finditer(text):
        url = match.group(0).rstrip(LINK_TRAILING_PUNCTUATION)
        if not url or is_generic_link(url):
            continue
        found.append(
            Candidate(
                kind=CandidateKind.LINK,
                value=url,
                source_tier=LINK_RULE.tier,
                rule_name=LINK_RULE.name,
            )
        )
    return found


def _run_rule(rule: PatternRule, fn, diagnostics: Optional[Diagnostics]) -> List[Candidate]:
    """Run one rule; a failing rule is reported and contributes nothing."""
    try:
        return fn()
    except (re.error, IndexError, TypeError, ValueError) as e:
        error = PatternError(rule.name, str(e))
        logger.warning("pattern_rule_failed", rule=rule.name, error=str(e))
        if diagnostics is not None:
            diagnostics.add_pattern_error(error)
        return []


def _count_valid_codes(candidates: List[Candidate], blacklist: Set[str]) -> int:
    keys = {
        c.key
        for c in candidates
        if c.kind == CandidateKind.CODE and is_valid_code(str(c.value), blacklist)
    }
    return len(keys)


def extract_raw(
    text: str,
    overlay: Optional[SourceRules] = None,
    blacklist: Optional[Set[str]] = None,
    diagnostics: Optional[Diagnostics] = None,
    low_tier_max_prior_codes: Optional[int] = None,
    flat_discount_max: Optional[float] = None,
) -> List[Candidate]:
    """
    Apply every rule to already-normalized text, without filtering.

    Args:
        text: Trimmed, non-empty text
        overlay: Optional per-source rules (custom patterns run first)
        blacklist: Blacklist used to count valid codes for the LOW tier gate
        diagnostics: Collector for skipped rules
        low_tier_max_prior_codes: LOW tier runs only below this many valid codes
        flat_discount_max: Upper bound for flat discounts

    Returns:
        Raw candidates in rule order (may contain duplicates and invalid codes)
    """
    if low_tier_max_prior_codes is None:
        low_tier_max_prior_codes = settings.low_tier_max_prior_codes
    if flat_discount_max is None:
        flat_discount_max = settings.flat_discount_max
    if blacklist is None:
        blacklist = build_blacklist(overlay.blacklist_terms() if overlay else None)

    rules = compile_overlay_rules(overlay, diagnostics) + CODE_RULES
    candidates: List[Candidate] = []

    for tier in TIER_ORDER:
        if tier == SourceTier.LOW:
            prior = _count_valid_codes(candidates, blacklist)
            if prior >= low_tier_max_prior_codes:
                logger.debug("low_tier_skipped", prior_valid_codes=prior)
                continue
        for rule in rules_for_tier(rules, tier):
            candidates.extend(
                _run_rule(rule, lambda r=rule: _apply_code_rule(r, text), diagnostics)
            )

    for rule in PERCENT_RULES:
        candidates.extend(
            _run_rule(rule, lambda r=rule: _apply_number_rule(r, text, 100.0), diagnostics)
        )
    for rule in FLAT_RULES:
        candidates.extend(
            _run_rule(
                rule, lambda r=rule: _apply_number_rule(r, text, flat_discount_max), diagnostics
            )
        )

    candidates.extend(_run_rule(LINK_RULE, lambda: _apply_link_rule(text), diagnostics))

    return candidates


def extract(
    raw_text: RawText,
    overlay: Optional[SourceRules] = None,
    diagnostics: Optional[Diagnostics] = None,
    denylist_patterns: Optional[List[str]] = None,
    link_allowlist: Optional[List[str]] = None,
) -> CandidateSet:
    """
    Extract promotional artifacts from raw text.

    Empty, missing or non-text input yields an empty CandidateSet without
    raising. The same input and overlay always yield the same set.

    Args:
        raw_text: Text, or an iterable of text segments
        overlay: Optional per-source rules; its blacklist applies to this call only
        diagnostics: Collector for skipped rules and input warnings
        denylist_patterns: Link domain denylist (default: filter default)
        link_allowlist: Link domain allowlist, empty allows all (default: settings)

    Returns:
        Filtered, deduplicated CandidateSet

    Examples:
        >>> result = extract("Use code SAVE20 to get 20% off your order!")
        >>> sorted(result.codes)
        ['SAVE20']
        >>> sorted(result.percent_off)
        [20.0]
    """
    try:
        text = normalize_raw_text(raw_text)
    except InputError as e:
        logger.debug("extraction_input_rejected", reason=str(e))
        if diagnostics is not None:
            diagnostics.add_warning(f"input: {e}")
        return CandidateSet.empty()

    blacklist = build_blacklist(overlay.blacklist_terms() if overlay else None)

    raw_candidates = extract_raw(text, overlay=overlay, blacklist=blacklist, diagnostics=diagnostics)
    kept = filter_candidates(
        raw_candidates,
        blacklist=blacklist,
        denylist_patterns=denylist_patterns,
        link_allowlist=link_allowlist,
    )
    candidate_set = CandidateSet.from_candidates(kept)

    logger.debug(
        "extraction_complete",
        text_length=len(text),
        raw_count=len(raw_candidates),
        kept_count=len(kept),
        codes_count=len(candidate_set.code_candidates),
        links_count=len(candidate_set.links),
        percent_count=len(candidate_set.percent_off),
        flat_count=len(candidate_set.flat_discount),
        overlay=overlay is not None,
    )

    return candidate_set
