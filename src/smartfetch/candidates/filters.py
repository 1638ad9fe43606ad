"""
Hard filters for candidate cleaning.

Applies deterministic rules to drop:
- Blacklisted terms (static + per-source extras)
- Codes outside the length window
- Too-generic codes (all digits, short all-letter words)
- Repeated-character codes (AAAA, 1111)
- Degenerate codes with no letters or digits
- Links on the domain denylist, or off the domain allowlist when one is set

Numeric discounts pass through untouched (their range is enforced at extraction).
"""

import re
from typing import Iterable, List, Optional, Set
from urllib.parse import urlsplit

import structlog

from ..config import settings
from ..models.candidates import Candidate, CandidateKind, normalize_code
from .blacklist import BLACKLISTED_TERMS, LINK_DENYLIST_PATTERNS


logger = structlog.get_logger(__name__)

_REPEATED_CHAR = re.compile(r"^(.)\1+$")
_ALL_DIGITS = re.compile(r"^\d+$")
_ALL_LETTERS = re.compile(r"^[A-Z]+$")
_HAS_LETTER = re.compile(r"[A-Z]")
_HAS_DIGIT = re.compile(r"\d")

# Rejections an overlay candidate is allowed to survive (kept, later scored as suspicious)
OVERLAY_TOLERATED = {"length", "too_generic"}


def rejection_reason(
    value: str,
    blacklist: Optional[Set[str]] = None,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Optional[str]:
    """
    Return the first rule a code value violates, or None if it is acceptable.

    Rules, in order (first match wins):
    1. blacklist    - normalized value is a blacklisted term
    2. length       - outside [min_length, max_length]
    3. too_generic  - all digits, or all letters with length <= 3
    4. repeated     - a single repeated character
    5. degenerate   - no letters and no digits

    Args:
        value: Code text
        blacklist: Upper-case terms to reject (default: BLACKLISTED_TERMS)
        min_length: Minimum code length (default: settings)
        max_length: Maximum code length (default: settings)

    Returns:
        Rule name, or None

    Examples:
        >>> rejection_reason("SAVE20")
        >>> rejection_reason("AAAA")
        'repeated'
    """
    if blacklist is None:
        blacklist = BLACKLISTED_TERMS
    if min_length is None:
        min_length = settings.code_min_length
    if max_length is None:
        max_length = settings.code_max_length

    if not isinstance(value, str):
        return "degenerate"

    code = normalize_code(value)

    if code in blacklist:
        return "blacklist"

    if not (min_length <= len(code) <= max_length):
        return "length"

    if _ALL_DIGITS.match(code) or (_ALL_LETTERS.match(code) and len(code) <= 3):
        return "too_generic"

    if _REPEATED_CHAR.match(code):
        return "repeated"

    if not _HAS_LETTER.search(code) and not _HAS_DIGIT.search(code):
        return "degenerate"

    return None


def is_valid_code(value: str, blacklist: Optional[Set[str]] = None) -> bool:
    """Check a code value against every filter rule."""
    return rejection_reason(value, blacklist) is None


def is_denied_link(url: str, denylist_patterns: Optional[List[str]] = None) -> bool:
    """
    Check a URL against the domain denylist.

    Args:
        url: Link to check
        denylist_patterns: Regex patterns (default: LINK_DENYLIST_PATTERNS)

    Returns:
        True if the link must be dropped
    """
    if denylist_patterns is None:
        denylist_patterns = LINK_DENYLIST_PATTERNS
    return any(re.search(pattern, url) for pattern in denylist_patterns)


def is_allowed_link(url: str, allowed_domains: Optional[Iterable[str]] = None) -> bool:
    """
    Check a URL against the domain allowlist.

    An empty allowlist allows every domain. Subdomains of an allowed domain
    are allowed too.

    Args:
        url: Link to check
        allowed_domains: Domains such as "amzn.to" (default: settings)

    Returns:
        True if the link may be kept
    """
    if allowed_domains is None:
        allowed_domains = settings.link_domain_allowlist
    domains = {d.strip().lower().lstrip(".") for d in allowed_domains if d and d.strip()}
    if not domains:
        return True

    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)


def build_blacklist(extra_terms: Optional[Iterable[str]] = None) -> Set[str]:
    """Static blacklist unioned with per-call extra terms."""
    blacklist = set(BLACKLISTED_TERMS)
    if extra_terms:
        blacklist.update(normalize_code(t) for t in extra_terms if t and t.strip())
    return blacklist


def filter_candidates(
    candidates: List[Candidate],
    blacklist: Optional[Set[str]] = None,
    denylist_patterns: Optional[List[str]] = None,
    link_allowlist: Optional[Iterable[str]] = None,
) -> List[Candidate]:
    """
    Apply hard deterministic filters to candidates.

    Codes go through `rejection_reason`; overlay-produced codes survive the
    length and too-generic rules (the scorer penalizes them instead). Links
    are checked against the domain denylist and, when non-empty, the domain
    allowlist. Discounts pass through.

    Args:
        candidates: Raw candidates from the pattern extractor
        blacklist: Upper-case blacklist (default: BLACKLISTED_TERMS)
        denylist_patterns: Link denylist regexes (default: LINK_DENYLIST_PATTERNS)
        link_allowlist: Domains links must belong to; empty allows all (default: settings)

    Returns:
        Kept candidates, in input order, unchanged
    """
    if blacklist is None:
        blacklist = BLACKLISTED_TERMS

    filtered = []
    rejected = 0

    for cand in candidates:
        if cand.kind == CandidateKind.CODE:
            reason = rejection_reason(cand.value, blacklist)
            if reason is not None and not (cand.from_overlay and reason in OVERLAY_TOLERATED):
                rejected += 1
                continue
        elif cand.kind == CandidateKind.LINK:
            url = str(cand.value)
            if is_denied_link(url, denylist_patterns) or not is_allowed_link(url, link_allowlist):
                rejected += 1
                continue

        filtered.append(cand)

    logger.debug(
        "candidates_filtered",
        input_count=len(candidates),
        kept_count=len(filtered),
        rejected_count=rejected,
    )

    return filtered
