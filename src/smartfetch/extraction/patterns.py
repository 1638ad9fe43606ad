"""
Tiered pattern rules for promotional artifact extraction.

Rules are plain records ({name, tier, kind, pattern}) evaluated in a fixed
priority order: HIGH (explicit actions and quoted codes), then MEDIUM
(labeled or loosely attached codes), then LOW (bare alphanumeric tokens).
LOW rules only run while fewer than `low_tier_max_prior_codes` valid codes
have been found by the stronger tiers.

Keywords are matched case-insensitively through scoped `(?i:...)` groups;
code bodies are matched case-sensitively so that "looks like a code"
(contains a digit, or is written in capitals) can be expressed in the regex.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

from ..models.candidates import CandidateKind, SourceTier

# Any 3-20 character token, letters/digits with inner hyphens
ANY_TOKEN = r"[A-Za-z0-9][A-Za-z0-9\-]{1,18}[A-Za-z0-9]"

# Token that looks like a code: contains a digit, or is all capitals
CODE_SHAPED_TOKEN = (
    r"(?:(?=[A-Za-z0-9\-]*\d)[A-Za-z0-9][A-Za-z0-9\-]{1,18}[A-Za-z0-9]"
    r"|[A-Z][A-Z0-9\-]{1,18}[A-Z0-9])"
)

_OPEN_QUOTE = r"[\"'\u201c\u2018]"
_CLOSE_QUOTE = r"[\"'\u201d\u2019]"
_CURRENCY = r"[$\u00a3\u20ac\u20b9]"
_AMOUNT = r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?"

TIER_ORDER: Tuple[SourceTier, ...] = (SourceTier.HIGH, SourceTier.MEDIUM, SourceTier.LOW)


@dataclass(frozen=True)
class PatternRule:
    """
    One extraction rule.

    Attributes:
        name: Stable rule identifier (logged and kept on candidates)
        tier: Provenance tier assigned to every candidate it produces
        kind: Artifact kind it produces
        pattern: Regex source
        flags: Extra `re` flags
        group: Named group holding the value; falls back to group 1, then group 0
        from_overlay: True for per-source custom rules
    """

    name: str
    tier: SourceTier
    kind: CandidateKind
    pattern: str
    flags: int = 0
    group: str = "code"
    from_overlay: bool = False
    _compiled: List[Pattern] = field(default_factory=list, compare=False, repr=False)

    def compile(self) -> Pattern:
        """Compile once and cache; raises re.error on a malformed pattern."""
        if not self._compiled:
            self._compiled.append(re.compile(self.pattern, self.flags))
        return self._compiled[0]

    def value_of(self, match: "re.Match") -> Optional[str]:
        """Extract the captured value from a match."""
        if self.group in match.re.groupindex:
            return match.group(self.group)
        if match.re.groups >= 1:
            return match.group(1)
        return match.group(0)


# ============================================================================
# CODE RULES
# ============================================================================

CODE_RULES: List[PatternRule] = [
    # HIGH: "use code SAVE20", "enter promo code: linus"
    PatternRule(
        name="action_keyword",
        tier=SourceTier.HIGH,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:use|enter|apply|redeem|type|input)\s+(?:the\s+|my\s+|our\s+)?"
            r"(?:promo\s*|coupon\s*|discount\s*|offer\s*)?code)\s*[:\-]?\s*"
            + _OPEN_QUOTE + r"?(?P<code>" + ANY_TOKEN + r")"
        ),
    ),
    # HIGH: "redeem ABC-123 now", "apply WELCOME15"
    PatternRule(
        name="action_bare",
        tier=SourceTier.HIGH,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:use|enter|apply|redeem|input))\s+" + _OPEN_QUOTE
            + r"?(?P<code>" + CODE_SHAPED_TOKEN + r")\b"
        ),
    ),
    # HIGH: "SAVE20" or 'WELCOME15'
    PatternRule(
        name="quoted",
        tier=SourceTier.HIGH,
        kind=CandidateKind.CODE,
        pattern=_OPEN_QUOTE + r"(?P<code>[A-Z0-9][A-Z0-9\-]{2,13}[A-Z0-9])" + _CLOSE_QUOTE,
    ),
    # HIGH: "checkout with SAVE20"
    PatternRule(
        name="checkout",
        tier=SourceTier.HIGH,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\bcheck\s?out\b)[^.!?\n]{0,30}?(?i:\b(?:with|using|code))\s*[:\-]?\s*"
            r"(?P<code>" + CODE_SHAPED_TOKEN + r")\b"
        ),
    ),
    # MEDIUM: "coupon: X", "promo=X", "code - X"
    PatternRule(
        name="labeled",
        tier=SourceTier.MEDIUM,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:promo\s*code|coupon\s*code|discount\s*code|voucher|code|promo|coupon))"
            r"\s*[:=]\s*" + _OPEN_QUOTE + r"?(?P<code>" + ANY_TOKEN + r")"
        ),
    ),
    # MEDIUM: "promo code SAVE20" without an action verb
    PatternRule(
        name="keyword_adjacent",
        tier=SourceTier.MEDIUM,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:code|promo|coupon|voucher))\s+(?P<code>" + CODE_SHAPED_TOKEN + r")\b"
        ),
    ),
    # MEDIUM: "grab WELCOME15", "save with SPRING24"
    PatternRule(
        name="get_save",
        tier=SourceTier.MEDIUM,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:get|save|grab|claim)\b)[^.!?\n]{0,12}?\b(?P<code>"
            + CODE_SHAPED_TOKEN + r")\b"
        ),
    ),
    # MEDIUM: "SAVE20 for 20% off"
    PatternRule(
        name="percent_tied",
        tier=SourceTier.MEDIUM,
        kind=CandidateKind.CODE,
        pattern=(
            r"\b(?P<code>" + CODE_SHAPED_TOKEN + r")(?i:\s+(?:for|gives?|gets?)\b)"
            r"[^.!?\n]{0,20}?\d{1,3}\s?%"
        ),
    ),
    # LOW: code-shaped token shortly after a promotional word
    PatternRule(
        name="contextual",
        tier=SourceTier.LOW,
        kind=CandidateKind.CODE,
        pattern=(
            r"(?i:\b(?:discount|deal|offer|special|sale)\b)[^.!?\n]{0,20}?\b(?P<code>"
            + CODE_SHAPED_TOKEN + r")\b"
        ),
    ),
    # LOW: bare capitals+digits token
    PatternRule(
        name="standalone",
        tier=SourceTier.LOW,
        kind=CandidateKind.CODE,
        pattern=r"\b(?P<code>(?=[A-Z0-9]*[A-Z])(?=[A-Z0-9]*\d)[A-Z0-9]{5,10})\b",
    ),
]


# ============================================================================
# DISCOUNT RULES
# ============================================================================

PERCENT_RULES: List[PatternRule] = [
    PatternRule(
        name="percent_suffix",
        tier=SourceTier.HIGH,
        kind=CandidateKind.PERCENT_OFF,
        pattern=(
            r"(?P<value>\d{1,3}(?:\.\d+)?)\s?%\s*(?i:off|discount|savings?|cashback|sale)\b"
        ),
        group="value",
    ),
    PatternRule(
        name="percent_prefix",
        tier=SourceTier.HIGH,
        kind=CandidateKind.PERCENT_OFF,
        pattern=(
            r"(?i:\b(?:save|saving|discount\s+of|up\s+to|extra))\s+"
            r"(?P<value>\d{1,3}(?:\.\d+)?)\s?%"
        ),
        group="value",
    ),
]

FLAT_RULES: List[PatternRule] = [
    PatternRule(
        name="flat_currency",
        tier=SourceTier.HIGH,
        kind=CandidateKind.FLAT_DISCOUNT,
        pattern=(
            _CURRENCY + r"\s?(?P<value>" + _AMOUNT + r")\s*"
            r"(?i:off|discount|cashback|savings?|credit)\b"
        ),
        group="value",
    ),
    PatternRule(
        name="flat_save",
        tier=SourceTier.HIGH,
        kind=CandidateKind.FLAT_DISCOUNT,
        pattern=r"(?i:\bsave)\s+" + _CURRENCY + r"\s?(?P<value>" + _AMOUNT + r")",
        group="value",
    ),
    PatternRule(
        name="flat_keyword",
        tier=SourceTier.HIGH,
        kind=CandidateKind.FLAT_DISCOUNT,
        pattern=(
            r"\b(?P<value>" + _AMOUNT + r")\s?"
            r"(?i:dollars|bucks|usd|euros?|eur|pounds|gbp|rupees|inr)\s+"
            r"(?i:off|discount|cashback|credit)\b"
        ),
        group="value",
    ),
]


# ============================================================================
# LINK RULES
# ============================================================================

LINK_RULE = PatternRule(
    name="url",
    tier=SourceTier.MEDIUM,
    kind=CandidateKind.LINK,
    pattern=r"https?://[^\s<>\"'()\[\]{}]+",
)

LINK_TRAILING_PUNCTUATION = ".,;:!?"

# Boilerplate link shapes: profile roots, community invites, follow/join pages
# Host patterns are anchored on the authority so look-alike hosts never match
_HOST = r"(?i)://(?:[^/?#@\s]*\.)?"

GENERIC_LINK_PATTERNS: List[str] = [
    _HOST + r"mrbeast\.store",
    _HOST + r"discord\.gg",
    _HOST + r"discord\.com/invite",
    _HOST + r"youtube\.com/channel",
    _HOST + r"youtube\.com/@",
    _HOST + r"youtube\.com/c/",
    _HOST + r"youtube\.com/user/",
    _HOST + r"instagram\.com/[^/?#]*/?$",
    _HOST + r"twitter\.com/[^/?#]*/?$",
    _HOST + r"x\.com/[^/?#]*/?$",
    _HOST + r"facebook\.com/[^/?#]*/?$",
    _HOST + r"tiktok\.com/@[^/?#]*/?$",
    _HOST + r"linkedin\.com/in/[^/?#]*/?$",
    _HOST + r"patreon\.com/[^/?#]*/?$",
    _HOST + r"twitch\.tv/[^/?#]*/?$",
    _HOST + r"reddit\.com/(?:r|u|user)/[^/?#]*/?$",
    r"(?i)/join/?$",
    r"(?i)/subscribe/?$",
    r"(?i)/follow/?$",
]

_GENERIC_LINK_REGEXES = [re.compile(p) for p in GENERIC_LINK_PATTERNS]


def is_generic_link(url: str) -> bool:
    """
    Check whether a URL is boilerplate (social profile root, join/follow page).

    Args:
        url: Link to check

    Returns:
        True for generic links that are never promotional
    """
    if not url or not isinstance(url, str):
        return True
    return any(regex.search(url) for regex in _GENERIC_LINK_REGEXES)


def rules_for_tier(rules: List[PatternRule], tier: SourceTier) -> List[PatternRule]:
    """Rules of one tier, in declaration order."""
    return [rule for rule in rules if rule.tier == tier]
