"""
Pattern extraction (tiered regex rules → CandidateSet).

Public API:
    - extract: Full extraction with filtering and deduplication (recommended)
    - extract_raw: Rule application only, no filtering
    - join_segments: Build extraction text from transcript/post segments
    - Diagnostics: Collector for skipped rules
"""

from .diagnostics import Diagnostics
from .extractor import compile_overlay_rules, extract, extract_raw, join_segments, normalize_raw_text
from .patterns import CODE_RULES, GENERIC_LINK_PATTERNS, PatternRule, is_generic_link

__all__ = [
    "Diagnostics",
    "extract",
    "extract_raw",
    "join_segments",
    "normalize_raw_text",
    "compile_overlay_rules",
    "CODE_RULES",
    "GENERIC_LINK_PATTERNS",
    "PatternRule",
    "is_generic_link",
]
