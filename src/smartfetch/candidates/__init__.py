"""
Candidate filter: blacklist and structural validity checks for extracted codes and links.
"""

from .blacklist import BLACKLISTED_TERMS, LINK_DENYLIST_PATTERNS
from .filters import (
    build_blacklist,
    filter_candidates,
    is_allowed_link,
    is_denied_link,
    is_valid_code,
    rejection_reason,
)

__all__ = [
    "BLACKLISTED_TERMS",
    "LINK_DENYLIST_PATTERNS",
    "build_blacklist",
    "filter_candidates",
    "is_allowed_link",
    "is_denied_link",
    "is_valid_code",
    "rejection_reason",
]
