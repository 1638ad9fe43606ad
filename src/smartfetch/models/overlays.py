"""
Per-source rule overlays (channel- or publisher-specific extraction rules).
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class SourceRules(BaseModel):
    """
    Extra rules applied when extracting from one source (e.g. a YouTube channel).

    Custom patterns are evaluated before the built-in tiers and yield HIGH-tier
    codes. Extra blacklist terms are added to the candidate filter blacklist for
    that call only.
    """

    model_config = ConfigDict(frozen=True)

    extra_blacklist: List[str] = Field(
        default_factory=list, description="Additional terms never accepted as codes"
    )
    custom_patterns: Dict[str, str] = Field(
        default_factory=dict,
        description="name → regex; group 'code' or group 1 is the code, else the whole match",
    )

    def blacklist_terms(self) -> List[str]:
        return [t.strip().upper() for t in self.extra_blacklist if t and t.strip()]
