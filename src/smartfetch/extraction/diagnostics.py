"""
Diagnostics channel for extraction anomalies.

Pattern failures never abort extraction; they are collected here so callers
can surface them separately from the ExtractionResult.
"""

from dataclasses import dataclass, field
from typing import List

from ..exceptions import PatternError


@dataclass
class Diagnostics:
    """
    Anomalies observed while processing one source item.

    Contains pattern errors (a rule was skipped) and non-fatal warnings.
    """
    pattern_errors: List[PatternError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_pattern_error(self, error: PatternError):
        """Record a rule that was skipped."""
        self.pattern_errors.append(error)

    def add_warning(self, warning: str):
        """Add a warning (non-fatal)."""
        self.warnings.append(warning)

    @property
    def has_errors(self) -> bool:
        return bool(self.pattern_errors)

    def messages(self) -> List[str]:
        """All anomalies as plain strings."""
        return [f"pattern_error: {e}" for e in self.pattern_errors] + list(self.warnings)
