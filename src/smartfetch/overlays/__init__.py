"""Per-source rule overlays (channel/publisher specific blacklists and patterns)."""

from .registry import BUILTIN_SOURCE_RULES, SourceRulesRegistry

__all__ = ["BUILTIN_SOURCE_RULES", "SourceRulesRegistry"]
