"""
Per-source rule overlay registry.

Keyed by an opaque source identifier (a YouTube channel ID, a subreddit, a
publisher). A missing key is not an error: default rules apply.
"""

import json
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import structlog
from pydantic import ValidationError

from ..models.overlays import SourceRules


logger = structlog.get_logger(__name__)


# Built-in overlays for channels whose descriptions are known to be noisy
BUILTIN_SOURCE_RULES: Dict[str, SourceRules] = {
    # Linus Tech Tips
    "UCXuqSBlHAE6Xw-yeJA0Tunw": SourceRules(
        extra_blacklist=[
            "MERCH", "EXCLUSIVE", "CONTENT", "FLOATPLANE", "SPONSORS", "AFFILIATES",
            "PARTNERS", "CHAPTERS", "HERE", "LINK", "DDR5", "NVME", "16GB", "32GB",
            "I7", "RTX", "2025", "2024", "LINUS", "LTT", "TECHQUICKIE", "SHORTCIRCUIT",
        ],
        custom_patterns={"ltt_code": r"\b(ltt\d{2})\b"},
    ),
    # MrBeast Gaming
    "UCIPPMRA040LQr5QPyJEbmXA": SourceRules(
        extra_blacklist=[
            "MRBEAST", "GAMING", "CHALLENGE", "WINNER", "BEAST", "SUBSCRIBE",
            "NOTIFICATION", "BELL", "COMMENT", "LIKE",
        ],
        custom_patterns={"beast_code": r"\b(beast\w+)\b"},
    ),
    # MKBHD
    "UCBJycsmduvYEL83R_U4JriQ": SourceRules(
        extra_blacklist=[
            "MKBHD", "MARQUES", "BROWNLEE", "TECH", "REVIEW", "CRISP", "QUALITY",
            "RETRO", "VINTAGE", "STUDIO", "SETUP", "GEAR",
        ],
    ),
    # Unbox Therapy
    "UCsTcErHg8oDvUnTzoqsYeNw": SourceRules(
        extra_blacklist=[
            "UNBOX", "THERAPY", "LEWIS", "HILSENTEGER", "LATER", "LEVELS",
            "JACK", "WILLS", "VECTOR", "UNIT",
        ],
    ),
    # Austin Evans
    "UCXGgrKt94gR6lmN4aN3mYTg": SourceRules(
        extra_blacklist=[
            "AUSTIN", "EVANS", "DUNCAN", "KINCH", "THIS", "GOOD", "QUESTION",
            "GUYS", "HERE", "TODAY",
        ],
    ),
}


class SourceRulesRegistry:
    """
    Lookup of per-source overlays.

    Constructed explicitly and passed to the pipeline; there is no
    process-wide registry.
    """

    def __init__(self, rules: Optional[Dict[str, SourceRules]] = None):
        self._rules: Dict[str, SourceRules] = dict(rules or {})

    @classmethod
    def with_builtins(cls) -> "SourceRulesRegistry":
        return cls(BUILTIN_SOURCE_RULES)

    @classmethod
    def from_file(cls, path: Union[str, Path], include_builtins: bool = True) -> "SourceRulesRegistry":
        """
        Load overlays from a JSON file.

        Format:
            {"<source key>": {"blacklist": [...], "custom_patterns": {"name": "regex"}}}

        `extra_blacklist` is accepted as an alias of `blacklist`. Entries that
        fail validation are logged and skipped.

        Args:
            path: JSON file path
            include_builtins: Start from BUILTIN_SOURCE_RULES

        Returns:
            Registry with file entries overriding built-ins

        Raises:
            FileNotFoundError: If the file does not exist
            json.JSONDecodeError: If the file is not valid JSON
        """
        registry = cls.with_builtins() if include_builtins else cls()
        data = json.loads(Path(path).read_text(encoding="utf-8"))

        if not isinstance(data, dict):
            raise ValueError(f"Source rules file must hold a JSON object, got {type(data).__name__}")

        for key, entry in data.items():
            if not isinstance(entry, dict):
                logger.warning("source_rules_entry_skipped", key=key, reason="not an object")
                continue
            try:
                rules = SourceRules(
                    extra_blacklist=entry.get("extra_blacklist", entry.get("blacklist", [])),
                    custom_patterns=entry.get("custom_patterns", {}),
                )
            except ValidationError as e:
                logger.warning("source_rules_entry_skipped", key=key, reason=str(e))
                continue
            registry.register(key, rules)

        logger.info("source_rules_loaded", path=str(path), sources_count=len(registry))
        return registry

    def register(self, key: str, rules: SourceRules) -> None:
        self._rules[key] = rules

    def get(self, key: Optional[str]) -> Optional[SourceRules]:
        """Overlay for a source key, or None (default rules apply)."""
        if not key:
            return None
        return self._rules.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)
