"""
Error taxonomy for the extraction and scoring pipeline.

Only the escalation errors ever leave the component that raised them:
input, pattern and scoring errors are recovered where they happen and
surface through diagnostics or logs.
"""

from typing import Optional


class SmartFetchError(Exception):
    """Base class for all pipeline errors."""


class InputError(SmartFetchError):
    """Raw text is missing, empty, or not text."""


class PatternError(SmartFetchError):
    """A single pattern rule failed to compile or match."""

    def __init__(self, rule_name: str, message: str):
        self.rule_name = rule_name
        super().__init__(f"{rule_name}: {message}")


class ScoringError(SmartFetchError):
    """The scorer received malformed candidate data for one contribution."""


class EscalationError(SmartFetchError):
    """
    Secondary scorer failure.

    Every subclass is retryable: the failure is appended to the failure
    log and replayed later by an external retry driver.
    """

    retryable = True

    def __init__(self, message: str, source_id: Optional[str] = None):
        self.source_id = source_id
        super().__init__(message)


class EscalationTransportError(EscalationError):
    """Secondary scorer unreachable or returned a transport-level error."""


class EscalationTimeoutError(EscalationError):
    """Secondary scorer did not answer within the configured timeout."""


class EscalationParseError(EscalationError):
    """Secondary scorer answered with unparseable or out-of-range output."""
