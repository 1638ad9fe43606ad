"""
Escalation Controller: status thresholds and the secondary scorer path.

Provides:
- Threshold policy and status derivation
- LLM-backed secondary scorer (OpenAI-compatible and Ollama clients)
- Sliding-window rate limiting and bounded concurrency
- Append-only failure log for later retry
"""

from .controller import EscalationController, EscalationDecision, EscalationOutcome
from .failure_log import FailureLog, FailureRecord, InMemoryFailureLog, JsonlFailureLog
from .llm_client import (
    LLMClient,
    LLMResponse,
    OllamaClient,
    OpenAICompatibleClient,
    create_llm_client,
    create_llm_client_from_model_string,
    parse_model_string,
)
from .rate_limiter import RateLimiter
from .schemas import EscalationRequest, SecondaryAssessment
from .scorer import LLMSecondaryScorer, SecondaryScorer
from .thresholds import Thresholds, determine_status
from .validators import parse_secondary_response, strip_code_fences

__all__ = [
    "EscalationController",
    "EscalationDecision",
    "EscalationOutcome",
    "FailureLog",
    "FailureRecord",
    "InMemoryFailureLog",
    "JsonlFailureLog",
    "LLMClient",
    "LLMResponse",
    "OllamaClient",
    "OpenAICompatibleClient",
    "create_llm_client",
    "create_llm_client_from_model_string",
    "parse_model_string",
    "RateLimiter",
    "EscalationRequest",
    "SecondaryAssessment",
    "LLMSecondaryScorer",
    "SecondaryScorer",
    "Thresholds",
    "determine_status",
    "parse_secondary_response",
    "strip_code_fences",
]
