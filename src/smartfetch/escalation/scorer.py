"""
Secondary scorer interface and its LLM-backed implementation.

A SecondaryScorer is asked for a fresh verdict on low-confidence items. It
either returns a SecondaryAssessment or raises an EscalationError.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from .llm_client import LLMClient, create_llm_client
from .prompts import build_messages
from .schemas import EscalationRequest, SecondaryAssessment
from .validators import parse_secondary_response


logger = structlog.get_logger(__name__)


class SecondaryScorer(ABC):
    """Slower, more accurate judge consulted for low-confidence items."""

    name = "secondary"

    @abstractmethod
    async def assess(self, request: EscalationRequest) -> SecondaryAssessment:
        """
        Assess one escalated item.

        Raises:
            EscalationError: Transport, timeout or parse failure
        """
        pass


class LLMSecondaryScorer(SecondaryScorer):
    """
    Secondary scorer backed by a chat LLM.

    Sends the extraction summary plus a text excerpt and validates the JSON
    verdict.
    """

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or create_llm_client()
        self.name = f"{self.client.provider_name}/{self.client.model}"

    async def assess(self, request: EscalationRequest) -> SecondaryAssessment:
        response = await self.client.complete(build_messages(request))

        logger.debug(
            "secondary_scorer_answered",
            source_id=request.source_id,
            provider=response.provider,
            latency_ms=response.latency_ms,
            tokens_total=response.tokens_total,
        )

        return parse_secondary_response(response.content, source_id=request.source_id)
