"""
Escalation Controller.

Decides the final status of a scored item. Items whose heuristic
confidence is below the escalation threshold are sent to a secondary
scorer when one is configured; a successful answer replaces the heuristic
confidence (no blending) and the status is re-derived from the same
thresholds. Any failure keeps the heuristic outcome and appends a
retryable failure record.

Concurrency:
- a worker semaphore bounds in-flight secondary scorer calls
- an admission semaphore bounds the waiting queue; callers beyond it wait
- a sliding-window rate limiter bounds call starts per window
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from ..config import settings
from ..exceptions import EscalationError, EscalationTimeoutError, EscalationTransportError
from ..models.candidates import CandidateSet
from ..models.results import ExtractionStatus
from .failure_log import FailureLog, JsonlFailureLog
from .prompts import build_user_prompt, excerpt
from .rate_limiter import RateLimiter
from .schemas import EscalationRequest, SecondaryAssessment
from .scorer import SecondaryScorer
from .thresholds import Thresholds, determine_status


logger = structlog.get_logger(__name__)


@dataclass
class EscalationOutcome:
    """What happened when the secondary scorer was (or was not) consulted."""
    attempted: bool
    assessment: Optional[SecondaryAssessment] = None
    error: Optional[EscalationError] = None

    @property
    def succeeded(self) -> bool:
        return self.assessment is not None


@dataclass
class EscalationDecision:
    """
    Final confidence/status for one item, with the escalation audit trail.

    When no escalation happened (or it failed) the values equal the
    heuristic ones.
    """
    candidate_set: CandidateSet
    confidence: float
    status: ExtractionStatus
    escalated: bool = False
    enhanced_by_fallback: bool = False
    original_confidence: Optional[float] = None
    fallback_reasoning: Optional[str] = None
    fallback_recommendation: Optional[str] = None
    escalation_error: Optional[str] = None


class EscalationController:
    """
    Threshold policy plus bounded, rate-limited access to a secondary scorer.

    Without a scorer (or when disabled or stopped) it only derives status.
    """

    def __init__(
        self,
        scorer: Optional[SecondaryScorer] = None,
        thresholds: Optional[Thresholds] = None,
        failure_log: Optional[FailureLog] = None,
        rate_limiter: Optional[RateLimiter] = None,
        max_concurrency: Optional[int] = None,
        queue_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        if max_concurrency is None:
            max_concurrency = settings.escalation_max_concurrency
        if queue_size is None:
            queue_size = settings.escalation_queue_size
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if queue_size < 0:
            raise ValueError("queue_size must not be negative")

        self.scorer = scorer
        self.thresholds = thresholds or Thresholds.from_settings()
        self.failure_log = failure_log if failure_log is not None else JsonlFailureLog()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_concurrency = max_concurrency
        self.queue_size = queue_size
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.escalation_timeout_seconds
        )
        self.enabled = settings.escalation_enabled if enabled is None else enabled

        self._workers = asyncio.Semaphore(max_concurrency)
        self._admission = asyncio.Semaphore(max_concurrency + queue_size)
        self._stopped = False
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        return self.enabled and self.scorer is not None and not self._stopped

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def should_escalate(self, confidence: float) -> bool:
        return self.is_available and self.thresholds.should_escalate(confidence)

    def stop(self) -> None:
        """Stop issuing new escalations; in-flight calls finish on their own."""
        if not self._stopped:
            logger.info("escalation_stopped", in_flight=self._in_flight)
        self._stopped = True

    # ------------------------------------------------------------------
    # Secondary scorer access
    # ------------------------------------------------------------------

    async def escalate(self, request: EscalationRequest) -> EscalationOutcome:
        """
        Consult the secondary scorer for one item.

        Waits (never drops) when the queue, the worker pool or the rate
        budget is exhausted. Never raises for scorer failures: the error is
        recorded in the failure log and returned in the outcome.
        """
        log = logger.bind(source_id=request.source_id)

        if not self.is_available:
            return EscalationOutcome(attempted=False)

        async with self._admission:
            async with self._workers:
                # Stop may have been requested while this call was queued
                if self._stopped:
                    log.info("escalation_skipped_stopped")
                    return EscalationOutcome(attempted=False)

                await self.rate_limiter.acquire()

                self._in_flight += 1
                try:
                    assessment = await asyncio.wait_for(
                        self.scorer.assess(request), timeout=self.timeout_seconds
                    )
                except asyncio.TimeoutError:
                    error = EscalationTimeoutError(
                        f"secondary scorer did not answer within {self.timeout_seconds}s",
                        source_id=request.source_id,
                    )
                except EscalationError as e:
                    error = e
                except Exception as e:
                    log.error("secondary_scorer_crashed", error=str(e), exc_info=True)
                    error = EscalationTransportError(
                        f"secondary scorer failed: {e}", source_id=request.source_id
                    )
                else:
                    log.info(
                        "escalation_succeeded",
                        original_confidence=request.confidence,
                        confidence=assessment.confidence,
                        recommendation=assessment.recommendation,
                    )
                    return EscalationOutcome(attempted=True, assessment=assessment)
                finally:
                    self._in_flight -= 1

        await self._record_failure(request, error)
        return EscalationOutcome(attempted=True, error=error)

    async def _record_failure(self, request: EscalationRequest, error: EscalationError) -> None:
        """
        Append a retryable failure record off the event loop.

        A failure log that cannot be written is logged, never raised: the
        item keeps its heuristic result either way.
        """
        logger.warning(
            "escalation_failed",
            source_id=request.source_id,
            error=str(error),
            error_type=type(error).__name__,
            confidence=request.confidence,
        )
        try:
            await asyncio.to_thread(
                self.failure_log.append_failure,
                source_id=request.source_id,
                error=error,
                prompt=build_user_prompt(request),
                request=request.to_payload(),
                metadata={
                    "confidence": request.confidence,
                    "scorer": getattr(self.scorer, "name", type(self.scorer).__name__),
                },
            )
        except (OSError, ValueError, TypeError) as e:
            logger.error(
                "failure_log_write_failed",
                source_id=request.source_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    async def decide(
        self,
        source_id: str,
        candidate_set: CandidateSet,
        confidence: float,
        raw_text: Optional[str] = None,
    ) -> EscalationDecision:
        """
        Final confidence and status for a scored item.

        Args:
            source_id: Item ID (failure records and logs)
            candidate_set: Heuristic candidates
            confidence: Heuristic confidence
            raw_text: Source text; its leading slice is sent as the excerpt

        Returns:
            EscalationDecision
        """
        heuristic = EscalationDecision(
            candidate_set=candidate_set,
            confidence=confidence,
            status=determine_status(confidence, self.thresholds),
        )

        if not self.should_escalate(confidence):
            return heuristic

        request = EscalationRequest(
            source_id=source_id,
            candidate_set=candidate_set,
            confidence=confidence,
            text_excerpt=excerpt(raw_text),
        )
        outcome = await self.escalate(request)

        if not outcome.attempted:
            return heuristic

        if not outcome.succeeded:
            heuristic.escalated = True
            heuristic.escalation_error = f"{type(outcome.error).__name__}: {outcome.error}"
            return heuristic

        assessment = outcome.assessment
        final_set = candidate_set
        if assessment.valid_codes:
            final_set = candidate_set.restrict_codes(assessment.valid_codes)

        return EscalationDecision(
            candidate_set=final_set,
            confidence=assessment.confidence,
            status=determine_status(assessment.confidence, self.thresholds),
            escalated=True,
            enhanced_by_fallback=True,
            original_confidence=confidence,
            fallback_reasoning=assessment.reasoning,
            fallback_recommendation=assessment.recommendation,
        )
