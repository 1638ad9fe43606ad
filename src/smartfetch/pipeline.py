"""
End-to-end extraction pipeline.

raw text → Pattern Extractor → Candidate Filter → Confidence Scorer →
Escalation Controller → Result Assembler

The extraction and scoring stages are pure and synchronous; only the
escalation stage awaits. Items in a batch are processed concurrently and
isolated from each other: one failing item yields an ItemFailure and never
affects the rest.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import structlog

from .assembly import assemble, empty_result
from .config import settings
from .escalation import EscalationController
from .exceptions import InputError
from .extraction import Diagnostics, extract, normalize_raw_text
from .extraction.extractor import RawText
from .models.candidates import CandidateSet
from .models.results import ExtractionResult, ExtractionStatus, ScoreBreakdown
from .overlays import SourceRulesRegistry
from .scoring import ScoreContext, score


logger = structlog.get_logger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class SourceItem:
    """One unit of work: a video/post ID, its text and optional overlay key."""
    source_id: str
    raw_text: RawText
    source_key: Optional[str] = None


@dataclass
class ItemFailure:
    """An item whose processing raised; the rest of the batch is unaffected."""
    source_id: str
    error: str
    error_type: str


@dataclass
class PipelineStats:
    """Running counters for one pipeline instance."""
    processed: int = 0
    accepted: int = 0
    needs_review: int = 0
    rejected: int = 0
    escalated: int = 0
    enhanced: int = 0
    escalation_failures: int = 0
    errors: int = 0
    total_improvement: float = 0.0

    @property
    def avg_improvement(self) -> float:
        """Mean confidence change on items the secondary scorer re-scored."""
        if not self.enhanced:
            return 0.0
        return self.total_improvement / self.enhanced

    def to_dict(self) -> Dict[str, float]:
        data = asdict(self)
        data["avg_improvement"] = round(self.avg_improvement, 4)
        return data


Observer = Callable[[Union[ExtractionResult, ItemFailure]], None]


# ============================================================================
# PIPELINE
# ============================================================================

class ExtractionPipeline:
    """
    Orchestrates all stages for single items and batches.

    Collaborators are injected; defaults come from settings.
    """

    def __init__(
        self,
        overlays: Optional[SourceRulesRegistry] = None,
        escalation: Optional[EscalationController] = None,
        observer: Optional[Observer] = None,
        weights: Optional[Dict[str, float]] = None,
    ):
        """
        Initialize pipeline.

        Args:
            overlays: Per-source overlays (default: built-ins, plus
                settings.source_rules_path when set)
            escalation: Controller (default: threshold policy only, no secondary scorer)
            observer: Called with each result or ItemFailure as items complete
            weights: Scorer weight overrides
        """
        if overlays is None:
            if settings.source_rules_path:
                overlays = SourceRulesRegistry.from_file(settings.source_rules_path)
            else:
                overlays = SourceRulesRegistry.with_builtins()

        self.overlays = overlays
        self.escalation = escalation or EscalationController()
        self.observer = observer
        self.weights = weights
        self._stats = PipelineStats()

    # ------------------------------------------------------------------
    # Pure stages
    # ------------------------------------------------------------------

    def analyze(
        self,
        raw_text: RawText,
        source_key: Optional[str] = None,
    ) -> Tuple[CandidateSet, ScoreBreakdown, Diagnostics]:
        """
        Extract and score without escalation.

        Args:
            raw_text: Text or text segments
            source_key: Optional overlay key

        Returns:
            (candidate_set, score_breakdown, diagnostics)
        """
        diagnostics = Diagnostics()
        try:
            text = normalize_raw_text(raw_text)
        except InputError as e:
            diagnostics.add_warning(f"input: {e}")
            return CandidateSet.empty(), ScoreBreakdown(), diagnostics

        candidate_set = extract(text, overlay=self.overlays.get(source_key), diagnostics=diagnostics)
        breakdown = score(candidate_set, ScoreContext(raw_text=text), weights=self.weights)
        return candidate_set, breakdown, diagnostics

    # ------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------

    async def process(
        self,
        source_id: str,
        raw_text: RawText,
        source_key: Optional[str] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> ExtractionResult:
        """
        Process one item end to end.

        Empty or invalid input yields a zero-confidence REJECTED result and
        is never escalated. Escalation failures are recorded on the result,
        not raised.

        Args:
            source_id: Opaque item ID
            raw_text: Text or text segments
            source_key: Optional overlay key (channel ID, subreddit, ...)
            diagnostics: Optional collector for pattern errors and warnings

        Returns:
            ExtractionResult
        """
        log = logger.bind(source_id=source_id)

        try:
            text = normalize_raw_text(raw_text)
        except InputError as e:
            log.debug("item_input_empty", reason=str(e))
            if diagnostics is not None:
                diagnostics.add_warning(f"input: {e}")
            result = empty_result(source_id)
            self._record(result, escalated=False)
            self._notify(result)
            return result

        overlay = self.overlays.get(source_key)
        candidate_set = extract(text, overlay=overlay, diagnostics=diagnostics)
        breakdown = score(candidate_set, ScoreContext(raw_text=text), weights=self.weights)

        decision = await self.escalation.decide(
            source_id, candidate_set, breakdown.confidence, raw_text=text
        )

        result = assemble(
            source_id=source_id,
            candidate_set=decision.candidate_set,
            confidence=decision.confidence,
            status=decision.status,
            enhanced_by_fallback=decision.enhanced_by_fallback,
            original_confidence=decision.original_confidence,
            fallback_reasoning=decision.fallback_reasoning,
            fallback_recommendation=decision.fallback_recommendation,
            escalation_error=decision.escalation_error,
            score_breakdown=breakdown,
        )

        log.info(
            "item_processed",
            status=result.status.value,
            confidence=result.confidence,
            codes_count=len(result.codes),
            overlay=overlay is not None,
            escalated=decision.escalated,
            enhanced_by_fallback=result.enhanced_by_fallback,
        )

        self._record(result, escalated=decision.escalated)
        self._notify(result)
        return result

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def process_batch(
        self, items: Iterable[Union[SourceItem, Tuple]]
    ) -> List[Union[ExtractionResult, ItemFailure]]:
        """
        Process items concurrently with per-item isolation.

        Args:
            items: SourceItem values or (source_id, raw_text[, source_key]) tuples

        Returns:
            One ExtractionResult or ItemFailure per item, in input order
        """
        work = [item if isinstance(item, SourceItem) else SourceItem(*item) for item in items]

        logger.info("batch_started", items_count=len(work))

        outcomes = await asyncio.gather(*(self._process_isolated(item) for item in work))

        failures = sum(1 for o in outcomes if isinstance(o, ItemFailure))
        logger.info(
            "batch_completed",
            items_count=len(work),
            success_count=len(work) - failures,
            failure_count=failures,
        )
        return list(outcomes)

    async def _process_isolated(self, item: SourceItem) -> Union[ExtractionResult, ItemFailure]:
        try:
            return await self.process(item.source_id, item.raw_text, source_key=item.source_key)
        except Exception as e:
            logger.error(
                "item_processing_failed",
                source_id=item.source_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            failure = ItemFailure(
                source_id=item.source_id, error=str(e), error_type=type(e).__name__
            )
            self._stats.errors += 1
            self._notify(failure)
            return failure

    # ------------------------------------------------------------------
    # Stats / lifecycle
    # ------------------------------------------------------------------

    def stats(self) -> PipelineStats:
        """Snapshot of the counters."""
        return PipelineStats(**asdict(self._stats))

    def stop(self) -> None:
        """Stop issuing new escalations (in-flight ones still finish)."""
        self.escalation.stop()

    def _record(self, result: ExtractionResult, escalated: bool) -> None:
        stats = self._stats
        stats.processed += 1
        if result.status == ExtractionStatus.ACCEPTED:
            stats.accepted += 1
        elif result.status == ExtractionStatus.NEEDS_REVIEW:
            stats.needs_review += 1
        else:
            stats.rejected += 1

        if escalated:
            stats.escalated += 1
        if result.enhanced_by_fallback:
            stats.enhanced += 1
            stats.total_improvement += result.confidence - (result.original_confidence or 0.0)
        if result.escalation_error:
            stats.escalation_failures += 1

    def _notify(self, outcome: Union[ExtractionResult, ItemFailure]) -> None:
        if self.observer is None:
            return
        try:
            self.observer(outcome)
        except Exception as e:
            logger.warning(
                "observer_failed",
                source_id=outcome.source_id,
                error=str(e),
            )
