"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- Candidate/CandidateSet construction helpers
- Fake secondary scorers (no network access in tests)
- A hand-driven clock for rate limiter tests
- Escalation controllers wired to in-memory collaborators
"""

import asyncio
import os
from typing import Callable, Iterable, List, Optional

import pytest

from smartfetch.escalation import (
    EscalationController,
    EscalationRequest,
    InMemoryFailureLog,
    RateLimiter,
    SecondaryAssessment,
    SecondaryScorer,
    Thresholds,
)
from smartfetch.models import Candidate, CandidateKind, CandidateSet, SourceTier


# ============================================================================
# FAKES
# ============================================================================

class FakeSecondaryScorer(SecondaryScorer):
    """Secondary scorer returning a canned assessment or raising a canned error."""

    name = "fake"

    def __init__(
        self,
        assessment: Optional[SecondaryAssessment] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
    ):
        self.assessment = assessment
        self.error = error
        self.delay = delay
        self.calls: List[EscalationRequest] = []
        self.active = 0
        self.max_active = 0

    async def assess(self, request: EscalationRequest) -> SecondaryAssessment:
        self.calls.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.assessment
        finally:
            self.active -= 1


class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# CANDIDATE HELPERS
# ============================================================================

def make_code(
    value: str,
    tier: SourceTier = SourceTier.HIGH,
    rule_name: str = "test_rule",
    from_overlay: bool = False,
) -> Candidate:
    return Candidate(
        kind=CandidateKind.CODE,
        value=value,
        source_tier=tier,
        rule_name=rule_name,
        from_overlay=from_overlay,
    )


def make_set(
    codes: Iterable[Candidate] = (),
    percent_off: Iterable[float] = (),
    flat_discount: Iterable[float] = (),
    links: Iterable[str] = (),
) -> CandidateSet:
    return CandidateSet(
        code_candidates=tuple(codes),
        links=frozenset(links),
        percent_off=frozenset(percent_off),
        flat_discount=frozenset(flat_discount),
    )


@pytest.fixture
def code_factory() -> Callable[..., Candidate]:
    """Build a code Candidate (value, tier=HIGH, rule_name, from_overlay)."""
    return make_code


@pytest.fixture
def set_factory() -> Callable[..., CandidateSet]:
    """Build a CandidateSet directly, bypassing extraction."""
    return make_set


# ============================================================================
# ESCALATION FIXTURES
# ============================================================================

@pytest.fixture
def assessment_factory() -> Callable[..., SecondaryAssessment]:
    def _make(confidence: float = 0.8, valid_codes=None, **kwargs) -> SecondaryAssessment:
        return SecondaryAssessment(
            confidence=confidence,
            valid_codes=list(valid_codes or []),
            reasoning=kwargs.pop("reasoning", "Explicit sponsor segment with a code"),
            recommendation=kwargs.pop("recommendation", "accept"),
            **kwargs,
        )
    return _make


@pytest.fixture
def fake_scorer_factory() -> Callable[..., FakeSecondaryScorer]:
    return FakeSecondaryScorer


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def failure_log() -> InMemoryFailureLog:
    return InMemoryFailureLog()


@pytest.fixture
def thresholds() -> Thresholds:
    return Thresholds(accept=0.6, review=0.3, escalation=0.4)


@pytest.fixture
def controller_factory(failure_log, fake_clock, thresholds) -> Callable[..., EscalationController]:
    """
    Build an EscalationController wired to the in-memory failure log and fake clock.

    Keyword arguments override the defaults.
    """
    def _make(scorer: Optional[SecondaryScorer] = None, **kwargs) -> EscalationController:
        params = {
            "thresholds": thresholds,
            "failure_log": failure_log,
            "rate_limiter": RateLimiter(
                max_requests=100, window_seconds=60.0, clock=fake_clock, sleep=fake_clock.sleep
            ),
            "max_concurrency": 4,
            "queue_size": 8,
            "timeout_seconds": 1.0,
            "enabled": True,
        }
        params.update(kwargs)
        return EscalationController(scorer=scorer, **params)
    return _make


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables after each test.

    This prevents test pollution from env var changes.
    """
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
