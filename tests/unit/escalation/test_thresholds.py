"""
Unit tests for status thresholds.
"""

import numpy as np
import pytest

from smartfetch.escalation import Thresholds, determine_status
from smartfetch.models import ExtractionStatus


@pytest.mark.unit
class TestThresholds:
    """Test Thresholds validation."""

    def test_defaults(self):
        t = Thresholds()
        assert (t.accept, t.review, t.escalation) == (0.6, 0.3, 0.4)

    def test_from_settings(self):
        t = Thresholds.from_settings()
        assert t.review <= t.accept

    def test_review_above_accept_rejected(self):
        with pytest.raises(ValueError):
            Thresholds(accept=0.4, review=0.5)

    def test_equal_thresholds_allowed(self):
        t = Thresholds(accept=0.5, review=0.5)
        assert determine_status(0.5, t) == ExtractionStatus.ACCEPTED
        assert determine_status(0.49, t) == ExtractionStatus.REJECTED

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            Thresholds(accept=1.5)

    def test_should_escalate(self):
        t = Thresholds()
        assert t.should_escalate(0.2)
        assert not t.should_escalate(0.4)


@pytest.mark.unit
class TestDetermineStatus:
    """Test status derivation."""

    @pytest.mark.parametrize(
        "confidence,status",
        [
            (1.0, ExtractionStatus.ACCEPTED),
            (0.6, ExtractionStatus.ACCEPTED),
            (0.5999, ExtractionStatus.NEEDS_REVIEW),
            (0.3, ExtractionStatus.NEEDS_REVIEW),
            (0.2999, ExtractionStatus.REJECTED),
            (0.0, ExtractionStatus.REJECTED),
        ],
    )
    def test_boundaries(self, confidence, status):
        assert determine_status(confidence, Thresholds()) == status

    def test_exactly_one_status_and_deterministic(self):
        t = Thresholds(accept=0.7, review=0.2)
        for x in np.linspace(0.0, 1.0, 201):
            first = determine_status(float(x), t)
            assert first in set(ExtractionStatus)
            assert determine_status(float(x), t) == first

    def test_status_non_decreasing_in_confidence(self):
        order = {ExtractionStatus.REJECTED: 0, ExtractionStatus.NEEDS_REVIEW: 1, ExtractionStatus.ACCEPTED: 2}
        t = Thresholds()
        ranks = [order[determine_status(float(x), t)] for x in np.linspace(0.0, 1.0, 101)]
        assert ranks == sorted(ranks)
